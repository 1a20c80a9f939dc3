import re

from typing import Any

ZERO_ADDRESS = "0x" + "0" * 40

ADDRESS_REGEX = re.compile(r"^0x[0-9a-f]{40}$")


def standardize_address(address: str) -> str:
    address = address.lower().removeprefix("0x")
    return "0x" + address.zfill(40)


def is_valid_address(address: str) -> bool:
    return ADDRESS_REGEX.match(address) is not None


def is_zero_address(address: str | None) -> bool:
    return address is None or standardize_address(address) == ZERO_ADDRESS


def parse_uint(value: Any) -> int:
    """Parse a non-negative integer from a JSON number, decimal string or 0x hex string."""
    if isinstance(value, bool):
        raise ValueError("booleans are not integers")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        value = value.strip()
        if value.lower().startswith("0x"):
            parsed = int(value, 16)
        else:
            parsed = int(value, 10)
    else:
        raise ValueError(f"cannot parse integer from {type(value).__name__}")

    if parsed < 0:
        raise ValueError("value must be non-negative")
    return parsed


def event_id(transaction_hash: str, log_index: int) -> str:
    return f"{transaction_hash}-{log_index}"
