import io
import json
import logging

from utils.logging import CustomLogger, JsonFormatter


def make_logger():
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonFormatter())
    logger = CustomLogger("test_logger")
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    return logger, stream


def test_extra_fields_are_nested_under_fields():
    logger, stream = make_logger()

    logger.info(
        "[Auctionhouse] Applied event",
        extra={"listing_id": 42, "amount": 2**256 - 1, "module": "not a clash"},
    )

    line = json.loads(stream.getvalue())
    assert line["level"] == "INFO"
    assert line["fields"] == {
        "message": "[Auctionhouse] Applied event",
        "listing_id": 42,
        "amount": 2**256 - 1,
        "module": "not a clash",
    }
    assert line["module"] == "test_logging"


def test_exceptions_are_logged_as_a_field():
    logger, stream = make_logger()

    try:
        raise ValueError("bad amount")
    except ValueError:
        logger.exception("[Parser] Failed")

    line = json.loads(stream.getvalue())
    assert "ValueError: bad amount" in line["fields"]["exception"]
