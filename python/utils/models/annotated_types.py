from decimal import Decimal
from sqlalchemy import BigInteger, Boolean, DateTime, func, Integer, Numeric, String
from sqlalchemy.orm import mapped_column, Mapped
from sqlalchemy.types import TypeDecorator
from datetime import datetime
from typing_extensions import Annotated


class Uint256(TypeDecorator):
    """NUMERIC(78, 0) column that round-trips as a Python int."""

    impl = Numeric(78, 0)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return Decimal(int(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


# To make pylint happy

# Primary key types
BigIntegerPrimaryKeyType = Mapped[
    Annotated[int, mapped_column(BigInteger, primary_key=True)]
]
StringPrimaryKeyType = Mapped[Annotated[str, mapped_column(String, primary_key=True)]]

# Normal types
BigIntegerType = Mapped[Annotated[int, mapped_column(BigInteger)]]
IntegerType = Mapped[Annotated[int, mapped_column(Integer)]]
BooleanType = Mapped[Annotated[bool, mapped_column(Boolean)]]
StringType = Mapped[Annotated[str, mapped_column(String)]]
Uint256Type = Mapped[Annotated[int, mapped_column(Uint256)]]

# Nullable types
NullableStringType = Mapped[Annotated[str | None, mapped_column(String, nullable=True)]]
NullableUint256Type = Mapped[
    Annotated[int | None, mapped_column(Uint256, nullable=True)]
]
NullableBigIntegerType = Mapped[
    Annotated[int | None, mapped_column(BigInteger, nullable=True)]
]

# Timestamp types
InsertedAtType = Mapped[
    Annotated[datetime, mapped_column(DateTime(timezone=True), default=func.now())]
]
UpdatedAtType = Mapped[
    Annotated[
        datetime,
        mapped_column(
            DateTime(timezone=True),
            default=func.now(),
            onupdate=func.now(),
        ),
    ]
]
