from __future__ import annotations
from datetime import datetime, UTC
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Optional
from uuid import uuid4
from sqlalchemy import CHAR, BigInteger, Numeric
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel

MONEY_SCALE = 4
_QUANTUM = Decimal(1).scaleb(-MONEY_SCALE)
_MAX_MINOR_UNITS = 2**63 - 1

class Money(TypeDecorator):
    """Fixed-point amount with four decimal places.

    Stored as NUMERIC(19, 4) where the database has an exact decimal type.
    SQLite has none, so there it is a BIGINT count of 1/10000 units and
    ``balance + :delta`` stays integer arithmetic.
    """

    impl = Numeric(19, MONEY_SCALE)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(BigInteger())
        return dialect.type_descriptor(Numeric(19, MONEY_SCALE))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        amount = Decimal(value).quantize(_QUANTUM, rounding=ROUND_HALF_EVEN)
        if dialect.name != "sqlite":
            return amount
        minor_units = int(amount.scaleb(MONEY_SCALE))
        if abs(minor_units) > _MAX_MINOR_UNITS:
            raise ValueError(f"Amount {value} is out of range")
        return minor_units

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "sqlite":
            return Decimal(value).scaleb(-MONEY_SCALE)
        return Decimal(value).quantize(_QUANTUM)

class Account(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    first_name: str = Field(max_length=50)
    last_name: str = Field(max_length=50)
    uuid: str = Field(
        default_factory=lambda: str(uuid4()),
        sa_type=CHAR(36),
        unique=True,
        nullable=False,
    )
    balance: Decimal = Field(default=Decimal("0"), sa_type=Money(), nullable=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
