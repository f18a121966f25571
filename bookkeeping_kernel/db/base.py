"""
Declarative base for the bookkeeping schema.

Every table (payees, suppliers, invoices, bills, their items, Stripe
transactions) hangs off ``TrackedBase``.  Amounts are stored as integer
minor units, so ``int`` columns map to BigInteger; ``Decimal`` only appears
for line-item quantities.  Floats never reach the schema.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID column stored as its 36-character text form (SQLite has no UUID type)."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        # Accept ids that arrive as strings from callers and normalize them.
        return str(value if isinstance(value, UUID) else UUID(str(value)))

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        int: BigInteger,
        Decimal: Numeric(18, 4),
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Adds who/when columns to a bookkeeping record.

    ``created_by_id`` is mandatory: every payee, document and imported
    transaction is attributed to the actor that created it.  Lifecycle
    operations record the acting user through ``touch``.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )
    created_by_id: Mapped[UUID] = mapped_column(nullable=False)
    updated_by_id: Mapped[UUID | None] = mapped_column(nullable=True)

    def touch(self, actor_id: UUID) -> None:
        self.updated_by_id = actor_id
