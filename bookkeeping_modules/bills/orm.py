"""
Bill ORM Models (``bookkeeping_modules.bills.orm``).

Responsibility
--------------
SQLAlchemy persistence models for supplier bills.  Maps the frozen
dataclasses in ``models.py`` to database tables.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``bookkeeping_kernel.db.base``
and sibling ``models.py``.  MUST NOT be imported by ``bookkeeping_kernel``.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookkeeping_kernel.db.base import TrackedBase
from bookkeeping_modules._line_items import LineItem
from bookkeeping_modules.parties.orm import PayeeModel, SupplierModel


class BillModel(TrackedBase):
    """
    ORM model for supplier bills.

    Maps to the ``Bill`` frozen dataclass.  Items are stored in a separate
    child table via the ``items`` relationship, ordered by position.

    Guarantees:
        - total_amount is integer minor units, derived from items by
          ``recompute_total``.
        - status stored as string enum value.
    """

    __tablename__ = "bills"

    __table_args__ = (
        Index("idx_bills_supplier_id", "supplier_id"),
        Index("idx_bills_payee_id", "payee_id"),
        Index("idx_bills_status", "status"),
    )

    supplier_id: Mapped[UUID] = mapped_column(
        ForeignKey("suppliers.id"), nullable=False
    )
    payee_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payees.id"), nullable=True
    )
    bill_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bill_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    total_amount: Mapped[int] = mapped_column(nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")
    document_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    generated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    supplier: Mapped[SupplierModel] = relationship()
    payee: Mapped[PayeeModel | None] = relationship()
    items: Mapped[list["BillItemModel"]] = relationship(
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="BillItemModel.position",
        lazy="selectin",
    )

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from bookkeeping_modules.bills.models import Bill, BillStatus

        return Bill(
            id=self.id,
            supplier_id=self.supplier_id,
            currency=self.currency,
            total_amount=self.total_amount,
            status=BillStatus(self.status),
            payee_id=self.payee_id,
            bill_number=self.bill_number,
            bill_date=self.bill_date,
            due_date=self.due_date,
            items=tuple(item.to_dto() for item in self.items),
            document_path=self.document_path,
            generated_at=self.generated_at,
            error_message=self.error_message,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return (
            f"<BillModel {self.bill_number or self.id} "
            f"status={self.status} total={self.total_amount}>"
        )


class BillItemModel(TrackedBase):
    """ORM model for bill line items.  Each item belongs to exactly one bill."""

    __tablename__ = "bill_items"

    __table_args__ = (
        Index("idx_bill_items_bill_id", "bill_id"),
    )

    bill_id: Mapped[UUID] = mapped_column(ForeignKey("bills.id"), nullable=False)
    position: Mapped[int] = mapped_column(nullable=False, default=0)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="units")
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price_minor: Mapped[int] = mapped_column(nullable=False)
    total_minor: Mapped[int] = mapped_column(nullable=False, default=0)

    bill: Mapped["BillModel"] = relationship(back_populates="items")

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from bookkeeping_modules._line_items import LineItemUnit
        from bookkeeping_modules.bills.models import BillItem

        return BillItem(
            id=self.id,
            bill_id=self.bill_id,
            position=self.position,
            description=self.description,
            unit=LineItemUnit(self.unit),
            quantity=self.quantity,
            unit_price_minor=self.unit_price_minor,
            total_minor=self.total_minor,
        )

    @classmethod
    def from_line_item(cls, item: LineItem, position: int, created_by_id: UUID) -> "BillItemModel":
        return cls(
            position=position,
            description=item.description,
            unit=item.unit.value,
            quantity=item.quantity,
            unit_price_minor=item.unit_price_minor,
            total_minor=item.total_minor,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<BillItemModel {self.position}: {self.quantity} x {self.unit_price_minor}>"
