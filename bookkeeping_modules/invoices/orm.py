"""
Invoice ORM Models (``bookkeeping_modules.invoices.orm``).

Responsibility
--------------
SQLAlchemy persistence models for invoices and invoice items.  Maps the
frozen dataclasses in ``models.py`` to database tables.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``bookkeeping_kernel.db.base``
and sibling ``models.py``.  MUST NOT be imported by ``bookkeeping_kernel``.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookkeeping_kernel.db.base import TrackedBase
from bookkeeping_modules._line_items import LineItem
from bookkeeping_modules.parties.orm import PayeeModel


class InvoiceModel(TrackedBase):
    """
    ORM model for invoices and credit notes.

    Maps to the ``Invoice`` frozen dataclass.  Items are stored in a
    separate child table via the ``items`` relationship, ordered by
    position.

    Guarantees:
        - (payee_id, invoice_number) is unique (uq_invoices_payee_number).
        - total_amount is integer minor units, derived from items by
          ``recompute_total``; a negative total marks a credit note.
        - status stored as string enum value.
    """

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("payee_id", "invoice_number", name="uq_invoices_payee_number"),
        Index("idx_invoices_payee_id", "payee_id"),
        Index("idx_invoices_status", "status"),
        Index("idx_invoices_invoice_date", "invoice_date"),
        Index("idx_invoices_parent_invoice_id", "parent_invoice_id"),
    )

    payee_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payees.id"), nullable=True
    )
    invoice_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    invoice_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    customer_tax_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    total_amount: Mapped[int] = mapped_column(nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")
    parent_invoice_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("invoices.id"), nullable=True
    )
    document_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    document_path_secondary: Mapped[str | None] = mapped_column(String(500), nullable=True)
    generated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    payee: Mapped[PayeeModel | None] = relationship()
    items: Mapped[list["InvoiceItemModel"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItemModel.position",
        lazy="selectin",
    )

    @property
    def period_year(self) -> int | None:
        return self.invoice_date.year if self.invoice_date else None

    @property
    def period_month(self) -> int | None:
        return self.invoice_date.month if self.invoice_date else None

    @property
    def is_credit_note(self) -> bool:
        return self.total_amount < 0

    @property
    def is_due_on_receipt(self) -> bool:
        return self.due_date is None

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from bookkeeping_modules.invoices.models import Invoice, InvoiceStatus

        return Invoice(
            id=self.id,
            currency=self.currency,
            total_amount=self.total_amount,
            status=InvoiceStatus(self.status),
            payee_id=self.payee_id,
            invoice_number=self.invoice_number,
            invoice_date=self.invoice_date,
            due_date=self.due_date,
            customer_name=self.customer_name,
            customer_address=self.customer_address,
            customer_tax_id=self.customer_tax_id,
            parent_invoice_id=self.parent_invoice_id,
            items=tuple(item.to_dto() for item in self.items),
            document_path=self.document_path,
            document_path_secondary=self.document_path_secondary,
            generated_at=self.generated_at,
            error_message=self.error_message,
        )

    def __repr__(self) -> str:
        return (
            f"<InvoiceModel {self.invoice_number or self.id} "
            f"status={self.status} total={self.total_amount}>"
        )


class InvoiceItemModel(TrackedBase):
    """
    ORM model for invoice line items.

    A Stripe transaction links to at most one item (and each item to at
    most one transaction) through ``stripe_transactions.invoice_item_id``.
    """

    __tablename__ = "invoice_items"

    __table_args__ = (
        Index("idx_invoice_items_invoice_id", "invoice_id"),
    )

    invoice_id: Mapped[UUID] = mapped_column(ForeignKey("invoices.id"), nullable=False)
    position: Mapped[int] = mapped_column(nullable=False, default=0)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="units")
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price_minor: Mapped[int] = mapped_column(nullable=False)
    total_minor: Mapped[int] = mapped_column(nullable=False, default=0)

    invoice: Mapped["InvoiceModel"] = relationship(back_populates="items")

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from bookkeeping_modules._line_items import LineItemUnit
        from bookkeeping_modules.invoices.models import InvoiceItem

        return InvoiceItem(
            id=self.id,
            invoice_id=self.invoice_id,
            position=self.position,
            description=self.description,
            unit=LineItemUnit(self.unit),
            quantity=self.quantity,
            unit_price_minor=self.unit_price_minor,
            total_minor=self.total_minor,
        )

    @classmethod
    def from_line_item(cls, item: LineItem, position: int, created_by_id: UUID) -> "InvoiceItemModel":
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
        return f"<InvoiceItemModel {self.position}: {self.quantity} x {self.unit_price_minor}>"
