"""
Party ORM Models (``bookkeeping_modules.parties.orm``).

Responsibility
--------------
SQLAlchemy persistence models for payees and suppliers.  Maps the frozen
dataclasses in ``models.py`` to database tables.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``bookkeeping_kernel.db``
and sibling ``models.py``.  MUST NOT be imported by ``bookkeeping_kernel``.
"""

from uuid import UUID

from sqlalchemy import CheckConstraint, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bookkeeping_kernel.db.base import TrackedBase


class PayeeModel(TrackedBase):
    """
    ORM model for payees.

    Guarantees:
        - invoice_prefix is unique (uq_payees_invoice_prefix).
        - next_invoice_number starts at 1 and is only ever changed by
          ``InvoiceNumberSequencer`` via an atomic UPDATE.
    """

    __tablename__ = "payees"

    __table_args__ = (
        UniqueConstraint("invoice_prefix", name="uq_payees_invoice_prefix"),
        CheckConstraint("next_invoice_number >= 1", name="ck_payees_next_invoice_number"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tax_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    invoice_prefix: Mapped[str] = mapped_column(String(50), nullable=False)
    next_invoice_number: Mapped[int] = mapped_column(nullable=False, default=1)

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from bookkeeping_modules.parties.models import Payee

        return Payee(
            id=self.id,
            name=self.name,
            invoice_prefix=self.invoice_prefix,
            next_invoice_number=self.next_invoice_number,
            address=self.address,
            city=self.city,
            postal_code=self.postal_code,
            country=self.country,
            tax_id=self.tax_id,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "PayeeModel":
        """Create ORM model from frozen dataclass."""
        return cls(
            id=dto.id,
            name=dto.name,
            invoice_prefix=dto.invoice_prefix,
            next_invoice_number=dto.next_invoice_number,
            address=dto.address,
            city=dto.city,
            postal_code=dto.postal_code,
            country=dto.country,
            tax_id=dto.tax_id,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<PayeeModel {self.invoice_prefix}: {self.name} "
            f"next={self.next_invoice_number}>"
        )


class SupplierModel(TrackedBase):
    """ORM model for suppliers (bill issuers)."""

    __tablename__ = "suppliers"

    __table_args__ = (
        Index("idx_suppliers_name", "name"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    tax_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from bookkeeping_modules.parties.models import Supplier

        return Supplier(id=self.id, name=self.name, tax_id=self.tax_id, email=self.email)

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "SupplierModel":
        """Create ORM model from frozen dataclass."""
        return cls(
            id=dto.id,
            name=dto.name,
            tax_id=dto.tax_id,
            email=dto.email,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<SupplierModel {self.name}>"
