"""
Stripe ORM Models (``bookkeeping_modules.stripe.orm``).

Responsibility
--------------
SQLAlchemy persistence models for Stripe accounts and imported
transactions.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``bookkeeping_kernel.db.base``
and sibling ``models.py``.  MUST NOT be imported by ``bookkeeping_kernel``.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookkeeping_kernel.db.base import TrackedBase
from bookkeeping_modules.invoices.orm import InvoiceItemModel


class StripeAccountModel(TrackedBase):
    """
    ORM model for connected Stripe accounts.

    Guarantees:
        - account_id (Stripe's ``acct_...`` identifier) is unique.
        - payee_id FK to payees.id: invoices generated from this account's
          transactions consume that payee's number sequence.
    """

    __tablename__ = "stripe_accounts"

    __table_args__ = (
        UniqueConstraint("account_id", name="uq_stripe_accounts_account_id"),
        Index("idx_stripe_accounts_payee_id", "payee_id"),
    )

    payee_id: Mapped[UUID] = mapped_column(ForeignKey("payees.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_id: Mapped[str] = mapped_column(String(100), nullable=False)
    last_synced_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from bookkeeping_modules.stripe.models import StripeAccount

        return StripeAccount(
            id=self.id,
            payee_id=self.payee_id,
            name=self.name,
            account_id=self.account_id,
            last_synced_at=self.last_synced_at,
        )

    def __repr__(self) -> str:
        return f"<StripeAccountModel {self.account_id}: {self.name}>"


class StripeTransactionModel(TrackedBase):
    """
    ORM model for imported Stripe transactions.

    Guarantees:
        - external_id (Stripe's ``txn_...`` identifier) is unique.
        - invoice_item_id is unique: a transaction links to at most one
          invoice item and an item is claimed by at most one transaction.
        - status == "invoiced" iff invoice_item_id is set; only the
          reconciliation engine writes either column.
    """

    __tablename__ = "stripe_transactions"

    __table_args__ = (
        UniqueConstraint("external_id", name="uq_stripe_transactions_external_id"),
        UniqueConstraint("invoice_item_id", name="uq_stripe_transactions_invoice_item_id"),
        Index("idx_stripe_transactions_account_id", "stripe_account_id"),
        Index("idx_stripe_transactions_status", "status"),
        Index("idx_stripe_transactions_date", "transaction_date"),
    )

    stripe_account_id: Mapped[UUID] = mapped_column(
        ForeignKey("stripe_accounts.id"), nullable=False
    )
    external_id: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount_minor: Mapped[int] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    transaction_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    transaction_date: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending_review"
    )
    is_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    invoice_item_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("invoice_items.id"), nullable=True
    )

    stripe_account: Mapped["StripeAccountModel"] = relationship()
    invoice_item: Mapped[InvoiceItemModel | None] = relationship()

    @property
    def is_invoiced(self) -> bool:
        return self.invoice_item_id is not None

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from bookkeeping_modules.stripe.models import (
            StripeTransaction,
            TransactionStatus,
            TransactionType,
        )

        return StripeTransaction(
            id=self.id,
            stripe_account_id=self.stripe_account_id,
            external_id=self.external_id,
            type=TransactionType(self.type),
            amount_minor=self.amount_minor,
            currency=self.currency,
            transaction_date=self.transaction_date,
            status=TransactionStatus(self.status),
            is_complete=self.is_complete,
            customer_name=self.customer_name,
            customer_email=self.customer_email,
            customer_address=self.customer_address,
            description=self.description,
            metadata=dict(self.transaction_metadata or {}),
            invoice_item_id=self.invoice_item_id,
        )

    def __repr__(self) -> str:
        return (
            f"<StripeTransactionModel {self.external_id} "
            f"{self.type} {self.amount_minor} {self.currency} status={self.status}>"
        )
