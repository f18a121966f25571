"""
Stripe Domain Models (``bookkeeping_modules.stripe.models``).

Frozen dataclass value objects for connected Stripe accounts and the
transactions the sync job imports from them, plus the pure rules the
reconciliation engine relies on (completeness, credit sign).

**Modules layer** -- pure data definitions with ZERO I/O.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


class TransactionType(str, Enum):
    PAYMENT = "payment"
    REFUND = "refund"
    CHARGEBACK = "chargeback"
    FEE = "fee"


class TransactionStatus(str, Enum):
    """Reconciliation state of an imported transaction."""
    PENDING_REVIEW = "pending_review"
    READY = "ready"
    INVOICED = "invoiced"
    IGNORED = "ignored"


# Transaction types that reduce what the customer owes.
CREDIT_TYPES = frozenset({TransactionType.REFUND, TransactionType.CHARGEBACK})


@dataclass(frozen=True)
class StripeAccount:
    """A Stripe account whose transactions are invoiced on behalf of a payee."""
    id: UUID
    payee_id: UUID
    name: str
    account_id: str
    last_synced_at: datetime | None = None


@dataclass(frozen=True)
class StripeTransaction:
    """A single imported balance transaction."""
    id: UUID
    stripe_account_id: UUID
    external_id: str
    type: TransactionType
    amount_minor: int
    currency: str
    transaction_date: datetime
    status: TransactionStatus = TransactionStatus.PENDING_REVIEW
    is_complete: bool = False
    customer_name: str | None = None
    customer_email: str | None = None
    customer_address: str | None = None
    description: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    invoice_item_id: UUID | None = None

    @property
    def is_invoiced(self) -> bool:
        return self.invoice_item_id is not None


def is_complete(
    customer_name: str | None,
    description: str | None,
    amount_minor: int | None,
    currency: str | None,
) -> bool:
    """A transaction can be invoiced once it names a customer, a description,
    an amount and a currency."""
    return bool(
        customer_name
        and customer_name.strip()
        and description
        and description.strip()
        and amount_minor is not None
        and currency
        and currency.strip()
    )


def invoiced_amount(transaction_type: TransactionType | str, amount_minor: int) -> int:
    """Signed amount to put on the invoice: refunds and chargebacks are credits."""
    if TransactionType(transaction_type) in CREDIT_TYPES:
        return -abs(amount_minor)
    return amount_minor
