"""
Invoice Domain Models (``bookkeeping_modules.invoices.models``).

Responsibility
--------------
Frozen dataclass value objects for issued invoices (and credit notes,
which are invoices with a negative total) and their line items.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields are integer minor units -- NEVER ``float``.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from bookkeeping_modules._line_items import LineItemUnit


class InvoiceStatus(str, Enum):
    """Invoice lifecycle states."""
    PENDING = "pending"
    EXTRACTED = "extracted"
    REVIEWED = "reviewed"
    READY_TO_SEND = "ready_to_send"
    SENT = "sent"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    FAILED = "failed"


@dataclass(frozen=True)
class InvoiceItem:
    """A single line on an invoice."""
    id: UUID
    invoice_id: UUID
    position: int
    description: str
    unit: LineItemUnit
    quantity: Decimal
    unit_price_minor: int
    total_minor: int


@dataclass(frozen=True)
class Invoice:
    """An invoice issued on behalf of a payee."""
    id: UUID
    currency: str
    total_amount: int
    status: InvoiceStatus = InvoiceStatus.PENDING
    payee_id: UUID | None = None
    invoice_number: str | None = None
    invoice_date: date | None = None
    due_date: date | None = None
    customer_name: str | None = None
    customer_address: str | None = None
    customer_tax_id: str | None = None
    parent_invoice_id: UUID | None = None
    items: tuple[InvoiceItem, ...] = field(default_factory=tuple)
    document_path: str | None = None
    document_path_secondary: str | None = None
    generated_at: datetime | None = None
    error_message: str | None = None

    @property
    def is_credit_note(self) -> bool:
        return self.total_amount < 0
