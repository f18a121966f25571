"""
Bill Domain Models (``bookkeeping_modules.bills.models``).

Responsibility
--------------
Frozen dataclass value objects for supplier bills and their line items.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Returned by
``BillModel.to_dto()``.

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


class BillStatus(str, Enum):
    """Bill lifecycle states."""
    PENDING = "pending"
    EXTRACTED = "extracted"
    REVIEWED = "reviewed"
    PAID = "paid"
    PAID_NEEDS_REVIEW = "paid_needs_review"
    FAILED = "failed"


@dataclass(frozen=True)
class BillItem:
    """A single line on a supplier bill."""
    id: UUID
    bill_id: UUID
    position: int
    description: str
    unit: LineItemUnit
    quantity: Decimal
    unit_price_minor: int
    total_minor: int


@dataclass(frozen=True)
class Bill:
    """A bill received from a supplier."""
    id: UUID
    supplier_id: UUID
    currency: str
    total_amount: int
    status: BillStatus = BillStatus.PENDING
    payee_id: UUID | None = None
    bill_number: str | None = None
    bill_date: date | None = None
    due_date: date | None = None
    items: tuple[BillItem, ...] = field(default_factory=tuple)
    document_path: str | None = None
    generated_at: datetime | None = None
    error_message: str | None = None
    notes: str | None = None
