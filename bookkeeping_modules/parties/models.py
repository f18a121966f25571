"""
Party Domain Models (``bookkeeping_modules.parties.models``).

Frozen dataclass value objects for the two kinds of counterparty the
panel tracks: payees (the people or companies that issue invoices and
own an invoice-number sequence) and suppliers (who send bills).

**Modules layer** -- pure data definitions with ZERO I/O.
"""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class Payee:
    """An invoicing entity with its own sequential invoice numbering."""
    id: UUID
    name: str
    invoice_prefix: str
    next_invoice_number: int = 1
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str | None = None
    tax_id: str | None = None

    def __post_init__(self):
        if not self.invoice_prefix or not self.invoice_prefix.strip():
            raise ValueError("invoice_prefix cannot be empty")
        if self.next_invoice_number < 1:
            raise ValueError(
                f"next_invoice_number must be >= 1, got {self.next_invoice_number}"
            )


@dataclass(frozen=True)
class Supplier:
    """A vendor whose bills are tracked."""
    id: UUID
    name: str
    tax_id: str | None = None
    email: str | None = None
