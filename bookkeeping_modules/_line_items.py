"""
Line-item total aggregation (``bookkeeping_modules._line_items``).

Responsibility
--------------
Derives line totals from quantity and unit price, and document totals from
line totals.  Shared by invoices and bills.  Recomputation is explicit:
services call ``recompute_total`` after mutating items and the finalization
workflow calls it before generating a document.  There are no ORM hooks.

Invariants enforced
-------------------
* ``total_minor == round_half_up(quantity * unit_price_minor)`` for every item.
* ``document.total_amount == sum(item.total_minor)``.
* ``recompute_total`` is idempotent.
* Quantities are never negative; credits carry a negative unit price.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Protocol

from bookkeeping_kernel.domain.values import Money
from bookkeeping_kernel.logging_config import get_logger

logger = get_logger("modules.line_items")


class LineItemUnit(str, Enum):
    """Unit a line-item quantity is expressed in."""
    DAYS = "days"
    HOURS = "hours"
    UNITS = "units"


@dataclass(frozen=True)
class LineItem:
    """A single priced line on an invoice or bill."""
    description: str
    quantity: Decimal
    unit_price_minor: int
    unit: LineItemUnit = LineItemUnit.UNITS

    def __post_init__(self):
        if not isinstance(self.quantity, Decimal):
            object.__setattr__(self, "quantity", Decimal(str(self.quantity)))
        if self.quantity < 0:
            raise ValueError(f"quantity cannot be negative, got {self.quantity}")
        if not isinstance(self.unit, LineItemUnit):
            object.__setattr__(self, "unit", LineItemUnit(self.unit))

    @property
    def total_minor(self) -> int:
        return line_total(self.quantity, self.unit_price_minor)


def line_total(quantity: Decimal, unit_price_minor: int) -> int:
    """``round_half_up(quantity * unit_price_minor)`` in minor units."""
    if quantity < 0:
        raise ValueError(f"quantity cannot be negative, got {quantity}")
    product = Decimal(quantity) * Decimal(unit_price_minor)
    return int(product.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def sum_line_totals(totals: Iterable[int], currency: str) -> Money:
    return Money.of(sum(totals, 0), currency)


class _PricedItem(Protocol):
    quantity: Decimal
    unit_price_minor: int
    total_minor: int


class _ItemizedDocument(Protocol):
    id: object
    currency: str
    total_amount: int
    items: list


def recompute_total(document: _ItemizedDocument) -> Money:
    """
    Re-derive every item total and the document total.

    Works on any ORM document with ``items`` (each with ``quantity``,
    ``unit_price_minor`` and ``total_minor``), ``currency`` and
    ``total_amount``.  Mutates in place; the caller flushes.

    Returns:
        The new document total as Money in the document's currency.
    """
    for item in document.items:
        item.total_minor = line_total(Decimal(item.quantity), item.unit_price_minor)

    total = sum_line_totals((item.total_minor for item in document.items), document.currency)
    previous = document.total_amount
    document.total_amount = total.amount_minor

    if previous != total.amount_minor:
        logger.debug(
            "document_total_recomputed",
            extra={
                "document_id": str(document.id),
                "item_count": len(document.items),
                "previous_total": previous,
                "total_amount": total.amount_minor,
            },
        )
    return total
