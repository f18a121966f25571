"""
Bills Module.

Supplier bills: extraction/review/payment lifecycle and line items.
"""

from bookkeeping_modules.bills.models import Bill, BillItem, BillStatus
from bookkeeping_modules.bills.workflows import BILL_WORKFLOW

__all__ = [
    "Bill",
    "BillItem",
    "BillStatus",
    "BILL_WORKFLOW",
]
