"""
Invoices Module.

Issued invoices and credit notes: review, finalization, sending and
payment recording.
"""

from bookkeeping_modules.invoices.models import Invoice, InvoiceItem, InvoiceStatus
from bookkeeping_modules.invoices.workflows import INVOICE_WORKFLOW

__all__ = [
    "Invoice",
    "InvoiceItem",
    "InvoiceStatus",
    "INVOICE_WORKFLOW",
]
