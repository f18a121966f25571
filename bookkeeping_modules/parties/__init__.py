"""
Parties Module.

Payees (invoice issuers with their own number sequence) and suppliers
(bill issuers).
"""

from bookkeeping_modules.parties.models import Payee, Supplier
from bookkeeping_modules.parties.sequencer import (
    InvoiceNumberSequencer,
    format_invoice_number,
)

__all__ = [
    "Payee",
    "Supplier",
    "InvoiceNumberSequencer",
    "format_invoice_number",
]
