"""
Bookkeeping Modules.

Per-entity modules over the bookkeeping kernel.  Each module contains:
- Domain models (the nouns)
- Workflows (state machines and pure status guards)
- ORM models (persistence)
- A flush-only service (transition operations)

Modules:
- parties: Payees (with their invoice-number sequence) and suppliers
- bills: Supplier bills
- invoices: Issued invoices and credit notes
- stripe: Stripe accounts and imported transactions
"""

from bookkeeping_modules import bills, invoices, parties, stripe

__all__ = [
    "parties",
    "bills",
    "invoices",
    "stripe",
]
