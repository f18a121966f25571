"""
Stripe Module.

Connected Stripe accounts and the transactions imported from them.
"""

from bookkeeping_modules.stripe.models import (
    StripeAccount,
    StripeTransaction,
    TransactionStatus,
    TransactionType,
    invoiced_amount,
    is_complete,
)
from bookkeeping_modules.stripe.workflows import TRANSACTION_WORKFLOW

__all__ = [
    "StripeAccount",
    "StripeTransaction",
    "TransactionStatus",
    "TransactionType",
    "TRANSACTION_WORKFLOW",
    "invoiced_amount",
    "is_complete",
]
