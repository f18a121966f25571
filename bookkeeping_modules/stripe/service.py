"""
Stripe Transaction Service - bookkeeping for imported Stripe data.

Records accounts and transactions supplied by the sync job, keeps each
transaction's completeness flag and review status current, and answers
period queries for the reconciliation engine.  It never links a
transaction to an invoice; that is the reconciliation engine's job.

Flush-only: the caller owns the transaction boundary.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from bookkeeping_kernel.domain.values import Currency
from bookkeeping_kernel.domain.workflow import require_transition
from bookkeeping_kernel.exceptions import (
    AlreadyInvoicedError,
    IncompleteTransactionError,
    PayeeNotFoundError,
    TransactionNotFoundError,
)
from bookkeeping_kernel.logging_config import get_logger
from bookkeeping_modules.parties.orm import PayeeModel
from bookkeeping_modules.stripe.models import (
    TransactionStatus,
    TransactionType,
    is_complete,
)
from bookkeeping_modules.stripe.orm import StripeAccountModel, StripeTransactionModel
from bookkeeping_modules.stripe.workflows import TRANSACTION_WORKFLOW

logger = get_logger("modules.stripe.service")

_EDITABLE_FIELDS = frozenset({
    "customer_name",
    "customer_email",
    "customer_address",
    "description",
})


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """Half-open UTC range ``[first of month, first of next month)``."""
    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}")
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


class StripeTransactionService:

    def __init__(self, session: Session):
        self._session = session

    # =========================================================================
    # Accounts
    # =========================================================================

    def create_account(
        self,
        payee_id: UUID,
        name: str,
        account_id: str,
        actor_id: UUID,
    ) -> StripeAccountModel:
        """
        Raises:
            PayeeNotFoundError: If the payee does not exist.
        """
        if self._session.get(PayeeModel, payee_id) is None:
            raise PayeeNotFoundError(str(payee_id))
        account = StripeAccountModel(
            payee_id=payee_id,
            name=name,
            account_id=account_id,
            created_by_id=actor_id,
        )
        self._session.add(account)
        self._session.flush()
        logger.info(
            "stripe_account_created",
            extra={"stripe_account_id": str(account.id), "payee_id": str(payee_id)},
        )
        return account

    # =========================================================================
    # Transactions
    # =========================================================================

    def record_transaction(
        self,
        stripe_account_id: UUID,
        external_id: str,
        type: TransactionType | str,
        amount_minor: int,
        currency: str,
        transaction_date: datetime,
        actor_id: UUID,
        customer_name: str | None = None,
        customer_email: str | None = None,
        customer_address: str | None = None,
        description: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> StripeTransactionModel:
        """Store an imported transaction with its completeness and status computed."""
        complete = is_complete(customer_name, description, amount_minor, currency)
        transaction = StripeTransactionModel(
            stripe_account_id=stripe_account_id,
            external_id=external_id,
            type=TransactionType(type).value,
            amount_minor=amount_minor,
            currency=Currency(currency).code,
            transaction_date=transaction_date,
            customer_name=customer_name,
            customer_email=customer_email,
            customer_address=customer_address,
            description=description,
            transaction_metadata=metadata or {},
            is_complete=complete,
            status=(
                TransactionStatus.READY if complete else TransactionStatus.PENDING_REVIEW
            ).value,
            created_by_id=actor_id,
        )
        self._session.add(transaction)
        self._session.flush()
        logger.info(
            "stripe_transaction_recorded",
            extra={
                "transaction_id": str(transaction.id),
                "external_id": external_id,
                "transaction_type": transaction.type,
                "amount_minor": amount_minor,
                "is_complete": complete,
                "status": transaction.status,
            },
        )
        return transaction

    def get_transaction(self, transaction_id: UUID) -> StripeTransactionModel:
        """
        Raises:
            TransactionNotFoundError: If the transaction does not exist.
        """
        transaction = self._session.get(StripeTransactionModel, transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(str(transaction_id))
        return transaction

    def _set_status(
        self,
        transaction: StripeTransactionModel,
        target: TransactionStatus,
        actor_id: UUID,
    ) -> None:
        transition = require_transition(TRANSACTION_WORKFLOW, transaction.status, target)
        previous = transaction.status
        transaction.status = target.value
        transaction.touch(actor_id)
        self._session.flush()
        logger.info(
            "stripe_transaction_status_changed",
            extra={
                "transaction_id": str(transaction.id),
                "action": transition.action,
                "from_status": previous,
                "to_status": transaction.status,
            },
        )

    def refresh_completeness(
        self,
        transaction: StripeTransactionModel,
        actor_id: UUID,
    ) -> StripeTransactionModel:
        """
        Recompute ``is_complete`` and move the status between
        ``pending_review`` and ``ready`` to match.  Ignored and invoiced
        transactions keep their status.
        """
        transaction.is_complete = is_complete(
            transaction.customer_name,
            transaction.description,
            transaction.amount_minor,
            transaction.currency,
        )
        status = TransactionStatus(transaction.status)
        if status in (TransactionStatus.IGNORED, TransactionStatus.INVOICED):
            self._session.flush()
            return transaction

        target = (
            TransactionStatus.READY
            if transaction.is_complete
            else TransactionStatus.PENDING_REVIEW
        )
        if target is not status:
            self._set_status(transaction, target, actor_id)
        else:
            self._session.flush()
        return transaction

    def update_details(
        self,
        transaction: StripeTransactionModel,
        actor_id: UUID,
        **details: str | None,
    ) -> StripeTransactionModel:
        """
        Fill in customer/description details, then refresh completeness.

        Raises:
            AlreadyInvoicedError: If the transaction is already invoiced.
            ValueError: On an unknown field name.
        """
        if transaction.is_invoiced:
            raise AlreadyInvoicedError(str(transaction.id), str(transaction.invoice_item_id))
        unknown = set(details) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update transaction fields: {sorted(unknown)}")
        for name, value in details.items():
            setattr(transaction, name, value)
        transaction.touch(actor_id)
        return self.refresh_completeness(transaction, actor_id)

    def mark_as_ignored(
        self,
        transaction: StripeTransactionModel,
        actor_id: UUID,
    ) -> StripeTransactionModel:
        """
        Raises:
            InvalidTransitionError: If the transaction is invoiced.
        """
        self._set_status(transaction, TransactionStatus.IGNORED, actor_id)
        return transaction

    def mark_as_ready(
        self,
        transaction: StripeTransactionModel,
        actor_id: UUID,
    ) -> StripeTransactionModel:
        """
        Raises:
            IncompleteTransactionError: If required details are missing.
            InvalidTransitionError: If the transaction is invoiced.
        """
        if not transaction.is_complete:
            raise IncompleteTransactionError(str(transaction.id))
        self._set_status(transaction, TransactionStatus.READY, actor_id)
        return transaction

    # =========================================================================
    # Queries
    # =========================================================================

    def transactions_for_period(
        self,
        payee_id: UUID,
        year: int,
        month: int,
        status: TransactionStatus | None = None,
    ) -> list[StripeTransactionModel]:
        """Uninvoiced transactions of the payee's accounts dated in the month."""
        start, end = month_bounds(year, month)
        stmt = (
            select(StripeTransactionModel)
            .join(StripeAccountModel, StripeTransactionModel.stripe_account_id == StripeAccountModel.id)
            .where(
                StripeAccountModel.payee_id == payee_id,
                StripeTransactionModel.invoice_item_id.is_(None),
                StripeTransactionModel.transaction_date >= start,
                StripeTransactionModel.transaction_date < end,
            )
            .order_by(StripeTransactionModel.transaction_date, StripeTransactionModel.external_id)
        )
        if status is not None:
            stmt = stmt.where(StripeTransactionModel.status == TransactionStatus(status).value)
        return list(self._session.scalars(stmt))
