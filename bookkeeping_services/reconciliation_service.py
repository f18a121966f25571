"""
bookkeeping_services.reconciliation_service -- Stripe transaction to invoice.

Responsibility:
    Turns an imported Stripe transaction into a finalized invoice exactly
    once, in batches with per-transaction isolation, and per billing
    period (one invoice per customer).

Architecture position:
    Services -- orchestration over the invoices and stripe modules and the
    ``DocumentFinalizationWorkflow``.

Invariants enforced:
    - Exactly once: the transaction row is read ``FOR UPDATE`` and linked
      with a compare-and-swap ``UPDATE ... WHERE invoice_item_id IS NULL``;
      ``stripe_transactions.invoice_item_id`` is also unique.  A second
      attempt always fails with AlreadyInvoicedError.
    - Atomicity: invoice creation, finalization and linking share one
      SAVEPOINT.  On any failure no invoice remains, the transaction stays
      unlinked and the payee's number is not consumed.
    - Preconditions are checked in order: completeness first, then the
      existing link.
    - Batch members are independent: each is committed (when
      ``auto_commit``) or rolled back on its own.

Failure modes:
    - TransactionNotFoundError, IncompleteTransactionError,
      AlreadyInvoicedError, MissingPayeeError, IncompletePeriodError.
    - Anything raised by finalization (e.g. DocumentGenerationFailedError).

Usage:
    engine = TransactionReconciliationEngine(session, finalizer, clock)
    invoice = engine.generate_invoice_for_transaction(txn_id, actor_id)

    summary = engine.generate_invoices_for_transactions(txn_ids, actor_id)
    summary.succeeded, summary.failures
"""

from __future__ import annotations

import calendar
import time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from bookkeeping_kernel.domain.clock import Clock, SystemClock
from bookkeeping_kernel.domain.workflow import require_transition
from bookkeeping_kernel.exceptions import (
    AlreadyInvoicedError,
    BookkeepingError,
    IncompletePeriodError,
    IncompleteTransactionError,
    MissingPayeeError,
    TransactionNotFoundError,
)
from bookkeeping_kernel.logging_config import LogContext, get_logger
from bookkeeping_modules._line_items import LineItem
from bookkeeping_modules.invoices.models import InvoiceStatus
from bookkeeping_modules.invoices.orm import InvoiceItemModel, InvoiceModel
from bookkeeping_modules.invoices.service import InvoiceService
from bookkeeping_modules.stripe.models import TransactionStatus, invoiced_amount
from bookkeeping_modules.stripe.orm import StripeAccountModel, StripeTransactionModel
from bookkeeping_modules.stripe.service import StripeTransactionService
from bookkeeping_modules.stripe.workflows import TRANSACTION_WORKFLOW
from bookkeeping_services.finalization import DocumentFinalizationWorkflow

logger = get_logger("services.reconciliation")

UNHANDLED_ERROR_CODE = "UNHANDLED_EXCEPTION"


# -----------------------------------------------------------------------------
# Result types
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ReconciliationOutcome:
    """Result of invoicing one transaction; never raised, always returned."""

    transaction_id: UUID
    invoice_id: UUID | None = None
    error_code: str | None = None
    error_message: str | None = None

    @property
    def is_success(self) -> bool:
        return self.invoice_id is not None and self.error_code is None

    @classmethod
    def success(cls, transaction_id: UUID, invoice_id: UUID) -> ReconciliationOutcome:
        return cls(transaction_id=transaction_id, invoice_id=invoice_id)

    @classmethod
    def failure(cls, transaction_id: UUID, error: Exception) -> ReconciliationOutcome:
        return cls(
            transaction_id=transaction_id,
            error_code=error.code if isinstance(error, BookkeepingError) else UNHANDLED_ERROR_CODE,
            error_message=str(error),
        )


@dataclass(frozen=True)
class BatchReconciliationSummary:
    succeeded: int
    invoice_ids: tuple[UUID, ...] = ()
    failures: tuple[tuple[UUID, str, str], ...] = ()  # (transaction_id, code, message)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


@dataclass(frozen=True)
class PeriodValidation:
    """Completeness of a payee's uninvoiced transactions in one month."""

    payee_id: UUID
    year: int
    month: int
    total_transactions: int
    incomplete_transactions: int
    incomplete_ids: tuple[UUID, ...] = ()

    @property
    def valid(self) -> bool:
        return self.incomplete_transactions == 0


# -----------------------------------------------------------------------------
# Engine
# -----------------------------------------------------------------------------


class TransactionReconciliationEngine:
    """
    Generates invoices from Stripe transactions.

    Contract:
        Each successful call leaves exactly one finalized invoice per
        invoiced transaction and marks the transaction ``invoiced``.

    Non-goals:
        - Does NOT import transactions (the sync job does).
        - Does NOT match payments against existing invoices.
    """

    def __init__(
        self,
        session: Session,
        finalizer: DocumentFinalizationWorkflow,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._finalizer = finalizer
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._invoices = InvoiceService(session, finalizer.settings)
        self._transactions = StripeTransactionService(session)

    # =========================================================================
    # Single transaction
    # =========================================================================

    def generate_invoice_for_transaction(
        self,
        transaction_id: UUID,
        actor_id: UUID,
    ) -> InvoiceModel:
        """
        Create, finalize and link one invoice for one transaction.

        Raises:
            TransactionNotFoundError: If the transaction does not exist.
            IncompleteTransactionError: If required details are missing.
            AlreadyInvoicedError: If the transaction is already linked,
                including when a concurrent caller wins the race.
            MissingPayeeError: If the Stripe account resolves to no payee.
        """
        t0 = time.monotonic()
        with LogContext.bind(transaction_id=str(transaction_id), actor_id=str(actor_id)):
            try:
                transaction = self._lock_transaction(transaction_id)
                self._check_invoiceable(transaction)
                payee_id = self._payee_for(transaction)

                with self._session.begin_nested():
                    invoice = self._create_invoice(
                        payee_id,
                        [transaction],
                        actor_id,
                        customer_name=transaction.customer_name,
                        customer_address=transaction.customer_address,
                        currency=transaction.currency,
                        invoice_date=transaction.transaction_date.date(),
                    )
                    self._finalizer.finalize_invoice(invoice, actor_id)
                    self._link(transaction, invoice.items[0], actor_id)

                if self._auto_commit:
                    self._session.commit()
            except BookkeepingError as exc:
                if self._auto_commit:
                    self._session.rollback()
                logger.warning(
                    "transaction_invoice_rejected",
                    extra={"error_code": exc.code, "reason": str(exc)},
                )
                raise
            except Exception:
                if self._auto_commit:
                    self._session.rollback()
                logger.error("transaction_invoice_failed", exc_info=True)
                raise

            logger.info(
                "transaction_invoiced",
                extra={
                    "invoice_id": str(invoice.id),
                    "invoice_number": invoice.invoice_number,
                    "total_amount": invoice.total_amount,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
        return invoice

    def try_generate_invoice_for_transaction(
        self,
        transaction_id: UUID,
        actor_id: UUID,
    ) -> ReconciliationOutcome:
        """
        Like ``generate_invoice_for_transaction`` but returns the failure.

        Unexpected exceptions (database errors, renderer bugs) are returned
        too, with code ``UNHANDLED_EXCEPTION``, so a batch always continues.
        """
        try:
            invoice = self.generate_invoice_for_transaction(transaction_id, actor_id)
        except Exception as exc:
            return ReconciliationOutcome.failure(transaction_id, exc)
        return ReconciliationOutcome.success(transaction_id, invoice.id)

    # =========================================================================
    # Batch
    # =========================================================================

    def generate_invoices_for_transactions(
        self,
        transaction_ids: Iterable[UUID],
        actor_id: UUID,
    ) -> BatchReconciliationSummary:
        """Invoice each transaction independently; failures do not stop the batch."""
        invoice_ids: list[UUID] = []
        failures: list[tuple[UUID, str, str]] = []

        for transaction_id in transaction_ids:
            outcome = self.try_generate_invoice_for_transaction(transaction_id, actor_id)
            if outcome.is_success:
                invoice_ids.append(outcome.invoice_id)
            else:
                failures.append(
                    (transaction_id, outcome.error_code, outcome.error_message)
                )

        summary = BatchReconciliationSummary(
            succeeded=len(invoice_ids),
            invoice_ids=tuple(invoice_ids),
            failures=tuple(failures),
        )
        logger.info(
            "transaction_batch_invoiced",
            extra={"succeeded": summary.succeeded, "failed": summary.failed},
        )
        return summary

    # =========================================================================
    # Period
    # =========================================================================

    def validate_period(self, payee_id: UUID, year: int, month: int) -> PeriodValidation:
        """Check the payee's uninvoiced transactions dated in the month."""
        transactions = [
            t
            for t in self._transactions.transactions_for_period(payee_id, year, month)
            if TransactionStatus(t.status) is not TransactionStatus.IGNORED
        ]
        incomplete = tuple(t.id for t in transactions if not t.is_complete)
        return PeriodValidation(
            payee_id=payee_id,
            year=year,
            month=month,
            total_transactions=len(transactions),
            incomplete_transactions=len(incomplete),
            incomplete_ids=incomplete,
        )

    def generate_invoices_for_period(
        self,
        payee_id: UUID,
        year: int,
        month: int,
        actor_id: UUID,
    ) -> list[InvoiceModel]:
        """
        One invoice per customer (and currency) for the payee's ready
        transactions in the month, each dated the last day of the month.
        Each group is created, finalized and linked atomically.

        Raises:
            IncompletePeriodError: If any uninvoiced transaction of the
                period is incomplete.
        """
        validation = self.validate_period(payee_id, year, month)
        if not validation.valid:
            logger.warning(
                "period_invoicing_rejected",
                extra={
                    "payee_id": str(payee_id),
                    "year": year,
                    "month": month,
                    "incomplete_transactions": validation.incomplete_transactions,
                },
            )
            raise IncompletePeriodError(
                str(payee_id), year, month, [str(i) for i in validation.incomplete_ids]
            )

        groups: dict[tuple[str, str], list[UUID]] = {}
        for transaction in self._transactions.transactions_for_period(
            payee_id, year, month, status=TransactionStatus.READY
        ):
            key = (transaction.customer_name.strip(), transaction.currency)
            groups.setdefault(key, []).append(transaction.id)

        invoice_date = date(year, month, calendar.monthrange(year, month)[1])
        invoices: list[InvoiceModel] = []
        with LogContext.bind(payee_id=str(payee_id), actor_id=str(actor_id)):
            for (customer_name, currency), ids in sorted(groups.items()):
                invoices.append(
                    self._generate_group(payee_id, customer_name, currency, ids, invoice_date, actor_id)
                )

            logger.info(
                "period_invoiced",
                extra={
                    "year": year,
                    "month": month,
                    "invoice_count": len(invoices),
                    "transaction_count": sum(len(ids) for ids in groups.values()),
                },
            )
        return invoices

    def _generate_group(
        self,
        payee_id: UUID,
        customer_name: str,
        currency: str,
        transaction_ids: list[UUID],
        invoice_date: date,
        actor_id: UUID,
    ) -> InvoiceModel:
        try:
            transactions = [self._lock_transaction(i) for i in transaction_ids]
            for transaction in transactions:
                self._check_invoiceable(transaction)

            with self._session.begin_nested():
                invoice = self._create_invoice(
                    payee_id,
                    transactions,
                    actor_id,
                    customer_name=customer_name,
                    customer_address=next(
                        (t.customer_address for t in transactions if t.customer_address), None
                    ),
                    currency=currency,
                    invoice_date=invoice_date,
                )
                self._finalizer.finalize_invoice(invoice, actor_id)
                for transaction, item in zip(transactions, invoice.items):
                    self._link(transaction, item, actor_id)

            if self._auto_commit:
                self._session.commit()
        except Exception:
            if self._auto_commit:
                self._session.rollback()
            logger.error(
                "period_group_invoice_failed",
                extra={"customer_name": customer_name, "currency": currency},
                exc_info=True,
            )
            raise
        return invoice

    # =========================================================================
    # Internal
    # =========================================================================

    def _lock_transaction(self, transaction_id: UUID) -> StripeTransactionModel:
        transaction = self._session.execute(
            select(StripeTransactionModel)
            .where(StripeTransactionModel.id == transaction_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if transaction is None:
            raise TransactionNotFoundError(str(transaction_id))
        return transaction

    def _check_invoiceable(self, transaction: StripeTransactionModel) -> None:
        if not transaction.is_complete:
            raise IncompleteTransactionError(str(transaction.id))
        if transaction.is_invoiced:
            raise AlreadyInvoicedError(str(transaction.id), str(transaction.invoice_item_id))

    def _payee_for(self, transaction: StripeTransactionModel) -> UUID:
        account = self._session.get(StripeAccountModel, transaction.stripe_account_id)
        if account is None or account.payee_id is None:
            raise MissingPayeeError("StripeTransaction", str(transaction.id), "invoiced")
        return account.payee_id

    def _create_invoice(
        self,
        payee_id: UUID,
        transactions: list[StripeTransactionModel],
        actor_id: UUID,
        *,
        customer_name: str | None,
        customer_address: str | None,
        currency: str,
        invoice_date: date,
    ) -> InvoiceModel:
        items = [
            LineItem(
                description=t.description.strip(),
                quantity=Decimal(1),
                unit_price_minor=invoiced_amount(t.type, t.amount_minor),
            )
            for t in transactions
        ]
        return self._invoices.create_invoice(
            currency=currency,
            actor_id=actor_id,
            status=InvoiceStatus.REVIEWED,
            payee_id=payee_id,
            invoice_date=invoice_date,
            due_date=None,
            customer_name=customer_name,
            customer_address=customer_address,
            items=items,
        )

    def _link(
        self,
        transaction: StripeTransactionModel,
        item: InvoiceItemModel,
        actor_id: UUID,
    ) -> None:
        require_transition(TRANSACTION_WORKFLOW, transaction.status, TransactionStatus.INVOICED)
        result = self._session.execute(
            update(StripeTransactionModel)
            .where(
                StripeTransactionModel.id == transaction.id,
                StripeTransactionModel.invoice_item_id.is_(None),
            )
            .values(
                invoice_item_id=item.id,
                status=TransactionStatus.INVOICED.value,
                updated_by_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise AlreadyInvoicedError(str(transaction.id))
        self._session.refresh(transaction)
        logger.info(
            "transaction_linked",
            extra={
                "invoice_item_id": str(item.id),
                "stripe_transaction_id": str(transaction.id),
            },
        )
