"""
bookkeeping_services.finalization -- Document finalization workflow.

Responsibility:
    Turns a reviewed invoice or bill into a final document: validate,
    aggregate the total, issue the invoice number, generate and store the
    document, record where it went, advance the status.  Also regenerates
    the documents of already-finalized invoices and bills.

Architecture position:
    Services -- orchestration over ``bookkeeping_modules`` services, the
    invoice-number sequencer and the ``DocumentGenerator`` port.

Invariants enforced:
    - All finalization steps run inside one SAVEPOINT.  A failure at any
      step (including document generation) rolls the savepoint back: the
      issued number returns to the payee's sequence, the total, paths and
      status are untouched.
    - A number is issued at most once per invoice; an invoice that already
      carries a number keeps it.
    - Regeneration never re-issues a number and never re-aggregates.

Failure modes:
    - NotFinalizableError: invoice not Reviewed; bill without payee or not
      Extracted/Reviewed.
    - MissingPayeeError: reviewed invoice without a payee.
    - DocumentGenerationFailedError: the generator raised.
    - DocumentNotFinalizedError: regeneration of a non-finalized document.
    - InvoiceNumberConflictError: the payee's next number is already held
      by another of its invoices (e.g. an imported one); nothing is consumed.

Flush-only: the caller owns the transaction boundary.

Usage:
    workflow = DocumentFinalizationWorkflow(session, generator, config.invoicing)
    workflow.finalize_invoice(invoice, actor_id)
    invoice.invoice_number   # "ACME-00007"
    invoice.status           # "ready_to_send"
    session.commit()
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from bookkeeping_config.schema import InvoicingConfig
from bookkeeping_kernel.domain.clock import Clock, SystemClock
from bookkeeping_kernel.exceptions import (
    BookkeepingError,
    DocumentGenerationFailedError,
    DocumentNotFinalizedError,
    InvoiceNumberConflictError,
    MissingPayeeError,
    NotFinalizableError,
)
from bookkeeping_kernel.logging_config import LogContext, get_logger
from bookkeeping_modules._line_items import recompute_total
from bookkeeping_modules.bills.models import BillStatus
from bookkeeping_modules.bills.orm import BillModel
from bookkeeping_modules.bills.service import BillService
from bookkeeping_modules.bills.workflows import is_finalized as bill_is_finalized
from bookkeeping_modules.invoices.orm import InvoiceModel
from bookkeeping_modules.invoices.service import InvoiceService
from bookkeeping_modules.invoices.workflows import can_be_finalized
from bookkeeping_modules.invoices.workflows import is_finalized as invoice_is_finalized
from bookkeeping_modules.parties.sequencer import InvoiceNumberSequencer
from bookkeeping_services.document_generator import (
    Document,
    DocumentGenerator,
    GeneratedDocuments,
)

logger = get_logger("services.finalization")

_FINALIZABLE_BILL = (BillStatus.EXTRACTED, BillStatus.REVIEWED)


@dataclass(frozen=True)
class RegenerationSummary:
    """Outcome of a bulk regeneration run."""

    regenerated: int
    failures: tuple[tuple[UUID, str, str], ...] = ()  # (invoice_id, code, message)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def total(self) -> int:
        return self.regenerated + self.failed


class DocumentFinalizationWorkflow:
    """
    Finalizes and regenerates invoices and bills.

    Contract:
        ``finalize_invoice`` moves a Reviewed invoice to ReadyToSend with a
        number, an aggregated total and stored documents, or raises and
        leaves no trace.

    Non-goals:
        - Does NOT send invoices or record payments.
        - Does NOT commit.
    """

    def __init__(
        self,
        session: Session,
        generator: DocumentGenerator,
        settings: InvoicingConfig | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._generator = generator
        self._settings = settings or InvoicingConfig.with_defaults()
        self._clock = clock or SystemClock()
        self._invoices = InvoiceService(session, self._settings)
        self._bills = BillService(session)
        self._sequencer = InvoiceNumberSequencer(session, self._settings)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def settings(self) -> InvoicingConfig:
        return self._settings

    # =========================================================================
    # Finalization
    # =========================================================================

    def finalize_invoice(self, invoice: InvoiceModel, actor_id: UUID) -> InvoiceModel:
        """
        Validate, aggregate, number, generate, persist, transition.

        Raises:
            NotFinalizableError: If the invoice is not Reviewed.
            MissingPayeeError: If no payee is assigned.
            InvoiceNumberConflictError: If the issued number is already taken.
            DocumentGenerationFailedError: If document generation fails.
        """
        if not can_be_finalized(invoice.status):
            raise NotFinalizableError(
                "Invoice", str(invoice.id), invoice.status,
                "only reviewed invoices can be finalized",
            )
        if invoice.payee_id is None:
            raise MissingPayeeError("Invoice", str(invoice.id), "finalized")

        t0 = time.monotonic()
        with LogContext.bind(document_id=str(invoice.id), payee_id=str(invoice.payee_id)):
            with self._session.begin_nested():
                recompute_total(invoice)
                if not invoice.invoice_number:
                    invoice.invoice_number = self._issue_free_number(invoice)
                if invoice.invoice_date is None:
                    invoice.invoice_date = self._clock.today()
                self._session.flush()
                self._store_documents(invoice, "Invoice", actor_id)
                self._invoices.mark_as_ready_to_send(invoice, actor_id)

            logger.info(
                "invoice_finalized",
                extra={
                    "invoice_id": str(invoice.id),
                    "invoice_number": invoice.invoice_number,
                    "total_amount": invoice.total_amount,
                    "currency": invoice.currency,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
        return invoice

    def finalize_bill(self, bill: BillModel, actor_id: UUID) -> BillModel:
        """
        Aggregate, generate and persist a bill's document.  An Extracted
        bill advances to Reviewed; a Reviewed bill keeps its status.

        Raises:
            NotFinalizableError: Without a payee, or unless Extracted/Reviewed.
            DocumentGenerationFailedError: If document generation fails.
        """
        if bill.payee_id is None:
            raise NotFinalizableError(
                "Bill", str(bill.id), bill.status, "no payee assigned",
            )
        status = BillStatus(bill.status)
        if status not in _FINALIZABLE_BILL:
            raise NotFinalizableError(
                "Bill", str(bill.id), bill.status,
                "only extracted or reviewed bills can be finalized",
            )

        with LogContext.bind(document_id=str(bill.id), payee_id=str(bill.payee_id)):
            with self._session.begin_nested():
                recompute_total(bill)
                self._store_documents(bill, "Bill", actor_id)
                if status is BillStatus.EXTRACTED:
                    self._bills.mark_as_reviewed(bill, actor_id)

            logger.info(
                "bill_finalized",
                extra={
                    "bill_id": str(bill.id),
                    "total_amount": bill.total_amount,
                    "document_path": bill.document_path,
                },
            )
        return bill

    # =========================================================================
    # Regeneration
    # =========================================================================

    def regenerate_pdf(self, document: Document, actor_id: UUID) -> GeneratedDocuments:
        """
        Re-generate and re-persist the documents of a finalized invoice or
        bill.  The number, total and status are left as they are.

        Raises:
            DocumentNotFinalizedError: If the document is not finalized.
            DocumentGenerationFailedError: If document generation fails.
        """
        if isinstance(document, InvoiceModel):
            document_type = "Invoice"
            finalized = invoice_is_finalized(document.status) and bool(document.invoice_number)
        else:
            document_type = "Bill"
            finalized = bill_is_finalized(document.status)
        if not finalized:
            raise DocumentNotFinalizedError(document_type, str(document.id), document.status)

        with self._session.begin_nested():
            generated = self._store_documents(document, document_type, actor_id)
        logger.info(
            "document_regenerated",
            extra={
                "document_type": document_type,
                "document_id": str(document.id),
                "primary_path": generated.primary,
            },
        )
        return generated

    def regenerate_all_invoices(
        self,
        actor_id: UUID,
        payee_id: UUID | None = None,
    ) -> RegenerationSummary:
        """
        Regenerate every numbered, finalized invoice (optionally for one
        payee).  Each invoice runs in its own savepoint; a failure is
        recorded and the run continues.
        """
        stmt = (
            select(InvoiceModel)
            .where(InvoiceModel.invoice_number.is_not(None))
            .order_by(InvoiceModel.invoice_number)
        )
        if payee_id is not None:
            stmt = stmt.where(InvoiceModel.payee_id == payee_id)
        invoices: Sequence[InvoiceModel] = [
            invoice
            for invoice in self._session.scalars(stmt)
            if invoice_is_finalized(invoice.status)
        ]

        regenerated = 0
        failures: list[tuple[UUID, str, str]] = []
        for invoice in invoices:
            try:
                self.regenerate_pdf(invoice, actor_id)
            except BookkeepingError as exc:
                failures.append((invoice.id, exc.code, str(exc)))
                logger.warning(
                    "invoice_regeneration_failed",
                    extra={"invoice_id": str(invoice.id), "error_code": exc.code},
                )
            else:
                regenerated += 1

        summary = RegenerationSummary(regenerated=regenerated, failures=tuple(failures))
        logger.info(
            "invoice_regeneration_completed",
            extra={
                "regenerated": summary.regenerated,
                "failed": summary.failed,
                "payee_id": str(payee_id) if payee_id else None,
            },
        )
        return summary

    # =========================================================================
    # Internal
    # =========================================================================

    def _issue_free_number(self, invoice: InvoiceModel) -> str:
        number = self._sequencer.issue_number(invoice.payee_id)
        holder_id = self._session.scalar(
            select(InvoiceModel.id).where(
                InvoiceModel.payee_id == invoice.payee_id,
                InvoiceModel.invoice_number == number,
                InvoiceModel.id != invoice.id,
            )
        )
        if holder_id is not None:
            logger.warning(
                "invoice_number_conflict",
                extra={"invoice_number": number, "holder_id": str(holder_id)},
            )
            raise InvoiceNumberConflictError(str(invoice.payee_id), number, str(holder_id))
        return number

    def _store_documents(
        self,
        document: Document,
        document_type: str,
        actor_id: UUID,
    ) -> GeneratedDocuments:
        try:
            generated = self._generator.generate(document)
        except Exception as exc:
            logger.error(
                "document_generation_failed",
                extra={
                    "document_type": document_type,
                    "document_id": str(document.id),
                    "reason": str(exc),
                },
            )
            raise DocumentGenerationFailedError(document_type, str(document.id), str(exc)) from exc

        document.document_path = generated.primary
        if isinstance(document, InvoiceModel):
            document.document_path_secondary = generated.secondary
        document.generated_at = self._clock.now()
        document.touch(actor_id)
        self._session.flush()
        return generated
