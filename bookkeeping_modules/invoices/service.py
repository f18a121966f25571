"""
Invoice Service - lifecycle operations on invoices.

Thin glue over ``INVOICE_WORKFLOW``:
1. Every status change is checked by ``require_transition``.
2. Item mutations recompute the total explicitly and are refused once the
   invoice is finalized.
3. Number issuance and document generation live in
   ``bookkeeping_services.finalization``; this service only previews the
   next number.

Flush-only: the caller owns the transaction boundary.

Usage:
    service = InvoiceService(session)
    invoice = service.create_invoice(currency="EUR", actor_id=actor_id,
                                     status=InvoiceStatus.REVIEWED,
                                     payee_id=payee.id, items=[...])
    service.preview_invoice_number(invoice)  # "ACME-00007", not consumed
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from bookkeeping_config.schema import InvoicingConfig
from bookkeeping_kernel.domain.values import Currency
from bookkeeping_kernel.domain.workflow import require_transition
from bookkeeping_kernel.exceptions import (
    DocumentLockedError,
    DocumentNotFoundError,
    PayeeNotFoundError,
)
from bookkeeping_kernel.logging_config import get_logger
from bookkeeping_modules._line_items import LineItem, recompute_total
from bookkeeping_modules.invoices.models import InvoiceStatus
from bookkeeping_modules.invoices.orm import InvoiceItemModel, InvoiceModel
from bookkeeping_modules.invoices.workflows import INVOICE_WORKFLOW, is_finalized
from bookkeeping_modules.parties.orm import PayeeModel
from bookkeeping_modules.parties.sequencer import InvoiceNumberSequencer

logger = get_logger("modules.invoices.service")

_CREATABLE = (InvoiceStatus.PENDING, InvoiceStatus.EXTRACTED, InvoiceStatus.REVIEWED)


class InvoiceService:
    """
    Orchestrates invoice status transitions and item maintenance.

    Invoices enter either from extraction (``PENDING``/``EXTRACTED``) or by
    manual entry and reconciliation (``REVIEWED``).
    """

    def __init__(self, session: Session, settings: InvoicingConfig | None = None):
        self._session = session
        self._settings = settings or InvoicingConfig.with_defaults()
        self._sequencer = InvoiceNumberSequencer(session, self._settings)

    # =========================================================================
    # Creation / lookup
    # =========================================================================

    def create_invoice(
        self,
        currency: str,
        actor_id: UUID,
        status: InvoiceStatus = InvoiceStatus.PENDING,
        payee_id: UUID | None = None,
        invoice_date: date | None = None,
        due_date: date | None = None,
        customer_name: str | None = None,
        customer_address: str | None = None,
        customer_tax_id: str | None = None,
        parent_invoice_id: UUID | None = None,
        items: Iterable[LineItem] = (),
    ) -> InvoiceModel:
        status = InvoiceStatus(status)
        if status not in _CREATABLE:
            raise ValueError(f"Invoices cannot be created in status {status.value!r}")

        invoice = InvoiceModel(
            currency=Currency(currency).code,
            total_amount=0,
            status=status.value,
            payee_id=payee_id,
            invoice_date=invoice_date,
            due_date=due_date,
            customer_name=customer_name,
            customer_address=customer_address,
            customer_tax_id=customer_tax_id,
            parent_invoice_id=parent_invoice_id,
            created_by_id=actor_id,
        )
        invoice.items = [
            InvoiceItemModel.from_line_item(item, position, actor_id)
            for position, item in enumerate(items)
        ]
        recompute_total(invoice)
        self._session.add(invoice)
        self._session.flush()

        logger.info(
            "invoice_created",
            extra={
                "invoice_id": str(invoice.id),
                "status": invoice.status,
                "item_count": len(invoice.items),
                "total_amount": invoice.total_amount,
                "currency": invoice.currency,
            },
        )
        return invoice

    def get_invoice(self, invoice_id: UUID) -> InvoiceModel:
        """
        Raises:
            DocumentNotFoundError: If the invoice does not exist.
        """
        invoice = self._session.get(InvoiceModel, invoice_id)
        if invoice is None:
            raise DocumentNotFoundError("Invoice", str(invoice_id))
        return invoice

    # =========================================================================
    # Transitions
    # =========================================================================

    def _transition(
        self,
        invoice: InvoiceModel,
        target: InvoiceStatus,
        actor_id: UUID,
        error_message: str | None = None,
    ) -> InvoiceModel:
        transition = require_transition(INVOICE_WORKFLOW, invoice.status, target)
        previous = invoice.status
        invoice.status = target.value
        if error_message is not None:
            invoice.error_message = error_message
        invoice.touch(actor_id)
        self._session.flush()
        logger.info(
            "invoice_status_changed",
            extra={
                "invoice_id": str(invoice.id),
                "action": transition.action,
                "from_status": previous,
                "to_status": invoice.status,
            },
        )
        return invoice

    def mark_as_extracted(self, invoice: InvoiceModel, actor_id: UUID) -> InvoiceModel:
        return self._transition(invoice, InvoiceStatus.EXTRACTED, actor_id)

    def mark_as_reviewed(self, invoice: InvoiceModel, actor_id: UUID) -> InvoiceModel:
        return self._transition(invoice, InvoiceStatus.REVIEWED, actor_id)

    def mark_as_failed(self, invoice: InvoiceModel, message: str, actor_id: UUID) -> InvoiceModel:
        return self._transition(invoice, InvoiceStatus.FAILED, actor_id, error_message=message)

    def mark_as_ready_to_send(self, invoice: InvoiceModel, actor_id: UUID) -> InvoiceModel:
        """Final step of finalization; callers go through the finalization workflow."""
        return self._transition(invoice, InvoiceStatus.READY_TO_SEND, actor_id)

    def mark_as_sent(self, invoice: InvoiceModel, actor_id: UUID) -> InvoiceModel:
        return self._transition(invoice, InvoiceStatus.SENT, actor_id)

    def mark_as_partially_paid(self, invoice: InvoiceModel, actor_id: UUID) -> InvoiceModel:
        return self._transition(invoice, InvoiceStatus.PARTIALLY_PAID, actor_id)

    def mark_as_paid(self, invoice: InvoiceModel, actor_id: UUID) -> InvoiceModel:
        return self._transition(invoice, InvoiceStatus.PAID, actor_id)

    # =========================================================================
    # Assignment / items
    # =========================================================================

    def _require_editable(self, invoice: InvoiceModel) -> None:
        if is_finalized(invoice.status):
            raise DocumentLockedError("Invoice", str(invoice.id), invoice.status)

    def assign_payee(self, invoice: InvoiceModel, payee_id: UUID, actor_id: UUID) -> InvoiceModel:
        """
        Raises:
            PayeeNotFoundError: If the payee does not exist.
            DocumentLockedError: If the invoice is already finalized.
        """
        self._require_editable(invoice)
        if self._session.get(PayeeModel, payee_id) is None:
            raise PayeeNotFoundError(str(payee_id))
        invoice.payee_id = payee_id
        invoice.touch(actor_id)
        self._session.flush()
        self._session.expire(invoice, ["payee"])
        logger.info(
            "invoice_payee_assigned",
            extra={"invoice_id": str(invoice.id), "payee_id": str(payee_id)},
        )
        return invoice

    def add_item(self, invoice: InvoiceModel, item: LineItem, actor_id: UUID) -> InvoiceItemModel:
        self._require_editable(invoice)
        model = InvoiceItemModel.from_line_item(item, len(invoice.items), actor_id)
        invoice.items.append(model)
        recompute_total(invoice)
        invoice.touch(actor_id)
        self._session.flush()
        return model

    def replace_items(
        self,
        invoice: InvoiceModel,
        items: Iterable[LineItem],
        actor_id: UUID,
    ) -> InvoiceModel:
        self._require_editable(invoice)
        invoice.items = [
            InvoiceItemModel.from_line_item(item, position, actor_id)
            for position, item in enumerate(items)
        ]
        recompute_total(invoice)
        invoice.touch(actor_id)
        self._session.flush()
        logger.info(
            "invoice_items_replaced",
            extra={
                "invoice_id": str(invoice.id),
                "item_count": len(invoice.items),
                "total_amount": invoice.total_amount,
            },
        )
        return invoice

    def preview_invoice_number(self, invoice: InvoiceModel) -> str | None:
        """
        The number this invoice has, or would get if finalized now.

        Read-only: the payee counter is not consumed.  Returns None when no
        payee is assigned.
        """
        if invoice.invoice_number:
            return invoice.invoice_number
        if invoice.payee_id is None:
            return None
        return self._sequencer.peek_number(invoice.payee_id)
