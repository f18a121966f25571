"""
Bill Service - lifecycle operations on supplier bills.

Every status change goes through ``BILL_WORKFLOW``: an undeclared
transition raises ``InvalidTransitionError`` and never silently no-ops.
Review and payment additionally require a payee assignment.  Item
mutations recompute the bill total explicitly.

Flush-only: the caller owns the transaction boundary.

Usage:
    service = BillService(session)
    bill = service.create_bill(supplier_id=supplier.id, currency="EUR",
                               actor_id=actor_id, status=BillStatus.EXTRACTED)
    service.assign_payee(bill, payee.id, actor_id)
    service.mark_as_reviewed(bill, actor_id)
    service.mark_as_paid(bill, actor_id)
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from bookkeeping_kernel.domain.values import Currency
from bookkeeping_kernel.domain.workflow import require_transition
from bookkeeping_kernel.exceptions import (
    DocumentNotFoundError,
    MissingPayeeError,
    PayeeNotFoundError,
)
from bookkeeping_kernel.logging_config import get_logger
from bookkeeping_modules._line_items import LineItem, recompute_total
from bookkeeping_modules.bills.models import BillStatus
from bookkeeping_modules.bills.orm import BillItemModel, BillModel
from bookkeeping_modules.bills.workflows import BILL_WORKFLOW
from bookkeeping_modules.parties.orm import PayeeModel

logger = get_logger("modules.bills.service")


class BillService:
    """
    Orchestrates bill status transitions and item maintenance.

    Bills enter either from extraction (``PENDING``/``EXTRACTED``) or by
    manual entry (``REVIEWED``).
    """

    def __init__(self, session: Session):
        self._session = session

    # =========================================================================
    # Creation / lookup
    # =========================================================================

    def create_bill(
        self,
        supplier_id: UUID,
        currency: str,
        actor_id: UUID,
        status: BillStatus = BillStatus.PENDING,
        payee_id: UUID | None = None,
        bill_number: str | None = None,
        bill_date: date | None = None,
        due_date: date | None = None,
        items: Iterable[LineItem] = (),
        notes: str | None = None,
    ) -> BillModel:
        status = BillStatus(status)
        if status not in (BillStatus.PENDING, BillStatus.EXTRACTED, BillStatus.REVIEWED):
            raise ValueError(f"Bills cannot be created in status {status.value!r}")
        if status is BillStatus.REVIEWED and payee_id is None:
            raise MissingPayeeError("Bill", "<new>", "created as reviewed")

        bill = BillModel(
            supplier_id=supplier_id,
            payee_id=payee_id,
            currency=Currency(currency).code,
            total_amount=0,
            status=status.value,
            bill_number=bill_number,
            bill_date=bill_date,
            due_date=due_date,
            notes=notes,
            created_by_id=actor_id,
        )
        bill.items = [
            BillItemModel.from_line_item(item, position, actor_id)
            for position, item in enumerate(items)
        ]
        recompute_total(bill)
        self._session.add(bill)
        self._session.flush()

        logger.info(
            "bill_created",
            extra={
                "bill_id": str(bill.id),
                "status": bill.status,
                "item_count": len(bill.items),
                "total_amount": bill.total_amount,
                "currency": bill.currency,
            },
        )
        return bill

    def get_bill(self, bill_id: UUID) -> BillModel:
        """
        Raises:
            DocumentNotFoundError: If the bill does not exist.
        """
        bill = self._session.get(BillModel, bill_id)
        if bill is None:
            raise DocumentNotFoundError("Bill", str(bill_id))
        return bill

    # =========================================================================
    # Transitions
    # =========================================================================

    def _transition(
        self,
        bill: BillModel,
        target: BillStatus,
        actor_id: UUID,
        error_message: str | None = None,
    ) -> BillModel:
        transition = require_transition(BILL_WORKFLOW, bill.status, target)
        previous = bill.status
        bill.status = target.value
        if error_message is not None:
            bill.error_message = error_message
        bill.touch(actor_id)
        self._session.flush()
        logger.info(
            "bill_status_changed",
            extra={
                "bill_id": str(bill.id),
                "action": transition.action,
                "from_status": previous,
                "to_status": bill.status,
            },
        )
        return bill

    def _require_payee(self, bill: BillModel, action: str) -> None:
        if bill.payee_id is None:
            logger.warning(
                "bill_missing_payee",
                extra={"bill_id": str(bill.id), "action": action},
            )
            raise MissingPayeeError("Bill", str(bill.id), action)

    def mark_as_extracted(self, bill: BillModel, actor_id: UUID) -> BillModel:
        return self._transition(bill, BillStatus.EXTRACTED, actor_id)

    def mark_as_paid_needs_review(self, bill: BillModel, actor_id: UUID) -> BillModel:
        """Extraction found the bill already paid, or a paid bill is flagged again."""
        return self._transition(bill, BillStatus.PAID_NEEDS_REVIEW, actor_id)

    def mark_as_reviewed(self, bill: BillModel, actor_id: UUID) -> BillModel:
        """
        Confirm an extracted bill.

        A bill awaiting review after being paid moves straight to ``PAID``;
        otherwise it moves ``EXTRACTED -> REVIEWED``.

        Raises:
            MissingPayeeError: If no payee is assigned.
            InvalidTransitionError: If the bill is not awaiting review.
        """
        self._require_payee(bill, "reviewed")
        if BillStatus(bill.status) is BillStatus.PAID_NEEDS_REVIEW:
            return self._transition(bill, BillStatus.PAID, actor_id)
        return self._transition(bill, BillStatus.REVIEWED, actor_id)

    def mark_as_paid(self, bill: BillModel, actor_id: UUID) -> BillModel:
        """
        Raises:
            MissingPayeeError: If no payee is assigned.
            InvalidTransitionError: Unless the bill is ``REVIEWED``.
        """
        self._require_payee(bill, "paid")
        return self._transition(bill, BillStatus.PAID, actor_id)

    def mark_as_failed(self, bill: BillModel, message: str, actor_id: UUID) -> BillModel:
        return self._transition(bill, BillStatus.FAILED, actor_id, error_message=message)

    # =========================================================================
    # Assignment / items
    # =========================================================================

    def assign_payee(self, bill: BillModel, payee_id: UUID, actor_id: UUID) -> BillModel:
        """
        Raises:
            PayeeNotFoundError: If the payee does not exist.
        """
        if self._session.get(PayeeModel, payee_id) is None:
            raise PayeeNotFoundError(str(payee_id))
        bill.payee_id = payee_id
        bill.touch(actor_id)
        self._session.flush()
        logger.info(
            "bill_payee_assigned",
            extra={"bill_id": str(bill.id), "payee_id": str(payee_id)},
        )
        return bill

    def add_item(self, bill: BillModel, item: LineItem, actor_id: UUID) -> BillItemModel:
        model = BillItemModel.from_line_item(item, len(bill.items), actor_id)
        bill.items.append(model)
        recompute_total(bill)
        bill.touch(actor_id)
        self._session.flush()
        return model

    def replace_items(
        self,
        bill: BillModel,
        items: Iterable[LineItem],
        actor_id: UUID,
    ) -> BillModel:
        bill.items = [
            BillItemModel.from_line_item(item, position, actor_id)
            for position, item in enumerate(items)
        ]
        recompute_total(bill)
        bill.touch(actor_id)
        self._session.flush()
        logger.info(
            "bill_items_replaced",
            extra={
                "bill_id": str(bill.id),
                "item_count": len(bill.items),
                "total_amount": bill.total_amount,
            },
        )
        return bill
