"""
Bill Workflows.

State machine for supplier bills, plus the pure status guards used by
``BillService`` and the finalization workflow.  Guards are functions of
status only; the payee precondition is checked by the service.
"""

from bookkeeping_kernel.domain.workflow import (
    Guard,
    Transition,
    Workflow,
    can_transition as _workflow_can_transition,
)
from bookkeeping_kernel.logging_config import get_logger
from bookkeeping_modules.bills.models import BillStatus

logger = get_logger("modules.bills.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

PAYEE_ASSIGNED = Guard(
    name="payee_assigned",
    description="Bill is assigned to a payee",
)


# -----------------------------------------------------------------------------
# Bill Workflow
# -----------------------------------------------------------------------------

BILL_WORKFLOW = Workflow(
    name="bill",
    description="Supplier bill lifecycle",
    initial_state=BillStatus.PENDING.value,
    states=tuple(s.value for s in BillStatus),
    transitions=(
        Transition("pending", "extracted", action="extract"),
        Transition("pending", "paid_needs_review", action="extract_paid"),
        Transition("pending", "failed", action="fail"),
        Transition("extracted", "reviewed", action="review", guard=PAYEE_ASSIGNED),
        Transition("paid_needs_review", "paid", action="review", guard=PAYEE_ASSIGNED),
        Transition("reviewed", "paid", action="pay", guard=PAYEE_ASSIGNED),
        Transition("paid", "paid_needs_review", action="flag_for_review"),
    ),
    terminal_states=("failed",),
)

logger.info(
    "bill_workflow_registered",
    extra={
        "workflow_name": BILL_WORKFLOW.name,
        "state_count": len(BILL_WORKFLOW.states),
        "transition_count": len(BILL_WORKFLOW.transitions),
        "initial_state": BILL_WORKFLOW.initial_state,
    },
)


# -----------------------------------------------------------------------------
# Status guards
# -----------------------------------------------------------------------------

_OPEN = frozenset({
    BillStatus.PENDING,
    BillStatus.EXTRACTED,
    BillStatus.REVIEWED,
    BillStatus.PAID_NEEDS_REVIEW,
})
_AWAITING_REVIEW = frozenset({BillStatus.EXTRACTED, BillStatus.PAID_NEEDS_REVIEW})


def can_transition(current: BillStatus | str, target: BillStatus | str) -> bool:
    return _workflow_can_transition(BILL_WORKFLOW, BillStatus(current), BillStatus(target))


def is_pending(status: BillStatus | str) -> bool:
    """Bill is still open (not paid, not failed)."""
    return BillStatus(status) in _OPEN


def needs_review(status: BillStatus | str) -> bool:
    return BillStatus(status) in _AWAITING_REVIEW


def can_be_paid(status: BillStatus | str) -> bool:
    return BillStatus(status) is BillStatus.REVIEWED


def is_finalized(status: BillStatus | str) -> bool:
    """Reviewed bills are final; there is no separate finalized status."""
    return BillStatus(status) in (BillStatus.REVIEWED, BillStatus.PAID)
