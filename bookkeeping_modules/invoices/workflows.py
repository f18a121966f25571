"""
Invoice Workflows.

State machine for invoices and the pure status guards consumed by
``InvoiceService``, the finalization workflow and the reconciliation
engine.
"""

from bookkeeping_kernel.domain.workflow import (
    Guard,
    Transition,
    Workflow,
    can_transition as _workflow_can_transition,
)
from bookkeeping_kernel.logging_config import get_logger
from bookkeeping_modules.invoices.models import InvoiceStatus

logger = get_logger("modules.invoices.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

NUMBER_ASSIGNED = Guard(
    name="number_assigned",
    description="Invoice number issued and total aggregated",
)

DOCUMENT_GENERATED = Guard(
    name="document_generated",
    description="Invoice document has been generated and stored",
)

logger.info(
    "invoice_workflow_guards_defined",
    extra={"guards": [NUMBER_ASSIGNED.name, DOCUMENT_GENERATED.name]},
)


# -----------------------------------------------------------------------------
# Invoice Workflow
# -----------------------------------------------------------------------------

INVOICE_WORKFLOW = Workflow(
    name="invoice",
    description="Issued invoice lifecycle",
    initial_state=InvoiceStatus.PENDING.value,
    states=tuple(s.value for s in InvoiceStatus),
    transitions=(
        Transition("pending", "extracted", action="extract"),
        Transition("pending", "failed", action="fail"),
        Transition("extracted", "failed", action="fail"),
        Transition("extracted", "reviewed", action="review"),
        Transition("reviewed", "ready_to_send", action="finalize", guard=NUMBER_ASSIGNED),
        Transition("ready_to_send", "sent", action="send", guard=DOCUMENT_GENERATED),
        Transition("sent", "partially_paid", action="record_payment"),
        Transition("sent", "paid", action="record_payment"),
        Transition("partially_paid", "partially_paid", action="record_payment"),
        Transition("partially_paid", "paid", action="record_payment"),
    ),
    terminal_states=("paid", "failed"),
)

logger.info(
    "invoice_workflow_registered",
    extra={
        "workflow_name": INVOICE_WORKFLOW.name,
        "state_count": len(INVOICE_WORKFLOW.states),
        "transition_count": len(INVOICE_WORKFLOW.transitions),
        "initial_state": INVOICE_WORKFLOW.initial_state,
    },
)


# -----------------------------------------------------------------------------
# Status guards
# -----------------------------------------------------------------------------

_OPEN = frozenset({InvoiceStatus.PENDING, InvoiceStatus.EXTRACTED, InvoiceStatus.REVIEWED})
_FINALIZED = frozenset({
    InvoiceStatus.READY_TO_SEND,
    InvoiceStatus.SENT,
    InvoiceStatus.PARTIALLY_PAID,
    InvoiceStatus.PAID,
})
_AWAITING_PAYMENT = frozenset({InvoiceStatus.SENT, InvoiceStatus.PARTIALLY_PAID})


def can_transition(current: InvoiceStatus | str, target: InvoiceStatus | str) -> bool:
    return _workflow_can_transition(
        INVOICE_WORKFLOW, InvoiceStatus(current), InvoiceStatus(target)
    )


def is_pending(status: InvoiceStatus | str) -> bool:
    """Invoice has not been finalized yet (and has not failed)."""
    return InvoiceStatus(status) in _OPEN


def needs_review(status: InvoiceStatus | str) -> bool:
    return InvoiceStatus(status) is InvoiceStatus.EXTRACTED


def can_be_finalized(status: InvoiceStatus | str) -> bool:
    return InvoiceStatus(status) is InvoiceStatus.REVIEWED


def is_finalized(status: InvoiceStatus | str) -> bool:
    """A number and document have been issued; only regeneration is allowed."""
    return InvoiceStatus(status) in _FINALIZED


def can_be_sent(status: InvoiceStatus | str) -> bool:
    return InvoiceStatus(status) is InvoiceStatus.READY_TO_SEND


def can_record_payment(status: InvoiceStatus | str) -> bool:
    return InvoiceStatus(status) in _AWAITING_PAYMENT


def can_write_off(status: InvoiceStatus | str) -> bool:
    # Predicate only: there is no written-off status to move to.
    return InvoiceStatus(status) in _AWAITING_PAYMENT
