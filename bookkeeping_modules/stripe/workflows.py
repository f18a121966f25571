"""
Stripe Transaction Workflow.

Reconciliation states of an imported transaction.  ``invoiced`` is
reachable only through the reconciliation engine and is terminal.
"""

from bookkeeping_kernel.domain.workflow import Guard, Transition, Workflow
from bookkeeping_kernel.logging_config import get_logger
from bookkeeping_modules.stripe.models import TransactionStatus

logger = get_logger("modules.stripe.workflows")


DETAILS_COMPLETE = Guard(
    name="details_complete",
    description="Customer, description, amount and currency are present",
)

TRANSACTION_WORKFLOW = Workflow(
    name="stripe_transaction",
    description="Imported payment transaction reconciliation",
    initial_state=TransactionStatus.PENDING_REVIEW.value,
    states=tuple(s.value for s in TransactionStatus),
    transitions=(
        Transition("pending_review", "ready", action="mark_ready", guard=DETAILS_COMPLETE),
        Transition("ready", "pending_review", action="mark_incomplete"),
        Transition("pending_review", "ignored", action="ignore"),
        Transition("ready", "ignored", action="ignore"),
        Transition("ignored", "ready", action="mark_ready", guard=DETAILS_COMPLETE),
        Transition("ignored", "pending_review", action="unignore"),
        Transition("pending_review", "invoiced", action="invoice", guard=DETAILS_COMPLETE),
        Transition("ready", "invoiced", action="invoice", guard=DETAILS_COMPLETE),
        Transition("ignored", "invoiced", action="invoice", guard=DETAILS_COMPLETE),
    ),
    terminal_states=("invoiced",),
)

logger.info(
    "stripe_transaction_workflow_registered",
    extra={
        "workflow_name": TRANSACTION_WORKFLOW.name,
        "state_count": len(TRANSACTION_WORKFLOW.states),
        "transition_count": len(TRANSACTION_WORKFLOW.transitions),
        "initial_state": TRANSACTION_WORKFLOW.initial_state,
    },
)
