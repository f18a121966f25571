"""
Bill state machine and status guards.

Exhaustive over BillStatus x BillStatus: only declared transitions are
allowed, and every guard is a pure function of status.
"""

import itertools

import pytest

from bookkeeping_kernel.domain.workflow import allowed_targets, require_transition
from bookkeeping_kernel.exceptions import InvalidTransitionError
from bookkeeping_modules.bills.models import BillStatus
from bookkeeping_modules.bills.workflows import (
    BILL_WORKFLOW,
    can_be_paid,
    can_transition,
    is_finalized,
    is_pending,
    needs_review,
)

ALLOWED = {
    (BillStatus.PENDING, BillStatus.EXTRACTED),
    (BillStatus.PENDING, BillStatus.PAID_NEEDS_REVIEW),
    (BillStatus.PENDING, BillStatus.FAILED),
    (BillStatus.EXTRACTED, BillStatus.REVIEWED),
    (BillStatus.PAID_NEEDS_REVIEW, BillStatus.PAID),
    (BillStatus.REVIEWED, BillStatus.PAID),
    (BillStatus.PAID, BillStatus.PAID_NEEDS_REVIEW),
}


@pytest.mark.parametrize(
    "current,target", list(itertools.product(BillStatus, BillStatus))
)
def test_can_transition_matches_declared_edges(current, target):
    assert can_transition(current, target) == ((current, target) in ALLOWED)


@pytest.mark.parametrize("status", list(BillStatus))
def test_can_be_paid_only_when_reviewed(status):
    assert can_be_paid(status) == (status is BillStatus.REVIEWED)


@pytest.mark.parametrize("status", list(BillStatus))
def test_guards_accept_string_values(status):
    assert can_be_paid(status.value) == can_be_paid(status)
    assert needs_review(status.value) == needs_review(status)


def test_needs_review():
    assert {s for s in BillStatus if needs_review(s)} == {
        BillStatus.EXTRACTED,
        BillStatus.PAID_NEEDS_REVIEW,
    }


def test_is_pending_excludes_paid_and_failed():
    assert not is_pending(BillStatus.PAID)
    assert not is_pending(BillStatus.FAILED)
    assert is_pending(BillStatus.PENDING)
    assert is_pending(BillStatus.REVIEWED)


def test_reviewed_and_paid_bills_are_final():
    assert {s for s in BillStatus if is_finalized(s)} == {BillStatus.REVIEWED, BillStatus.PAID}


def test_failed_is_terminal():
    assert allowed_targets(BILL_WORKFLOW, BillStatus.FAILED) == ()


def test_require_transition_reports_both_states():
    with pytest.raises(InvalidTransitionError) as exc_info:
        require_transition(BILL_WORKFLOW, BillStatus.EXTRACTED, BillStatus.PAID)
    err = exc_info.value
    assert err.code == "INVALID_TRANSITION"
    assert err.workflow == "bill"
    assert err.current_status == "extracted"
    assert err.target_status == "paid"


def test_require_transition_returns_action():
    assert require_transition(BILL_WORKFLOW, "reviewed", "paid").action == "pay"


def test_unknown_status_rejected():
    with pytest.raises(ValueError):
        can_be_paid("archived")
