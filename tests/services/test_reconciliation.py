"""
Transaction reconciliation engine.

Verifies:
- A complete transaction yields one finalized invoice and is linked
- Exactly once: the second attempt raises AlreadyInvoicedError
- Incomplete transactions create nothing and keep their status
- Refunds and chargebacks become credits
- Failures inside the savepoint leave no invoice and no link
- Batch isolation and period invoicing
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from bookkeeping_kernel.exceptions import (
    AlreadyInvoicedError,
    DocumentGenerationFailedError,
    IncompletePeriodError,
    IncompleteTransactionError,
    TransactionNotFoundError,
)
from bookkeeping_modules.invoices.models import InvoiceStatus
from bookkeeping_modules.invoices.orm import InvoiceModel
from bookkeeping_modules.invoices.service import InvoiceService
from bookkeeping_modules.stripe.models import TransactionStatus, TransactionType
from bookkeeping_modules.stripe.service import StripeTransactionService
from bookkeeping_services.finalization import DocumentFinalizationWorkflow
from bookkeeping_services.reconciliation_service import (
    ReconciliationOutcome,
    TransactionReconciliationEngine,
)


def _invoice_count(session) -> int:
    return session.scalar(select(func.count()).select_from(InvoiceModel))


@pytest.fixture
def failing_engine(session, failing_generator, invoicing_settings, deterministic_clock):
    finalizer = DocumentFinalizationWorkflow(
        session, failing_generator, invoicing_settings, deterministic_clock
    )
    return TransactionReconciliationEngine(
        session, finalizer, deterministic_clock, auto_commit=False
    )


class TestSingleTransaction:

    def test_generates_finalized_invoice(self, session, reconciliation_engine, make_transaction, payee, actor_id):
        txn = make_transaction()
        invoice = reconciliation_engine.generate_invoice_for_transaction(txn.id, actor_id)

        assert invoice.status == InvoiceStatus.READY_TO_SEND.value
        assert invoice.invoice_number == "ACME-00007"
        assert invoice.payee_id == payee.id
        assert invoice.customer_name == "Jane Customer"
        assert invoice.total_amount == 12_000
        assert invoice.invoice_date.isoformat() == "2024-03-10"
        assert len(invoice.items) == 1
        assert invoice.items[0].description == "Consulting, March"

        assert txn.status == TransactionStatus.INVOICED.value
        assert txn.invoice_item_id == invoice.items[0].id

    def test_second_attempt_already_invoiced(self, session, reconciliation_engine, make_transaction, actor_id):
        txn = make_transaction()
        reconciliation_engine.generate_invoice_for_transaction(txn.id, actor_id)
        before = _invoice_count(session)

        with pytest.raises(AlreadyInvoicedError) as exc_info:
            reconciliation_engine.generate_invoice_for_transaction(txn.id, actor_id)

        assert exc_info.value.transaction_id == str(txn.id)
        assert _invoice_count(session) == before == 1

    def test_incomplete_transaction(self, session, reconciliation_engine, make_transaction, payee, actor_id):
        txn = make_transaction(customer_name=None)
        with pytest.raises(IncompleteTransactionError):
            reconciliation_engine.generate_invoice_for_transaction(txn.id, actor_id)

        assert _invoice_count(session) == 0
        assert txn.status == TransactionStatus.PENDING_REVIEW.value
        session.refresh(payee)
        assert payee.next_invoice_number == 7

    def test_completeness_checked_before_link(self, session, reconciliation_engine, make_transaction, actor_id):
        txn = make_transaction()
        reconciliation_engine.generate_invoice_for_transaction(txn.id, actor_id)
        txn.is_complete = False
        session.flush()
        with pytest.raises(IncompleteTransactionError):
            reconciliation_engine.generate_invoice_for_transaction(txn.id, actor_id)

    def test_unknown_transaction(self, reconciliation_engine, actor_id):
        with pytest.raises(TransactionNotFoundError):
            reconciliation_engine.generate_invoice_for_transaction(uuid4(), actor_id)

    @pytest.mark.parametrize("kind", [TransactionType.REFUND, TransactionType.CHARGEBACK])
    def test_credits_are_negative(self, reconciliation_engine, make_transaction, actor_id, kind):
        txn = make_transaction(type=kind, amount_minor=3_000)
        invoice = reconciliation_engine.generate_invoice_for_transaction(txn.id, actor_id)
        assert invoice.total_amount == -3_000
        assert invoice.is_credit_note

    def test_ignored_complete_transaction_can_be_invoiced(
        self, session, reconciliation_engine, make_transaction, actor_id
    ):
        txn = make_transaction()
        StripeTransactionService(session).mark_as_ignored(txn, actor_id)
        reconciliation_engine.generate_invoice_for_transaction(txn.id, actor_id)
        assert txn.status == TransactionStatus.INVOICED.value

    def test_generation_failure_rolls_back_everything(
        self, session, failing_engine, make_transaction, payee, actor_id
    ):
        txn = make_transaction()
        with pytest.raises(DocumentGenerationFailedError):
            failing_engine.generate_invoice_for_transaction(txn.id, actor_id)

        assert _invoice_count(session) == 0
        session.refresh(txn)
        session.refresh(payee)
        assert txn.invoice_item_id is None
        assert txn.status == TransactionStatus.READY.value
        assert payee.next_invoice_number == 7

    def test_outcome_value(self, reconciliation_engine, make_transaction, actor_id):
        ok = reconciliation_engine.try_generate_invoice_for_transaction(make_transaction().id, actor_id)
        bad = reconciliation_engine.try_generate_invoice_for_transaction(
            make_transaction(description=None).id, actor_id
        )
        assert ok.is_success and ok.invoice_id is not None
        assert not bad.is_success
        assert bad.error_code == "INCOMPLETE_TRANSACTION"

    def test_outcome_factories(self):
        txn_id, inv_id = uuid4(), uuid4()
        assert ReconciliationOutcome.success(txn_id, inv_id).is_success
        failure = ReconciliationOutcome.failure(txn_id, IncompleteTransactionError(str(txn_id)))
        assert failure.invoice_id is None
        assert not failure.is_success


class TestBatch:

    def test_failures_are_isolated(self, session, reconciliation_engine, make_transaction, actor_id):
        good_a = make_transaction()
        incomplete = make_transaction(description=None)
        good_b = make_transaction()
        missing = uuid4()

        summary = reconciliation_engine.generate_invoices_for_transactions(
            [good_a.id, incomplete.id, good_a.id, good_b.id, missing], actor_id
        )

        assert summary.succeeded == 2
        assert summary.failed == 3
        assert summary.total == 5
        assert [code for _, code, _ in summary.failures] == [
            "INCOMPLETE_TRANSACTION",
            "ALREADY_INVOICED",
            "TRANSACTION_NOT_FOUND",
        ]
        assert _invoice_count(session) == 2
        numbers = sorted(
            session.scalars(select(InvoiceModel.invoice_number)).all()
        )
        assert numbers == ["ACME-00007", "ACME-00008"]

    def test_number_conflict_does_not_stop_batch(
        self, session, reconciliation_engine, make_transaction, payee, other_payee, actor_id
    ):
        imported = InvoiceService(session).create_invoice(
            currency="EUR", actor_id=actor_id, status=InvoiceStatus.EXTRACTED, payee_id=payee.id
        )
        imported.invoice_number = "ACME-00007"
        session.flush()
        globex = StripeTransactionService(session).create_account(
            other_payee.id, "Globex Stripe", "acct_globex", actor_id
        )
        colliding = make_transaction()
        unaffected = make_transaction(stripe_account_id=globex.id)

        summary = reconciliation_engine.generate_invoices_for_transactions(
            [colliding.id, unaffected.id], actor_id
        )

        assert summary.succeeded == 1
        assert [(txn_id, code) for txn_id, code, _ in summary.failures] == [
            (colliding.id, "INVOICE_NUMBER_CONFLICT")
        ]
        assert colliding.invoice_item_id is None
        assert colliding.status == TransactionStatus.READY.value
        assert unaffected.status == TransactionStatus.INVOICED.value
        invoice = session.get(InvoiceModel, summary.invoice_ids[0])
        assert invoice.invoice_number == "GLX-00001"

    def test_unexpected_error_does_not_stop_batch(
        self, session, reconciliation_engine, finalizer, make_transaction, actor_id, monkeypatch
    ):
        real_finalize = finalizer.finalize_invoice
        calls = []

        def flaky_finalize(invoice, actor):
            calls.append(invoice.id)
            if len(calls) == 1:
                raise RuntimeError("connection reset")
            return real_finalize(invoice, actor)

        monkeypatch.setattr(finalizer, "finalize_invoice", flaky_finalize)
        first, second = make_transaction(), make_transaction()

        summary = reconciliation_engine.generate_invoices_for_transactions(
            [first.id, second.id], actor_id
        )

        assert summary.succeeded == 1
        assert summary.failures == ((first.id, "UNHANDLED_EXCEPTION", "connection reset"),)
        assert _invoice_count(session) == 1
        assert second.status == TransactionStatus.INVOICED.value

    def test_empty_batch(self, reconciliation_engine, actor_id):
        summary = reconciliation_engine.generate_invoices_for_transactions([], actor_id)
        assert summary.succeeded == 0 and summary.failures == ()


class TestPeriod:

    def test_validate_period(self, reconciliation_engine, make_transaction, payee, session, actor_id):
        make_transaction()
        incomplete = make_transaction(customer_name=None)
        ignored = make_transaction(description=None)
        StripeTransactionService(session).mark_as_ignored(ignored, actor_id)

        validation = reconciliation_engine.validate_period(payee.id, 2024, 3)
        assert not validation.valid
        assert validation.total_transactions == 2
        assert validation.incomplete_ids == (incomplete.id,)

    def test_incomplete_period_rejected(self, session, reconciliation_engine, make_transaction, payee, actor_id):
        make_transaction()
        make_transaction(customer_name=None)
        with pytest.raises(IncompletePeriodError) as exc_info:
            reconciliation_engine.generate_invoices_for_period(payee.id, 2024, 3, actor_id)
        assert len(exc_info.value.incomplete_ids) == 1
        assert _invoice_count(session) == 0

    def test_one_invoice_per_customer(self, reconciliation_engine, make_transaction, payee, actor_id):
        jane_a = make_transaction(amount_minor=1_000)
        jane_b = make_transaction(amount_minor=2_000, description="Follow-up")
        john = make_transaction(customer_name="John Client", amount_minor=500)
        jane_refund = make_transaction(type=TransactionType.REFUND, amount_minor=300)
        make_transaction(transaction_date=datetime(2024, 4, 2, tzinfo=timezone.utc))

        invoices = reconciliation_engine.generate_invoices_for_period(payee.id, 2024, 3, actor_id)

        by_customer = {i.customer_name: i for i in invoices}
        assert set(by_customer) == {"Jane Customer", "John Client"}
        assert by_customer["Jane Customer"].total_amount == 1_000 + 2_000 - 300
        assert len(by_customer["Jane Customer"].items) == 3
        assert by_customer["John Client"].total_amount == 500
        assert all(i.invoice_date.isoformat() == "2024-03-31" for i in invoices)
        assert all(i.status == InvoiceStatus.READY_TO_SEND.value for i in invoices)

        for txn in (jane_a, jane_b, john, jane_refund):
            assert txn.status == TransactionStatus.INVOICED.value
        linked = {t.invoice_item_id for t in (jane_a, jane_b, jane_refund)}
        assert linked == {item.id for item in by_customer["Jane Customer"].items}

    def test_period_is_idempotent(self, reconciliation_engine, make_transaction, payee, actor_id):
        make_transaction()
        first = reconciliation_engine.generate_invoices_for_period(payee.id, 2024, 3, actor_id)
        second = reconciliation_engine.generate_invoices_for_period(payee.id, 2024, 3, actor_id)
        assert len(first) == 1
        assert second == []
