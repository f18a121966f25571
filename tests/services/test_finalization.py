"""
Document finalization workflow.

Verifies:
- Reviewed invoice -> ReadyToSend with number, total, paths, generated_at
- Counter 7 + prefix ACME -> ACME-00007 and counter becomes 8
- Guards: NotFinalizable / MissingPayee before any side effect
- Generation failure leaves no trace (number, status, paths untouched)
- Bills: payee check, Extracted -> Reviewed
- Regeneration: only finalized documents, never re-numbers
"""

from datetime import date
from decimal import Decimal

import pytest

from bookkeeping_kernel.exceptions import (
    DocumentGenerationFailedError,
    DocumentNotFinalizedError,
    InvoiceNumberConflictError,
    MissingPayeeError,
    NotFinalizableError,
)
from bookkeeping_modules._line_items import LineItem
from bookkeeping_modules.bills.models import BillStatus
from bookkeeping_modules.bills.service import BillService
from bookkeeping_modules.invoices.models import InvoiceStatus
from bookkeeping_modules.invoices.service import InvoiceService
from bookkeeping_services.finalization import DocumentFinalizationWorkflow


@pytest.fixture
def invoice_service(session):
    return InvoiceService(session)


@pytest.fixture
def make_invoice(invoice_service, payee, actor_id):
    def _make(**overrides):
        values = {
            "currency": "EUR",
            "actor_id": actor_id,
            "status": InvoiceStatus.REVIEWED,
            "payee_id": payee.id,
            "invoice_date": date(2024, 3, 31),
            "customer_name": "Jane Customer",
            "items": [LineItem("Consulting", Decimal("2"), 1000), LineItem("Travel", 1, 500)],
        }
        values.update(overrides)
        return invoice_service.create_invoice(**values)

    return _make


@pytest.fixture
def failing_finalizer(session, failing_generator, invoicing_settings, deterministic_clock):
    return DocumentFinalizationWorkflow(
        session, failing_generator, invoicing_settings, deterministic_clock
    )


class TestFinalizeInvoice:

    def test_happy_path(self, session, finalizer, make_invoice, payee, actor_id, deterministic_clock):
        invoice = make_invoice()
        finalizer.finalize_invoice(invoice, actor_id)

        assert invoice.status == InvoiceStatus.READY_TO_SEND.value
        assert invoice.invoice_number == "ACME-00007"
        assert invoice.total_amount == 2500
        assert invoice.document_path == "invoices/ACME-00007.pdf"
        assert invoice.document_path_secondary == "invoices/ACME-00007-en.pdf"
        assert invoice.generated_at == deterministic_clock.now()

        session.refresh(payee)
        assert payee.next_invoice_number == 8

    def test_generator_sees_number_and_total(self, finalizer, make_invoice, recording_generator, actor_id):
        invoice = make_invoice()
        finalizer.finalize_invoice(invoice, actor_id)
        assert recording_generator.calls == [("InvoiceModel", invoice.id)]

    def test_stale_item_totals_are_recomputed(self, session, finalizer, make_invoice, actor_id):
        invoice = make_invoice()
        invoice.items[0].total_minor = 1
        invoice.total_amount = 1
        session.flush()
        finalizer.finalize_invoice(invoice, actor_id)
        assert invoice.total_amount == 2500

    def test_existing_number_is_kept(self, session, finalizer, make_invoice, payee, actor_id):
        invoice = make_invoice()
        invoice.invoice_number = "ACME-LEGACY-1"
        session.flush()
        finalizer.finalize_invoice(invoice, actor_id)
        assert invoice.invoice_number == "ACME-LEGACY-1"
        session.refresh(payee)
        assert payee.next_invoice_number == 7

    def test_missing_invoice_date_defaults_to_today(self, finalizer, make_invoice, actor_id):
        invoice = make_invoice(invoice_date=None)
        finalizer.finalize_invoice(invoice, actor_id)
        assert invoice.invoice_date == date(2024, 3, 15)

    def test_consecutive_invoices_get_consecutive_numbers(self, finalizer, make_invoice, actor_id):
        first, second = make_invoice(), make_invoice()
        finalizer.finalize_invoice(first, actor_id)
        finalizer.finalize_invoice(second, actor_id)
        assert (first.invoice_number, second.invoice_number) == ("ACME-00007", "ACME-00008")

    @pytest.mark.parametrize("status", [InvoiceStatus.PENDING, InvoiceStatus.EXTRACTED])
    def test_not_reviewed_is_not_finalizable(self, finalizer, make_invoice, recording_generator, actor_id, status):
        invoice = make_invoice(status=status)
        with pytest.raises(NotFinalizableError) as exc_info:
            finalizer.finalize_invoice(invoice, actor_id)
        assert exc_info.value.status == status.value
        assert recording_generator.calls == []

    def test_finalized_invoice_cannot_be_finalized_again(self, finalizer, make_invoice, actor_id):
        invoice = make_invoice()
        finalizer.finalize_invoice(invoice, actor_id)
        with pytest.raises(NotFinalizableError):
            finalizer.finalize_invoice(invoice, actor_id)
        assert invoice.invoice_number == "ACME-00007"

    def test_missing_payee(self, finalizer, make_invoice, actor_id):
        invoice = make_invoice(payee_id=None)
        with pytest.raises(MissingPayeeError):
            finalizer.finalize_invoice(invoice, actor_id)
        assert invoice.status == InvoiceStatus.REVIEWED.value

    def test_generation_failure_leaves_no_trace(
        self, session, failing_finalizer, failing_generator, make_invoice, payee, actor_id
    ):
        invoice = make_invoice()
        with pytest.raises(DocumentGenerationFailedError) as exc_info:
            failing_finalizer.finalize_invoice(invoice, actor_id)

        assert exc_info.value.code == "DOCUMENT_GENERATION_FAILED"
        assert "renderer crashed" in exc_info.value.reason
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert failing_generator.calls == 1

        session.refresh(invoice)
        session.refresh(payee)
        assert invoice.status == InvoiceStatus.REVIEWED.value
        assert invoice.invoice_number is None
        assert invoice.document_path is None
        assert payee.next_invoice_number == 7

    def test_preview_after_failed_finalization(
        self, invoice_service, failing_finalizer, make_invoice, payee, actor_id
    ):
        invoice = make_invoice()
        with pytest.raises(DocumentGenerationFailedError):
            failing_finalizer.finalize_invoice(invoice, actor_id)

        assert invoice_service.preview_invoice_number(invoice) == "ACME-00007"
        assert payee.next_invoice_number == 7

    def test_number_held_by_imported_invoice(
        self, session, invoice_service, finalizer, make_invoice, payee, actor_id
    ):
        imported = invoice_service.create_invoice(
            currency="EUR", actor_id=actor_id, status=InvoiceStatus.EXTRACTED, payee_id=payee.id
        )
        imported.invoice_number = "ACME-00007"
        session.flush()
        invoice = make_invoice()

        with pytest.raises(InvoiceNumberConflictError) as exc_info:
            finalizer.finalize_invoice(invoice, actor_id)

        assert exc_info.value.invoice_number == "ACME-00007"
        assert exc_info.value.holder_id == str(imported.id)
        assert invoice.status == InvoiceStatus.REVIEWED.value
        assert invoice.invoice_number is None
        assert payee.next_invoice_number == 7

    def test_number_reused_after_failed_attempt(
        self, session, failing_finalizer, finalizer, make_invoice, actor_id
    ):
        invoice = make_invoice()
        with pytest.raises(DocumentGenerationFailedError):
            failing_finalizer.finalize_invoice(invoice, actor_id)
        finalizer.finalize_invoice(invoice, actor_id)
        assert invoice.invoice_number == "ACME-00007"

    def test_finalization_logged(self, finalizer, make_invoice, actor_id, captured_logs):
        invoice = make_invoice()
        finalizer.finalize_invoice(invoice, actor_id)
        records = [r for r in captured_logs() if r["message"] == "invoice_finalized"]
        assert records[-1]["invoice_number"] == "ACME-00007"
        assert records[-1]["document_id"] == str(invoice.id)


class TestFinalizeBill:

    @pytest.fixture
    def bill_service(self, session):
        return BillService(session)

    def _bill(self, bill_service, supplier, actor_id, **overrides):
        values = {
            "supplier_id": supplier.id,
            "currency": "EUR",
            "actor_id": actor_id,
            "status": BillStatus.EXTRACTED,
            "bill_number": "OS-42",
            "items": [LineItem("Paper", 2, 1000), LineItem("Toner", 1, 500)],
        }
        values.update(overrides)
        return bill_service.create_bill(**values)

    def test_extracted_bill_becomes_reviewed(self, finalizer, bill_service, supplier, payee, actor_id):
        bill = self._bill(bill_service, supplier, actor_id, payee_id=payee.id)
        finalizer.finalize_bill(bill, actor_id)
        assert bill.status == BillStatus.REVIEWED.value
        assert bill.total_amount == 2500
        assert bill.document_path == "bills/OS-42.pdf"
        assert bill.generated_at is not None

    def test_reviewed_bill_keeps_status(self, finalizer, bill_service, supplier, payee, actor_id):
        bill = self._bill(
            bill_service, supplier, actor_id, payee_id=payee.id, status=BillStatus.REVIEWED
        )
        finalizer.finalize_bill(bill, actor_id)
        assert bill.status == BillStatus.REVIEWED.value
        assert bill.document_path == "bills/OS-42.pdf"

    def test_bill_without_payee(self, finalizer, bill_service, supplier, recording_generator, actor_id):
        bill = self._bill(bill_service, supplier, actor_id)
        with pytest.raises(NotFinalizableError):
            finalizer.finalize_bill(bill, actor_id)
        assert recording_generator.calls == []

    def test_pending_bill_not_finalizable(self, finalizer, bill_service, supplier, payee, actor_id):
        bill = self._bill(bill_service, supplier, actor_id, payee_id=payee.id, status=BillStatus.PENDING)
        with pytest.raises(NotFinalizableError):
            finalizer.finalize_bill(bill, actor_id)

    def test_bill_generation_failure(
        self, session, failing_finalizer, bill_service, supplier, payee, actor_id
    ):
        bill = self._bill(bill_service, supplier, actor_id, payee_id=payee.id)
        with pytest.raises(DocumentGenerationFailedError):
            failing_finalizer.finalize_bill(bill, actor_id)
        session.refresh(bill)
        assert bill.status == BillStatus.EXTRACTED.value
        assert bill.document_path is None


class TestRegenerate:

    def test_regenerate_keeps_number(
        self, session, finalizer, make_invoice, payee, recording_generator, actor_id, deterministic_clock
    ):
        invoice = make_invoice()
        finalizer.finalize_invoice(invoice, actor_id)
        deterministic_clock.advance(3600)

        generated = finalizer.regenerate_pdf(invoice, actor_id)

        assert generated.primary == "invoices/ACME-00007.pdf"
        assert invoice.invoice_number == "ACME-00007"
        assert invoice.generated_at == deterministic_clock.now()
        assert len(recording_generator.calls) == 2
        session.refresh(payee)
        assert payee.next_invoice_number == 8

    def test_regenerate_unfinalized_invoice(self, finalizer, make_invoice, actor_id):
        with pytest.raises(DocumentNotFinalizedError):
            finalizer.regenerate_pdf(make_invoice(), actor_id)

    def test_regenerate_reviewed_bill(self, finalizer, session, supplier, payee, actor_id):
        bill = BillService(session).create_bill(
            supplier_id=supplier.id, currency="EUR", actor_id=actor_id,
            status=BillStatus.REVIEWED, payee_id=payee.id,
        )
        generated = finalizer.regenerate_pdf(bill, actor_id)
        assert generated.primary == f"bills/{bill.id}.pdf"
        assert bill.document_path == generated.primary

    def test_regenerate_extracted_bill_rejected(self, finalizer, session, supplier, actor_id):
        bill = BillService(session).create_bill(
            supplier_id=supplier.id, currency="EUR", actor_id=actor_id, status=BillStatus.EXTRACTED,
        )
        with pytest.raises(DocumentNotFinalizedError):
            finalizer.regenerate_pdf(bill, actor_id)

    def test_regenerate_all(self, finalizer, make_invoice, other_payee, actor_id):
        for _ in range(3):
            finalizer.finalize_invoice(make_invoice(), actor_id)
        make_invoice()  # reviewed, not finalized
        finalizer.finalize_invoice(make_invoice(payee_id=other_payee.id), actor_id)

        summary = finalizer.regenerate_all_invoices(actor_id)
        assert summary.regenerated == 4
        assert summary.failures == ()

    def test_regenerate_all_for_one_payee(self, finalizer, make_invoice, other_payee, actor_id):
        finalizer.finalize_invoice(make_invoice(), actor_id)
        finalizer.finalize_invoice(make_invoice(payee_id=other_payee.id), actor_id)
        assert finalizer.regenerate_all_invoices(actor_id, payee_id=other_payee.id).regenerated == 1

    def test_regenerate_all_isolates_failures(
        self, session, finalizer, failing_finalizer, make_invoice, actor_id
    ):
        invoices = [make_invoice(), make_invoice()]
        for invoice in invoices:
            finalizer.finalize_invoice(invoice, actor_id)

        summary = failing_finalizer.regenerate_all_invoices(actor_id)
        assert summary.regenerated == 0
        assert summary.failed == 2
        assert {f[0] for f in summary.failures} == {i.id for i in invoices}
        assert {f[1] for f in summary.failures} == {"DOCUMENT_GENERATION_FAILED"}

        for invoice in invoices:
            session.refresh(invoice)
            assert invoice.document_path.startswith("invoices/ACME-")
