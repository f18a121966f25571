"""
StorageDocumentGenerator and LocalFileStorage.
"""

from datetime import date
from decimal import Decimal

import pytest

from bookkeeping_config.schema import InvoicingConfig
from bookkeeping_kernel.exceptions import DocumentGenerationFailedError
from bookkeeping_modules._line_items import LineItem
from bookkeeping_modules.bills.models import BillStatus
from bookkeeping_modules.bills.service import BillService
from bookkeeping_modules.invoices.models import InvoiceStatus
from bookkeeping_modules.invoices.service import InvoiceService
from bookkeeping_services.document_generator import (
    DocumentGenerator,
    DocumentStorage,
    LocalFileStorage,
    StorageDocumentGenerator,
)
from bookkeeping_services.finalization import DocumentFinalizationWorkflow


class FakeRenderer:
    def __init__(self):
        self.languages: list[str] = []

    def render(self, document, language: str) -> bytes:
        self.languages.append(language)
        return f"{type(document).__name__}:{language}".encode()


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(tmp_path)


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def generator(storage, renderer):
    return StorageDocumentGenerator(storage, renderer, InvoicingConfig.with_defaults())


@pytest.fixture
def reviewed_invoice(session, payee, actor_id):
    return InvoiceService(session).create_invoice(
        currency="EUR",
        actor_id=actor_id,
        status=InvoiceStatus.REVIEWED,
        payee_id=payee.id,
        invoice_date=date(2024, 3, 31),
        items=[LineItem("Consulting", Decimal("1"), 10_000)],
    )


class TestLocalFileStorage:

    def test_put_and_exists(self, storage):
        storage.put("a/b/c.pdf", b"%PDF")
        assert storage.exists("a/b/c.pdf")
        assert storage.read("a/b/c.pdf") == b"%PDF"
        assert not storage.exists("a/b/missing.pdf")

    def test_rejects_escaping_paths(self, storage):
        with pytest.raises(ValueError):
            storage.put("../outside.pdf", b"x")

    def test_satisfies_protocol(self, storage, generator):
        assert isinstance(storage, DocumentStorage)
        assert isinstance(generator, DocumentGenerator)


class TestInvoiceDocuments:

    def test_paths_and_languages(self, session, generator, storage, renderer, payee, reviewed_invoice, actor_id):
        finalizer = DocumentFinalizationWorkflow(session, generator)
        finalizer.finalize_invoice(reviewed_invoice, actor_id)

        assert reviewed_invoice.document_path == "invoices/ACME/2024/ACME-00007.pdf"
        assert reviewed_invoice.document_path_secondary == "invoices/ACME/2024/ACME-00007-en.pdf"
        assert renderer.languages == ["es", "en"]
        assert storage.read(reviewed_invoice.document_path) == b"InvoiceModel:es"
        assert storage.exists(reviewed_invoice.document_path_secondary)

    def test_without_secondary_language(self, session, storage, renderer, reviewed_invoice, actor_id):
        settings = InvoicingConfig(secondary_language=None, document_root="out")
        generator = StorageDocumentGenerator(storage, renderer, settings)
        DocumentFinalizationWorkflow(session, generator, settings).finalize_invoice(
            reviewed_invoice, actor_id
        )
        assert reviewed_invoice.document_path == "out/ACME/2024/ACME-00007.pdf"
        assert reviewed_invoice.document_path_secondary is None

    def test_unnumbered_invoice_fails_generation(self, generator, reviewed_invoice):
        with pytest.raises(ValueError):
            generator.generate(reviewed_invoice)

    def test_storage_failure_is_wrapped(self, session, renderer, reviewed_invoice, payee, actor_id):
        class BrokenStorage:
            def put(self, path, data):
                raise OSError("disk full")

            def exists(self, path):
                return False

        finalizer = DocumentFinalizationWorkflow(
            session, StorageDocumentGenerator(BrokenStorage(), renderer)
        )
        with pytest.raises(DocumentGenerationFailedError) as exc_info:
            finalizer.finalize_invoice(reviewed_invoice, actor_id)
        assert "disk full" in exc_info.value.reason
        session.refresh(payee)
        assert payee.next_invoice_number == 7


class TestBillDocuments:

    def test_bill_path(self, session, generator, storage, supplier, payee, actor_id):
        bill = BillService(session).create_bill(
            supplier_id=supplier.id,
            currency="EUR",
            actor_id=actor_id,
            status=BillStatus.EXTRACTED,
            payee_id=payee.id,
            bill_number="OS-42",
            bill_date=date(2023, 11, 5),
        )
        documents = generator.generate(bill)
        assert documents.primary == "bills/2023/OS-42.pdf"
        assert documents.secondary is None
        assert storage.read(documents.primary) == b"BillModel:es"

    def test_unsupported_document(self, generator):
        with pytest.raises(TypeError):
            generator.generate(object())
