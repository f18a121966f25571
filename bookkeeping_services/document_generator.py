"""
bookkeeping_services.document_generator -- Document generation collaborators.

Responsibility:
    Defines the ports the finalization workflow depends on and one
    storage-backed implementation:

    - ``DocumentRenderer``: turns a document into bytes for one language.
      PDF rendering itself is opaque to this package.
    - ``DocumentStorage``: writes bytes under a relative path.
    - ``DocumentGenerator``: produces the stored documents for an invoice
      or bill and reports where they went.

Architecture position:
    Services -- I/O collaborators.  Reads ORM models but never flushes or
    commits; persisting the returned paths is the caller's job.

Failure modes:
    - Any renderer or storage exception propagates unchanged.  The
      finalization workflow wraps it in ``DocumentGenerationFailedError``.

Usage:
    generator = StorageDocumentGenerator(
        storage=LocalFileStorage("/srv/documents"),
        renderer=my_pdf_renderer,
        settings=config.invoicing,
    )
    documents = generator.generate(invoice)
    documents.primary    # "invoices/ACME/2024/ACME-00007.pdf"
    documents.secondary  # "invoices/ACME/2024/ACME-00007-en.pdf"
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Union, runtime_checkable

from bookkeeping_config.schema import InvoicingConfig
from bookkeeping_kernel.logging_config import get_logger
from bookkeeping_modules.bills.orm import BillModel
from bookkeeping_modules.invoices.orm import InvoiceModel

logger = get_logger("services.document_generator")

Document = Union[InvoiceModel, BillModel]


@dataclass(frozen=True)
class GeneratedDocuments:
    """Storage paths of one generation run."""

    primary: str
    secondary: str | None = None


@runtime_checkable
class DocumentRenderer(Protocol):
    """Renders a document into file bytes (a PDF in production)."""

    def render(self, document: Document, language: str) -> bytes:
        ...


@runtime_checkable
class DocumentStorage(Protocol):
    """Stores rendered documents under relative paths."""

    def put(self, path: str, data: bytes) -> None:
        ...

    def exists(self, path: str) -> bool:
        ...


@runtime_checkable
class DocumentGenerator(Protocol):
    """Generates and stores the documents for an invoice or bill."""

    def generate(self, document: Document) -> GeneratedDocuments:
        ...


class LocalFileStorage:
    """``DocumentStorage`` over a directory on the local filesystem."""

    def __init__(self, root: str | Path):
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        target = (self._root / path).resolve()
        if not target.is_relative_to(self._root.resolve()):
            raise ValueError(f"Document path escapes storage root: {path!r}")
        return target

    def put(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def read(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()


class StorageDocumentGenerator:
    """
    Renders documents and writes them to a ``DocumentStorage``.

    Paths:
        invoices  ``{document_root}/{prefix}/{year}/{number}.pdf`` plus
                  ``{number}-{secondary_language}.pdf`` when a secondary
                  language is configured.
        bills     ``{bill_document_root}/{year}/{bill_number or id}.pdf``.

    An invoice must already carry its number and a payee.
    """

    def __init__(
        self,
        storage: DocumentStorage,
        renderer: DocumentRenderer,
        settings: InvoicingConfig | None = None,
    ):
        self._storage = storage
        self._renderer = renderer
        self._settings = settings or InvoicingConfig.with_defaults()

    def generate(self, document: Document) -> GeneratedDocuments:
        if isinstance(document, InvoiceModel):
            return self._generate_invoice(document)
        if isinstance(document, BillModel):
            return self._generate_bill(document)
        raise TypeError(f"Cannot generate a document for {type(document).__name__}")

    def _generate_invoice(self, invoice: InvoiceModel) -> GeneratedDocuments:
        if not invoice.invoice_number:
            raise ValueError(f"Invoice {invoice.id} has no invoice number")
        if invoice.payee is None:
            raise ValueError(f"Invoice {invoice.id} has no payee")

        year = invoice.period_year or (
            invoice.generated_at.year if invoice.generated_at else None
        )
        folder = f"{self._settings.document_root}/{invoice.payee.invoice_prefix}/{year or 'undated'}"

        primary = f"{folder}/{invoice.invoice_number}.pdf"
        self._storage.put(
            primary, self._renderer.render(invoice, self._settings.primary_language)
        )

        secondary = None
        language = self._settings.secondary_language
        if language:
            secondary = f"{folder}/{invoice.invoice_number}-{language}.pdf"
            self._storage.put(secondary, self._renderer.render(invoice, language))

        logger.info(
            "invoice_document_generated",
            extra={
                "invoice_id": str(invoice.id),
                "invoice_number": invoice.invoice_number,
                "primary_path": primary,
                "secondary_path": secondary,
            },
        )
        return GeneratedDocuments(primary=primary, secondary=secondary)

    def _generate_bill(self, bill: BillModel) -> GeneratedDocuments:
        year = bill.bill_date.year if bill.bill_date else "undated"
        stem = bill.bill_number or str(bill.id)
        path = f"{self._settings.bill_document_root}/{year}/{stem}.pdf"
        self._storage.put(path, self._renderer.render(bill, self._settings.primary_language))
        logger.info(
            "bill_document_generated",
            extra={"bill_id": str(bill.id), "primary_path": path},
        )
        return GeneratedDocuments(primary=path)
