"""
bookkeeping_services -- Package init and public API.

Responsibility:
    Cross-module orchestration: document generation collaborators, the
    document finalization workflow and the Stripe transaction
    reconciliation engine, and the bootstrap that wires configuration into
    the runtime.  This is the only layer that composes several
    ``bookkeeping_modules`` services with the document generator port.

Architecture position:
    Services -- stateful orchestration over modules + kernel.

    Dependency direction:
        bookkeeping_services/ -> bookkeeping_modules/  (allowed)
        bookkeeping_services/ -> bookkeeping_kernel/   (allowed)
        bookkeeping_modules/  -> bookkeeping_services/ (FORBIDDEN)
        bookkeeping_kernel/   -> bookkeeping_services/ (FORBIDDEN)
"""

from bookkeeping_services.runtime import (
    bootstrap,
    build_reconciliation_engine,
    init_from_config,
)
from bookkeeping_services.document_generator import (
    DocumentGenerator,
    DocumentRenderer,
    DocumentStorage,
    GeneratedDocuments,
    LocalFileStorage,
    StorageDocumentGenerator,
)
from bookkeeping_services.finalization import (
    DocumentFinalizationWorkflow,
    RegenerationSummary,
)
from bookkeeping_services.reconciliation_service import (
    BatchReconciliationSummary,
    PeriodValidation,
    ReconciliationOutcome,
    TransactionReconciliationEngine,
)

__all__ = [
    "BatchReconciliationSummary",
    "DocumentFinalizationWorkflow",
    "DocumentGenerator",
    "DocumentRenderer",
    "DocumentStorage",
    "GeneratedDocuments",
    "LocalFileStorage",
    "PeriodValidation",
    "ReconciliationOutcome",
    "RegenerationSummary",
    "StorageDocumentGenerator",
    "TransactionReconciliationEngine",
    "bootstrap",
    "build_reconciliation_engine",
    "init_from_config",
]
