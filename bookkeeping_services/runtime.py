"""
bookkeeping_services.runtime -- Wire configuration into the runtime.

Responsibility:
    The one place where the loaded ``BookkeepingConfig`` reaches the
    kernel: the logging level goes to ``configure_logging``, the database
    section to ``init_engine_from_url``, and the invoicing section to the
    finalization workflow behind the reconciliation engine.

Usage:
    config = bootstrap("bookkeeping.yaml", create_schema=True)
    with get_session_factory()() as session:
        engine = build_reconciliation_engine(session, generator, config)
        summary = engine.generate_invoices_for_transactions(ids, actor_id)
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from bookkeeping_config import BookkeepingConfig, get_active_config
from bookkeeping_kernel.db.engine import create_tables, init_engine_from_url
from bookkeeping_kernel.domain.clock import Clock
from bookkeeping_kernel.logging_config import configure_logging, get_logger
from bookkeeping_services.document_generator import DocumentGenerator
from bookkeeping_services.finalization import DocumentFinalizationWorkflow
from bookkeeping_services.reconciliation_service import TransactionReconciliationEngine

logger = get_logger("services.runtime")


def init_from_config(config: BookkeepingConfig) -> Engine:
    """Apply the logging level, then initialize the engine from ``config.database``."""
    configure_logging(level=config.logging.level_number)
    return init_engine_from_url(**config.database.engine_kwargs())


def bootstrap(
    config_path: Path | str | None = None,
    environ: dict[str, str] | None = None,
    *,
    create_schema: bool = False,
) -> BookkeepingConfig:
    """Load configuration, initialize logging and the engine, optionally create tables."""
    config = get_active_config(config_path, environ)
    engine = init_from_config(config)
    if create_schema:
        create_tables()
    logger.info(
        "runtime_initialized",
        extra={"dialect": engine.dialect.name, "schema_created": create_schema},
    )
    return config


def build_reconciliation_engine(
    session: Session,
    generator: DocumentGenerator,
    config: BookkeepingConfig,
    clock: Clock | None = None,
    auto_commit: bool = True,
) -> TransactionReconciliationEngine:
    finalizer = DocumentFinalizationWorkflow(session, generator, config.invoicing, clock)
    return TransactionReconciliationEngine(session, finalizer, clock, auto_commit=auto_commit)
