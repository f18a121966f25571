"""
BookkeepingConfig schema.

Typed, frozen view of the YAML configuration.  The loader parses raw
dicts into these types; services receive the section they need
(``InvoicingConfig`` for the sequencer, the document generator and the
finalization workflow) and never read files or the environment themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from bookkeeping_kernel.domain.currency import CurrencyRegistry

_VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings passed through to ``init_engine_from_url``."""

    url: str = "sqlite:///bookkeeping.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    sqlite_busy_timeout: float = 30.0

    def __post_init__(self) -> None:
        if not self.url or not self.url.strip():
            raise ValueError("database.url cannot be empty")
        if self.pool_size <= 0:
            raise ValueError(f"database.pool_size must be positive, got {self.pool_size}")
        if self.max_overflow < 0:
            raise ValueError(
                f"database.max_overflow cannot be negative, got {self.max_overflow}"
            )
        if self.sqlite_busy_timeout <= 0:
            raise ValueError("database.sqlite_busy_timeout must be positive")

    def engine_kwargs(self) -> dict:
        """Keyword arguments for ``bookkeeping_kernel.db.engine.init_engine_from_url``."""
        return {
            "database_url": self.url,
            "echo": self.echo,
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "sqlite_busy_timeout": self.sqlite_busy_timeout,
        }


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"

    def __post_init__(self) -> None:
        normalized = self.level.upper()
        if normalized not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"logging.level must be one of {sorted(_VALID_LOG_LEVELS)}, got {self.level!r}"
            )
        object.__setattr__(self, "level", normalized)

    @property
    def level_number(self) -> int:
        return logging.getLevelName(self.level)


# ---------------------------------------------------------------------------
# Invoicing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InvoicingConfig:
    """
    Invoice numbering and document storage settings.

    ``number_separator`` and ``number_padding`` shape issued numbers:
    prefix ``ACME``, separator ``-``, padding 5 and counter 7 give
    ``ACME-00007``.
    """

    number_separator: str = "-"
    number_padding: int = 5
    default_currency: str = "EUR"
    document_root: str = "invoices"
    bill_document_root: str = "bills"
    primary_language: str = "es"
    secondary_language: str | None = "en"

    def __post_init__(self) -> None:
        if self.number_padding < 1:
            raise ValueError(
                f"invoicing.number_padding must be >= 1, got {self.number_padding}"
            )
        object.__setattr__(
            self, "default_currency", CurrencyRegistry.validate(self.default_currency)
        )
        if not self.document_root or not self.document_root.strip():
            raise ValueError("invoicing.document_root cannot be empty")
        if not self.bill_document_root or not self.bill_document_root.strip():
            raise ValueError("invoicing.bill_document_root cannot be empty")
        if not self.primary_language:
            raise ValueError("invoicing.primary_language cannot be empty")
        if self.secondary_language == self.primary_language:
            raise ValueError(
                "invoicing.secondary_language must differ from primary_language"
            )

    @classmethod
    def with_defaults(cls) -> InvoicingConfig:
        return cls()


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BookkeepingConfig:
    """Root configuration object returned by ``get_active_config()``."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    invoicing: InvoicingConfig = field(default_factory=InvoicingConfig)
