"""
One JSON object per log line for everything under the ``bookkeeping`` logger.

Finalization and reconciliation bind the document, payee, transaction and
acting user into ``LogContext`` so every line they emit (including the ones
from the sequencer and the module services underneath) carries those ids
without threading them through ``extra``.

    with LogContext.bind(document_id=invoice.id, payee_id=invoice.payee_id):
        ...

When a ``BookkeepingError`` is logged with ``exc_info``, its code and
structured attributes are flattened into ``exc_*`` keys.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

CONTEXT_FIELDS = ("correlation_id", "actor_id", "document_id", "transaction_id", "payee_id")

_context: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"bookkeeping_{name}", default=None) for name in CONTEXT_FIELDS
}


class LogContext:
    """Ids attached to every log line emitted in the current thread or task."""

    @classmethod
    def set(cls, **fields: Any) -> None:
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        for name, value in fields.items():
            if value is not None:
                _context[name].set(str(value))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: value
            for name, var in _context.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _context.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of the block; None and unknown keys are skipped."""
        tokens = [
            (_context[name], _context[name].set(str(value)))
            for name, value in fields.items()
            if value is not None and name in _context
        ]
        try:
            yield cls
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# LogRecord attributes that are not user-supplied ``extra`` keys.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    # UUID, Decimal and anything else render as text
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # Attributes set by the BookkeepingError subclasses (transaction_id, invoice_number, ...)
    for name, value in vars(exc).items():
        if not name.startswith("_"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a record as a JSON line; context ids take precedence over ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                line.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            line.update(_exception_fields(record.exc_info[1]))
            line["traceback"] = self.formatException(record.exc_info)

        return json.dumps(line, default=_json_default)


_ROOT = "bookkeeping"


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{_ROOT}.{name}")


_handler: logging.Handler | None = None
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str | None = None,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> logging.Logger:
    """
    Install the JSON handler on the ``bookkeeping`` logger.

    The first call installs ``handler`` (or a stream handler on ``stream``,
    stderr by default) at ``level`` (INFO when omitted).  Later calls keep
    that handler and only apply an explicitly given ``level``, so the level
    from configuration can be set after the engine or tests have already
    configured logging.
    """
    global _handler
    root = logging.getLogger(_ROOT)
    with _lock:
        if _handler is None:
            _handler = handler or logging.StreamHandler(stream or sys.stderr)
            _handler.setFormatter(StructuredFormatter())
            root.addHandler(_handler)
            root.propagate = False
            root.setLevel(logging.INFO if level is None else level)
        elif level is not None:
            root.setLevel(level)
    return root


def reset_logging() -> None:
    """Remove the installed handler (test isolation)."""
    global _handler
    root = logging.getLogger(_ROOT)
    with _lock:
        if _handler is not None:
            root.removeHandler(_handler)
            _handler = None
        root.setLevel(logging.WARNING)
        root.propagate = True
