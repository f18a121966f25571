"""Database layer - engine and base classes."""

from bookkeeping_kernel.db.base import Base, TrackedBase, UUIDString
from bookkeeping_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
)

__all__ = [
    "init_engine_from_url",
    "create_tables",
    "get_engine",
    "get_session_factory",
    "Base",
    "TrackedBase",
    "UUIDString",
]
