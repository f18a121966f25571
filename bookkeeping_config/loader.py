"""
Configuration Loader (``bookkeeping_config.loader``).

Responsibility
--------------
Loads YAML files and parses them into typed ``bookkeeping_config.schema``
dataclass instances.  The single public entry point for runtime config is
``bookkeeping_config.get_active_config()``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Unknown keys are rejected so that typos never silently fall back to
  defaults.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from bookkeeping_config.schema import (
    BookkeepingConfig,
    DatabaseConfig,
    InvoicingConfig,
    LoggingConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML value must be a mapping")
    return data


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``override`` merged in; nested mappings merge by key."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _parse_section(cls, section: str, data: Any):
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValueError(f"{section}: expected a mapping, got {type(data).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"{section}: unknown keys {sorted(unknown)}")
    return cls(**data)


def parse_database(data: Any) -> DatabaseConfig:
    return _parse_section(DatabaseConfig, "database", data)


def parse_logging(data: Any) -> LoggingConfig:
    return _parse_section(LoggingConfig, "logging", data)


def parse_invoicing(data: Any) -> InvoicingConfig:
    return _parse_section(InvoicingConfig, "invoicing", data)


def parse_config(data: dict[str, Any]) -> BookkeepingConfig:
    """
    Parse a full ``BookkeepingConfig`` from a merged dict.

    Raises:
        ValueError: on unknown sections, unknown keys or invalid values.
    """
    unknown = set(data) - {"database", "logging", "invoicing"}
    if unknown:
        raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")
    return BookkeepingConfig(
        database=parse_database(data.get("database")),
        logging=parse_logging(data.get("logging")),
        invoicing=parse_invoicing(data.get("invoicing")),
    )
