"""
bookkeeping_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component may read configuration
    files or environment variables directly.

Architecture position:
    Configuration -- sits above ``bookkeeping_kernel`` and below
    ``bookkeeping_modules`` / ``bookkeeping_services``.  The kernel MUST
    NEVER import from ``bookkeeping_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested user config file is missing.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``ValueError`` -- unknown keys or invalid values.
"""

from __future__ import annotations

import os
from pathlib import Path

from bookkeeping_config.loader import deep_merge, load_yaml_file, parse_config
from bookkeeping_config.schema import (
    BookkeepingConfig,
    DatabaseConfig,
    InvoicingConfig,
    LoggingConfig,
)
from bookkeeping_kernel.logging_config import get_logger

logger = get_logger("config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"
DATABASE_URL_ENV = "BOOKKEEPING_DATABASE_URL"

__all__ = [
    "BookkeepingConfig",
    "DatabaseConfig",
    "InvoicingConfig",
    "LoggingConfig",
    "get_active_config",
]


def get_active_config(
    config_path: Path | str | None = None,
    environ: dict[str, str] | None = None,
) -> BookkeepingConfig:
    """The ONLY public configuration entrypoint.

    Loads the packaged defaults, deep-merges ``config_path`` when given,
    then applies the ``BOOKKEEPING_DATABASE_URL`` override from ``environ``
    (``os.environ`` when omitted).

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        yaml.YAMLError: If either file is malformed.
        ValueError: If validation fails.
    """
    data = load_yaml_file(DEFAULTS_PATH)
    if config_path is not None:
        data = deep_merge(data, load_yaml_file(Path(config_path)))

    env = os.environ if environ is None else environ
    database_url = env.get(DATABASE_URL_ENV)
    if database_url:
        data = deep_merge(data, {"database": {"url": database_url}})

    config = parse_config(data)

    logger.info(
        "config_loaded",
        extra={
            "config_path": str(config_path) if config_path else None,
            "database_url_from_env": bool(database_url),
            "log_level": config.logging.level,
            "default_currency": config.invoicing.default_currency,
        },
    )
    return config
