"""
stock_config -- single public entrypoint for stock ledger configuration.

Responsibility:
    Provides the way to obtain configuration at runtime through
    ``get_active_config()`` (or ``load_config()`` for an explicit file).
    Returns a frozen ``StockLedgerConfig``.

Architecture position:
    Configuration -- YAML-driven settings.  This package sits above
    ``stock_kernel`` and below ``stock_services`` / ``stock_modules``.
    The kernel MUST NEVER import from ``stock_config``; bridges in this
    package translate settings into kernel calls.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ConfigurationError`` -- missing, unknown or invalid keys.
"""

from __future__ import annotations

import os
from pathlib import Path

from stock_config.loader import DATABASE_URL_ENV, load_config
from stock_config.schema import DatabaseSettings, LedgerSettings, StockLedgerConfig
from stock_kernel.logging_config import get_logger

logger = get_logger("config")

CONFIG_PATH_ENV = "STOCK_LEDGER_CONFIG"

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(path: Path | str | None = None) -> StockLedgerConfig:
    """
    Load the active configuration.

    Resolution order: ``path``, then the ``STOCK_LEDGER_CONFIG``
    environment variable, then ``stock_config/sets/default.yaml``.

    A ``stock_config_loaded`` log entry carrying the name, version and
    checksum is emitted on every successful call.

    Raises:
        FileNotFoundError: the resolved file does not exist.
        ConfigurationError: the file fails validation.
    """
    resolved = Path(path or os.environ.get(CONFIG_PATH_ENV) or _DEFAULT_CONFIG_DIR / "default.yaml")
    config = load_config(resolved)
    logger.info(
        "stock_config_loaded",
        extra={
            "config_name": config.name,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(resolved),
            "dialect": config.database.dialect,
        },
    )
    return config


__all__ = [
    "CONFIG_PATH_ENV",
    "DATABASE_URL_ENV",
    "DatabaseSettings",
    "LedgerSettings",
    "StockLedgerConfig",
    "get_active_config",
    "load_config",
]
