"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``stock_config.schema`` dataclasses.  Callers obtain configuration through
``stock_config.get_active_config()`` or ``stock_config.load_config()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends on the kernel only
for ``ConfigurationError``; no dependency on services, engines or modules.

Invariants enforced
-------------------
* Unknown keys are rejected, never ignored, so a misspelt setting cannot
  silently fall back to its default.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the file's
  content for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing, unknown or ill-typed keys  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from stock_config.schema import (
    KNOWN_MODULES,
    DatabaseSettings,
    LedgerSettings,
    StockLedgerConfig,
)
from stock_kernel.exceptions import ConfigurationError

DATABASE_URL_ENV = "STOCK_LEDGER_DATABASE_URL"

_ROOT_KEYS = frozenset({"name", "version", "database", "ledger", "modules"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 over the canonical JSON form of the parsed file."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _check_keys(data: Any, allowed: frozenset[str], section: str, source: str | None) -> None:
    if not isinstance(data, dict):
        raise ConfigurationError(f"'{section}' must be a mapping", source)
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ConfigurationError(f"unknown key(s) in '{section}': {', '.join(unknown)}", source)


def _require_int(value: Any, key: str, source: str | None, minimum: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ConfigurationError(f"'{key}' must be an integer >= {minimum}, got {value!r}", source)
    return value


def _require_str(value: Any, key: str, source: str | None) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"'{key}' must be a non-empty string", source)
    return value


def parse_database(data: dict[str, Any], source: str | None = None) -> DatabaseSettings:
    """Parse the ``database`` section.  ``url`` is required."""
    _check_keys(data, frozenset(f.name for f in fields(DatabaseSettings)), "database", source)
    if "url" not in data:
        raise ConfigurationError("'database.url' is required", source)

    echo = data.get("echo", False)
    if not isinstance(echo, bool):
        raise ConfigurationError("'database.echo' must be true or false", source)
    timeout = data.get("statement_timeout_ms", 5000)
    if timeout is not None:
        timeout = _require_int(timeout, "database.statement_timeout_ms", source, minimum=1)

    return DatabaseSettings(
        url=_require_str(data["url"], "database.url", source),
        echo=echo,
        pool_size=_require_int(data.get("pool_size", 20), "database.pool_size", source, minimum=1),
        max_overflow=_require_int(data.get("max_overflow", 10), "database.max_overflow", source),
        pool_timeout=_require_int(data.get("pool_timeout", 30), "database.pool_timeout", source, minimum=1),
        statement_timeout_ms=timeout,
    )


def parse_ledger(data: dict[str, Any], source: str | None = None) -> LedgerSettings:
    """Parse the ``ledger`` section; every key is optional."""
    _check_keys(data, frozenset(f.name for f in fields(LedgerSettings)), "ledger", source)
    defaults = LedgerSettings()
    return LedgerSettings(
        default_warehouse_id=_require_str(
            data.get("default_warehouse_id", defaults.default_warehouse_id),
            "ledger.default_warehouse_id",
            source,
        ),
        expiry_warning_days=_require_int(
            data.get("expiry_warning_days", defaults.expiry_warning_days),
            "ledger.expiry_warning_days",
            source,
            minimum=1,
        ),
        voucher_number_prefix=_require_str(
            data.get("voucher_number_prefix", defaults.voucher_number_prefix),
            "ledger.voucher_number_prefix",
            source,
        ),
        order_number_prefix=_require_str(
            data.get("order_number_prefix", defaults.order_number_prefix),
            "ledger.order_number_prefix",
            source,
        ),
    )


def parse_modules(data: dict[str, Any], source: str | None = None) -> dict[str, dict[str, Any]]:
    """Parse the ``modules`` section: one mapping per known module."""
    _check_keys(data, KNOWN_MODULES, "modules", source)
    modules = {}
    for name, section in data.items():
        if section is None:
            section = {}
        if not isinstance(section, dict):
            raise ConfigurationError(f"'modules.{name}' must be a mapping", source)
        modules[name] = dict(section)
    return modules


def parse_config(data: dict[str, Any], source: str | None = None) -> StockLedgerConfig:
    """
    Parse a whole configuration document.

    The ``STOCK_LEDGER_DATABASE_URL`` environment variable, when set,
    replaces ``database.url``.
    """
    _check_keys(data, _ROOT_KEYS, "<root>", source)
    for key in ("name", "database"):
        if key not in data:
            raise ConfigurationError(f"'{key}' is required", source)

    database = dict(data["database"] or {})
    override = os.environ.get(DATABASE_URL_ENV)
    if override:
        database["url"] = override

    return StockLedgerConfig(
        name=_require_str(data["name"], "name", source),
        version=_require_int(data.get("version", 1), "version", source, minimum=1),
        database=parse_database(database, source),
        ledger=parse_ledger(data.get("ledger") or {}, source),
        modules=parse_modules(data.get("modules") or {}, source),
        checksum=compute_checksum(data),
    )


def load_config(path: Path | str) -> StockLedgerConfig:
    """Load and parse one YAML configuration file."""
    path = Path(path)
    return parse_config(load_yaml_file(path), source=str(path))
