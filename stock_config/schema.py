"""
Stock ledger configuration schema.

The frozen data model YAML configuration files are parsed into by the
loader.  Module-specific policy (receiving, sales, inventory) stays as raw
dict sections here; each module's own config dataclass validates its
section when it is built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings handed to ``init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    statement_timeout_ms: int | None = 5000

    @property
    def dialect(self) -> str:
        return self.url.split(":", 1)[0].split("+", 1)[0]


# ---------------------------------------------------------------------------
# Ledger-wide settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerSettings:
    """Defaults shared by several modules."""

    default_warehouse_id: str = "MAIN"
    expiry_warning_days: int = 30
    voucher_number_prefix: str = "VCH"
    order_number_prefix: str = "SO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

# Ledger settings each module inherits unless its own section overrides them.
_MODULE_INHERITED: dict[str, dict[str, str]] = {
    "purchasing": {"voucher_number_prefix": "voucher_number_prefix"},
    "sales": {"order_number_prefix": "order_number_prefix"},
    "inventory": {"expiring_within_days": "expiry_warning_days"},
}

KNOWN_MODULES = frozenset(_MODULE_INHERITED)


@dataclass(frozen=True)
class StockLedgerConfig:
    """A complete, validated configuration."""

    name: str
    version: int
    database: DatabaseSettings
    ledger: LedgerSettings = field(default_factory=LedgerSettings)
    modules: dict[str, dict[str, Any]] = field(default_factory=dict)
    checksum: str = ""

    def module_settings(self, module: str) -> dict[str, Any]:
        """
        Settings for one module's ``Config.from_dict``: the inherited ledger
        defaults overlaid with the module's own section.
        """
        if module not in KNOWN_MODULES:
            raise KeyError(f"Unknown module: {module}")
        inherited = {
            key: getattr(self.ledger, ledger_key)
            for key, ledger_key in _MODULE_INHERITED[module].items()
        }
        return {**inherited, **self.modules.get(module, {})}
