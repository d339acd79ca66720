"""
Inventory Module (``stock_modules.inventory``).

Responsibility
--------------
Manual adjustments, damage write-offs, movement corrections, warehouse
transfers, the expiry sweep, and stock reports (expiry alerts, low stock,
batch summaries, ledger reconciliation).
"""

from stock_modules.inventory.config import InventoryConfig
from stock_modules.inventory.models import (
    ExpirySweepResult,
    LowStockItem,
    LowStockSeverity,
    TransferResult,
)
from stock_modules.inventory.service import InventoryService

__all__ = [
    "ExpirySweepResult",
    "InventoryConfig",
    "InventoryService",
    "LowStockItem",
    "LowStockSeverity",
    "TransferResult",
]
