"""
Inventory Domain Models (``stock_modules.inventory.models``).

Frozen value objects returned by inventory operations: warehouse transfers,
expiry sweeps and low-stock reports.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from uuid import UUID

from stock_kernel.domain.ledger import InventoryBatch, StockMovement
from stock_modules._workflow_helpers import StepFailure


class LowStockSeverity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"


@dataclass(frozen=True)
class TransferResult:
    """
    Stock moved between warehouses.

    ``outgoing`` holds the negative transfer movements on the source
    batches; ``incoming`` the destination batches, which keep the source
    batch's unit cost, received date and expiry.
    """
    transfer_id: UUID
    product_id: UUID
    from_warehouse_id: str
    to_warehouse_id: str
    quantity: int
    outgoing: tuple[StockMovement, ...]
    incoming: tuple[InventoryBatch, ...]


@dataclass(frozen=True)
class ExpirySweepResult:
    as_of: date
    expired: tuple[InventoryBatch, ...] = ()
    movements: tuple[StockMovement, ...] = ()
    failures: tuple[StepFailure, ...] = ()

    @property
    def written_off(self) -> int:
        return -sum(m.quantity for m in self.movements)


@dataclass(frozen=True)
class LowStockItem:
    product_id: UUID
    product_name: str
    warehouse_id: str
    on_hand: int
    threshold: int
    severity: LowStockSeverity

    @property
    def shortfall(self) -> int:
        return self.threshold - self.on_hand
