"""
Pure domain layer.

Immutable value objects with NO dependencies on the ORM, the database,
the wall clock or any other I/O.
"""

from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.domain.ledger import (
    BatchStatus,
    InventoryBatch,
    MovementSpec,
    MovementType,
    StockMovement,
    validate_movement,
)
from stock_kernel.domain.products import (
    Product,
    UnitOfMeasure,
    UOMList,
    parse_uom_list,
    validate_uom_list,
)
from stock_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    # Clock
    "Clock",
    "SystemClock",
    "DeterministicClock",
    # Products
    "Product",
    "UnitOfMeasure",
    "UOMList",
    "parse_uom_list",
    "validate_uom_list",
    # Ledger
    "BatchStatus",
    "InventoryBatch",
    "MovementSpec",
    "MovementType",
    "StockMovement",
    "validate_movement",
    # Workflow
    "Guard",
    "Transition",
    "Workflow",
]
