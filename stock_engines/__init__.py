"""
Module: stock_engines
Responsibility:
    Pure calculation engines for the stock ledger: unit-of-measure
    conversion, FIFO batch allocation, availability evaluation and batch
    roll-ups.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  May import stock_kernel
    domain values, exceptions and logging.  MUST NOT import stock_services or
    stock_modules.

Invariants enforced:
    - Purity: engines never read the clock; dates are parameters.
    - Decimal-only arithmetic for rates, costs and display quantities.
    - Determinism: identical inputs produce identical outputs.

Usage:
    from stock_engines import to_base, allocate, evaluate_availability
"""

from stock_engines.allocation import (
    AllocationLine,
    AllocationPlan,
    InsufficientStock,
    allocate,
    fifo_order,
)
from stock_engines.availability import (
    AvailabilityResult,
    RequestedLine,
    Shortfall,
    aggregate_requests,
    evaluate_availability,
)
from stock_engines.batch_summary import (
    AlertLevel,
    BatchSummary,
    ExpiryAlert,
    expiry_alerts,
    summarize_batches,
)
from stock_engines.uom import (
    LineQuantity,
    add_uom,
    base_uom,
    between,
    create_default_uom_list,
    format_uom_display,
    from_base,
    get_conversion_rate,
    is_valid_uom,
    remove_uom,
    resolve_line_quantity,
    to_base,
    total_base_quantity,
    update_uom,
)

__all__ = [
    # UOM
    "LineQuantity",
    "add_uom",
    "base_uom",
    "between",
    "create_default_uom_list",
    "format_uom_display",
    "from_base",
    "get_conversion_rate",
    "is_valid_uom",
    "remove_uom",
    "resolve_line_quantity",
    "to_base",
    "total_base_quantity",
    "update_uom",
    # Allocation
    "AllocationLine",
    "AllocationPlan",
    "InsufficientStock",
    "allocate",
    "fifo_order",
    # Availability
    "AvailabilityResult",
    "RequestedLine",
    "Shortfall",
    "aggregate_requests",
    "evaluate_availability",
    # Batch summaries
    "AlertLevel",
    "BatchSummary",
    "ExpiryAlert",
    "expiry_alerts",
    "summarize_batches",
]
