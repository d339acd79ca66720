"""
stock_engines.allocation -- FIFO batch allocation.

Responsibility:
    Given a requested base quantity and a snapshot of a product's batches in
    one warehouse, decide which batches to draw from and how much from each.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The Batch Store (services)
    supplies the snapshot and applies the plan with guarded updates.

Ordering:
    Expiry date ascending, batches without expiry last, ties broken by
    received time ascending.  Oldest-expiring stock leaves first to limit
    spoilage; non-perishable stock falls back to arrival order.

Invariants enforced:
    - Only ACTIVE batches with quantity > 0 are considered; an expired or
      damaged batch is skipped even if it still holds units.
    - A plan always covers the full request.  If the snapshot cannot, the
      result is InsufficientStock carrying the shortfall; nothing partial is
      ever returned.
    - Σ plan.quantity_taken == requested_base_quantity.

Failure modes:
    - ValueError if the requested quantity is not a positive integer.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from stock_engines.tracer import traced_engine
from stock_kernel.domain.ledger import InventoryBatch
from stock_kernel.logging_config import get_logger

logger = get_logger("engines.allocation")


@dataclass(frozen=True, slots=True)
class AllocationLine:
    """Units drawn from one batch."""

    batch_id: UUID
    batch_number: str
    quantity_taken: int
    unit_cost: Decimal

    @property
    def cost(self) -> Decimal:
        return self.unit_cost * self.quantity_taken


@dataclass(frozen=True, slots=True)
class AllocationPlan:
    """
    Ordered draws that together satisfy a request.

    ``weighted_average_cost`` = Σ(quantity_taken × unit_cost) / requested,
    the per-unit cost of goods sold for this allocation.
    """

    product_id: UUID
    warehouse_id: str
    requested_base_quantity: int
    lines: tuple[AllocationLine, ...]

    @property
    def total_cost(self) -> Decimal:
        return sum((line.cost for line in self.lines), Decimal("0"))

    @property
    def weighted_average_cost(self) -> Decimal:
        if self.requested_base_quantity == 0:
            return Decimal("0")
        return self.total_cost / self.requested_base_quantity

    @property
    def total_taken(self) -> int:
        return sum(line.quantity_taken for line in self.lines)


@dataclass(frozen=True, slots=True)
class InsufficientStock:
    """The snapshot cannot cover the request; nothing was planned."""

    product_id: UUID
    warehouse_id: str
    requested: int
    available: int

    @property
    def shortfall(self) -> int:
        return self.requested - self.available


_NO_EXPIRY = date.max


def fifo_key(batch: InventoryBatch) -> tuple:
    return (
        batch.expiry_date is None,
        batch.expiry_date or _NO_EXPIRY,
        batch.received_at,
    )


def fifo_order(batches: Iterable[InventoryBatch]) -> list[InventoryBatch]:
    """Sort batches into consumption order.  Does not filter."""
    return sorted(batches, key=fifo_key)


@traced_engine(
    "allocation",
    "1.0",
    fingerprint_fields=("product_id", "warehouse_id", "requested_base_quantity"),
)
def allocate(
    product_id: UUID,
    warehouse_id: str,
    requested_base_quantity: int,
    batches: Sequence[InventoryBatch],
) -> AllocationPlan | InsufficientStock:
    """
    Plan a FIFO draw of ``requested_base_quantity`` from ``batches``.

    Preconditions: ``batches`` belong to (product_id, warehouse_id); order
        does not matter, the engine sorts them.
    Postconditions: an AllocationPlan whose lines sum to the request, or
        InsufficientStock with ``available`` = Σ allocatable quantity.

    Raises:
        ValueError: requested_base_quantity is not a positive integer.
    """
    if (
        isinstance(requested_base_quantity, bool)
        or not isinstance(requested_base_quantity, int)
        or requested_base_quantity <= 0
    ):
        raise ValueError(
            f"Requested quantity must be a positive integer, got {requested_base_quantity!r}"
        )

    candidates = [
        b for b in fifo_order(batches)
        if b.is_allocatable
        and b.product_id == product_id
        and b.warehouse_id == warehouse_id
    ]

    remaining = requested_base_quantity
    lines: list[AllocationLine] = []
    for batch in candidates:
        if remaining == 0:
            break
        take = min(remaining, batch.quantity)
        lines.append(
            AllocationLine(
                batch_id=batch.id,
                batch_number=batch.batch_number,
                quantity_taken=take,
                unit_cost=batch.unit_cost,
            )
        )
        remaining -= take

    if remaining > 0:
        available = sum(b.quantity for b in candidates)
        logger.info(
            "allocation_insufficient_stock",
            extra={
                "product_id": str(product_id),
                "warehouse_id": warehouse_id,
                "requested": requested_base_quantity,
                "available": available,
                "shortfall": requested_base_quantity - available,
            },
        )
        return InsufficientStock(
            product_id=product_id,
            warehouse_id=warehouse_id,
            requested=requested_base_quantity,
            available=available,
        )

    return AllocationPlan(
        product_id=product_id,
        warehouse_id=warehouse_id,
        requested_base_quantity=requested_base_quantity,
        lines=tuple(lines),
    )
