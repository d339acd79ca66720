"""
stock_engines.availability -- Point-in-time stock sufficiency check.

Responsibility:
    Compare requested base quantities against on-hand quantities and report
    every product that falls short.

Architecture position:
    Engines -- pure, zero I/O.  StockAvailabilityChecker (services) reads the
    on-hand figures from the Batch Store immediately before calling this.

Invariants enforced:
    - Requested lines for the same product are summed before comparison;
      two rows of 2 and 3 against 4 on hand is a shortfall of 5 vs 4, not
      two passing checks.
    - A product missing from ``on_hand`` has 0 available.
    - Shortfalls are reported in first-seen product order.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from uuid import UUID

from stock_engines.tracer import traced_engine


@dataclass(frozen=True, slots=True)
class RequestedLine:
    """One requested quantity in base units."""

    product_id: UUID
    base_quantity: int

    def __post_init__(self) -> None:
        if self.base_quantity <= 0:
            raise ValueError(
                f"Requested quantity must be positive, got {self.base_quantity}"
            )


@dataclass(frozen=True, slots=True)
class Shortfall:
    product_id: UUID
    requested: int
    available: int

    @property
    def missing(self) -> int:
        return self.requested - self.available


@dataclass(frozen=True, slots=True)
class AvailabilityResult:
    valid: bool
    shortfalls: tuple[Shortfall, ...] = ()


def aggregate_requests(lines: Iterable[RequestedLine]) -> dict[UUID, int]:
    """Sum requested base quantities per product, preserving first-seen order."""
    totals: dict[UUID, int] = {}
    for line in lines:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.base_quantity
    return totals


@traced_engine("availability", "1.0")
def evaluate_availability(
    requested_lines: Iterable[RequestedLine],
    on_hand: Mapping[UUID, int],
) -> AvailabilityResult:
    """Return ``valid=True`` only if every product's total request fits on hand."""
    shortfalls = tuple(
        Shortfall(product_id=pid, requested=requested, available=on_hand.get(pid, 0))
        for pid, requested in aggregate_requests(requested_lines).items()
        if requested > on_hand.get(pid, 0)
    )
    return AvailabilityResult(valid=not shortfalls, shortfalls=shortfalls)
