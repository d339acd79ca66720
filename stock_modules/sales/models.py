"""
Sales Domain Models (``stock_modules.sales.models``).

Responsibility
--------------
Frozen value objects for point-of-sale carts, sale orders and their lines,
and the outcomes of the Sale Completion Workflow and refunds.

Architecture
------------
Layer: **Modules** -- pure data structures, no I/O.

Invariants
----------
- Cart quantities are positive Decimals in the line's UOM; prices are
  Decimal, never float.
- ``SaleOrder.total_amount == Σ line.subtotal``.
- ``cost_of_goods_sold`` is the FIFO cost of the stock actually removed.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from stock_kernel.domain.ledger import StockMovement
from stock_modules._workflow_helpers import PartialWorkflowFailure, StepFailure


class SaleStatus(str, Enum):
    """Sale order lifecycle states."""
    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class CartLine:
    """One item the cashier scanned: ``quantity`` of ``uom`` at ``unit_price`` per ``uom``."""
    product_id: UUID
    quantity: Decimal
    uom: str
    unit_price: Decimal

    def __post_init__(self):
        if self.unit_price < 0:
            raise ValueError("unit_price cannot be negative")


@dataclass(frozen=True)
class SaleOrderLine:
    id: UUID
    order_id: UUID
    line_number: int
    product_id: UUID
    quantity: Decimal
    uom: str
    conversion_to_base: Decimal
    base_quantity: int
    unit_price: Decimal
    subtotal: Decimal


@dataclass(frozen=True)
class SaleOrder:
    id: UUID
    order_number: str
    warehouse_id: str
    status: SaleStatus
    total_amount: Decimal
    cost_of_goods_sold: Decimal = Decimal("0")
    lines: tuple[SaleOrderLine, ...] = ()
    customer_id: UUID | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class ProductDecrement:
    """The single stock decrement applied for one product of a sale."""
    product_id: UUID
    base_quantity: int
    cost: Decimal
    batches_used: int


@dataclass(frozen=True)
class SaleResult:
    """
    Outcome of completing a sale.

    The order is committed even when some decrements failed; those products
    are listed in ``failures`` and need manual stock reconciliation.
    """
    order: SaleOrder
    decrements: tuple[ProductDecrement, ...] = ()
    failures: tuple[StepFailure, ...] = ()

    @property
    def partial_failure(self) -> PartialWorkflowFailure | None:
        if not self.failures:
            return None
        return PartialWorkflowFailure(
            workflow="sale_completion",
            reference_id=str(self.order.id),
            failures=self.failures,
        )

    @property
    def is_complete(self) -> bool:
        return not self.failures

    def raise_for_partial(self) -> None:
        partial = self.partial_failure
        if partial is not None:
            raise partial.to_error()


@dataclass(frozen=True)
class RefundResult:
    """Outcome of refunding a sale: compensating movements per consumed batch."""
    order: SaleOrder
    restocked: tuple[StockMovement, ...] = ()
    failures: tuple[StepFailure, ...] = ()

    @property
    def partial_failure(self) -> PartialWorkflowFailure | None:
        if not self.failures:
            return None
        return PartialWorkflowFailure(
            workflow="sale_refund",
            reference_id=str(self.order.id),
            failures=self.failures,
        )

    @property
    def restocked_quantity(self) -> int:
        return sum(m.quantity for m in self.restocked)
