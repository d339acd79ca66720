"""
Purchasing Domain Models (``stock_modules.purchasing.models``).

Responsibility
--------------
Frozen value objects for suppliers, purchase vouchers and their lines, and
the outcome of the Receiving Workflow.

Architecture
------------
Layer: **Modules** -- pure data structures.  No database identity and no
I/O; the service converts ORM rows into these at the boundary.

Invariants
----------
- Voucher line quantities are positive Decimals in the line's UOM; the base
  quantity is a whole number of base units.
- Costs are Decimal, never float.
- ``Voucher.total_amount == Σ quantity × unit_cost`` over its lines.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from stock_kernel.logging_config import get_logger
from stock_modules._workflow_helpers import PartialWorkflowFailure, StepFailure
from stock_modules.payables.models import PaymentTerms

logger = get_logger("modules.purchasing.models")


class VoucherStatus(str, Enum):
    """Purchase voucher lifecycle states."""
    DRAFT = "draft"
    PENDING = "pending"
    ORDERED = "ordered"
    RECEIVED = "received"
    CANCELLED = "cancelled"


class LineStatus(str, Enum):
    """What the Receiving Workflow did with one voucher line."""
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    FAILED = "failed"


@dataclass(frozen=True)
class Supplier:
    """A vendor stock is purchased from."""
    id: UUID
    name: str
    payment_terms: PaymentTerms = PaymentTerms.NET_30
    contact: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class VoucherLineInput:
    """
    One requested purchase line, as entered by the operator.

    ``unit_cost`` is the price of one ``uom``.
    """
    product_id: UUID
    quantity: Decimal
    uom: str
    unit_cost: Decimal
    expiry_date: date | None = None

    def __post_init__(self):
        if self.unit_cost < 0:
            raise ValueError("unit_cost cannot be negative")


@dataclass(frozen=True)
class VoucherLine:
    """A persisted voucher line with its conversion snapshot."""
    id: UUID
    voucher_id: UUID
    line_number: int
    product_id: UUID
    quantity: Decimal
    uom: str
    conversion_to_base: Decimal
    base_quantity: int
    unit_cost: Decimal
    expiry_date: date | None = None
    received_quantity: int = 0
    batch_id: UUID | None = None

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_cost

    @property
    def is_received(self) -> bool:
        return self.received_quantity > 0


@dataclass(frozen=True)
class Voucher:
    """A purchase voucher (purchase order plus goods receipt)."""
    id: UUID
    voucher_number: str
    supplier_id: UUID
    warehouse_id: str
    status: VoucherStatus
    total_amount: Decimal
    lines: tuple[VoucherLine, ...] = ()
    received_at: datetime | None = None
    notes: str | None = None


@dataclass(frozen=True)
class LineOutcome:
    line_id: UUID
    product_id: UUID
    status: LineStatus
    base_quantity: int = 0
    batch_id: UUID | None = None
    batch_number: str | None = None


@dataclass(frozen=True)
class ReceivingResult:
    """Outcome of ``ReceivingService.receive``."""
    voucher: Voucher
    lines: tuple[LineOutcome, ...]
    failures: tuple[StepFailure, ...] = ()
    payable_id: UUID | None = None
    payable_created: bool = False
    is_retry: bool = False

    @property
    def partial_failure(self) -> PartialWorkflowFailure | None:
        if not self.failures:
            return None
        return PartialWorkflowFailure(
            workflow="voucher_receiving",
            reference_id=str(self.voucher.id),
            failures=self.failures,
        )

    @property
    def applied_lines(self) -> tuple[LineOutcome, ...]:
        return tuple(o for o in self.lines if o.status is LineStatus.APPLIED)

    @property
    def is_complete(self) -> bool:
        return not self.failures

    def raise_for_partial(self) -> None:
        """Raise PartialWorkflowFailureError if any step failed."""
        partial = self.partial_failure
        if partial is not None:
            raise partial.to_error()
