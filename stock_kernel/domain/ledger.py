"""
Stock ledger value objects: batches and movements.

Responsibility:
    Immutable representations of an inventory batch and a stock movement,
    plus the sign rules that tie a movement type to the direction of its
    quantity.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Engines and services operate on these
    values; ORM models convert to them via ``to_dto``.

Invariants enforced:
    - Batch quantity is a non-negative integer in base units; unit cost is a
      non-negative Decimal per base unit.
    - Movement quantity is a non-zero integer whose sign agrees with its type:
      purchase is positive; sale, expired and damaged are negative; transfer
      and adjustment may go either way.
    - Adjustments always carry a non-blank reason.

Failure modes:
    - ValueError on malformed batches.
    - InvalidMovementError on malformed movements.

Audit relevance:
    Movements are the source of truth for on-hand stock.  The sum of
    movement quantities for a (product, warehouse) pair must equal the sum
    of its active batch quantities.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from stock_kernel.exceptions import InvalidMovementError


class BatchStatus(str, Enum):
    """Lifecycle of an inventory batch.  Only ACTIVE batches are allocatable."""

    ACTIVE = "active"
    EXPIRED = "expired"
    DAMAGED = "damaged"


class MovementType(str, Enum):
    PURCHASE = "purchase"
    SALE = "sale"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"
    EXPIRED = "expired"
    DAMAGED = "damaged"


# +1: must be positive, -1: must be negative, 0: either sign
MOVEMENT_SIGN: dict[MovementType, int] = {
    MovementType.PURCHASE: 1,
    MovementType.SALE: -1,
    MovementType.TRANSFER: 0,
    MovementType.ADJUSTMENT: 0,
    MovementType.EXPIRED: -1,
    MovementType.DAMAGED: -1,
}


@dataclass(frozen=True, slots=True)
class InventoryBatch:
    """A received lot of one product in one warehouse."""

    id: UUID
    product_id: UUID
    warehouse_id: str
    batch_number: str
    quantity: int
    unit_cost: Decimal
    received_at: datetime
    expiry_date: date | None = None
    status: BatchStatus = BatchStatus.ACTIVE
    reference_id: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"Batch quantity must be an integer, got {self.quantity!r}")
        if self.quantity < 0:
            raise ValueError(
                f"Batch {self.batch_number} quantity cannot be negative: {self.quantity}"
            )
        if self.unit_cost < 0:
            raise ValueError(
                f"Batch {self.batch_number} unit cost cannot be negative: {self.unit_cost}"
            )

    @property
    def is_allocatable(self) -> bool:
        return self.status == BatchStatus.ACTIVE and self.quantity > 0

    def is_expired_on(self, as_of: date) -> bool:
        return self.expiry_date is not None and self.expiry_date < as_of

    def days_until_expiry(self, as_of: date) -> int | None:
        if self.expiry_date is None:
            return None
        return (self.expiry_date - as_of).days


def validate_movement(
    movement_type: MovementType,
    quantity: int,
    reason: str | None = None,
) -> None:
    """
    Check a prospective movement against the ledger rules.

    Raises:
        InvalidMovementError: zero or non-integer quantity, sign inconsistent
            with the type, or an adjustment without a reason.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidMovementError(
            movement_type.value, quantity, "quantity must be an integer number of base units"
        )
    if quantity == 0:
        raise InvalidMovementError(movement_type.value, quantity, "quantity must be non-zero")

    expected = MOVEMENT_SIGN[movement_type]
    if expected > 0 and quantity < 0:
        raise InvalidMovementError(
            movement_type.value, quantity, f"{movement_type.value} movements must be positive"
        )
    if expected < 0 and quantity > 0:
        raise InvalidMovementError(
            movement_type.value, quantity, f"{movement_type.value} movements must be negative"
        )
    if movement_type == MovementType.ADJUSTMENT and not (reason and reason.strip()):
        raise InvalidMovementError(
            movement_type.value, quantity, "adjustments require a reason"
        )


@dataclass(frozen=True, slots=True)
class MovementSpec:
    """A movement not yet recorded.  Validated on construction."""

    product_id: UUID
    warehouse_id: str
    movement_type: MovementType
    quantity: int
    batch_id: UUID | None = None
    unit_cost: Decimal | None = None
    reference_id: str | None = None
    reason: str | None = None

    def __post_init__(self) -> None:
        validate_movement(self.movement_type, self.quantity, self.reason)


@dataclass(frozen=True, slots=True)
class StockMovement:
    """A recorded, immutable ledger entry."""

    id: UUID
    product_id: UUID
    warehouse_id: str
    movement_type: MovementType
    quantity: int
    created_at: datetime
    created_by: UUID
    batch_id: UUID | None = None
    unit_cost: Decimal | None = None
    reference_id: str | None = None
    reason: str | None = None

    @property
    def is_addition(self) -> bool:
        return self.quantity > 0
