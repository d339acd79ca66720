"""
Module: stock_kernel.models.movement
Responsibility: ORM persistence for stock movements -- the append-only ledger
    whose sum is the on-hand quantity of a product in a warehouse.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    M1 -- Append-only.  UPDATE and DELETE are rejected by the ORM listeners
          in db/immutability.py.  Corrections are new adjustment rows.
    M2 -- quantity <> 0 (CheckConstraint); sign/type consistency is checked by
          the Stock Movement Recorder before insert.
    M3 -- created_by_id is NOT NULL; every movement names its actor.

Audit relevance:
    reference_id links a movement to the voucher, sale order or transfer that
    caused it; batch_id links it to the lot it touched.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase
from stock_kernel.domain.clock import as_utc
from stock_kernel.domain.ledger import MovementType, StockMovement


class StockMovementModel(TrackedBase):
    """Persistent, immutable ledger entry."""

    __tablename__ = "stock_movements"

    __table_args__ = (
        CheckConstraint("quantity <> 0", name="ck_movement_quantity_non_zero"),
        # Query: balance and history for (product, warehouse)
        Index("idx_movement_product_warehouse", "product_id", "warehouse_id"),
        # Query: movements caused by one document
        Index("idx_movement_reference", "reference_id"),
        Index("idx_movement_batch", "batch_id"),
    )

    product_id: Mapped[UUID] = mapped_column(nullable=False)
    warehouse_id: Mapped[str] = mapped_column(String(100), nullable=False)
    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # INVARIANT M2: signed, non-zero, base units
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    batch_id: Mapped[UUID | None] = mapped_column(nullable=True)
    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    reference_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> StockMovement:
        return StockMovement(
            id=self.id,
            product_id=self.product_id,
            warehouse_id=self.warehouse_id,
            movement_type=MovementType(self.movement_type),
            quantity=int(self.quantity),
            created_at=as_utc(self.created_at),
            created_by=self.created_by_id,
            batch_id=self.batch_id,
            unit_cost=Decimal(self.unit_cost) if self.unit_cost is not None else None,
            reference_id=self.reference_id,
            reason=self.reason,
        )

    def __repr__(self) -> str:
        return (
            f"<StockMovement {self.id}: {self.movement_type} {self.quantity:+d} "
            f"product={self.product_id} wh={self.warehouse_id}>"
        )
