"""
Module: stock_kernel.models.batch
Responsibility: ORM persistence for inventory batches -- discrete lots of one
    product in one warehouse, each with its own unit cost and optional expiry.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    B1 -- batch_number is unique per product (UniqueConstraint).  Receiving
          keys batches by a deterministic number, so this constraint is what
          makes a retried receipt find its batch instead of duplicating it.
    B2 -- quantity >= 0 (CheckConstraint); quantity changes only through
          guarded UPDATE statements issued by the Batch Store.
    B3 -- unit_cost >= 0 (CheckConstraint).
    B4 -- Batches are never deleted; an empty batch remains as the target of
          the movements that emptied it.

Failure modes:
    - IntegrityError on a duplicate (product_id, batch_number).
    - IntegrityError if a raw write drives quantity negative (B2).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase
from stock_kernel.domain.clock import as_utc
from stock_kernel.domain.ledger import BatchStatus, InventoryBatch


class InventoryBatchModel(TrackedBase):
    """Persistent storage for one inventory batch."""

    __tablename__ = "inventory_batches"

    __table_args__ = (
        UniqueConstraint("product_id", "batch_number", name="uq_batch_product_number"),
        CheckConstraint("quantity >= 0", name="ck_batch_quantity_non_negative"),
        CheckConstraint("unit_cost >= 0", name="ck_batch_unit_cost_non_negative"),
        # Query: FIFO listing for a product in a warehouse
        Index("idx_batch_product_warehouse", "product_id", "warehouse_id", "status"),
        # Query: expiry sweep and alerts
        Index("idx_batch_expiry", "status", "expiry_date"),
    )

    product_id: Mapped[UUID] = mapped_column(nullable=False)
    warehouse_id: Mapped[str] = mapped_column(String(100), nullable=False)
    batch_number: Mapped[str] = mapped_column(String(150), nullable=False)

    # INVARIANT B2: mutated only via guarded UPDATE (quantity = quantity +/- :n)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False)

    received_at: Mapped[datetime] = mapped_column(nullable=False)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BatchStatus.ACTIVE.value
    )

    # Voucher, transfer or other document that created the batch
    reference_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def to_dto(self) -> InventoryBatch:
        return InventoryBatch(
            id=self.id,
            product_id=self.product_id,
            warehouse_id=self.warehouse_id,
            batch_number=self.batch_number,
            quantity=int(self.quantity),
            unit_cost=Decimal(self.unit_cost),
            received_at=as_utc(self.received_at),
            expiry_date=self.expiry_date,
            status=BatchStatus(self.status),
            reference_id=self.reference_id,
        )

    def __repr__(self) -> str:
        return (
            f"<InventoryBatch {self.batch_number}: product={self.product_id} "
            f"wh={self.warehouse_id} qty={self.quantity} @ {self.unit_cost} [{self.status}]>"
        )
