"""
stock_services.batch_store -- Inventory batches and the atomic stock decrement.

Responsibility:
    Read model over inventory batches (FIFO listing, on-hand totals,
    summaries) and the only code path that changes batch quantities.  Every
    quantity change is paired with a movement recorded through the
    MovementRecorder in the same transaction, which keeps
    Σ movements == Σ active batch quantities for each (product, warehouse).

Architecture position:
    Services -- stateful, session-bound.  Composes the FIFO allocator
    (stock_engines.allocation) and the MovementRecorder.  Flushes but never
    commits; the calling workflow owns the transaction boundary.

Atomic decrement:
    ``decrement_stock`` is the store-side decrement operation.  Inside the
    caller's transaction it reads the FIFO snapshot (row-locked on
    PostgreSQL), plans with the allocator, and applies each draw as a
    guarded ``UPDATE ... SET quantity = quantity - :n WHERE quantity >= :n``.
    The client never computes a new quantity and writes it back.  A guarded
    update that matches no row means the batch changed after the snapshot;
    the operation raises and the caller rolls the whole decrement back.

Invariants enforced:
    - Batch quantities never go negative (guard + CheckConstraint).
    - Only ACTIVE batches are decremented.
    - Batches are never deleted.

Failure modes:
    - InsufficientStockError: the snapshot cannot cover the request.
    - ConcurrentStockChangeError: a guarded update matched no row.
    - UnknownBatchError: batch id not found.
    - InvalidMovementError: propagated from the MovementRecorder.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from stock_engines.allocation import AllocationPlan, InsufficientStock, allocate, fifo_order
from stock_engines.availability import Shortfall
from stock_engines.batch_summary import BatchSummary, summarize_batches
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.ledger import (
    BatchStatus,
    InventoryBatch,
    MovementSpec,
    MovementType,
    StockMovement,
)
from stock_kernel.exceptions import (
    ConcurrentStockChangeError,
    InsufficientStockError,
    UnknownBatchError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.batch import InventoryBatchModel
from stock_services.movement_recorder import MovementRecorder

logger = get_logger("services.batch_store")


@dataclass(frozen=True, slots=True)
class BatchReceipt:
    """Outcome of receiving stock into a batch."""

    batch: InventoryBatch
    movement: StockMovement
    created: bool


@dataclass(frozen=True, slots=True)
class StockDecrement:
    """Outcome of one atomic decrement: the plan applied and its movements."""

    plan: AllocationPlan
    movements: tuple[StockMovement, ...]

    @property
    def total_cost(self) -> Decimal:
        return self.plan.total_cost


class BatchStore:
    """
    Session-bound access to inventory batches.

    Usage:
        recorder = MovementRecorder(session, clock)
        store = BatchStore(session, recorder, clock)
        store.list_active_batches(product_id, "WH-1")
        store.decrement_stock(product_id, "WH-1", 5, MovementType.SALE,
                              reference_id=str(order_id), actor_id=user_id)
        session.commit()
    """

    def __init__(
        self,
        session: Session,
        recorder: MovementRecorder,
        clock: Clock | None = None,
    ):
        self._session = session
        self._recorder = recorder
        self._clock = clock or SystemClock()

    @property
    def recorder(self) -> MovementRecorder:
        return self._recorder

    # =========================================================================
    # Reads
    # =========================================================================

    def list_active_batches(self, product_id: UUID, warehouse_id: str) -> list[InventoryBatch]:
        """Active, non-empty batches in FIFO order (expiry asc, nulls last, then received)."""
        models = self._session.scalars(
            select(InventoryBatchModel)
            .where(
                InventoryBatchModel.product_id == product_id,
                InventoryBatchModel.warehouse_id == warehouse_id,
                InventoryBatchModel.status == BatchStatus.ACTIVE.value,
                InventoryBatchModel.quantity > 0,
            )
            .execution_options(populate_existing=True)
        )
        return fifo_order(m.to_dto() for m in models)

    def list_batches(
        self,
        product_id: UUID | None = None,
        warehouse_id: str | None = None,
        statuses: tuple[BatchStatus, ...] | None = None,
    ) -> list[InventoryBatch]:
        stmt = select(InventoryBatchModel)
        if product_id is not None:
            stmt = stmt.where(InventoryBatchModel.product_id == product_id)
        if warehouse_id is not None:
            stmt = stmt.where(InventoryBatchModel.warehouse_id == warehouse_id)
        if statuses:
            stmt = stmt.where(InventoryBatchModel.status.in_([s.value for s in statuses]))
        models = self._session.scalars(stmt.execution_options(populate_existing=True))
        return fifo_order(m.to_dto() for m in models)

    def get_batch(self, batch_id: UUID) -> InventoryBatch:
        """
        Raises:
            UnknownBatchError: no batch with this id.
        """
        model = self._session.get(InventoryBatchModel, batch_id, populate_existing=True)
        if model is None:
            raise UnknownBatchError(str(batch_id))
        return model.to_dto()

    def get_batch_by_number(self, product_id: UUID, batch_number: str) -> InventoryBatch | None:
        model = self._session.scalars(
            select(InventoryBatchModel)
            .where(
                InventoryBatchModel.product_id == product_id,
                InventoryBatchModel.batch_number == batch_number,
            )
            .execution_options(populate_existing=True)
        ).one_or_none()
        return model.to_dto() if model is not None else None

    def on_hand(self, product_id: UUID, warehouse_id: str) -> int:
        """Σ quantity of active batches, read from the store on every call."""
        total = self._session.execute(
            select(func.coalesce(func.sum(InventoryBatchModel.quantity), 0)).where(
                InventoryBatchModel.product_id == product_id,
                InventoryBatchModel.warehouse_id == warehouse_id,
                InventoryBatchModel.status == BatchStatus.ACTIVE.value,
            )
        ).scalar_one()
        return int(total)

    def on_hand_many(self, product_ids: list[UUID], warehouse_id: str) -> dict[UUID, int]:
        if not product_ids:
            return {}
        rows = self._session.execute(
            select(InventoryBatchModel.product_id, func.sum(InventoryBatchModel.quantity))
            .where(
                InventoryBatchModel.product_id.in_(product_ids),
                InventoryBatchModel.warehouse_id == warehouse_id,
                InventoryBatchModel.status == BatchStatus.ACTIVE.value,
            )
            .group_by(InventoryBatchModel.product_id)
        ).all()
        totals = {pid: 0 for pid in product_ids}
        totals.update({pid: int(qty or 0) for pid, qty in rows})
        return totals

    def batch_summary(
        self,
        product_id: UUID,
        warehouse_id: str,
        expiring_within_days: int = 30,
    ) -> BatchSummary:
        batches = self.list_batches(product_id, warehouse_id)
        return summarize_batches(batches, self._clock.now(), expiring_within_days)

    def expiring_batches(
        self,
        within_days: int,
        warehouse_id: str | None = None,
    ) -> list[InventoryBatch]:
        """Active, non-empty batches whose expiry falls within ``within_days`` of today."""
        today = self._clock.today()
        stmt = select(InventoryBatchModel).where(
            InventoryBatchModel.status == BatchStatus.ACTIVE.value,
            InventoryBatchModel.quantity > 0,
            InventoryBatchModel.expiry_date.is_not(None),
            InventoryBatchModel.expiry_date >= today,
            InventoryBatchModel.expiry_date <= today + timedelta(days=within_days),
        )
        if warehouse_id is not None:
            stmt = stmt.where(InventoryBatchModel.warehouse_id == warehouse_id)
        models = self._session.scalars(stmt.execution_options(populate_existing=True))
        return fifo_order(m.to_dto() for m in models)

    def stale_batches(self, as_of: date) -> list[InventoryBatch]:
        """Active batches whose expiry date is before ``as_of``."""
        models = self._session.scalars(
            select(InventoryBatchModel)
            .where(
                InventoryBatchModel.status == BatchStatus.ACTIVE.value,
                InventoryBatchModel.expiry_date.is_not(None),
                InventoryBatchModel.expiry_date < as_of,
            )
            .execution_options(populate_existing=True)
        )
        return fifo_order(m.to_dto() for m in models)

    # =========================================================================
    # Writes
    # =========================================================================

    def receive_into_batch(
        self,
        *,
        product_id: UUID,
        warehouse_id: str,
        batch_number: str,
        quantity: int,
        unit_cost: Decimal,
        actor_id: UUID,
        received_at: datetime | None = None,
        expiry_date: date | None = None,
        reference_id: str | None = None,
        movement_type: MovementType = MovementType.PURCHASE,
    ) -> BatchReceipt:
        """
        Create the batch ``batch_number`` or increment it if it already exists,
        and record the matching positive movement.

        Raises:
            InvalidMovementError: quantity is not a positive integer.
            ConcurrentStockChangeError: the existing batch is no longer active.
        """
        MovementSpec(product_id, warehouse_id, movement_type, quantity)  # validate early

        existing = self._session.scalars(
            select(InventoryBatchModel).where(
                InventoryBatchModel.product_id == product_id,
                InventoryBatchModel.batch_number == batch_number,
            )
        ).one_or_none()

        if existing is None:
            model = InventoryBatchModel(
                product_id=product_id,
                warehouse_id=warehouse_id,
                batch_number=batch_number,
                quantity=quantity,
                unit_cost=unit_cost,
                received_at=received_at or self._clock.now(),
                expiry_date=expiry_date,
                status=BatchStatus.ACTIVE.value,
                reference_id=reference_id,
                created_by_id=actor_id,
            )
            self._session.add(model)
            self._session.flush()
            batch_id = model.id
            created = True
            logger.info(
                "batch_created",
                extra={
                    "batch_id": str(batch_id),
                    "batch_number": batch_number,
                    "product_id": str(product_id),
                    "warehouse_id": warehouse_id,
                    "quantity": quantity,
                    "unit_cost": str(unit_cost),
                    "expiry_date": expiry_date,
                },
            )
        else:
            batch_id = existing.id
            self._guarded_change(batch_id, quantity, actor_id)
            created = False
            logger.info(
                "batch_incremented",
                extra={
                    "batch_id": str(batch_id),
                    "batch_number": batch_number,
                    "quantity": quantity,
                },
            )

        movement = self._recorder.record(
            MovementSpec(
                product_id=product_id,
                warehouse_id=warehouse_id,
                movement_type=movement_type,
                quantity=quantity,
                batch_id=batch_id,
                unit_cost=unit_cost,
                reference_id=reference_id,
            ),
            actor_id=actor_id,
        )
        return BatchReceipt(batch=self.get_batch(batch_id), movement=movement, created=created)

    def decrement_stock(
        self,
        product_id: UUID,
        warehouse_id: str,
        quantity: int,
        movement_type: MovementType,
        actor_id: UUID,
        reference_id: str | None = None,
        reason: str | None = None,
    ) -> StockDecrement:
        """
        Remove ``quantity`` base units from the product's FIFO batches.

        Preconditions: movement_type is one that removes stock (sale,
            transfer, adjustment, expired, damaged).
        Postconditions: one negative movement per batch drawn from, each
            carrying the batch's unit cost.  Nothing is committed.

        Raises:
            InsufficientStockError: active batches cannot cover ``quantity``.
            ConcurrentStockChangeError: a batch changed after the snapshot.
        """
        snapshot = self._session.scalars(
            select(InventoryBatchModel)
            .where(
                InventoryBatchModel.product_id == product_id,
                InventoryBatchModel.warehouse_id == warehouse_id,
                InventoryBatchModel.status == BatchStatus.ACTIVE.value,
                InventoryBatchModel.quantity > 0,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        batches = [m.to_dto() for m in snapshot]

        result = allocate(product_id, warehouse_id, quantity, batches)
        if isinstance(result, InsufficientStock):
            logger.warning(
                "stock_decrement_insufficient",
                extra={
                    "product_id": str(product_id),
                    "warehouse_id": warehouse_id,
                    "requested": result.requested,
                    "available": result.available,
                    "shortfall": result.shortfall,
                },
            )
            raise InsufficientStockError(
                [Shortfall(product_id, result.requested, result.available)]
            )

        movements: list[StockMovement] = []
        for line in result.lines:
            self._guarded_change(line.batch_id, -line.quantity_taken, actor_id)
            movements.append(
                self._recorder.record(
                    MovementSpec(
                        product_id=product_id,
                        warehouse_id=warehouse_id,
                        movement_type=movement_type,
                        quantity=-line.quantity_taken,
                        batch_id=line.batch_id,
                        unit_cost=line.unit_cost,
                        reference_id=reference_id,
                        reason=reason,
                    ),
                    actor_id=actor_id,
                )
            )

        logger.info(
            "stock_decremented",
            extra={
                "product_id": str(product_id),
                "warehouse_id": warehouse_id,
                "quantity": quantity,
                "movement_type": movement_type.value,
                "batches_used": len(result.lines),
                "weighted_average_cost": str(result.weighted_average_cost),
                "reference_id": reference_id,
            },
        )
        return StockDecrement(plan=result, movements=tuple(movements))

    def adjust_batch(
        self,
        batch_id: UUID,
        delta: int,
        movement_type: MovementType,
        actor_id: UUID,
        reason: str | None = None,
        reference_id: str | None = None,
    ) -> StockMovement:
        """
        Change one batch by ``delta`` and record the movement.

        Raises:
            UnknownBatchError: no batch with this id.
            InvalidMovementError: delta/type/reason break a ledger rule.
            ConcurrentStockChangeError: the batch is inactive or would go negative.
        """
        batch = self.get_batch(batch_id)
        spec = MovementSpec(
            product_id=batch.product_id,
            warehouse_id=batch.warehouse_id,
            movement_type=movement_type,
            quantity=delta,
            batch_id=batch.id,
            unit_cost=batch.unit_cost,
            reference_id=reference_id,
            reason=reason,
        )
        self._guarded_change(batch_id, delta, actor_id)
        return self._recorder.record(spec, actor_id=actor_id)

    def retire_batch(
        self,
        batch_id: UUID,
        status: BatchStatus,
        movement_type: MovementType,
        actor_id: UUID,
        reason: str | None = None,
    ) -> StockMovement | None:
        """
        Move an active batch to ``status`` and write off what it still holds.

        The batch keeps its quantity as a record of what was written off; the
        negative movement removes that quantity from the ledger so the
        movement sum keeps matching the active batches.  Returns None when
        the batch was empty.

        Raises:
            UnknownBatchError: no batch with this id.
            ConcurrentStockChangeError: the batch is not active.
        """
        batch = self.get_batch(batch_id)
        result = self._session.execute(
            update(InventoryBatchModel)
            .where(
                InventoryBatchModel.id == batch_id,
                InventoryBatchModel.status == BatchStatus.ACTIVE.value,
            )
            .values(status=status.value, updated_by_id=actor_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrentStockChangeError(str(batch_id), batch.quantity)

        logger.info(
            "batch_retired",
            extra={
                "batch_id": str(batch_id),
                "batch_number": batch.batch_number,
                "status": status.value,
                "quantity": batch.quantity,
            },
        )
        if batch.quantity == 0:
            return None
        return self._recorder.record(
            MovementSpec(
                product_id=batch.product_id,
                warehouse_id=batch.warehouse_id,
                movement_type=movement_type,
                quantity=-batch.quantity,
                batch_id=batch.id,
                unit_cost=batch.unit_cost,
                reference_id=str(batch.id),
                reason=reason,
            ),
            actor_id=actor_id,
        )

    # =========================================================================
    # Internal
    # =========================================================================

    def _guarded_change(self, batch_id: UUID, delta: int, actor_id: UUID) -> None:
        """Apply ``quantity = quantity + delta`` only if the batch is active and stays >= 0."""
        stmt = (
            update(InventoryBatchModel)
            .where(
                InventoryBatchModel.id == batch_id,
                InventoryBatchModel.status == BatchStatus.ACTIVE.value,
            )
            .values(
                quantity=InventoryBatchModel.quantity + delta,
                updated_by_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        if delta < 0:
            stmt = stmt.where(InventoryBatchModel.quantity >= -delta)

        result = self._session.execute(stmt)
        if result.rowcount != 1:
            logger.warning(
                "batch_guarded_update_rejected",
                extra={"batch_id": str(batch_id), "delta": delta},
            )
            raise ConcurrentStockChangeError(str(batch_id), abs(delta))
