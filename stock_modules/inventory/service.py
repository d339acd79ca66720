"""
Inventory Module Service (``stock_modules.inventory.service``).

Responsibility
--------------
Operator-driven stock changes outside purchasing and sales: manual
adjustments, damage write-offs, movement corrections, warehouse transfers
and the expiry sweep.  Also the read-side reports: expiry alerts, low-stock
products, batch summaries and ledger reconciliation.

Architecture
------------
Layer: **Modules** -- thin orchestration over ``BatchStore`` and the
pure ``stock_engines.batch_summary`` engine.

Invariants
----------
- Every quantity change goes through the Batch Store, so each batch change
  is paired with a movement in the same transaction.
- Adjustments and corrections carry a reason.
- A movement is corrected at most once; the correction is a compensating
  adjustment referencing it, never an edit.
- Transfers are all-or-nothing: the source decrement and every destination
  batch commit together.

Failure Modes
-------------
- UnknownBatchError, UnknownMovementError.
- InvalidMovementError for a missing reason or a movement already corrected.
- InsufficientStockError / ConcurrentStockChangeError from the Batch Store.
- The expiry sweep collects per-batch failures instead of raising.
"""

from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_engines.batch_summary import BatchSummary, ExpiryAlert, expiry_alerts
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.ledger import BatchStatus, InventoryBatch, MovementType, StockMovement
from stock_kernel.exceptions import InvalidMovementError, UnknownMovementError
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.product import ProductModel
from stock_kernel.utils.idempotency import generate_transfer_batch_number
from stock_modules._workflow_helpers import StepFailure, run_step
from stock_modules.inventory.config import InventoryConfig
from stock_modules.inventory.models import (
    ExpirySweepResult,
    LowStockItem,
    LowStockSeverity,
    TransferResult,
)
from stock_services.batch_store import BatchStore
from stock_services.movement_recorder import MovementRecorder
from stock_services.reconciliation import ReconciliationReport, StockReconciler

logger = get_logger("modules.inventory.service")


class InventoryService:
    """
    Inventory operations and reports.

    Usage:
        service = InventoryService(session, clock)
        service.adjust_stock(batch_id, -2, "cycle count", actor_id)
        service.transfer_stock(rice_id, "WH-1", "WH-2", 100, actor_id)
        result = service.sweep_expired(actor_id)

    Transaction boundary: each public write commits on success and rolls back
    on failure; the expiry sweep commits per batch.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: InventoryConfig | None = None,
        batch_store: BatchStore | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or InventoryConfig()
        self._batch_store = batch_store or BatchStore(
            session, MovementRecorder(session, self._clock), self._clock
        )
        self._reconciler = StockReconciler(session)

    # =========================================================================
    # Adjustments
    # =========================================================================

    def adjust_stock(self, batch_id: UUID, delta: int, reason: str, actor_id: UUID) -> StockMovement:
        """
        Add or remove stock on one batch (count corrections, found stock).

        Raises:
            InvalidMovementError: zero delta or blank reason.
            ConcurrentStockChangeError: the batch is inactive or would go negative.
        """
        try:
            movement = self._batch_store.adjust_batch(
                batch_id, delta, MovementType.ADJUSTMENT, actor_id, reason=reason
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info(
            "stock_adjusted",
            extra={"batch_id": str(batch_id), "delta": delta, "reason": reason},
        )
        return movement

    def mark_damaged(self, batch_id: UUID, reason: str, actor_id: UUID) -> StockMovement | None:
        """
        Write off everything left in a batch as damaged.

        Returns the damaged movement, or None when the batch was already empty.
        """
        try:
            movement = self._batch_store.retire_batch(
                batch_id, BatchStatus.DAMAGED, MovementType.DAMAGED, actor_id, reason=reason
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        return movement

    def correct_movement(self, movement_id: UUID, reason: str, actor_id: UUID) -> StockMovement:
        """
        Reverse a recorded movement with a compensating adjustment on its batch.

        Raises:
            UnknownMovementError: no such movement.
            InvalidMovementError: the movement has no batch, was already
                corrected, or ``reason`` is blank.
        """
        recorder = self._batch_store.recorder
        original = recorder.get(movement_id)
        if original is None:
            raise UnknownMovementError(str(movement_id))
        if original.batch_id is None:
            raise InvalidMovementError(
                MovementType.ADJUSTMENT.value, -original.quantity, "movement is not tied to a batch"
            )
        already = [
            m for m in recorder.history(reference_id=str(original.id))
            if m.movement_type is MovementType.ADJUSTMENT
        ]
        if already:
            raise InvalidMovementError(
                MovementType.ADJUSTMENT.value, -original.quantity, "movement was already corrected"
            )

        try:
            correction = self._batch_store.adjust_batch(
                original.batch_id,
                -original.quantity,
                MovementType.ADJUSTMENT,
                actor_id,
                reason=reason,
                reference_id=str(original.id),
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "movement_corrected",
            extra={
                "original_movement_id": str(original.id),
                "correction_movement_id": str(correction.id),
                "quantity": correction.quantity,
            },
        )
        return correction

    # =========================================================================
    # Transfers
    # =========================================================================

    def transfer_stock(
        self,
        product_id: UUID,
        from_warehouse_id: str,
        to_warehouse_id: str,
        quantity: int,
        actor_id: UUID,
        reason: str | None = None,
    ) -> TransferResult:
        """
        Move ``quantity`` base units from one warehouse to another.

        The source is drawn FIFO.  Each source batch drawn from yields one
        destination batch (``TRF:<transfer>:<source batch>``) carrying the
        same unit cost, received date and expiry, so FIFO order and costing
        survive the move.

        Raises:
            ValueError: same warehouse on both ends.
            InsufficientStockError: the source cannot cover ``quantity``.
        """
        if from_warehouse_id == to_warehouse_id:
            raise ValueError("Source and destination warehouse must differ")

        transfer_id = uuid4()
        reference_id = str(transfer_id)
        with LogContext.bind(workflow="stock_transfer", reference_id=reference_id, actor_id=actor_id):
            try:
                decrement = self._batch_store.decrement_stock(
                    product_id,
                    from_warehouse_id,
                    quantity,
                    MovementType.TRANSFER,
                    actor_id,
                    reference_id=reference_id,
                    reason=reason,
                )
                incoming: list[InventoryBatch] = []
                for line in decrement.plan.lines:
                    source = self._batch_store.get_batch(line.batch_id)
                    receipt = self._batch_store.receive_into_batch(
                        product_id=product_id,
                        warehouse_id=to_warehouse_id,
                        batch_number=generate_transfer_batch_number(transfer_id, source.id),
                        quantity=line.quantity_taken,
                        unit_cost=source.unit_cost,
                        actor_id=actor_id,
                        received_at=source.received_at,
                        expiry_date=source.expiry_date,
                        reference_id=reference_id,
                        movement_type=MovementType.TRANSFER,
                    )
                    incoming.append(receipt.batch)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "stock_transferred",
                extra={
                    "product_id": str(product_id),
                    "from_warehouse_id": from_warehouse_id,
                    "to_warehouse_id": to_warehouse_id,
                    "quantity": quantity,
                    "batches_moved": len(incoming),
                },
            )
        return TransferResult(
            transfer_id=transfer_id,
            product_id=product_id,
            from_warehouse_id=from_warehouse_id,
            to_warehouse_id=to_warehouse_id,
            quantity=quantity,
            outgoing=decrement.movements,
            incoming=tuple(incoming),
        )

    # =========================================================================
    # Expiry
    # =========================================================================

    def sweep_expired(self, actor_id: UUID, as_of: date | None = None) -> ExpirySweepResult:
        """
        Retire every active batch whose expiry date is before ``as_of``
        (default today), writing off its remaining quantity.
        """
        as_of = as_of or self._clock.today()
        stale = self._batch_store.stale_batches(as_of)

        with LogContext.bind(workflow="expiry_sweep", actor_id=actor_id):
            failures: list[StepFailure] = []
            expired: list[InventoryBatch] = []
            movements: list[StockMovement] = []
            for batch in stale:
                outcome = run_step(
                    self._session,
                    "expire_batch",
                    lambda b=batch: (
                        self._batch_store.retire_batch(
                            b.id,
                            BatchStatus.EXPIRED,
                            MovementType.EXPIRED,
                            actor_id,
                            reason=self._config.expired_reason,
                        ),
                    ),
                    failures,
                    product_id=batch.product_id,
                )
                if outcome is None:
                    continue
                expired.append(batch)
                if outcome[0] is not None:
                    movements.append(outcome[0])

            result = ExpirySweepResult(
                as_of=as_of,
                expired=tuple(expired),
                movements=tuple(movements),
                failures=tuple(failures),
            )
            logger.info(
                "expiry_sweep_completed",
                extra={
                    "as_of": as_of,
                    "expired_batches": len(expired),
                    "written_off": result.written_off,
                    "failed": len(failures),
                },
            )
        return result

    def expiry_alerts(self, as_of: date | None = None, warehouse_id: str | None = None) -> list[ExpiryAlert]:
        as_of = as_of or self._clock.today()
        batches = self._batch_store.list_batches(
            warehouse_id=warehouse_id, statuses=(BatchStatus.ACTIVE,)
        )
        return expiry_alerts(batches, as_of)

    # =========================================================================
    # Reports
    # =========================================================================

    def low_stock_products(self, warehouse_id: str) -> list[LowStockItem]:
        """Active products below their low-stock threshold in ``warehouse_id``, worst first."""
        products = self._session.scalars(
            select(ProductModel).where(ProductModel.is_active.is_(True))
        ).all()
        on_hand = self._batch_store.on_hand_many([p.id for p in products], warehouse_id)

        items = []
        for product in products:
            threshold = product.min_stock_level or self._config.default_low_stock_minimum
            current = on_hand.get(product.id, 0)
            if current >= threshold:
                continue
            items.append(
                LowStockItem(
                    product_id=product.id,
                    product_name=product.name,
                    warehouse_id=warehouse_id,
                    on_hand=current,
                    threshold=threshold,
                    severity=LowStockSeverity.HIGH if current * 2 < threshold else LowStockSeverity.MEDIUM,
                )
            )
        items.sort(key=lambda i: (i.on_hand / i.threshold, i.product_name))
        return items

    def batch_summary(self, product_id: UUID, warehouse_id: str) -> BatchSummary:
        return self._batch_store.batch_summary(
            product_id, warehouse_id, self._config.expiring_within_days
        )

    def reconcile_stock(self) -> list[ReconciliationReport]:
        """Ledger vs. batch totals for every (product, warehouse); mismatches are logged."""
        return self._reconciler.reconcile_all()
