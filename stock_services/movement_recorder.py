"""
stock_services.movement_recorder -- Append-only stock movement ledger.

Responsibility:
    The single writer of StockMovement rows.  Validates each movement
    against the ledger rules, appends it, and answers balance and history
    queries.  Current stock for a (product, warehouse) pair is the sum of its
    movements.

Architecture position:
    Services -- stateful, session-bound.  Flushes but never commits; the
    calling workflow owns the transaction so a batch change and its movement
    land together or not at all.

Invariants enforced:
    - quantity != 0 and its sign matches the movement type.
    - Adjustments carry a reason.
    - Existing rows are never modified (see stock_kernel.db.immutability);
      corrections are new compensating adjustments.

Failure modes:
    - InvalidMovementError on validation failure (nothing is written).
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.ledger import MovementSpec, StockMovement, validate_movement
from stock_kernel.logging_config import get_logger
from stock_kernel.models.movement import StockMovementModel

logger = get_logger("services.movement_recorder")


class MovementRecorder:
    """
    Appends validated stock movements and derives balances from them.

    Usage:
        recorder = MovementRecorder(session, clock)
        movement = recorder.record(
            MovementSpec(product_id, "WH-1", MovementType.PURCHASE, 24, batch_id=batch.id),
            actor_id=user_id,
        )
        recorder.balance(product_id, "WH-1")  # -> 24
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def record(self, spec: MovementSpec, actor_id: UUID) -> StockMovement:
        """
        Append one movement.

        Preconditions: ``spec`` was constructed (and therefore validated).
        Postconditions: the row is flushed in the caller's transaction and
            returned as a frozen StockMovement.

        Raises:
            InvalidMovementError: the movement breaks a ledger rule.
        """
        validate_movement(spec.movement_type, spec.quantity, spec.reason)

        model = StockMovementModel(
            product_id=spec.product_id,
            warehouse_id=spec.warehouse_id,
            movement_type=spec.movement_type.value,
            quantity=spec.quantity,
            batch_id=spec.batch_id,
            unit_cost=spec.unit_cost,
            reference_id=spec.reference_id,
            reason=spec.reason,
            created_at=self._clock.now(),
            created_by_id=actor_id,
        )
        self._session.add(model)
        self._session.flush()

        logger.info(
            "stock_movement_recorded",
            extra={
                "movement_id": str(model.id),
                "product_id": str(spec.product_id),
                "warehouse_id": spec.warehouse_id,
                "movement_type": spec.movement_type.value,
                "quantity": spec.quantity,
                "batch_id": str(spec.batch_id) if spec.batch_id else None,
                "reference_id": spec.reference_id,
            },
        )
        return model.to_dto()

    def get(self, movement_id: UUID) -> StockMovement | None:
        model = self._session.get(StockMovementModel, movement_id)
        return model.to_dto() if model is not None else None

    def balance(self, product_id: UUID, warehouse_id: str) -> int:
        """Current stock: Σ movement quantities for the pair."""
        total = self._session.execute(
            select(func.coalesce(func.sum(StockMovementModel.quantity), 0)).where(
                StockMovementModel.product_id == product_id,
                StockMovementModel.warehouse_id == warehouse_id,
            )
        ).scalar_one()
        return int(total)

    def history(
        self,
        product_id: UUID | None = None,
        warehouse_id: str | None = None,
        reference_id: str | None = None,
        batch_id: UUID | None = None,
    ) -> list[StockMovement]:
        """
        Movements matching every given filter, oldest first.

        Movements written in one transaction share ``created_at``; among
        those the order is by id, which is stable across calls but is not
        the order they were written in.
        """
        stmt = select(StockMovementModel)
        if product_id is not None:
            stmt = stmt.where(StockMovementModel.product_id == product_id)
        if warehouse_id is not None:
            stmt = stmt.where(StockMovementModel.warehouse_id == warehouse_id)
        if reference_id is not None:
            stmt = stmt.where(StockMovementModel.reference_id == reference_id)
        if batch_id is not None:
            stmt = stmt.where(StockMovementModel.batch_id == batch_id)
        stmt = stmt.order_by(StockMovementModel.created_at, StockMovementModel.id)
        return [m.to_dto() for m in self._session.scalars(stmt)]
