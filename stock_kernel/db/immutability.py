"""
ORM-level append-only enforcement for the stock ledger.

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  We listen on StockMovementModel and refuse both:

    session.flush()
         |
         v
    [before_update] --> _reject_movement_update() --> ImmutabilityViolationError
    [before_delete] --> _reject_movement_delete() --> ImmutabilityViolationError

The transaction is aborted and the database never sees the statement.  A
correction to the ledger is a new compensating adjustment movement (see
InventoryService.correct_movement), never an edit.

Usage:
    register_immutability_listeners()    # once at startup
    unregister_immutability_listeners()  # tests that need to tamper on purpose

Bulk ``session.execute(update(...))`` bypasses mapper events; the Batch Store
only issues bulk statements against inventory_batches, never stock_movements.
"""

from sqlalchemy import event

from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _reject_movement_update(mapper, connection, target):
    """Stock movements are append-only: no UPDATE ever."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "StockMovement",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="StockMovement",
        entity_id=str(target.id),
        reason="Stock movements are append-only; record a compensating adjustment instead",
    )


def _reject_movement_delete(mapper, connection, target):
    """Stock movements are append-only: no DELETE ever."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "StockMovement",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="StockMovement",
        entity_id=str(target.id),
        reason="Stock movements cannot be deleted",
    )


def register_immutability_listeners() -> None:
    """Register append-only listeners.  Idempotent."""
    from stock_kernel.models.movement import StockMovementModel

    if not event.contains(StockMovementModel, "before_update", _reject_movement_update):
        event.listen(StockMovementModel, "before_update", _reject_movement_update)
    if not event.contains(StockMovementModel, "before_delete", _reject_movement_delete):
        event.listen(StockMovementModel, "before_delete", _reject_movement_delete)


def _safe_remove_listener(target, event_name, listener_fn):
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners() -> None:
    """
    Remove append-only listeners.

    WARNING: Only use this in tests that intentionally violate immutability.
    """
    from stock_kernel.models.movement import StockMovementModel

    _safe_remove_listener(StockMovementModel, "before_update", _reject_movement_update)
    _safe_remove_listener(StockMovementModel, "before_delete", _reject_movement_delete)
