"""
stock_services.availability_checker -- Stock Availability Checker.

Responsibility:
    Validate that requested base quantities do not exceed on-hand stock,
    reading on-hand from the Batch Store at call time.

Architecture position:
    Services -- thin, session-bound wrapper around
    stock_engines.availability.evaluate_availability.

Concurrency:
    This is a point-in-time check, not a reservation.  Call it immediately
    before committing; a concurrent sale can still consume the same stock
    between this check and the decrement.  The decrement's guarded updates
    are what keep batches from going negative.
"""

from collections.abc import Iterable
from uuid import UUID

from stock_engines.availability import (
    AvailabilityResult,
    RequestedLine,
    evaluate_availability,
)
from stock_kernel.logging_config import get_logger
from stock_services.batch_store import BatchStore

logger = get_logger("services.availability_checker")


class StockAvailabilityChecker:
    """Checks requested lines against live on-hand stock in one warehouse."""

    def __init__(self, batch_store: BatchStore):
        self._batch_store = batch_store

    def check_availability(
        self,
        requested_lines: Iterable[RequestedLine],
        warehouse_id: str,
    ) -> AvailabilityResult:
        lines = list(requested_lines)
        product_ids = list(dict.fromkeys(line.product_id for line in lines))
        on_hand: dict[UUID, int] = self._batch_store.on_hand_many(product_ids, warehouse_id)

        result = evaluate_availability(lines, on_hand)
        if not result.valid:
            logger.info(
                "availability_check_failed",
                extra={
                    "warehouse_id": warehouse_id,
                    "shortfalls": [
                        {
                            "product_id": str(s.product_id),
                            "requested": s.requested,
                            "available": s.available,
                        }
                        for s in result.shortfalls
                    ],
                },
            )
        return result
