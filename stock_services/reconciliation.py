"""
stock_services.reconciliation -- Ledger vs. batch reconciliation.

Responsibility:
    Compare, per (product, warehouse), the sum of stock movements (the
    ledger) with the sum of active batch quantities (the projection).  They
    must be equal.  A mismatch means a side effect was applied to one and not
    the other, typically after a failed workflow step, and needs manual
    reconciliation.

Architecture position:
    Services -- read-only, session-bound.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stock_kernel.domain.ledger import BatchStatus
from stock_kernel.logging_config import get_logger
from stock_kernel.models.batch import InventoryBatchModel
from stock_kernel.models.movement import StockMovementModel

logger = get_logger("services.reconciliation")


@dataclass(frozen=True, slots=True)
class ReconciliationReport:
    product_id: UUID
    warehouse_id: str
    ledger_total: int
    batch_total: int

    @property
    def difference(self) -> int:
        return self.ledger_total - self.batch_total

    @property
    def is_consistent(self) -> bool:
        return self.difference == 0


class StockReconciler:
    def __init__(self, session: Session):
        self._session = session

    def reconcile(self, product_id: UUID, warehouse_id: str) -> ReconciliationReport:
        ledger = self._session.execute(
            select(func.coalesce(func.sum(StockMovementModel.quantity), 0)).where(
                StockMovementModel.product_id == product_id,
                StockMovementModel.warehouse_id == warehouse_id,
            )
        ).scalar_one()
        batches = self._session.execute(
            select(func.coalesce(func.sum(InventoryBatchModel.quantity), 0)).where(
                InventoryBatchModel.product_id == product_id,
                InventoryBatchModel.warehouse_id == warehouse_id,
                InventoryBatchModel.status == BatchStatus.ACTIVE.value,
            )
        ).scalar_one()
        report = ReconciliationReport(product_id, warehouse_id, int(ledger), int(batches))
        self._log(report)
        return report

    def reconcile_all(self) -> list[ReconciliationReport]:
        """Reconcile every (product, warehouse) pair that has movements or batches."""
        ledger_rows = self._session.execute(
            select(
                StockMovementModel.product_id,
                StockMovementModel.warehouse_id,
                func.sum(StockMovementModel.quantity),
            ).group_by(StockMovementModel.product_id, StockMovementModel.warehouse_id)
        ).all()
        batch_rows = self._session.execute(
            select(
                InventoryBatchModel.product_id,
                InventoryBatchModel.warehouse_id,
                func.sum(InventoryBatchModel.quantity),
            )
            .where(InventoryBatchModel.status == BatchStatus.ACTIVE.value)
            .group_by(InventoryBatchModel.product_id, InventoryBatchModel.warehouse_id)
        ).all()

        ledger = {(pid, wh): int(total or 0) for pid, wh, total in ledger_rows}
        batches = {(pid, wh): int(total or 0) for pid, wh, total in batch_rows}

        reports = []
        for key in sorted(set(ledger) | set(batches), key=lambda k: (str(k[0]), k[1])):
            report = ReconciliationReport(key[0], key[1], ledger.get(key, 0), batches.get(key, 0))
            self._log(report)
            reports.append(report)
        return reports

    @staticmethod
    def _log(report: ReconciliationReport) -> None:
        if report.is_consistent:
            return
        logger.warning(
            "stock_reconciliation_mismatch",
            extra={
                "product_id": str(report.product_id),
                "warehouse_id": report.warehouse_id,
                "ledger_total": report.ledger_total,
                "batch_total": report.batch_total,
                "difference": report.difference,
            },
        )
