"""
Module: stock_services
Responsibility:
    Stateful, session-bound services over the kernel ORM: the Batch Store
    (including the atomic stock decrement), the Stock Movement Recorder, the
    Stock Availability Checker and ledger reconciliation.

Architecture position:
    Services -- may import stock_kernel and stock_engines.  MUST NOT import
    stock_modules.  Services flush; workflows in stock_modules commit.
"""

from stock_services.availability_checker import StockAvailabilityChecker
from stock_services.batch_store import BatchReceipt, BatchStore, StockDecrement
from stock_services.movement_recorder import MovementRecorder
from stock_services.reconciliation import ReconciliationReport, StockReconciler

__all__ = [
    "BatchReceipt",
    "BatchStore",
    "MovementRecorder",
    "ReconciliationReport",
    "StockAvailabilityChecker",
    "StockDecrement",
    "StockReconciler",
]
