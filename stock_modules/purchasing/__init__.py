"""
Purchasing Module (``stock_modules.purchasing``).

Responsibility
--------------
Suppliers, purchase vouchers and the Receiving Workflow that stocks a
voucher into FIFO batches and books the supplier liability.

Architecture
------------
Layer: **Modules** -- value objects, the voucher state machine, a config
schema and a thin orchestration service over ``stock_services``.

Failure Modes
-------------
- Per-line receiving failures are reported in ``ReceivingResult``; they
  never undo lines that were applied.
"""

from stock_modules.purchasing.config import PurchasingConfig
from stock_modules.purchasing.models import (
    LineOutcome,
    LineStatus,
    PaymentTerms,
    ReceivingResult,
    Supplier,
    Voucher,
    VoucherLine,
    VoucherLineInput,
    VoucherStatus,
)
from stock_modules.purchasing.service import ReceivingService
from stock_modules.purchasing.workflows import EDITABLE_STATES, VOUCHER_WORKFLOW

__all__ = [
    "EDITABLE_STATES",
    "LineOutcome",
    "LineStatus",
    "PaymentTerms",
    "PurchasingConfig",
    "ReceivingResult",
    "ReceivingService",
    "Supplier",
    "VOUCHER_WORKFLOW",
    "Voucher",
    "VoucherLine",
    "VoucherLineInput",
    "VoucherStatus",
]
