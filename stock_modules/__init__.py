"""
Stock Modules.

Thin orchestration layers over the Stock Kernel, Engines and Services.
Each module contains:
- Domain models (the nouns)
- ORM models for module-owned tables
- Workflows (state machines)
- Configuration schemas (policy and settings)
- A service that owns the transaction boundary

Modules:
- Catalog: Products and their units of measure
- Purchasing: Suppliers, vouchers, the receiving workflow
- Payables: Accounts payable raised on receipt, payments
- Sales: Point-of-sale orders, sale completion, refunds
- Inventory: Adjustments, transfers, expiry sweep, stock reports

Actual stock logic lives in the kernel, engines and the Batch Store.
"""

from stock_modules import (
    catalog,
    payables,
    purchasing,
    sales,
    inventory,
)

__all__ = [
    "catalog",
    "payables",
    "purchasing",
    "sales",
    "inventory",
]
