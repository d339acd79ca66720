"""
Sales Module (``stock_modules.sales``).

Responsibility
--------------
Point-of-sale orders: the Sale Completion Workflow (one FIFO decrement per
product, failures reported without failing the sale), parked orders,
cancellations and refunds.
"""

from stock_modules.sales.config import SalesConfig
from stock_modules.sales.models import (
    CartLine,
    ProductDecrement,
    RefundResult,
    SaleOrder,
    SaleOrderLine,
    SaleResult,
    SaleStatus,
)
from stock_modules.sales.service import SaleService
from stock_modules.sales.workflows import SALE_ORDER_WORKFLOW

__all__ = [
    "CartLine",
    "ProductDecrement",
    "RefundResult",
    "SALE_ORDER_WORKFLOW",
    "SaleOrder",
    "SaleOrderLine",
    "SaleResult",
    "SaleService",
    "SaleStatus",
    "SalesConfig",
]
