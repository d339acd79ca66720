"""Kernel ORM models: products, inventory batches, stock movements."""

from stock_kernel.models.batch import InventoryBatchModel
from stock_kernel.models.movement import StockMovementModel
from stock_kernel.models.product import ProductModel, serialize_uom_list

__all__ = [
    "InventoryBatchModel",
    "ProductModel",
    "StockMovementModel",
    "serialize_uom_list",
]
