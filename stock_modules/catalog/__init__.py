"""
Catalog Module (``stock_modules.catalog``).

Products and their unit-of-measure lists.
"""

from stock_modules.catalog.service import ProductCatalog, UOMChange

__all__ = [
    "ProductCatalog",
    "UOMChange",
]
