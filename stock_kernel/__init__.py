"""
Stock Kernel

The core of a retail inventory stock ledger:
- Validated product / unit-of-measure values
- Cost- and expiry-dated inventory batches per warehouse
- Append-only stock movements as the source of truth for on-hand stock
- Structured logging and typed errors shared by every layer
"""

__version__ = "0.1.0"
