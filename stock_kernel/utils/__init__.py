"""Kernel utilities."""

from stock_kernel.utils.idempotency import (
    generate_batch_number,
    generate_document_number,
    generate_transfer_batch_number,
    parse_batch_number,
)

__all__ = [
    "generate_batch_number",
    "generate_document_number",
    "generate_transfer_batch_number",
    "parse_batch_number",
]
