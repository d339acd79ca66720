"""
Deterministic keys for retry-safe side effects.

A receiving workflow may be retried after a partial failure.  Batches it
creates are keyed by a batch number derived only from the voucher and line
identifiers, so a retry finds the batch it already created instead of
creating (and stocking) a second one.
"""

from datetime import datetime
from uuid import UUID, uuid4

RECEIPT_BATCH_PREFIX = "RCV"
TRANSFER_BATCH_PREFIX = "TRF"


def generate_batch_number(voucher_id: UUID | str, line_id: UUID | str) -> str:
    """
    Batch number for the stock received against one voucher line.

    Format: RCV:voucher_id:line_id

    The same (voucher, line) pair always yields the same number; batch
    numbers are unique per product in the store.

    Example:
        >>> generate_batch_number(voucher_id, line_id)
        "RCV:6f1c...:a0b2..."
    """
    return f"{RECEIPT_BATCH_PREFIX}:{voucher_id}:{line_id}"


def generate_transfer_batch_number(transfer_id: UUID | str, source_batch_id: UUID | str) -> str:
    """Batch number for stock moved into a warehouse from one source batch."""
    return f"{TRANSFER_BATCH_PREFIX}:{transfer_id}:{source_batch_id}"


def parse_batch_number(batch_number: str) -> tuple[str, str, str]:
    """
    Split a generated batch number into (prefix, document_id, line_or_batch_id).

    Raises:
        ValueError: If the number was not produced by this module.
    """
    parts = batch_number.split(":", 2)
    if len(parts) != 3 or parts[0] not in (RECEIPT_BATCH_PREFIX, TRANSFER_BATCH_PREFIX):
        raise ValueError(f"Invalid batch number format: {batch_number}")
    return parts[0], parts[1], parts[2]


def generate_document_number(prefix: str, at: datetime) -> str:
    """Human-facing document number, e.g. ``VCH-20240101-1A2B3C4D``."""
    return f"{prefix}-{at:%Y%m%d}-{uuid4().hex[:8].upper()}"
