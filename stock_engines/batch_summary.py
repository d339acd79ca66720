"""
stock_engines.batch_summary -- Batch roll-ups and expiry alerts.

Pure functions over a batch snapshot.  The caller passes ``as_of``; nothing
here reads the clock.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID

from stock_kernel.domain.clock import as_utc
from stock_kernel.domain.ledger import BatchStatus, InventoryBatch

DEFAULT_EXPIRING_WITHIN_DAYS = 30
_ONE_SECOND = timedelta(seconds=1)


class AlertLevel(str, Enum):
    CRITICAL = "critical"   # expires within 7 days
    WARNING = "warning"     # within 14 days
    INFO = "info"           # within 30 days


ALERT_THRESHOLDS: tuple[tuple[int, AlertLevel], ...] = (
    (7, AlertLevel.CRITICAL),
    (14, AlertLevel.WARNING),
    (30, AlertLevel.INFO),
)


@dataclass(frozen=True, slots=True)
class BatchSummary:
    """FIFO roll-up for one product in one warehouse."""

    total_stock: int
    active_batches: int
    expired_batches: int
    expiring_batches: int
    oldest_received_at: datetime | None
    newest_received_at: datetime | None
    average_age_days: Decimal


@dataclass(frozen=True, slots=True)
class ExpiryAlert:
    batch_id: UUID
    product_id: UUID
    warehouse_id: str
    batch_number: str
    quantity: int
    expiry_date: date
    days_until_expiry: int
    level: AlertLevel


def summarize_batches(
    batches: Sequence[InventoryBatch],
    as_of: datetime,
    expiring_within_days: int = DEFAULT_EXPIRING_WITHIN_DAYS,
) -> BatchSummary:
    """
    Roll up a batch snapshot.

    ``total_stock`` and ages cover active batches holding stock.  Batches
    past their expiry date count as expired whatever their stored status
    (the sweep may not have run yet).
    """
    as_of = as_utc(as_of)
    today = as_of.date()

    in_stock = [b for b in batches if b.is_allocatable and not b.is_expired_on(today)]
    expired = [
        b for b in batches
        if b.status == BatchStatus.EXPIRED or (b.status == BatchStatus.ACTIVE and b.is_expired_on(today))
    ]
    expiring = [
        b for b in in_stock
        if b.expiry_date is not None and 0 <= (b.expiry_date - today).days <= expiring_within_days
    ]

    received = [b.received_at for b in in_stock]
    if received:
        total_seconds = sum((as_of - r) // _ONE_SECOND for r in received)
        average_age = (Decimal(total_seconds) / Decimal(86400) / len(received)).quantize(
            Decimal("0.01")
        )
    else:
        average_age = Decimal("0.00")

    return BatchSummary(
        total_stock=sum(b.quantity for b in in_stock),
        active_batches=len(in_stock),
        expired_batches=len(expired),
        expiring_batches=len(expiring),
        oldest_received_at=min(received) if received else None,
        newest_received_at=max(received) if received else None,
        average_age_days=average_age,
    )


def alert_level(days_until_expiry: int) -> AlertLevel | None:
    for threshold, level in ALERT_THRESHOLDS:
        if days_until_expiry <= threshold:
            return level
    return None


def expiry_alerts(batches: Iterable[InventoryBatch], as_of: date) -> list[ExpiryAlert]:
    """Alerts for active, non-empty batches expiring within 30 days, soonest first."""
    alerts: list[ExpiryAlert] = []
    for batch in batches:
        if not batch.is_allocatable or batch.expiry_date is None:
            continue
        days = batch.days_until_expiry(as_of)
        if days is None or days < 0:
            continue
        level = alert_level(days)
        if level is None:
            continue
        alerts.append(
            ExpiryAlert(
                batch_id=batch.id,
                product_id=batch.product_id,
                warehouse_id=batch.warehouse_id,
                batch_number=batch.batch_number,
                quantity=batch.quantity,
                expiry_date=batch.expiry_date,
                days_until_expiry=days,
                level=level,
            )
        )
    alerts.sort(key=lambda a: (a.days_until_expiry, a.batch_number))
    return alerts
