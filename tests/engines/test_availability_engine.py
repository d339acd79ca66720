"""
Tests for stock availability and batch roll-ups (pure engines).

Covers:
- Same-product lines are summed before comparing
- Missing products count as zero on hand
- Batch summary totals, expired and expiring counts
- Expiry alert levels
- STOCK_ENGINE_TRACE emission
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from stock_engines.availability import RequestedLine, aggregate_requests, evaluate_availability
from stock_engines.batch_summary import AlertLevel, alert_level, expiry_alerts, summarize_batches
from stock_engines.tracer import compute_input_fingerprint
from stock_kernel.domain.ledger import BatchStatus, InventoryBatch

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


def batch(quantity, expiry=None, age_days=0, status=BatchStatus.ACTIVE, product_id=None):
    return InventoryBatch(
        id=uuid4(),
        product_id=product_id or uuid4(),
        warehouse_id="WH-1",
        batch_number=f"B-{uuid4().hex[:6]}",
        quantity=quantity,
        unit_cost=Decimal("1.00"),
        received_at=NOW - timedelta(days=age_days),
        expiry_date=expiry,
        status=status,
    )


class TestAvailability:
    def test_lines_for_same_product_are_summed(self):
        """Rows of 2 and 3 against 4 on hand: one shortfall of 5 vs 4."""
        pid = uuid4()
        result = evaluate_availability(
            [RequestedLine(pid, 2), RequestedLine(pid, 3)],
            {pid: 4},
        )

        assert not result.valid
        assert len(result.shortfalls) == 1
        assert result.shortfalls[0].requested == 5
        assert result.shortfalls[0].available == 4
        assert result.shortfalls[0].missing == 1

    def test_enough_stock_is_valid(self):
        pid = uuid4()
        result = evaluate_availability([RequestedLine(pid, 4)], {pid: 4})

        assert result.valid
        assert result.shortfalls == ()

    def test_unknown_product_has_nothing_on_hand(self):
        pid = uuid4()
        result = evaluate_availability([RequestedLine(pid, 1)], {})

        assert result.shortfalls[0].available == 0

    def test_every_short_product_is_reported_in_order(self):
        a, b, c = uuid4(), uuid4(), uuid4()
        result = evaluate_availability(
            [RequestedLine(a, 9), RequestedLine(b, 1), RequestedLine(c, 9)],
            {a: 1, b: 5, c: 1},
        )

        assert [s.product_id for s in result.shortfalls] == [a, c]

    def test_aggregate_keeps_first_seen_order(self):
        a, b = uuid4(), uuid4()
        totals = aggregate_requests(
            [RequestedLine(b, 1), RequestedLine(a, 2), RequestedLine(b, 3)]
        )

        assert list(totals.items()) == [(b, 4), (a, 2)]

    def test_non_positive_request_is_rejected(self):
        with pytest.raises(ValueError):
            RequestedLine(uuid4(), 0)


class TestBatchSummary:
    def test_totals_cover_active_unexpired_stock(self):
        pid = uuid4()
        batches = [
            batch(10, age_days=4, product_id=pid),
            batch(6, expiry=TODAY + timedelta(days=5), age_days=2, product_id=pid),
            batch(3, expiry=TODAY - timedelta(days=1), age_days=10, product_id=pid),
            batch(8, status=BatchStatus.EXPIRED, expiry=TODAY - timedelta(days=30), product_id=pid),
            batch(5, status=BatchStatus.DAMAGED, product_id=pid),
        ]

        summary = summarize_batches(batches, NOW)

        assert summary.total_stock == 16
        assert summary.active_batches == 2
        assert summary.expired_batches == 2
        assert summary.expiring_batches == 1
        assert summary.average_age_days == Decimal("3.00")
        assert summary.oldest_received_at == NOW - timedelta(days=4)
        assert summary.newest_received_at == NOW - timedelta(days=2)

    def test_empty_snapshot(self):
        summary = summarize_batches([], NOW)

        assert summary.total_stock == 0
        assert summary.oldest_received_at is None
        assert summary.average_age_days == Decimal("0.00")

    def test_expiring_window_is_configurable(self):
        b = batch(1, expiry=TODAY + timedelta(days=20))

        assert summarize_batches([b], NOW, expiring_within_days=30).expiring_batches == 1
        assert summarize_batches([b], NOW, expiring_within_days=14).expiring_batches == 0


class TestExpiryAlerts:
    @pytest.mark.parametrize(
        "days, level",
        [
            (0, AlertLevel.CRITICAL),
            (7, AlertLevel.CRITICAL),
            (8, AlertLevel.WARNING),
            (14, AlertLevel.WARNING),
            (30, AlertLevel.INFO),
            (31, None),
        ],
    )
    def test_alert_level_thresholds(self, days, level):
        assert alert_level(days) is level

    def test_alerts_sorted_soonest_first(self):
        later = batch(4, expiry=TODAY + timedelta(days=20))
        sooner = batch(4, expiry=TODAY + timedelta(days=3))
        past = batch(4, expiry=TODAY - timedelta(days=1))
        empty = batch(0, expiry=TODAY + timedelta(days=1))

        alerts = expiry_alerts([later, sooner, past, empty], TODAY)

        assert [a.batch_id for a in alerts] == [sooner.id, later.id]
        assert alerts[0].level is AlertLevel.CRITICAL
        assert alerts[1].level is AlertLevel.INFO


class TestEngineTrace:
    def test_fingerprint_is_deterministic(self):
        first = compute_input_fingerprint(("a", "b"), {"a": 1, "b": {"y": 2, "x": 1}})
        second = compute_input_fingerprint(("a", "b"), {"b": {"x": 1, "y": 2}, "a": 1})

        assert first == second
        assert len(first) == 16

    def test_trace_is_logged(self, captured_logs):
        pid = uuid4()
        evaluate_availability([RequestedLine(pid, 1)], {pid: 1})

        traces = [r for r in captured_logs() if r["message"] == "STOCK_ENGINE_TRACE"]
        assert traces
        assert traces[-1]["engine_name"] == "availability"
        assert traces[-1]["outcome"] == "AvailabilityResult"
