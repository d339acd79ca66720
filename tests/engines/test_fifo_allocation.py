"""
Tests for the FIFO Allocator (stock_engines.allocation).

Covers:
- Expiry-first ordering, no-expiry batches last, received-time tiebreak
- Partial draws across batches and weighted average cost
- Inactive and empty batches are skipped
- Insufficient stock is a value, never a partial plan
- Conservation: Σ taken == requested (hypothesis)
- Trace fingerprints distinguish requests however the engine is called
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given
from hypothesis import strategies as st

from stock_engines.allocation import AllocationPlan, InsufficientStock, allocate, fifo_order
from stock_engines.tracer import compute_input_fingerprint, traced_engine
from stock_kernel.domain.ledger import BatchStatus, InventoryBatch

PRODUCT = uuid4()
WAREHOUSE = "WH-1"
T0 = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


def make_batch(
    quantity,
    unit_cost="1.00",
    expiry=None,
    received_offset_days=0,
    status=BatchStatus.ACTIVE,
    number=None,
):
    return InventoryBatch(
        id=uuid4(),
        product_id=PRODUCT,
        warehouse_id=WAREHOUSE,
        batch_number=number or f"B-{uuid4().hex[:6]}",
        quantity=quantity,
        unit_cost=Decimal(unit_cost),
        received_at=T0 + timedelta(days=received_offset_days),
        expiry_date=expiry,
        status=status,
    )


class TestOrdering:
    def test_earliest_expiry_first(self):
        late = make_batch(5, expiry=date(2024, 9, 1), number="late")
        early = make_batch(5, expiry=date(2024, 6, 1), number="early")

        assert [b.batch_number for b in fifo_order([late, early])] == ["early", "late"]

    def test_no_expiry_goes_last(self):
        forever = make_batch(5, expiry=None, number="forever")
        dated = make_batch(5, expiry=date(2030, 1, 1), received_offset_days=10, number="dated")

        assert [b.batch_number for b in fifo_order([forever, dated])] == ["dated", "forever"]

    def test_received_time_breaks_ties(self):
        second = make_batch(5, received_offset_days=2, number="second")
        first = make_batch(5, received_offset_days=1, number="first")

        assert [b.batch_number for b in fifo_order([second, first])] == ["first", "second"]


class TestAllocate:
    def test_draws_oldest_batch_first_then_next(self):
        """Batches of 5 and 10, request 7: take 5 then 2."""
        a = make_batch(5, unit_cost="2.00", expiry=date(2024, 6, 1))
        b = make_batch(10, unit_cost="3.00", expiry=date(2024, 7, 1))

        plan = allocate(PRODUCT, WAREHOUSE, 7, [b, a])

        assert isinstance(plan, AllocationPlan)
        assert [(line.batch_id, line.quantity_taken) for line in plan.lines] == [(a.id, 5), (b.id, 2)]
        assert plan.total_taken == 7

    def test_weighted_average_cost(self):
        a = make_batch(5, unit_cost="2.00", expiry=date(2024, 6, 1))
        b = make_batch(10, unit_cost="3.00", expiry=date(2024, 7, 1))

        plan = allocate(PRODUCT, WAREHOUSE, 7, [a, b])

        assert plan.total_cost == Decimal("16.00")
        assert plan.weighted_average_cost == Decimal("16.00") / 7

    def test_exact_fit_uses_one_batch(self):
        a = make_batch(5)
        plan = allocate(PRODUCT, WAREHOUSE, 5, [a, make_batch(10, received_offset_days=1)])

        assert len(plan.lines) == 1

    def test_shortfall_is_reported_not_planned(self):
        """Batches of 5 and 10, request 18: shortfall 3."""
        result = allocate(PRODUCT, WAREHOUSE, 18, [make_batch(5), make_batch(10)])

        assert isinstance(result, InsufficientStock)
        assert result.requested == 18
        assert result.available == 15
        assert result.shortfall == 3

    def test_inactive_batches_are_skipped(self):
        expired = make_batch(50, status=BatchStatus.EXPIRED, expiry=date(2023, 1, 1))
        damaged = make_batch(50, status=BatchStatus.DAMAGED)
        good = make_batch(4, received_offset_days=1)

        result = allocate(PRODUCT, WAREHOUSE, 5, [expired, damaged, good])

        assert isinstance(result, InsufficientStock)
        assert result.available == 4

    def test_empty_batches_are_skipped(self):
        empty = make_batch(0)
        good = make_batch(3, received_offset_days=1)

        plan = allocate(PRODUCT, WAREHOUSE, 3, [empty, good])

        assert [line.batch_id for line in plan.lines] == [good.id]

    def test_other_warehouse_is_ignored(self):
        elsewhere = InventoryBatch(
            id=uuid4(),
            product_id=PRODUCT,
            warehouse_id="WH-2",
            batch_number="remote",
            quantity=100,
            unit_cost=Decimal("1"),
            received_at=T0,
        )

        assert isinstance(allocate(PRODUCT, WAREHOUSE, 1, [elsewhere]), InsufficientStock)

    @pytest.mark.parametrize("bad", [0, -3, 1.5, True])
    def test_invalid_request_raises(self, bad):
        with pytest.raises(ValueError):
            allocate(PRODUCT, WAREHOUSE, bad, [make_batch(5)])


class TestEngineTrace:
    @staticmethod
    def _fingerprints(logs):
        return [
            r["input_fingerprint"]
            for r in logs
            if r["message"] == "STOCK_ENGINE_TRACE" and r["engine_name"] == "allocation"
        ]

    def test_positional_requests_are_told_apart(self, captured_logs):
        batches = [make_batch(10)]

        allocate(PRODUCT, WAREHOUSE, 1, batches)
        allocate(PRODUCT, WAREHOUSE, 7, batches)
        allocate(PRODUCT, "WH-2", 7, batches)

        first, second, elsewhere = self._fingerprints(captured_logs())
        assert len({first, second, elsewhere}) == 3

    def test_keyword_and_positional_calls_match(self, captured_logs):
        batches = [make_batch(10)]

        allocate(PRODUCT, WAREHOUSE, 4, batches)
        allocate(
            product_id=PRODUCT,
            warehouse_id=WAREHOUSE,
            requested_base_quantity=4,
            batches=batches,
        )

        positional, keyword = self._fingerprints(captured_logs())
        assert positional == keyword
        assert positional == compute_input_fingerprint(
            ("product_id", "warehouse_id", "requested_base_quantity"),
            {"product_id": PRODUCT, "warehouse_id": WAREHOUSE, "requested_base_quantity": 4},
        )

    def test_unknown_fingerprint_field_fails_at_decoration(self):
        with pytest.raises(TypeError):
            @traced_engine("broken", "1.0", fingerprint_fields=("quantity",))
            def engine(requested_base_quantity):
                return requested_base_quantity


@given(
    sizes=st.lists(st.integers(min_value=0, max_value=50), min_size=1, max_size=8),
    requested=st.integers(min_value=1, max_value=400),
)
def test_allocation_conserves_quantity(sizes, requested):
    batches = [make_batch(q, received_offset_days=i) for i, q in enumerate(sizes)]
    result = allocate(PRODUCT, WAREHOUSE, requested, batches)

    if requested > sum(sizes):
        assert isinstance(result, InsufficientStock)
        assert result.available == sum(sizes)
    else:
        assert result.total_taken == requested
        by_id = {b.id: b for b in batches}
        assert all(0 < line.quantity_taken <= by_id[line.batch_id].quantity for line in result.lines)
