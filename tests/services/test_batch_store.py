"""
Tests for the Batch Store (stock_services.batch_store).

Validates:
- Receiving creates or increments a batch plus its purchase movement
- FIFO decrement across batches, one movement per batch drawn from
- Guarded updates: no negative batches, no changes to inactive batches
- Retiring batches writes off what they hold
- Live reads (on hand, listing, stale and expiring batches)
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from stock_kernel.domain.ledger import BatchStatus, MovementType
from stock_kernel.exceptions import (
    ConcurrentStockChangeError,
    InsufficientStockError,
    InvalidMovementError,
    UnknownBatchError,
)

from conftest import OTHER_WAREHOUSE, WAREHOUSE


class TestReceive:
    def test_new_batch_and_purchase_movement(self, batch_store, session, rice, test_actor_id, recorder):
        receipt = batch_store.receive_into_batch(
            product_id=rice.id,
            warehouse_id=WAREHOUSE,
            batch_number="RCV:test:1",
            quantity=100,
            unit_cost=Decimal("20.00"),
            actor_id=test_actor_id,
            expiry_date=date(2024, 12, 31),
            reference_id="voucher-1",
        )
        session.commit()

        assert receipt.created
        assert receipt.batch.quantity == 100
        assert receipt.batch.status is BatchStatus.ACTIVE
        assert receipt.movement.movement_type is MovementType.PURCHASE
        assert receipt.movement.quantity == 100
        assert receipt.movement.batch_id == receipt.batch.id
        assert recorder.balance(rice.id, WAREHOUSE) == 100

    def test_same_batch_number_increments(self, batch_store, session, rice, test_actor_id):
        for _ in range(2):
            receipt = batch_store.receive_into_batch(
                product_id=rice.id,
                warehouse_id=WAREHOUSE,
                batch_number="LOT-7",
                quantity=10,
                unit_cost=Decimal("1.00"),
                actor_id=test_actor_id,
            )
            session.commit()

        assert not receipt.created
        assert receipt.batch.quantity == 20
        assert len(batch_store.list_batches(rice.id, WAREHOUSE)) == 1

    def test_non_positive_quantity_is_rejected(self, batch_store, rice, test_actor_id):
        with pytest.raises(InvalidMovementError):
            batch_store.receive_into_batch(
                product_id=rice.id,
                warehouse_id=WAREHOUSE,
                batch_number="LOT-0",
                quantity=0,
                unit_cost=Decimal("1.00"),
                actor_id=test_actor_id,
            )


class TestDecrement:
    def test_fifo_across_batches(self, batch_store, session, rice, receive_batch, test_actor_id):
        """Batches of 5 and 10, sell 7: first batch emptied, second down to 8."""
        first = receive_batch(rice.id, 5, unit_cost="2.00", expiry_date=date(2024, 6, 1))
        second = receive_batch(rice.id, 10, unit_cost="3.00", expiry_date=date(2024, 7, 1))

        result = batch_store.decrement_stock(
            rice.id, WAREHOUSE, 7, MovementType.SALE, test_actor_id, reference_id="order-1"
        )
        session.commit()

        assert batch_store.get_batch(first.id).quantity == 0
        assert batch_store.get_batch(second.id).quantity == 8
        assert [m.quantity for m in result.movements] == [-5, -2]
        assert [m.batch_id for m in result.movements] == [first.id, second.id]
        assert all(m.reference_id == "order-1" for m in result.movements)
        assert result.total_cost == Decimal("16.00")

    def test_insufficient_stock_changes_nothing(self, batch_store, session, rice, receive_batch, test_actor_id, recorder):
        receive_batch(rice.id, 5)

        with pytest.raises(InsufficientStockError) as exc_info:
            batch_store.decrement_stock(rice.id, WAREHOUSE, 8, MovementType.SALE, test_actor_id)
        session.rollback()

        shortfall = exc_info.value.shortfalls[0]
        assert (shortfall.requested, shortfall.available) == (8, 5)
        assert batch_store.on_hand(rice.id, WAREHOUSE) == 5
        assert recorder.balance(rice.id, WAREHOUSE) == 5

    def test_other_warehouse_stock_is_not_used(self, batch_store, rice, receive_batch, test_actor_id):
        receive_batch(rice.id, 50, warehouse_id=OTHER_WAREHOUSE)

        with pytest.raises(InsufficientStockError):
            batch_store.decrement_stock(rice.id, WAREHOUSE, 1, MovementType.SALE, test_actor_id)


class TestGuardedChanges:
    def test_adjust_cannot_go_negative(self, batch_store, session, rice, receive_batch, test_actor_id):
        batch = receive_batch(rice.id, 3)

        with pytest.raises(ConcurrentStockChangeError):
            batch_store.adjust_batch(batch.id, -4, MovementType.ADJUSTMENT, test_actor_id, reason="count")
        session.rollback()

        assert batch_store.get_batch(batch.id).quantity == 3

    def test_adjust_requires_reason(self, batch_store, rice, receive_batch, test_actor_id):
        batch = receive_batch(rice.id, 3)

        with pytest.raises(InvalidMovementError):
            batch_store.adjust_batch(batch.id, -1, MovementType.ADJUSTMENT, test_actor_id)

    def test_unknown_batch(self, batch_store):
        with pytest.raises(UnknownBatchError):
            batch_store.get_batch(uuid4())

    def test_retired_batch_cannot_change(self, batch_store, session, rice, receive_batch, test_actor_id):
        batch = receive_batch(rice.id, 3)
        batch_store.retire_batch(batch.id, BatchStatus.DAMAGED, MovementType.DAMAGED, test_actor_id)
        session.commit()

        with pytest.raises(ConcurrentStockChangeError):
            batch_store.adjust_batch(batch.id, 1, MovementType.ADJUSTMENT, test_actor_id, reason="found")


class TestRetire:
    def test_writes_off_remaining_quantity(self, batch_store, session, milk, receive_batch, test_actor_id, recorder):
        batch = receive_batch(milk.id, 12, expiry_date=date(2024, 2, 1))

        movement = batch_store.retire_batch(
            batch.id, BatchStatus.EXPIRED, MovementType.EXPIRED, test_actor_id, reason="past expiry"
        )
        session.commit()

        assert movement.quantity == -12
        assert batch_store.get_batch(batch.id).status is BatchStatus.EXPIRED
        assert batch_store.on_hand(milk.id, WAREHOUSE) == 0
        assert recorder.balance(milk.id, WAREHOUSE) == 0

    def test_empty_batch_has_no_movement(self, batch_store, session, rice, receive_batch, test_actor_id):
        batch = receive_batch(rice.id, 2)
        batch_store.decrement_stock(rice.id, WAREHOUSE, 2, MovementType.SALE, test_actor_id)
        session.commit()

        assert batch_store.retire_batch(batch.id, BatchStatus.DAMAGED, MovementType.DAMAGED, test_actor_id) is None

    def test_retiring_twice_fails(self, batch_store, session, rice, receive_batch, test_actor_id):
        batch = receive_batch(rice.id, 2)
        batch_store.retire_batch(batch.id, BatchStatus.DAMAGED, MovementType.DAMAGED, test_actor_id)
        session.commit()

        with pytest.raises(ConcurrentStockChangeError):
            batch_store.retire_batch(batch.id, BatchStatus.DAMAGED, MovementType.DAMAGED, test_actor_id)


class TestReads:
    def test_on_hand_many_defaults_to_zero(self, batch_store, rice, soda, receive_batch):
        receive_batch(rice.id, 7)

        assert batch_store.on_hand_many([rice.id, soda.id], WAREHOUSE) == {rice.id: 7, soda.id: 0}

    def test_active_batches_in_fifo_order(self, batch_store, rice, receive_batch):
        late = receive_batch(rice.id, 1, expiry_date=date(2024, 9, 1))
        none = receive_batch(rice.id, 1)
        early = receive_batch(rice.id, 1, expiry_date=date(2024, 5, 1))

        ids = [b.id for b in batch_store.list_active_batches(rice.id, WAREHOUSE)]
        assert ids == [early.id, late.id, none.id]

    def test_stale_and_expiring(self, batch_store, milk, receive_batch, deterministic_clock):
        today = deterministic_clock.today()
        stale = receive_batch(milk.id, 1, expiry_date=today - timedelta(days=1))
        soon = receive_batch(milk.id, 1, expiry_date=today + timedelta(days=3))
        receive_batch(milk.id, 1, expiry_date=today + timedelta(days=60))

        assert [b.id for b in batch_store.stale_batches(today)] == [stale.id]
        assert [b.id for b in batch_store.expiring_batches(7)] == [soon.id]
