"""
Tests for inventory operations and reports (stock_modules.inventory).

Validates:
- Manual adjustments and damage write-offs
- Movement corrections are compensating adjustments, applied at most once
- Transfers are all-or-nothing and keep cost, received date and expiry
- The expiry sweep retires stale batches and writes off their stock
- Expiry alerts, low-stock report and batch summaries
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from stock_engines.batch_summary import AlertLevel
from stock_kernel.domain.ledger import BatchStatus, MovementType
from stock_kernel.exceptions import (
    ConcurrentStockChangeError,
    InsufficientStockError,
    InvalidMovementError,
    UnknownMovementError,
)
from stock_kernel.utils.idempotency import parse_batch_number
from stock_modules.inventory.config import InventoryConfig
from stock_modules.inventory.models import LowStockSeverity
from stock_modules.inventory.service import InventoryService

from conftest import OTHER_WAREHOUSE, WAREHOUSE


class TestAdjustments:
    def test_adjust_stock(self, inventory_service, batch_store, recorder, rice, receive_batch, test_actor_id):
        batch = receive_batch(rice.id, 10)

        movement = inventory_service.adjust_stock(batch.id, -3, "cycle count", test_actor_id)

        assert movement.movement_type is MovementType.ADJUSTMENT
        assert movement.reason == "cycle count"
        assert batch_store.get_batch(batch.id).quantity == 7
        assert recorder.balance(rice.id, WAREHOUSE) == 7

    def test_adjust_below_zero_changes_nothing(self, inventory_service, batch_store, rice, receive_batch, test_actor_id):
        batch = receive_batch(rice.id, 2)

        with pytest.raises(ConcurrentStockChangeError):
            inventory_service.adjust_stock(batch.id, -3, "cycle count", test_actor_id)

        assert batch_store.get_batch(batch.id).quantity == 2

    def test_blank_reason_is_rejected(self, inventory_service, rice, receive_batch, test_actor_id):
        batch = receive_batch(rice.id, 2)

        with pytest.raises(InvalidMovementError):
            inventory_service.adjust_stock(batch.id, 1, "", test_actor_id)

    def test_mark_damaged(self, inventory_service, batch_store, rice, receive_batch, test_actor_id):
        batch = receive_batch(rice.id, 6)

        movement = inventory_service.mark_damaged(batch.id, "water leak", test_actor_id)

        assert movement.movement_type is MovementType.DAMAGED
        assert movement.quantity == -6
        assert batch_store.get_batch(batch.id).status is BatchStatus.DAMAGED
        assert batch_store.on_hand(rice.id, WAREHOUSE) == 0


class TestCorrections:
    def test_correction_reverses_the_movement(self, inventory_service, batch_store, recorder, rice, receive_batch, test_actor_id):
        batch = receive_batch(rice.id, 10)
        original = recorder.history(batch_id=batch.id)[0]

        correction = inventory_service.correct_movement(original.id, "keyed twice", test_actor_id)

        assert correction.quantity == -10
        assert correction.reference_id == str(original.id)
        assert recorder.get(original.id).quantity == 10
        assert batch_store.get_batch(batch.id).quantity == 0
        assert recorder.balance(rice.id, WAREHOUSE) == 0

    def test_movement_is_corrected_once(self, inventory_service, recorder, rice, receive_batch, test_actor_id):
        batch = receive_batch(rice.id, 10)
        original = recorder.history(batch_id=batch.id)[0]
        inventory_service.correct_movement(original.id, "keyed twice", test_actor_id)

        with pytest.raises(InvalidMovementError):
            inventory_service.correct_movement(original.id, "keyed twice", test_actor_id)

    def test_unknown_movement(self, inventory_service, test_actor_id):
        with pytest.raises(UnknownMovementError):
            inventory_service.correct_movement(uuid4(), "typo", test_actor_id)


class TestTransfers:
    def test_transfer_keeps_batch_identity(self, inventory_service, batch_store, rice, receive_batch, test_actor_id):
        first = receive_batch(rice.id, 5, unit_cost="2.00", expiry_date=date(2024, 6, 1))
        receive_batch(rice.id, 10, unit_cost="3.00", expiry_date=date(2024, 7, 1))

        result = inventory_service.transfer_stock(rice.id, WAREHOUSE, OTHER_WAREHOUSE, 7, test_actor_id)

        assert batch_store.on_hand(rice.id, WAREHOUSE) == 8
        assert batch_store.on_hand(rice.id, OTHER_WAREHOUSE) == 7
        assert sorted(m.quantity for m in result.outgoing) == [-5, -2]
        assert all(m.movement_type is MovementType.TRANSFER for m in result.outgoing)

        moved = {b.quantity: b for b in result.incoming}
        assert moved[5].unit_cost == Decimal("2.00")
        assert moved[5].expiry_date == date(2024, 6, 1)
        assert moved[5].received_at == first.received_at
        assert moved[5].warehouse_id == OTHER_WAREHOUSE
        assert parse_batch_number(moved[5].batch_number) == ("TRF", str(result.transfer_id), str(first.id))

    def test_transfer_keeps_ledger_consistent(self, inventory_service, recorder, rice, receive_batch, test_actor_id):
        receive_batch(rice.id, 10)

        inventory_service.transfer_stock(rice.id, WAREHOUSE, OTHER_WAREHOUSE, 4, test_actor_id)

        assert recorder.balance(rice.id, WAREHOUSE) == 6
        assert recorder.balance(rice.id, OTHER_WAREHOUSE) == 4
        assert all(r.is_consistent for r in inventory_service.reconcile_stock())

    def test_short_transfer_moves_nothing(self, inventory_service, batch_store, rice, receive_batch, test_actor_id):
        receive_batch(rice.id, 3)

        with pytest.raises(InsufficientStockError):
            inventory_service.transfer_stock(rice.id, WAREHOUSE, OTHER_WAREHOUSE, 4, test_actor_id)

        assert batch_store.on_hand(rice.id, WAREHOUSE) == 3
        assert batch_store.list_batches(rice.id, OTHER_WAREHOUSE) == []

    def test_same_warehouse_is_rejected(self, inventory_service, rice, test_actor_id):
        with pytest.raises(ValueError):
            inventory_service.transfer_stock(rice.id, WAREHOUSE, WAREHOUSE, 1, test_actor_id)


class TestExpiry:
    def test_sweep_retires_stale_batches(self, inventory_service, batch_store, recorder, milk, receive_batch, deterministic_clock, test_actor_id):
        today = deterministic_clock.today()
        stale = receive_batch(milk.id, 4, expiry_date=today - timedelta(days=1))
        fresh = receive_batch(milk.id, 6, expiry_date=today + timedelta(days=4))

        result = inventory_service.sweep_expired(test_actor_id)

        assert [b.id for b in result.expired] == [stale.id]
        assert result.written_off == 4
        assert result.movements[0].reason == "past expiry date"
        assert batch_store.get_batch(stale.id).status is BatchStatus.EXPIRED
        assert batch_store.get_batch(fresh.id).status is BatchStatus.ACTIVE
        assert recorder.balance(milk.id, WAREHOUSE) == 6

    def test_empty_stale_batch_is_retired_without_movement(self, inventory_service, batch_store, milk, receive_batch, deterministic_clock, test_actor_id):
        stale = receive_batch(milk.id, 2, expiry_date=deterministic_clock.today() - timedelta(days=3))
        inventory_service.adjust_stock(stale.id, -2, "spoiled early", test_actor_id)

        result = inventory_service.sweep_expired(test_actor_id)

        assert [b.id for b in result.expired] == [stale.id]
        assert result.movements == ()
        assert batch_store.get_batch(stale.id).status is BatchStatus.EXPIRED

    def test_sweep_is_repeatable(self, inventory_service, milk, receive_batch, deterministic_clock, test_actor_id):
        receive_batch(milk.id, 4, expiry_date=deterministic_clock.today() - timedelta(days=1))
        inventory_service.sweep_expired(test_actor_id)

        again = inventory_service.sweep_expired(test_actor_id)

        assert again.expired == ()
        assert again.failures == ()

    def test_expiry_alerts(self, inventory_service, milk, receive_batch, deterministic_clock):
        today = deterministic_clock.today()
        soon = receive_batch(milk.id, 3, expiry_date=today + timedelta(days=2))
        receive_batch(milk.id, 3, expiry_date=today + timedelta(days=90))
        receive_batch(milk.id, 3, expiry_date=today + timedelta(days=10), warehouse_id=OTHER_WAREHOUSE)

        alerts = inventory_service.expiry_alerts(warehouse_id=WAREHOUSE)

        assert [(a.batch_id, a.level) for a in alerts] == [(soon.id, AlertLevel.CRITICAL)]
        assert len(inventory_service.expiry_alerts()) == 2


class TestReports:
    def test_low_stock_products(self, inventory_service, rice, soda, milk, receive_batch):
        receive_batch(rice.id, 5)
        receive_batch(soda.id, 8)

        items = inventory_service.low_stock_products(WAREHOUSE)

        assert [(i.product_id, i.severity) for i in items] == [
            (milk.id, LowStockSeverity.HIGH),
            (rice.id, LowStockSeverity.HIGH),
            (soda.id, LowStockSeverity.MEDIUM),
        ]
        assert items[1].threshold == 20
        assert items[2].shortfall == 2

    def test_stocked_and_inactive_products_are_not_low(self, inventory_service, catalog, rice, soda, receive_batch, test_actor_id):
        receive_batch(rice.id, 20)
        catalog.deactivate_product(soda.id, test_actor_id)

        assert inventory_service.low_stock_products(WAREHOUSE) == []

    def test_batch_summary_uses_configured_window(self, session, deterministic_clock, batch_store, milk, receive_batch):
        receive_batch(milk.id, 3, expiry_date=deterministic_clock.today() + timedelta(days=10))

        narrow = InventoryService(
            session, deterministic_clock, InventoryConfig(expiring_within_days=7), batch_store=batch_store
        )
        wide = InventoryService(session, deterministic_clock, batch_store=batch_store)

        assert narrow.batch_summary(milk.id, WAREHOUSE).expiring_batches == 0
        assert wide.batch_summary(milk.id, WAREHOUSE).expiring_batches == 1
        assert wide.batch_summary(milk.id, WAREHOUSE).total_stock == 3
