"""
Tests for kernel domain values: movement rules, batches, products,
deterministic batch numbers and the workflow definitions.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from stock_kernel.domain.clock import DeterministicClock, as_utc
from stock_kernel.domain.ledger import (
    BatchStatus,
    InventoryBatch,
    MovementSpec,
    MovementType,
    validate_movement,
)
from stock_kernel.domain.products import UnitOfMeasure, parse_uom_list
from stock_kernel.domain.workflow import Transition, Workflow
from stock_kernel.exceptions import InvalidMovementError, InvalidUOMListError
from stock_kernel.utils.idempotency import (
    generate_batch_number,
    generate_document_number,
    generate_transfer_batch_number,
    parse_batch_number,
)
from stock_modules.purchasing.workflows import EDITABLE_STATES, VOUCHER_WORKFLOW
from stock_modules.sales.workflows import SALE_ORDER_WORKFLOW


class TestMovementRules:
    @pytest.mark.parametrize(
        "movement_type, quantity",
        [
            (MovementType.PURCHASE, -1),
            (MovementType.SALE, 1),
            (MovementType.EXPIRED, 3),
            (MovementType.DAMAGED, 2),
        ],
    )
    def test_sign_must_match_type(self, movement_type, quantity):
        with pytest.raises(InvalidMovementError):
            validate_movement(movement_type, quantity)

    @pytest.mark.parametrize("quantity", [5, -5])
    def test_transfer_may_go_either_way(self, quantity):
        validate_movement(MovementType.TRANSFER, quantity)

    def test_zero_is_never_a_movement(self):
        with pytest.raises(InvalidMovementError):
            validate_movement(MovementType.PURCHASE, 0)

    def test_quantity_must_be_integral(self):
        with pytest.raises(InvalidMovementError):
            validate_movement(MovementType.PURCHASE, Decimal("1.5"))

    def test_adjustment_needs_reason(self):
        with pytest.raises(InvalidMovementError) as exc_info:
            MovementSpec(uuid4(), "WH-1", MovementType.ADJUSTMENT, -2, reason="  ")

        assert exc_info.value.code == "INVALID_MOVEMENT"

    def test_adjustment_with_reason(self):
        spec = MovementSpec(uuid4(), "WH-1", MovementType.ADJUSTMENT, -2, reason="cycle count")
        assert spec.quantity == -2


class TestInventoryBatch:
    def _batch(self, **overrides):
        values = dict(
            id=uuid4(),
            product_id=uuid4(),
            warehouse_id="WH-1",
            batch_number="B-1",
            quantity=10,
            unit_cost=Decimal("2.50"),
            received_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        values.update(overrides)
        return InventoryBatch(**values)

    def test_negative_quantity_is_rejected(self):
        with pytest.raises(ValueError):
            self._batch(quantity=-1)

    def test_negative_cost_is_rejected(self):
        with pytest.raises(ValueError):
            self._batch(unit_cost=Decimal("-0.01"))

    def test_only_active_stocked_batches_are_allocatable(self):
        assert self._batch().is_allocatable
        assert not self._batch(quantity=0).is_allocatable
        assert not self._batch(status=BatchStatus.DAMAGED).is_allocatable

    def test_expiry_helpers(self):
        b = self._batch(expiry_date=date(2024, 1, 10))

        assert b.days_until_expiry(date(2024, 1, 3)) == 7
        assert not b.is_expired_on(date(2024, 1, 10))
        assert b.is_expired_on(date(2024, 1, 11))


class TestUOMParsing:
    def test_parse_stored_shape(self):
        uoms = parse_uom_list(
            [
                {"name": "kilo", "conversion_to_base": "1", "is_base": True},
                {"name": "sack", "conversion_to_base": "50"},
            ]
        )

        assert uoms[1] == UnitOfMeasure("sack", Decimal("50"))

    def test_missing_field_is_reported(self):
        with pytest.raises(InvalidUOMListError):
            parse_uom_list([{"name": "kilo"}])

    def test_to_dict_keeps_rate_as_string(self):
        assert UnitOfMeasure("sack", Decimal("50")).to_dict()["conversion_to_base"] == "50"


class TestBatchNumbers:
    def test_receipt_number_is_deterministic(self):
        voucher_id, line_id = uuid4(), uuid4()

        assert generate_batch_number(voucher_id, line_id) == generate_batch_number(voucher_id, line_id)
        assert generate_batch_number(voucher_id, line_id) == f"RCV:{voucher_id}:{line_id}"

    def test_parse_round_trip(self):
        transfer_id, batch_id = uuid4(), uuid4()
        number = generate_transfer_batch_number(transfer_id, batch_id)

        assert parse_batch_number(number) == ("TRF", str(transfer_id), str(batch_id))

    def test_parse_rejects_foreign_numbers(self):
        with pytest.raises(ValueError):
            parse_batch_number("LOT-42")

    def test_document_number_format(self):
        number = generate_document_number("VCH", datetime(2024, 3, 1, tzinfo=timezone.utc))

        prefix, day, suffix = number.split("-")
        assert (prefix, day) == ("VCH", "20240301")
        assert len(suffix) == 8


class TestClock:
    def test_deterministic_clock_advances(self):
        clock = DeterministicClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
        clock.advance_days(2)

        assert clock.today() == date(2024, 1, 3)

    def test_as_utc_attaches_timezone(self):
        assert as_utc(datetime(2024, 1, 1)).tzinfo is timezone.utc


class TestWorkflows:
    def test_voucher_receive_only_from_pending_or_ordered(self):
        assert VOUCHER_WORKFLOW.can_transition("pending", "receive")
        assert VOUCHER_WORKFLOW.can_transition("ordered", "receive")
        assert not VOUCHER_WORKFLOW.can_transition("draft", "receive")
        assert not VOUCHER_WORKFLOW.can_transition("cancelled", "receive")

    def test_voucher_terminal_states_have_no_actions(self):
        for state in VOUCHER_WORKFLOW.terminal_states:
            assert VOUCHER_WORKFLOW.actions_from(state) == ()

    def test_editable_states(self):
        assert EDITABLE_STATES == {"draft", "pending"}

    def test_receive_moves_stock(self):
        assert VOUCHER_WORKFLOW.find_transition("ordered", "receive").moves_stock

    def test_sale_order_lifecycle(self):
        assert SALE_ORDER_WORKFLOW.initial_state == "pending"
        assert SALE_ORDER_WORKFLOW.actions_from("pending") == ("complete", "cancel")
        assert SALE_ORDER_WORKFLOW.actions_from("completed") == ("refund",)

    def test_definition_rejects_unknown_state(self):
        with pytest.raises(ValueError):
            Workflow(
                name="broken",
                description="",
                initial_state="a",
                states=("a",),
                transitions=(Transition("a", "b", action="go"),),
            )

    def test_definition_rejects_exit_from_terminal(self):
        with pytest.raises(ValueError):
            Workflow(
                name="broken",
                description="",
                initial_state="a",
                states=("a", "b"),
                transitions=(Transition("b", "a", action="reopen"),),
                terminal_states=("b",),
            )
