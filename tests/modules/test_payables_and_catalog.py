"""
Tests for accounts payable and the product catalog.

Payables:
- Partial, full and over-payment
- Overdue refresh and payment terms

Catalog:
- Product creation and UOM list maintenance
- UOM changes that affect recorded lines are flagged, not blocked
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from stock_engines.uom import get_conversion_rate
from stock_kernel.domain.products import UnitOfMeasure
from stock_kernel.exceptions import (
    BaseUOMViolationError,
    DuplicateUOMError,
    InvalidUOMListError,
    OverpaymentError,
    UnknownPayableError,
    UnknownProductError,
)
from stock_modules.payables.helpers import due_date_for_terms
from stock_modules.payables.models import PayableStatus, PaymentTerms
from stock_modules.purchasing.models import VoucherLineInput

from conftest import WAREHOUSE


@pytest.fixture
def payable(receiving_service, payables_service, supplier, soda, test_actor_id):
    """A 120.00 payable, due 2024-03-31."""
    voucher = receiving_service.create_voucher(
        supplier.id, WAREHOUSE,
        [VoucherLineInput(soda.id, Decimal("10"), "case", Decimal("12.00"))],
        test_actor_id,
    )
    receiving_service.submit(voucher.id, test_actor_id)
    result = receiving_service.receive(voucher.id, test_actor_id)
    return payables_service.get(result.payable_id)


class TestPayables:
    def test_new_payable_is_outstanding(self, payable):
        assert payable.status is PayableStatus.OUTSTANDING
        assert payable.amount == Decimal("120.00")
        assert payable.outstanding == Decimal("120.00")

    def test_partial_then_full_payment(self, payables_service, payable, deterministic_clock, test_actor_id):
        partial = payables_service.record_payment(payable.id, Decimal("50.00"), test_actor_id)
        assert partial.status is PayableStatus.OUTSTANDING
        assert partial.outstanding == Decimal("70.00")

        deterministic_clock.advance_days(3)
        paid = payables_service.record_payment(payable.id, Decimal("70.00"), test_actor_id)
        assert paid.is_settled
        assert paid.paid_at == deterministic_clock.now()
        assert payables_service.list_unpaid() == []

    def test_overpayment_is_rejected(self, payables_service, payable, test_actor_id):
        with pytest.raises(OverpaymentError) as exc_info:
            payables_service.record_payment(payable.id, Decimal("120.01"), test_actor_id)

        assert Decimal(exc_info.value.outstanding) == Decimal("120.00")
        assert payables_service.get(payable.id).amount_paid == Decimal("0")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    def test_non_positive_payment_is_rejected(self, payables_service, payable, amount, test_actor_id):
        with pytest.raises(ValueError):
            payables_service.record_payment(payable.id, amount, test_actor_id)

    def test_unknown_payable(self, payables_service, test_actor_id):
        with pytest.raises(UnknownPayableError):
            payables_service.record_payment(uuid4(), Decimal("1"), test_actor_id)

    def test_refresh_overdue(self, payables_service, payable, test_actor_id):
        assert payables_service.refresh_overdue(test_actor_id, as_of=date(2024, 3, 31)) == []

        overdue = payables_service.refresh_overdue(test_actor_id, as_of=date(2024, 4, 1))

        assert [p.id for p in overdue] == [payable.id]
        assert payables_service.get(payable.id).status is PayableStatus.OVERDUE
        assert [p.id for p in payables_service.list_unpaid(payable.supplier_id)] == [payable.id]

    def test_overdue_payable_can_still_be_settled(self, payables_service, payable, test_actor_id):
        payables_service.refresh_overdue(test_actor_id, as_of=date(2024, 5, 1))

        settled = payables_service.record_payment(payable.id, Decimal("120.00"), test_actor_id)

        assert settled.status is PayableStatus.PAID

    @pytest.mark.parametrize(
        "terms, due",
        [
            (PaymentTerms.NET_15, date(2024, 3, 16)),
            (PaymentTerms.NET_30, date(2024, 3, 31)),
            ("Net 60", date(2024, 4, 30)),
            (PaymentTerms.COD, date(2024, 3, 1)),
        ],
    )
    def test_due_date_for_terms(self, terms, due):
        assert due_date_for_terms(terms, date(2024, 3, 1)) == due

    def test_unknown_terms(self):
        with pytest.raises(ValueError):
            due_date_for_terms("Net 45", date(2024, 3, 1))


class TestCatalog:
    def test_default_list_is_base_only(self, catalog, test_actor_id):
        product = catalog.create_product("Eggs", "piece", test_actor_id)

        assert product.uom_names == ("piece",)
        assert catalog.get_product(product.id) == product

    def test_add_update_remove(self, catalog, soda, test_actor_id):
        catalog.add_uom(soda.id, "six-pack", 6, test_actor_id)
        catalog.update_uom(soda.id, "case", 12, test_actor_id)
        change = catalog.remove_uom(soda.id, "six-pack", test_actor_id)

        assert change.product.uom_names == ("bottle", "case")
        stored = catalog.get_product(soda.id)
        assert get_conversion_rate("case", stored.uom_list) == Decimal("12")

    def test_invalid_changes_leave_list_untouched(self, catalog, soda, test_actor_id):
        with pytest.raises(DuplicateUOMError):
            catalog.add_uom(soda.id, "case", 12, test_actor_id)
        with pytest.raises(BaseUOMViolationError):
            catalog.remove_uom(soda.id, "bottle", test_actor_id)

        assert catalog.get_product(soda.id).uom_names == ("bottle", "case")

    def test_unknown_product(self, catalog, test_actor_id):
        with pytest.raises(UnknownProductError):
            catalog.add_uom(uuid4(), "case", 12, test_actor_id)

    def test_invalid_list_is_rejected_on_create(self, catalog, test_actor_id):
        with pytest.raises(InvalidUOMListError):
            catalog.create_product(
                "Flour", "kilo", test_actor_id, uom_list=[UnitOfMeasure("sack", Decimal("25"))]
            )

    def test_change_to_recorded_uom_is_flagged(self, catalog, receiving_service, supplier, soda, test_actor_id, captured_logs):
        receiving_service.create_voucher(
            supplier.id, WAREHOUSE,
            [VoucherLineInput(soda.id, Decimal("1"), "case", Decimal("12.00"))],
            test_actor_id,
        )

        change = catalog.update_uom(soda.id, "case", 12, test_actor_id)

        assert change.referenced_by_history
        assert catalog.is_uom_referenced(soda.id, "case")
        assert not catalog.is_uom_referenced(soda.id, "bottle")
        assert any(r["message"] == "uom_change_affects_history" for r in captured_logs())

    def test_recorded_lines_keep_their_snapshot(self, catalog, receiving_service, supplier, soda, test_actor_id):
        voucher = receiving_service.create_voucher(
            supplier.id, WAREHOUSE,
            [VoucherLineInput(soda.id, Decimal("1"), "case", Decimal("12.00"))],
            test_actor_id,
        )

        catalog.update_uom(soda.id, "case", 12, test_actor_id)

        line = receiving_service.get_voucher(voucher.id).lines[0]
        assert (line.conversion_to_base, line.base_quantity) == (Decimal("24"), 24)

    def test_deactivated_product_drops_out_of_listing(self, catalog, rice, soda, test_actor_id):
        catalog.deactivate_product(soda.id, test_actor_id)

        assert [p.name for p in catalog.list_products()] == ["Rice"]
        assert len(catalog.list_products(active_only=False)) == 2
