from decimal import Decimal

import pytest

from physiocare.errors import ValidationError
from physiocare.services.invoice_calculator import (
    MAX_AMOUNT,
    calculate_invoice,
    compute_discount,
    normalize_items,
    to_decimal,
)


@pytest.mark.invoices
class TestInvoiceCalculator:
    """Pure invoice arithmetic."""

    def test_percent_discount_scenario(self):
        totals = calculate_invoice(
            [{"quantity": 2, "unit_price": 10}], discount_type="percent", discount_value=10
        )
        assert totals.subtotal == Decimal("20.00")
        assert totals.discount_amount == Decimal("2.00")
        assert totals.total_amount == Decimal("18.00")

    def test_subtotal_sums_only_kept_items(self):
        items = [
            {"service_name": "Consultation", "quantity": 2, "unit_price": "15.50"},
            {"service": "Ultrasound", "price": 20},
            {"service_name": "Refund line", "quantity": 0, "unit_price": 40},
            {"service_name": "Negative", "quantity": -1, "unit_price": 40},
        ]
        totals = calculate_invoice(items)
        assert [i.service_name for i in totals.items] == ["Consultation", "Ultrasound"]
        assert totals.subtotal == Decimal("51.00")
        assert totals.total_amount == Decimal("51.00")

    def test_unlabelled_items_get_a_positional_name(self):
        items = normalize_items(
            [
                {"service_name": "Consultation", "quantity": 1, "unit_price": 10},
                {"service_name": "   ", "quantity": 5, "unit_price": 100},
                {"quantity": 2, "unit_price": 10},
            ]
        )
        assert [i.service_name for i in items] == ["Consultation", "Item 2", "Item 3"]

    def test_missing_quantity_defaults_to_one_and_missing_price_to_zero(self):
        items = normalize_items([{"service_name": "Assessment"}])
        assert len(items) == 1
        assert items[0].quantity == Decimal("1")
        assert items[0].unit_price == Decimal("0")

    def test_percent_discount_never_exceeds_subtotal(self):
        totals = calculate_invoice(
            [{"service_name": "Massage", "quantity": 1, "unit_price": 40}],
            discount_type="percent",
            discount_value=150,
        )
        assert totals.discount_amount == Decimal("40.00")
        assert totals.total_amount == Decimal("0.00")

    def test_flat_discount_larger_than_subtotal_is_clamped(self):
        totals = calculate_invoice(
            [{"service_name": "Massage", "quantity": 1, "unit_price": 40}],
            discount_type="flat",
            discount_value=75,
        )
        assert totals.discount_amount == Decimal("40.00")
        assert totals.total_amount >= 0

    def test_huge_flat_discount_is_clamped_to_subtotal(self):
        totals = calculate_invoice(
            [{"service_name": "Massage", "quantity": 1, "unit_price": 40}],
            discount_type="flat",
            discount_value="1e30",
        )
        assert totals.discount_amount == Decimal("40.00")
        assert totals.total_amount == Decimal("0.00")
        assert totals.discount_value == MAX_AMOUNT

    def test_huge_percent_discount_is_clamped_to_subtotal(self):
        totals = calculate_invoice(
            [{"service_name": "Massage", "quantity": 1, "unit_price": 40}],
            discount_type="percent",
            discount_value=1e300,
        )
        assert totals.discount_amount == Decimal("40.00")

    @pytest.mark.parametrize(
        "item",
        [
            {"service_name": "Massage", "quantity": "1e30", "unit_price": 40},
            {"service_name": "Massage", "quantity": 1, "unit_price": "1e30"},
            {"service_name": "Massage", "quantity": 99999999, "unit_price": 99999999},
        ],
    )
    def test_amounts_past_the_money_column_are_rejected(self, item):
        with pytest.raises(ValidationError):
            calculate_invoice([item])

    def test_negative_discount_is_treated_as_zero(self):
        assert compute_discount(Decimal("50"), "flat", Decimal("-10")) == Decimal("0")

    def test_unknown_discount_type_normalizes_to_none(self):
        totals = calculate_invoice(
            [{"service_name": "Session", "unit_price": 30}],
            discount_type="bogus",
            discount_value=10,
        )
        assert totals.discount_type == "none"
        assert totals.discount_amount == Decimal("0.00")

    def test_caller_subtotal_used_when_items_sum_to_zero(self):
        totals = calculate_invoice([], subtotal="80", discount_type="flat", discount_value=5)
        assert totals.subtotal == Decimal("80.00")
        assert totals.total_amount == Decimal("75.00")

    def test_no_items_and_no_totals_is_zero(self):
        totals = calculate_invoice([])
        assert totals.subtotal == Decimal("0.00")
        assert totals.total_amount == Decimal("0")

    def test_positive_caller_total_overrides_by_default(self):
        totals = calculate_invoice(
            [{"service_name": "Session", "quantity": 1, "unit_price": 30}], total_amount=25
        )
        assert totals.total_overridden is True
        assert totals.total_amount == Decimal("25.00")
        assert totals.computed_total == Decimal("30.00")

    def test_caller_total_ignored_when_override_disabled(self):
        totals = calculate_invoice(
            [{"service_name": "Session", "quantity": 1, "unit_price": 30}],
            total_amount=1,
            allow_total_override=False,
        )
        assert totals.total_overridden is False
        assert totals.total_amount == Decimal("30.00")

    @pytest.mark.parametrize("raw", [None, "", "abc", "NaN", "Infinity", True, [1]])
    def test_unparseable_numbers_become_zero(self, raw):
        assert to_decimal(raw) == Decimal("0")

    def test_money_rounds_half_up(self):
        totals = calculate_invoice(
            [{"service_name": "Tape", "quantity": 3, "unit_price": "0.335"}]
        )
        assert totals.subtotal == Decimal("1.01")
