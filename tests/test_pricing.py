"""Tests for checkout and sourcing-request pricing."""

import pytest

from shared.pricing import (
    calculate_order_totals,
    calculate_request_costs,
    order_final_amount,
    parse_price,
    request_total,
    shipping_for_urgency,
)


class TestOrderTotals:
    def test_flat_shipping_below_threshold(self):
        totals = calculate_order_totals([(15.0, 3)])
        assert totals.subtotal == 45.0
        assert totals.shipping == 9.99
        assert totals.tax == 8.55
        assert totals.total == 63.54

    def test_free_shipping_above_threshold(self):
        totals = calculate_order_totals([(20.0, 3)])
        assert totals.subtotal == 60.0
        assert totals.shipping == 0
        assert totals.tax == 11.40
        assert totals.total == 71.40

    def test_threshold_is_exclusive(self):
        """Exactly 50 still pays shipping."""
        totals = calculate_order_totals([(25.0, 2)])
        assert totals.shipping == 9.99
        assert totals.total == 69.49

    def test_multiple_lines(self):
        totals = calculate_order_totals([(10.0, 1), (2.5, 4)])
        assert totals.subtotal == 20.0
        assert totals.tax == 3.8

    def test_final_amount_is_sum_of_parts(self):
        assert order_final_amount(45.0, 9.99, 8.55) == 63.54


class TestParsePrice:
    @pytest.mark.parametrize("raw,expected", [
        ("€100", 100.0),
        ("$1,299.99", 1299.99),
        ("  42.5 EUR", 42.5),
        (19.99, 19.99),
        ("", 0.0),
        (None, 0.0),
        ("free", 0.0),
    ])
    def test_lenient_parsing(self, raw, expected):
        assert parse_price(raw) == expected


class TestRequestCosts:
    def test_high_urgency(self):
        costs = calculate_request_costs("€100", "high")
        assert costs.base_price == 100.0
        assert costs.service_fee == 15.0
        assert costs.shipping_cost == 55.0
        assert costs.total == 170.0

    def test_urgency_tiers(self):
        assert shipping_for_urgency("low") == 20.0
        assert shipping_for_urgency("medium") == 35.0
        assert shipping_for_urgency("high") == 55.0

    def test_unparseable_price_costs_only_shipping(self):
        costs = calculate_request_costs("ask seller", "low")
        assert costs.base_price == 0.0
        assert costs.service_fee == 0.0
        assert costs.total == 20.0

    def test_service_fee_rounds_half_up(self):
        # 0.15 * 10.10 = 1.515
        assert calculate_request_costs("10.10", "low").service_fee == 1.52

    def test_request_total(self):
        assert request_total(100, 55, 15) == 170.0
