"""
Pricing calculator tests.

Verifies:
- Line pricing and half-up rounding of the offer price
- Strict free-shipping boundary at the threshold
- Order total identity
"""

from decimal import Decimal

import pytest

from storefront.errors import InvalidQuantityError, ValidationError
from storefront.services.pricing_service import (
    PricingPolicy,
    policy_from_config,
    price_line,
    price_order,
)


class TestPriceLine:

    def test_twenty_percent_offer_on_two_units(self):
        line = price_line(500, 20, 2)
        assert line.offer_price == Decimal("400.00")
        assert line.line_total == Decimal("800.00")
        assert line.line_savings == Decimal("200.00")

    def test_is_deterministic(self):
        assert price_line("500", "20", 2) == price_line(Decimal("500.00"), 20, 2)

    def test_no_offer_keeps_unit_price(self):
        line = price_line("249.50", 0, 3)
        assert line.offer_price == Decimal("249.50")
        assert line.line_total == Decimal("748.50")
        assert line.line_savings == Decimal("0.00")

    def test_offer_price_rounds_half_up(self):
        # 1.50 * 0.75 = 1.125
        assert price_line("1.50", 25, 1).offer_price == Decimal("1.13")

    def test_offer_price_rounds_down_below_half(self):
        # 99.99 * 0.85 = 84.9915
        assert price_line("99.99", 15, 1).offer_price == Decimal("84.99")

    def test_full_discount(self):
        line = price_line(300, 100, 2)
        assert line.offer_price == Decimal("0.00")
        assert line.line_savings == Decimal("600.00")

    @pytest.mark.parametrize("pct", [-1, "100.01", 150])
    def test_rejects_out_of_range_percentage(self, pct):
        with pytest.raises(ValidationError):
            price_line(100, pct, 1)

    @pytest.mark.parametrize("quantity", [0, -2, 1.5, True])
    def test_rejects_bad_quantity(self, quantity):
        with pytest.raises(InvalidQuantityError):
            price_line(100, 0, quantity)


class TestPriceOrder:

    def test_exactly_at_threshold_still_pays_shipping(self):
        pricing = price_order([price_line(1000, 0, 1)])
        assert pricing.subtotal == Decimal("1000.00")
        assert pricing.shipping == Decimal("50.00")
        assert pricing.tax == Decimal("180.00")
        assert pricing.total == Decimal("1230.00")

    def test_above_threshold_ships_free(self):
        pricing = price_order([price_line(600, 0, 2)])
        assert pricing.shipping == Decimal("0.00")
        assert pricing.tax == Decimal("216.00")
        assert pricing.total == Decimal("1416.00")

    def test_one_cent_above_threshold_ships_free(self):
        pricing = price_order([price_line("1000.01", 0, 1)])
        assert pricing.shipping == Decimal("0.00")

    def test_threshold_applies_to_net_subtotal(self):
        # 1100 gross, 990 after a 10% offer
        pricing = price_order([price_line(1100, 10, 1)])
        assert pricing.subtotal == Decimal("1100.00")
        assert pricing.total_savings == Decimal("110.00")
        assert pricing.net_subtotal == Decimal("990.00")
        assert pricing.shipping == Decimal("50.00")

    def test_mixed_lines(self):
        pricing = price_order([price_line(500, 20, 2), price_line("149.99", 0, 1)])
        assert pricing.subtotal == Decimal("1149.99")
        assert pricing.total_savings == Decimal("200.00")
        assert pricing.net_subtotal == Decimal("949.99")
        assert pricing.shipping == Decimal("50.00")
        # 949.99 * 0.18 = 170.9982
        assert pricing.tax == Decimal("171.00")
        assert pricing.total == Decimal("1170.99")

    @pytest.mark.parametrize(
        "lines",
        [
            [(500, 20, 2)],
            [("19.99", 0, 7), ("5.55", "12.5", 3)],
            [("1.50", 25, 1), ("999.99", 33, 4), ("0.01", 0, 99)],
        ],
    )
    def test_total_identity(self, lines):
        priced = [price_line(*line) for line in lines]
        pricing = price_order(priced)
        assert sum(l.line_total for l in priced) == pricing.subtotal - pricing.total_savings
        expected = (pricing.subtotal - pricing.total_savings + pricing.shipping + pricing.tax).quantize(Decimal("0.01"))
        assert pricing.total == expected

    def test_custom_policy(self):
        policy = PricingPolicy(
            tax_percentage=Decimal("5"),
            free_shipping_threshold=Decimal("200"),
            shipping_fee=Decimal("15"),
        )
        pricing = price_order([price_line(100, 0, 1)], policy)
        assert pricing.shipping == Decimal("15.00")
        assert pricing.tax == Decimal("5.00")
        assert pricing.total == Decimal("120.00")

    def test_policy_from_config(self):
        policy = policy_from_config({
            "TAX_PERCENTAGE": "12",
            "FREE_SHIPPING_THRESHOLD": "500",
            "SHIPPING_FEE": "40",
        })
        assert policy == PricingPolicy(Decimal("12"), Decimal("500"), Decimal("40"))
