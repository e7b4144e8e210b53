# Overview: Pure order pricing; no database or request access.

# backend/storefront/services/pricing_service.py
"""
Pricing rules (authoritative)

- offer_price = round2(unit_price * (1 - offer_percentage / 100))
- line total = offer_price * quantity, line savings = (unit_price - offer_price) * quantity
- subtotal = sum(unit_price * quantity), total_savings = sum(line savings)
- net_subtotal = subtotal - total_savings
- shipping = 0 only when net_subtotal is strictly greater than the threshold
- tax = round2(net_subtotal * tax_percentage / 100)
- total = round2(net_subtotal + shipping + tax)

Rounding happens at offer_price, tax and total only; everything else is
exact Decimal arithmetic on two-decimal inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..errors import InvalidQuantityError, ValidationError
from ..money import ZERO, round2, to_decimal

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PricingPolicy:
    tax_percentage: Decimal = Decimal("18")
    free_shipping_threshold: Decimal = Decimal("1000")
    shipping_fee: Decimal = Decimal("50")


@dataclass(frozen=True)
class LinePricing:
    unit_price: Decimal
    offer_percentage: Decimal
    quantity: int
    offer_price: Decimal
    line_subtotal: Decimal
    line_total: Decimal
    line_savings: Decimal


@dataclass(frozen=True)
class OrderPricing:
    subtotal: Decimal
    total_savings: Decimal
    net_subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    tax_percentage: Decimal
    total: Decimal


def policy_from_config(config) -> PricingPolicy:
    return PricingPolicy(
        tax_percentage=to_decimal(config.get("TAX_PERCENTAGE", "18")),
        free_shipping_threshold=to_decimal(config.get("FREE_SHIPPING_THRESHOLD", "1000")),
        shipping_fee=to_decimal(config.get("SHIPPING_FEE", "50")),
    )


def price_line(unit_price, offer_percentage, quantity: int) -> LinePricing:
    unit_price = round2(unit_price)
    offer_percentage = to_decimal(offer_percentage)

    if unit_price < ZERO:
        raise ValidationError("unit_price cannot be negative", details={"unit_price": str(unit_price)})
    if offer_percentage < 0 or offer_percentage > HUNDRED:
        raise ValidationError(
            "offer_percentage must be between 0 and 100",
            details={"offer_percentage": str(offer_percentage)},
        )
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError("Quantity must be a positive integer", details={"quantity": quantity})

    offer_price = round2(unit_price * (1 - offer_percentage / HUNDRED))
    return LinePricing(
        unit_price=unit_price,
        offer_percentage=offer_percentage,
        quantity=quantity,
        offer_price=offer_price,
        line_subtotal=unit_price * quantity,
        line_total=offer_price * quantity,
        line_savings=(unit_price - offer_price) * quantity,
    )


def price_order(lines: list[LinePricing], policy: PricingPolicy | None = None) -> OrderPricing:
    policy = policy or PricingPolicy()

    subtotal = sum((line.line_subtotal for line in lines), ZERO)
    total_savings = sum((line.line_savings for line in lines), ZERO)
    net_subtotal = subtotal - total_savings

    # Strictly greater: an order of exactly the threshold still pays shipping
    shipping = ZERO if net_subtotal > policy.free_shipping_threshold else round2(policy.shipping_fee)
    tax = round2(net_subtotal * policy.tax_percentage / HUNDRED)

    return OrderPricing(
        subtotal=round2(subtotal),
        total_savings=round2(total_savings),
        net_subtotal=round2(net_subtotal),
        shipping=shipping,
        tax=tax,
        tax_percentage=policy.tax_percentage,
        total=round2(net_subtotal + shipping + tax),
    )
