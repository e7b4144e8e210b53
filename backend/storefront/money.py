# Overview: Decimal money helpers shared by models and pricing.

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value) -> Decimal:
    """Coerce int/str/float/Decimal to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))


def round2(value) -> Decimal:
    """Round to two decimals, half-up (0.005 -> 0.01)."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_json_number(value) -> float | None:
    """Serialize a stored amount for JSON responses."""
    if value is None:
        return None
    return float(round2(value))
