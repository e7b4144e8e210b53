# Overview: Variant identity: how one purchasable unit is addressed.

"""
Variant identity invariants (authoritative)

- A purchasable unit is addressed by (product_id, color_id, model_id, fragrance).
- model_id is "" for simple products; variable products always carry one.
- fragrance (or size, for sized goods) defaults to "Default" when unspecified.
- Resolution is exact: a selection that does not match a catalog variant fails,
  it never falls back to another color, model or fragrance.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .errors import ValidationError

DEFAULT_OPTION = "Default"
NO_MODEL = ""


def _clean(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass(frozen=True)
class VariantKey:
    product_id: str
    color_id: str
    model_id: str = NO_MODEL
    fragrance: str = DEFAULT_OPTION

    def as_filter(self) -> dict:
        """Column filters for the inventory table."""
        return {
            "product_id": self.product_id,
            "color_id": self.color_id,
            "variable_model_id": self.model_id,
            "fragrance": self.fragrance,
        }

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "color_id": self.color_id,
            "model_id": self.model_id,
            "fragrance": self.fragrance,
        }


@dataclass(frozen=True)
class VariantSelection:
    """
    What a client asked for. Accepts both the cart item shape
    ({"selected_color": {"color_id": ...}, "selected_model": {...}}) and a
    flat shape ({"color_id": ..., "model_id": ...}).
    """
    product_id: str
    color_id: str
    model_id: str = NO_MODEL
    fragrance: str = DEFAULT_OPTION
    size: str = ""

    @classmethod
    def from_payload(cls, item: dict) -> "VariantSelection":
        if not isinstance(item, dict):
            raise ValidationError("Each item must be an object")

        product_id = _clean(item.get("product_id"))
        if not product_id:
            raise ValidationError("product_id is required for every item")

        color = item.get("selected_color") or {}
        model = item.get("selected_model") or {}
        if not isinstance(color, dict) or not isinstance(model, dict):
            raise ValidationError("selected_color and selected_model must be objects")

        color_id = _clean(color.get("color_id") or item.get("color_id"))
        if not color_id:
            raise ValidationError(f"color_id is required for product {product_id}")

        model_id = _clean(model.get("model_id") or item.get("model_id"))
        size = _clean(item.get("selected_size") or item.get("size"))
        fragrance = _clean(item.get("selected_fragrance") or item.get("fragrance")) or size or DEFAULT_OPTION

        return cls(
            product_id=product_id,
            color_id=color_id,
            model_id=model_id,
            fragrance=fragrance,
            size=size,
        )


@dataclass(frozen=True)
class ResolvedVariant:
    key: VariantKey
    product_name: str
    color_name: str
    model_name: str
    unit_price: Decimal
    size: str = ""

    def describe(self) -> str:
        parts = [self.color_name]
        if self.key.model_id:
            parts.insert(0, self.model_name)
        if self.key.fragrance != DEFAULT_OPTION:
            parts.append(self.key.fragrance)
        return f"{self.product_name} ({' / '.join(parts)})"
