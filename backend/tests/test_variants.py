"""
Variant identity tests.

Verifies:
- Selection parsing from cart-shaped and flat payloads
- Exact resolution against the catalog (no silent fallback)
- Simple vs variable products share one accessor
"""

import pytest

from storefront.errors import VariantNotFoundError, ValidationError
from storefront.variants import DEFAULT_OPTION, VariantKey, VariantSelection


class TestVariantSelection:

    def test_cart_item_shape(self):
        selection = VariantSelection.from_payload({
            "product_id": "p1",
            "selected_color": {"color_id": "c1", "color_name": "Red"},
            "selected_model": {"model_id": "m1"},
            "selected_fragrance": "Rose",
        })
        assert selection == VariantSelection("p1", "c1", "m1", "Rose", "")

    def test_flat_shape(self):
        selection = VariantSelection.from_payload({"product_id": "p1", "color_id": "c1"})
        assert selection.model_id == ""
        assert selection.fragrance == DEFAULT_OPTION

    def test_size_stands_in_for_fragrance(self):
        selection = VariantSelection.from_payload({"product_id": "p1", "color_id": "c1", "selected_size": "XL"})
        assert selection.fragrance == "XL"
        assert selection.size == "XL"

    def test_blank_fragrance_defaults(self):
        selection = VariantSelection.from_payload({"product_id": "p1", "color_id": "c1", "selected_fragrance": "  "})
        assert selection.fragrance == DEFAULT_OPTION

    @pytest.mark.parametrize(
        "payload",
        [
            {"color_id": "c1"},
            {"product_id": "p1"},
            {"product_id": "p1", "selected_color": "red"},
            "not-an-object",
        ],
    )
    def test_rejects_incomplete_payloads(self, payload):
        with pytest.raises(ValidationError):
            VariantSelection.from_payload(payload)

    def test_key_filter_uses_inventory_columns(self):
        key = VariantKey("p1", "c1")
        assert key.as_filter() == {
            "product_id": "p1",
            "color_id": "c1",
            "variable_model_id": "",
            "fragrance": "Default",
        }


class TestResolveVariant:

    def test_simple_product_default_option(self, make_product):
        product = make_product(price="500.00")
        color = product.colors[0]
        variant = product.resolve_variant(VariantSelection(product.product_id, color.color_id))
        assert variant.key == VariantKey(product.product_id, color.color_id, "", "Default")
        assert str(variant.unit_price) == "500.00"
        assert variant.describe() == "Rose Candle (Red)"

    def test_simple_product_ignores_model(self, make_product):
        product = make_product()
        color = product.colors[0]
        variant = product.resolve_variant(VariantSelection(product.product_id, color.color_id, "ghost-model"))
        assert variant.key.model_id == ""

    def test_fragrance_option(self, make_product):
        product = make_product(fragrances=["Rose", "Lavender"])
        color = product.colors[0]
        variant = product.resolve_variant(VariantSelection(product.product_id, color.color_id, fragrance="Lavender"))
        assert variant.key.fragrance == "Lavender"
        assert variant.describe() == "Rose Candle (Red / Lavender)"

    def test_unknown_fragrance_is_not_substituted(self, make_product):
        product = make_product(fragrances=["Rose"])
        color = product.colors[0]
        with pytest.raises(VariantNotFoundError):
            product.resolve_variant(VariantSelection(product.product_id, color.color_id, fragrance="Vanilla"))

    def test_unknown_color(self, make_product):
        product = make_product()
        with pytest.raises(VariantNotFoundError):
            product.resolve_variant(VariantSelection(product.product_id, "no-such-color"))

    def test_variable_product_requires_model(self, make_variable_product):
        product = make_variable_product()
        color = product.models[0].colors[0]
        with pytest.raises(VariantNotFoundError):
            product.resolve_variant(VariantSelection(product.product_id, color.color_id))

    def test_variable_product_color_must_belong_to_model(self, make_variable_product):
        product = make_variable_product()
        small, large = product.models
        with pytest.raises(VariantNotFoundError):
            product.resolve_variant(VariantSelection(product.product_id, large.colors[0].color_id, small.model_id))

    def test_variable_product_prices_per_model(self, make_variable_product):
        product = make_variable_product()
        large = product.models[1]
        variant = product.resolve_variant(
            VariantSelection(product.product_id, large.colors[0].color_id, large.model_id)
        )
        assert variant.key.model_id == large.model_id
        assert variant.model_name == "Large"
        assert str(variant.unit_price) == "800.00"
        assert variant.describe() == "Diffuser Set (Large / White)"

    def test_iter_variants_covers_every_option(self, make_product):
        product = make_product(colors=[
            {"color_name": "Red", "current_price": "100", "fragrances": ["Rose", "Oud"]},
            {"color_name": "Blue", "current_price": "120"},
        ])
        keys = [(v.color_name, v.key.fragrance) for v in product.iter_variants()]
        assert keys == [("Red", "Rose"), ("Red", "Oud"), ("Blue", "Default")]
