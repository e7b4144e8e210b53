"""
Offer resolver and management tests.

Verifies:
- Validity window (start inclusive, open or inclusive end)
- One active offer per color scope
- Model scoping for variable products
"""

import logging
from datetime import timedelta
from decimal import Decimal

import pytest

from storefront.errors import ConflictError, ValidationError, VariantNotFoundError
from storefront.extensions import db
from storefront.models import ProductOffer
from storefront.services import offer_service
from storefront.time_utils import utcnow


def _offer(product, pct="20", color_index=0, model_index=None, **fields):
    if model_index is None:
        color_id = product.colors[color_index].color_id
        model_id = None
    else:
        model = product.models[model_index]
        color_id = model.colors[color_index].color_id
        model_id = model.model_id
    offer, _ = offer_service.upsert_offer(
        product_id=product.product_id,
        color_id=color_id,
        model_id=model_id,
        payload={"offer_percentage": pct, **fields},
    )
    return offer


class TestResolveOffer:

    def test_no_offer(self, make_product):
        product = make_product()
        assert offer_service.resolve_offer(product.product_id, product.colors[0].color_id) is None

    def test_active_offer(self, make_product):
        product = make_product()
        offer = _offer(product, "15", offer_label="Diwali")

        resolved = offer_service.resolve_offer(product.product_id, product.colors[0].color_id)

        assert resolved.offer_id == offer.offer_id
        assert resolved.offer_percentage == Decimal("15")
        assert resolved.offer_label == "Diwali"

    def test_simple_product_ignores_model_id(self, make_product):
        product = make_product()
        _offer(product)
        resolved = offer_service.resolve_offer(product.product_id, product.colors[0].color_id, "")
        assert resolved is not None

    def test_multiple_active_offers_prefer_latest_update(self, make_product, caplog):
        product = make_product()
        first = _offer(product, pct="20")
        # A stray row under another model scope still matches a simple product
        stray = ProductOffer(
            product_id=product.product_id,
            product_name=first.product_name,
            color_id=first.color_id,
            color_name=first.color_name,
            variable_model_id="legacy-model",
            model_name="Legacy",
            offer_percentage=Decimal("35"),
            start_date=utcnow() - timedelta(minutes=1),
            updated_at=utcnow() + timedelta(minutes=5),
        )
        db.session.add(stray)
        db.session.commit()

        with caplog.at_level(logging.WARNING):
            resolved = offer_service.resolve_offer(product.product_id, first.color_id)

        assert resolved.offer_id == stray.offer_id
        assert resolved.offer_percentage == Decimal("35")
        assert "Multiple active offers" in caplog.text
        assert first.offer_id in caplog.text

    def test_future_offer_is_not_in_force(self, make_product):
        product = make_product()
        start = utcnow() + timedelta(days=2)
        _offer(product, start_date=start.isoformat())

        color_id = product.colors[0].color_id
        assert offer_service.resolve_offer(product.product_id, color_id) is None
        assert offer_service.resolve_offer(product.product_id, color_id, at=start + timedelta(hours=1)) is not None

    def test_expired_offer_is_not_in_force(self, make_product):
        product = make_product()
        now = utcnow()
        _offer(
            product,
            start_date=(now - timedelta(days=10)).isoformat(),
            end_date=(now - timedelta(days=1)).isoformat(),
        )
        assert offer_service.resolve_offer(product.product_id, product.colors[0].color_id) is None

    def test_end_date_is_inclusive(self, make_product):
        product = make_product()
        now = utcnow()
        end = now + timedelta(days=1)
        _offer(product, start_date=(now - timedelta(days=1)).isoformat(), end_date=end.isoformat())

        assert offer_service.resolve_offer(product.product_id, product.colors[0].color_id, at=end) is not None

    def test_deactivated_offer_is_not_in_force(self, make_product):
        product = make_product()
        offer = _offer(product)
        offer_service.deactivate_offer(offer.offer_id)
        assert offer_service.resolve_offer(product.product_id, product.colors[0].color_id) is None

    def test_variable_product_offer_is_scoped_to_model(self, make_variable_product):
        product = make_variable_product()
        small, large = product.models
        _offer(product, "30", model_index=1)

        assert offer_service.resolve_offer(
            product.product_id, large.colors[0].color_id, large.model_id
        ).offer_percentage == Decimal("30")
        assert offer_service.resolve_offer(
            product.product_id, small.colors[0].color_id, small.model_id
        ) is None


class TestOfferManagement:

    def test_upsert_updates_the_active_offer(self, make_product):
        product = make_product()
        first = _offer(product, "10")
        second, created = offer_service.upsert_offer(
            product_id=product.product_id,
            color_id=product.colors[0].color_id,
            payload={"offer_percentage": 25},
        )

        assert created is False
        assert second.offer_id == first.offer_id
        assert second.offer_percentage == Decimal("25")
        assert len(offer_service.list_product_offers(product.product_id)) == 1

    def test_reactivate_rejected_while_another_offer_holds_the_scope(self, make_product):
        product = make_product()
        old = _offer(product, "10")
        offer_service.deactivate_offer(old.offer_id)
        _offer(product, "20")

        with pytest.raises(ConflictError):
            offer_service.reactivate_offer(old.offer_id)

    def test_reactivate(self, make_product):
        product = make_product()
        offer = _offer(product)
        offer_service.deactivate_offer(offer.offer_id)
        assert offer_service.reactivate_offer(offer.offer_id).is_active is True

    @pytest.mark.parametrize(
        "payload",
        [
            {"offer_percentage": 120},
            {"offer_percentage": -5},
            {"offer_percentage": "abc"},
            {"offer_percentage": 10, "end_date": "2020-01-01T00:00:00Z", "start_date": "2020-02-01T00:00:00Z"},
            {"offer_percentage": 10, "is_active": False},
            {},
        ],
    )
    def test_rejects_invalid_payloads(self, make_product, payload):
        product = make_product()
        with pytest.raises(ValidationError):
            offer_service.upsert_offer(
                product_id=product.product_id,
                color_id=product.colors[0].color_id,
                payload=payload,
            )

    def test_unknown_color(self, make_product):
        product = make_product()
        with pytest.raises(VariantNotFoundError):
            offer_service.upsert_offer(product_id=product.product_id, color_id="nope", payload={"offer_percentage": 5})
