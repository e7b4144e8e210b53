# Overview: Service-layer operations for product offers; resolves the discount in force for a variant.

# backend/storefront/services/offer_service.py

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, OfferNotFoundError
from ..models import ProductOffer
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, enforce_rules_offer, validate_payload
from ..variants import VariantSelection
from . import catalog_service

OFFER_POLICY = ModelValidationPolicy(
    writable_fields={"offer_percentage", "offer_label", "start_date", "end_date"},
    required_on_create={"offer_percentage"},
)


def resolve_offer(
    product_id: str,
    color_id: str,
    model_id: str | None = None,
    at: datetime | None = None,
) -> ProductOffer | None:
    """
    The offer in force for a variant at a moment, or None.

    model_id narrows the scope for variable products. Simple products carry
    no model, so an empty model_id leaves the scope at product and color.
    More than one match breaks the one-active-offer rule: the most recently
    updated offer wins and the anomaly is logged.
    """
    at = at or utcnow()

    query = db.session.query(ProductOffer).filter(
        ProductOffer.product_id == product_id,
        ProductOffer.color_id == color_id,
        ProductOffer.is_active.is_(True),
        ProductOffer.start_date <= at,
        or_(ProductOffer.end_date.is_(None), ProductOffer.end_date >= at),
    )
    if model_id:
        query = query.filter(ProductOffer.variable_model_id == model_id)

    offers = query.order_by(ProductOffer.updated_at.desc(), ProductOffer.id.desc()).all()
    if not offers:
        return None
    if len(offers) > 1:
        current_app.logger.warning(
            "Multiple active offers for product %s color %s model %s: %s; using %s",
            product_id,
            color_id,
            model_id or "-",
            [o.offer_id for o in offers],
            offers[0].offer_id,
        )
    return offers[0]


def get_offer(offer_id: str) -> ProductOffer:
    offer = db.session.query(ProductOffer).filter_by(offer_id=offer_id).first()
    if offer is None:
        raise OfferNotFoundError("Offer not found", details={"offer_id": offer_id})
    return offer


def _active_in_scope(product_id: str, model_id: str, color_id: str) -> ProductOffer | None:
    return (
        db.session.query(ProductOffer)
        .filter_by(product_id=product_id, variable_model_id=model_id, color_id=color_id, is_active=True)
        .first()
    )


def upsert_offer(
    *,
    product_id: str,
    color_id: str,
    model_id: str | None = None,
    payload: dict,
) -> tuple[ProductOffer, bool]:
    """
    Create or update the active offer of a color scope.

    Returns (offer, created).
    """
    _, variant = catalog_service.find_product_variant(
        VariantSelection(product_id=product_id, color_id=color_id, model_id=model_id or "")
    )
    scope = variant.key

    existing = _active_in_scope(scope.product_id, scope.model_id, scope.color_id)
    patch = validate_payload(model=ProductOffer, payload=payload, policy=OFFER_POLICY, partial=existing is not None)

    if existing is not None:
        merged = {
            "offer_percentage": existing.offer_percentage,
            "start_date": existing.start_date,
            "end_date": existing.end_date,
        }
        merged.update(patch)
        enforce_rules_offer(merged)
        for key, value in patch.items():
            setattr(existing, key, value)
        offer, created = existing, False
    else:
        if patch.get("start_date") is None:
            patch.pop("start_date", None)
        enforce_rules_offer({**patch, "start_date": patch.get("start_date", utcnow())})
        offer = ProductOffer(
            product_id=scope.product_id,
            product_name=variant.product_name,
            color_id=scope.color_id,
            color_name=variant.color_name,
            model_name=variant.model_name,
            variable_model_id=scope.model_id,
            is_active=True,
            **patch,
        )
        db.session.add(offer)
        created = True

    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise ConflictError(
            "Another active offer already exists for this color",
            details=scope.to_dict(),
        ) from e

    current_app.logger.info(
        "%s offer %s (%s%%) on %s", "Created" if created else "Updated",
        offer.offer_id, offer.offer_percentage, variant.describe(),
    )
    return offer, created


def deactivate_offer(offer_id: str) -> ProductOffer:
    offer = get_offer(offer_id)
    offer.is_active = False
    db.session.commit()
    return offer


def reactivate_offer(offer_id: str) -> ProductOffer:
    offer = get_offer(offer_id)
    if offer.is_active:
        return offer

    holder = _active_in_scope(offer.product_id, offer.variable_model_id, offer.color_id)
    if holder is not None:
        raise ConflictError(
            "Another active offer already exists for this color",
            details={"offer_id": holder.offer_id},
        )

    offer.is_active = True
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise ConflictError("Another active offer already exists for this color") from e
    return offer


def list_product_offers(product_id: str, *, active_only: bool = False) -> list[ProductOffer]:
    query = db.session.query(ProductOffer).filter_by(product_id=product_id)
    if active_only:
        query = query.filter_by(is_active=True)
    return query.order_by(ProductOffer.created_at.desc(), ProductOffer.id.desc()).all()
