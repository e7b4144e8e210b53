# Overview: Flask API routes for product offers; parses input and returns JSON responses.

# backend/storefront/routes/offers.py
from flask import Blueprint, jsonify, request

from ..errors import StorefrontError
from ..services import offer_service
from ..decorators import require_auth, require_role

offers_bp = Blueprint("offers", __name__, url_prefix="/api/offers")


@offers_bp.get("/resolve")
def resolve_offer_route():
    """Offer in force right now. Query: product_id, color_id, model_id?"""
    product_id = request.args.get("product_id")
    color_id = request.args.get("color_id")
    if not product_id or not color_id:
        return jsonify({"error": "bad_request", "message": "product_id and color_id are required"}), 400

    offer = offer_service.resolve_offer(product_id, color_id, request.args.get("model_id"))
    return jsonify({"offer": offer.to_dict() if offer else None}), 200


@offers_bp.post("")
@require_auth
@require_role("admin")
def upsert_offer_route():
    """
    Create or update the active offer of a product color.

    Body: {product_id, color_id, model_id?, offer_percentage, offer_label?, start_date?, end_date?}
    """
    payload = dict(request.get_json(silent=True) or {})
    product_id = payload.pop("product_id", None)
    color_id = payload.pop("color_id", None)
    model_id = payload.pop("model_id", None)

    if not product_id or not color_id:
        return jsonify({"error": "bad_request", "message": "product_id and color_id are required"}), 400

    try:
        offer, created = offer_service.upsert_offer(
            product_id=product_id,
            color_id=color_id,
            model_id=model_id,
            payload=payload,
        )
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"offer": offer.to_dict(), "created": created}), 201 if created else 200


@offers_bp.get("/product/<product_id>")
@require_auth
@require_role("admin")
def list_product_offers_route(product_id: str):
    active_only = request.args.get("active", "").lower() in ("1", "true", "yes")
    offers = offer_service.list_product_offers(product_id, active_only=active_only)
    return jsonify({"offers": [o.to_dict() for o in offers]}), 200


@offers_bp.put("/<offer_id>/deactivate")
@require_auth
@require_role("admin")
def deactivate_offer_route(offer_id: str):
    try:
        offer = offer_service.deactivate_offer(offer_id)
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"offer": offer.to_dict()}), 200


@offers_bp.put("/<offer_id>/reactivate")
@require_auth
@require_role("admin")
def reactivate_offer_route(offer_id: str):
    try:
        offer = offer_service.reactivate_offer(offer_id)
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"offer": offer.to_dict()}), 200
