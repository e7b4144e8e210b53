# Overview: Flask API routes for the shopping cart; parses input and returns JSON responses.

# backend/storefront/routes/cart.py
from flask import Blueprint, g, jsonify, request

from ..errors import StorefrontError
from ..services import cart_service
from ..decorators import require_auth

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


def _cart_owner() -> str:
    # Admins may inspect any cart with ?user_id=
    if g.identity.is_admin and request.args.get("user_id"):
        return request.args["user_id"]
    return g.identity.subject_id


@cart_bp.get("")
@require_auth
def get_cart_route():
    items = cart_service.list_by_user(_cart_owner())
    return jsonify({"items": [i.to_dict() for i in items], "count": len(items)}), 200


@cart_bp.post("/items")
@require_auth
def add_cart_item_route():
    """Body: {product_id, selected_color: {color_id}, selected_model?: {model_id}, selected_fragrance?, quantity}"""
    payload = request.get_json(silent=True) or {}

    try:
        item = cart_service.add_item(_cart_owner(), payload)
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"item": item.to_dict()}), 201


@cart_bp.delete("")
@require_auth
def clear_cart_route():
    deleted = cart_service.delete_all_by_user(_cart_owner())
    return jsonify({"deleted": deleted}), 200
