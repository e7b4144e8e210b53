# Overview: Flask API routes for orders; parses input and returns JSON responses.

# backend/storefront/routes/orders.py
"""Order API routes with ownership enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import StorefrontError
from ..services import order_service
from ..decorators import require_auth, require_role


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _forbidden():
    return jsonify({"error": "forbidden", "message": "You can only access your own orders"}), 403


@orders_bp.post("/create")
@require_auth
def create_order_route():
    """
    Place an order.

    Body: {user_id, checkout_mode, items[], address, payment_method}

    Every business failure (bad input, unknown product or variant, missing
    inventory, short stock) answers 400 with a message naming the item.
    Prices are always recomputed; any prices in items[] are ignored.
    """
    data = request.get_json(silent=True) or {}
    user_id = data.get("user_id") or g.identity.subject_id

    if not g.identity.can_act_for(user_id):
        return _forbidden()

    try:
        order = order_service.place_order(
            user_id=user_id,
            items=data.get("items"),
            address=data.get("address"),
            checkout_mode=data.get("checkout_mode", "cart"),
            payment_method=data.get("payment_method", "cod"),
            transaction_id=data.get("transaction_id"),
        )
    except StorefrontError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500

    return jsonify({"order": order.to_dict()}), 201


@orders_bp.get("/<order_id>")
@require_auth
def get_order_route(order_id: str):
    try:
        order = order_service.get_order(order_id)
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code

    if not g.identity.can_act_for(order.user_id):
        return _forbidden()

    return jsonify({"order": order.to_dict()}), 200


@orders_bp.get("/user/<user_id>")
@require_auth
def list_user_orders_route(user_id: str):
    """Query: status?, page (default 1), limit (default 10)."""
    if not g.identity.can_act_for(user_id):
        return _forbidden()

    try:
        result = order_service.list_user_orders(
            user_id,
            status=request.args.get("status") or None,
            page=request.args.get("page", 1, type=int),
            limit=request.args.get("limit", 10, type=int),
        )
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify(result), 200


@orders_bp.put("/<order_id>/cancel")
@require_auth
def cancel_order_route(order_id: str):
    """
    Cancel a pending or processing order and restore its stock.

    Body: {reason?}
    Restock failures do not fail the request; they are listed under
    "restock_failures".
    """
    data = request.get_json(silent=True) or {}

    try:
        order = order_service.get_order(order_id)
        if not g.identity.can_act_for(order.user_id):
            return _forbidden()
        order, failures = order_service.cancel_order(order_id, reason=data.get("reason"))
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to cancel order %s", order_id)
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500

    return jsonify({"order": order.to_dict(), "restock_failures": failures}), 200


@orders_bp.put("/<order_id>/status")
@require_auth
@require_role("admin")
def update_order_status_route(order_id: str):
    """Body: {status}"""
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if not status:
        return jsonify({"error": "bad_request", "message": "status is required"}), 400

    try:
        order, failures = order_service.update_order_status(order_id, status)
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update status of order %s", order_id)
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500

    return jsonify({"order": order.to_dict(), "restock_failures": failures}), 200
