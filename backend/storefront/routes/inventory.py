# backend/storefront/routes/inventory.py
"""
Inventory ledger routes.

SECURITY: Every route requires an admin bearer token. Customers only ever
touch stock through order placement and cancellation.

Mutations answer 200 with the updated record. Bulk operations answer 200
even when some rows fail; failures are listed under "errors".
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..errors import StorefrontError
from ..models import Inventory, StockHistory
from ..services import inventory_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    enforce_rules_threshold,
)
from ..decorators import require_auth, require_role


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

STOCK_CHANGE_POLICY = ModelValidationPolicy(
    writable_fields={"quantity", "reason", "notes"},
    required_on_create={"quantity"},
)

SET_STOCK_POLICY = ModelValidationPolicy(
    writable_fields={"quantity", "reason", "notes"},
    required_on_create={"quantity"},
    aliases={"stock": "quantity", "new_stock": "quantity"},
)

THRESHOLD_POLICY = ModelValidationPolicy(
    writable_fields={"threshold"},
    required_on_create={"threshold"},
)


def _stock_change(inventory_id: str, policy: ModelValidationPolicy, operation):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=StockHistory, payload=payload, policy=policy, partial=False)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400

    try:
        inventory = operation(
            inventory_id,
            patch["quantity"],
            patch.get("reason") or "",
            patch.get("notes") or "",
            g.identity.subject_id,
        )
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Stock change failed for %s", inventory_id)
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500

    return jsonify({"inventory": inventory.to_dict()}), 200


@inventory_bp.put("/add-stock/<inventory_id>")
@require_auth
@require_role("admin")
def add_stock_route(inventory_id: str):
    """Add stock. Body: {quantity, reason?, notes?}"""
    return _stock_change(inventory_id, STOCK_CHANGE_POLICY, inventory_service.add_stock)


@inventory_bp.put("/deduct-stock/<inventory_id>")
@require_auth
@require_role("admin")
def deduct_stock_route(inventory_id: str):
    """Deduct stock. Fails with 400 insufficient_stock rather than clamping."""
    return _stock_change(inventory_id, STOCK_CHANGE_POLICY, inventory_service.deduct_stock)


@inventory_bp.put("/set-stock/<inventory_id>")
@require_auth
@require_role("admin")
def set_stock_route(inventory_id: str):
    """Set absolute stock. Body: {stock, reason?, notes?}"""
    return _stock_change(inventory_id, SET_STOCK_POLICY, inventory_service.set_stock)


@inventory_bp.put("/threshold/<inventory_id>")
@require_auth
@require_role("admin")
def update_threshold_route(inventory_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Inventory, payload=payload, policy=THRESHOLD_POLICY, partial=False)
        enforce_rules_threshold(patch)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400

    try:
        inventory = inventory_service.update_threshold(inventory_id, patch["threshold"])
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"inventory": inventory.to_dict()}), 200


@inventory_bp.post("/bulk-add")
@require_auth
@require_role("admin")
def bulk_add_stock_route():
    """Body: {updates: [{inventory_id, quantity, reason?, notes?}, ...]}"""
    payload = request.get_json(silent=True) or {}
    updates = payload.get("updates")
    if not isinstance(updates, list) or not updates:
        return jsonify({"error": "bad_request", "message": "updates must be a non-empty list"}), 400

    result = inventory_service.bulk_add_stock(updates, actor=g.identity.subject_id)
    return jsonify(result), 200


@inventory_bp.post("/bulk-variant/<product_id>")
@require_auth
@require_role("admin")
def bulk_update_variant_stock_route(product_id: str):
    """
    Update every fragrance of one product color.

    Body: {color_id, model_id?, updates: [{fragrance, operation, quantity, reason?, notes?}]}
    """
    payload = request.get_json(silent=True) or {}
    color_id = payload.get("color_id")
    updates = payload.get("updates")

    if not color_id:
        return jsonify({"error": "bad_request", "message": "color_id is required"}), 400
    if not isinstance(updates, list) or not updates:
        return jsonify({"error": "bad_request", "message": "updates must be a non-empty list"}), 400

    result = inventory_service.bulk_update_variant_stock(
        product_id=product_id,
        color_id=color_id,
        model_id=payload.get("model_id") or "",
        updates=updates,
        actor=g.identity.subject_id,
    )
    return jsonify(result), 200


@inventory_bp.get("/low-stock")
@require_auth
@require_role("admin")
def low_stock_route():
    records = inventory_service.list_low_stock()
    return jsonify({"inventory": [r.to_dict() for r in records], "count": len(records)}), 200


@inventory_bp.get("/product/<product_id>")
@require_auth
@require_role("admin")
def product_inventory_route(product_id: str):
    records = inventory_service.list_product_inventory(product_id)
    return jsonify({"product_id": product_id, "inventory": [r.to_dict() for r in records]}), 200


@inventory_bp.get("/<inventory_id>")
@require_auth
@require_role("admin")
def get_inventory_route(inventory_id: str):
    try:
        inventory = inventory_service.get_inventory(inventory_id)
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code

    include_history = request.args.get("include_history", "").lower() in ("1", "true", "yes")
    return jsonify({"inventory": inventory.to_dict(include_history=include_history)}), 200


@inventory_bp.get("/<inventory_id>/history")
@require_auth
@require_role("admin")
def stock_history_route(inventory_id: str):
    """Newest-first history. Query: page (default 1), limit (default 50)."""
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", 50, type=int)

    try:
        result = inventory_service.get_stock_history(inventory_id, page=page, limit=limit)
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify(result), 200


@inventory_bp.get("/audit")
@require_auth
@require_role("admin")
def audit_route():
    """Replay every ledger's history against its stock counter."""
    findings = inventory_service.audit_inventory()
    return jsonify({"consistent": not findings, "findings": findings}), 200
