# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

# backend/storefront/routes/products.py
from flask import Blueprint, current_app, g, jsonify, request

from ..errors import StorefrontError
from ..services import catalog_service, inventory_service
from ..decorators import require_auth, require_role

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products_route():
    products = catalog_service.list_products()
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.post("")
@require_auth
@require_role("admin")
def create_product_route():
    """
    Create a product and open an inventory record for every variant.

    Body (simple):   {product_name, type: "simple", colors: [{color_name, current_price, fragrances?, stock?}]}
    Body (variable): {product_name, type: "variable", models: [{model_name, colors: [...]}]}
    """
    payload = request.get_json(silent=True) or {}

    try:
        product = catalog_service.create_product(payload, actor=g.identity.subject_id)
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500

    return jsonify({"product": product.to_dict()}), 201


@products_bp.get("/<product_id>")
def get_product_route(product_id: str):
    try:
        product = catalog_service.get_product(product_id)
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"product": product.to_dict()}), 200


@products_bp.put("/<product_id>/deactivate")
@require_auth
@require_role("admin")
def deactivate_product_route(product_id: str):
    try:
        product, count = catalog_service.deactivate_product(product_id)
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"product": product.to_dict(), "deactivated_inventory": count}), 200


@products_bp.get("/<product_id>/stock-status")
def stock_status_route(product_id: str):
    """Storefront stock badge. Query: color_id, model_id, fragrance."""
    status = inventory_service.get_variant_stock_status(
        product_id,
        color_id=request.args.get("color_id"),
        model_id=request.args.get("model_id"),
        fragrance=request.args.get("fragrance"),
    )
    return jsonify(status), 200
