# Overview: Service-layer operations for the product catalog; encapsulates business logic and database work.

# backend/storefront/services/catalog_service.py

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from uuid import uuid4

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, ProductNotFoundError, ValidationError
from ..models import Product, ProductColor, ProductModel, SimpleProduct, VariableProduct
from ..validation import enforce_rules_price
from ..variants import DEFAULT_OPTION, ResolvedVariant, VariantSelection
from . import inventory_service

PRODUCT_TYPES = {"simple": SimpleProduct, "variable": VariableProduct}


def get_product(product_id: str, *, active_only: bool = True) -> Product:
    query = db.session.query(Product).filter_by(product_id=product_id)
    if active_only:
        query = query.filter_by(is_active=True)
    product = query.first()
    if product is None:
        raise ProductNotFoundError(f"Product not found: {product_id}", details={"product_id": product_id})
    return product


def list_products(*, include_inactive: bool = False) -> list[Product]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    return query.order_by(Product.id.asc()).all()


def find_product_variant(selection: VariantSelection) -> tuple[Product, ResolvedVariant]:
    """Catalog lookup for one selection. Never falls back to another variant."""
    product = get_product(selection.product_id)
    return product, product.resolve_variant(selection)


def _parse_price(value, field: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not price.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    enforce_rules_price(field, price)
    return price


def _parse_stock(initial, options: list[str]) -> dict[str, int]:
    """
    Initial stock for a color: an int applied to every option, or a
    {fragrance: int} mapping. Missing options start at 0.
    """
    if initial is None:
        return {option: 0 for option in options}
    if isinstance(initial, dict):
        unknown = sorted(set(initial) - set(options))
        if unknown:
            raise ValidationError(f"Stock given for unknown options: {', '.join(unknown)}")
        stock = {option: initial.get(option, 0) for option in options}
    else:
        stock = {option: initial for option in options}

    for option, value in stock.items():
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(f"Initial stock for {option} must be a non-negative integer")
    return stock


def _build_color(data: dict, product: Product, stock_by_color: dict) -> ProductColor:
    if not isinstance(data, dict):
        raise ValidationError("Each color must be an object")
    color_name = (data.get("color_name") or "").strip()
    if not color_name:
        raise ValidationError("color_name is required for every color")

    current_price = _parse_price(data.get("current_price", data.get("price")), "current_price")
    original_price = current_price
    if data.get("original_price") is not None:
        original_price = _parse_price(data.get("original_price"), "original_price")

    fragrances = data.get("fragrances") or []
    if not isinstance(fragrances, list) or not all(isinstance(f, str) and f.strip() for f in fragrances):
        raise ValidationError("fragrances must be a list of names")
    fragrances = [f.strip() for f in fragrances]
    if len(set(fragrances)) != len(fragrances):
        raise ValidationError(f"Duplicate fragrances for color {color_name}")

    color = ProductColor(
        color_id=str(uuid4()),
        product=product,
        color_name=color_name,
        original_price=original_price,
        current_price=current_price,
        fragrances=fragrances,
    )
    stock_by_color[color.color_id] = _parse_stock(data.get("stock"), color.option_names())
    return color


def create_product(data: dict, *, actor: str = "admin") -> Product:
    """
    Create a simple or variable product with its colors (and models), plus
    one inventory record per variant opened with an 'initial' history entry.
    Everything commits together.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    product_name = (data.get("product_name") or "").strip()
    if not product_name:
        raise ValidationError("product_name is required")

    product_type = data.get("type", "simple")
    product_cls = PRODUCT_TYPES.get(product_type)
    if product_cls is None:
        raise ValidationError("type must be 'simple' or 'variable'")

    threshold = data.get("threshold")
    if threshold is None:
        threshold = current_app.config.get("DEFAULT_STOCK_THRESHOLD", 10)
    if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 0:
        raise ValidationError("threshold must be a non-negative integer")

    product = product_cls(
        product_name=product_name,
        description=data.get("description"),
        category_id=data.get("category_id"),
        model_name=(data.get("model_name") or DEFAULT_OPTION).strip(),
        sku=data.get("sku") or None,
        is_active=True,
    )
    stock_by_color: dict[str, dict[str, int]] = {}

    if product_type == "simple":
        colors = data.get("colors") or []
        if not colors:
            raise ValidationError("A simple product needs at least one color")
        for color_data in colors:
            _build_color(color_data, product, stock_by_color)
    else:
        models = data.get("models") or []
        if not models:
            raise ValidationError("A variable product needs at least one model")
        for model_data in models:
            if not isinstance(model_data, dict) or not (model_data.get("model_name") or "").strip():
                raise ValidationError("model_name is required for every model")
            model = ProductModel(
                model_id=str(uuid4()),
                product=product,
                model_name=model_data["model_name"].strip(),
                description=model_data.get("description"),
                sku=model_data.get("sku") or None,
            )
            colors = model_data.get("colors") or []
            if not colors:
                raise ValidationError(f"Model {model.model_name} needs at least one color")
            for color_data in colors:
                color = _build_color(color_data, product, stock_by_color)
                color.model = model

    db.session.add(product)
    try:
        db.session.flush()
        for variant in product.iter_variants():
            inventory_service.create_inventory(
                variant,
                initial_stock=stock_by_color[variant.key.color_id][variant.key.fragrance],
                threshold=threshold,
                actor=actor,
                commit=False,
            )
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise ConflictError("A product, model or SKU with these identifiers already exists") from e
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Created %s product %s with %d variants", product_type, product.product_id, len(product.iter_variants())
    )
    return product


def deactivate_product(product_id: str) -> tuple[Product, int]:
    """Soft-deactivate a product and every inventory record it owns."""
    product = get_product(product_id, active_only=False)
    product.is_active = False
    count = inventory_service.deactivate_product_inventory(product.product_id)
    db.session.commit()
    current_app.logger.info("Deactivated product %s and %d inventory records", product_id, count)
    return product, count
