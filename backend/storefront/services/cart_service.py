# Overview: Service-layer operations for carts; the order workflow reads and clears them.

# backend/storefront/services/cart_service.py

from __future__ import annotations

from ..extensions import db
from ..errors import InvalidQuantityError, ValidationError
from ..models import CartItem
from ..variants import VariantSelection
from . import catalog_service, offer_service
from .pricing_service import price_line

MAX_CART_QUANTITY = 99


def list_by_user(user_id: str) -> list[CartItem]:
    return (
        db.session.query(CartItem)
        .filter_by(user_id=user_id)
        .order_by(CartItem.added_at.asc(), CartItem.id.asc())
        .all()
    )


def add_item(user_id: str, item: dict) -> CartItem:
    """
    Add a variant to the cart, merging with an existing line for the same
    variant. Prices stored here are display hints only.
    """
    if not user_id:
        raise ValidationError("user_id is required")

    quantity = item.get("quantity", 1) if isinstance(item, dict) else None
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError("Quantity must be a positive integer", details={"quantity": quantity})

    selection = VariantSelection.from_payload(item)
    product, variant = catalog_service.find_product_variant(selection)
    key = variant.key

    line = (
        db.session.query(CartItem)
        .filter_by(
            user_id=user_id,
            product_id=key.product_id,
            selected_model_id=key.model_id,
            selected_color_id=key.color_id,
            selected_fragrance=key.fragrance,
        )
        .first()
    )
    new_quantity = quantity + (line.quantity if line else 0)
    if new_quantity > MAX_CART_QUANTITY:
        raise InvalidQuantityError(
            f"Cart quantity for {variant.describe()} cannot exceed {MAX_CART_QUANTITY}",
            details={"quantity": new_quantity},
        )

    offer = offer_service.resolve_offer(key.product_id, key.color_id, key.model_id)
    pricing = price_line(variant.unit_price, offer.offer_percentage if offer else 0, new_quantity)

    if line is None:
        line = CartItem(
            user_id=user_id,
            product_id=key.product_id,
            product_name=product.product_name,
            selected_model_id=key.model_id,
            selected_model_name=variant.model_name,
            selected_color_id=key.color_id,
            selected_color_name=variant.color_name,
            selected_fragrance=key.fragrance,
            selected_size=variant.size,
        )
        db.session.add(line)

    line.quantity = new_quantity
    line.unit_price = pricing.unit_price
    line.final_price = pricing.offer_price
    db.session.commit()
    return line


def delete_all_by_user(user_id: str) -> int:
    """Idempotent: clearing an empty cart deletes nothing."""
    count = db.session.query(CartItem).filter_by(user_id=user_id).delete(synchronize_session=False)
    db.session.commit()
    return count
