# Overview: Service-layer operations for orders; placement, lifecycle transitions and cancellation.

# backend/storefront/services/order_service.py
"""
Order Workflow

Placement runs in stages, strictly in this order:
  Validating -> ResolvingItems -> ReservingStock -> Persisting -> ClearingSource

- Validating and ResolvingItems have no side effects; any failure there
  leaves stock, orders and carts untouched.
- ReservingStock deducts stock one item at a time in input order. Each
  deduction is its own atomic inventory mutation. A failure on item k
  returns the stock of items 1..k-1 with compensating additions.
- Persisting prices every line from the catalog and the offer in force at
  placement time. Client-supplied prices are never read. If the order
  cannot be saved, every deduction is compensated.
- ClearingSource empties the user's cart for cart checkouts. The order is
  already durable, so failures are logged and swallowed.

A crash between ReservingStock and Persisting leaves stock deducted with no
order; the "sold" history entries carry the order_id for reconciliation
(flask inventory audit).

Lifecycle:
  pending -> processing -> shipped -> delivered -> returned
  pending | processing -> cancelled
Cancellation flips the status first (version-checked) and only then restores
stock, so two concurrent cancellations can never both restock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..errors import (
    InvalidQuantityError,
    InvalidTransitionError,
    OrderNotFoundError,
    StorefrontError,
    ValidationError,
)
from ..models import Order, OrderItem
from ..models.orders import CHECKOUT_MODES, ORDER_STATUSES, PAYMENT_METHODS, generate_order_id
from ..time_utils import utcnow
from ..variants import ResolvedVariant, VariantSelection
from . import cart_service, catalog_service, inventory_service, offer_service
from .concurrency import lock_for_update, run_with_retry
from .pricing_service import policy_from_config, price_line, price_order

PREPAID_METHODS = {"card", "upi"}
CANCELLABLE_STATUSES = {"pending", "processing"}

ALLOWED_TRANSITIONS = {
    "pending": {"processing", "cancelled"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": {"returned"},
    "cancelled": set(),
    "returned": set(),
}

# Timeline column stamped on entry to each status
TIMELINE_STAMPS = {
    "processing": "processed_at",
    "shipped": "shipped_at",
    "delivered": "delivered_at",
    "returned": "returned_at",
    "cancelled": "cancelled_at",
}

# Delivery address snapshot: field -> default when the client omits it.
# Keys outside this set are not stored.
ADDRESS_SNAPSHOT_FIELDS = {
    "address_id": None,
    "full_name": None,
    "mobile": None,
    "email": "",
    "address_line1": None,
    "address_line2": "",
    "landmark": "",
    "city": None,
    "state": None,
    "pincode": None,
    "country": "India",
    "address_type": "home",
    "instructions": "",
    "is_default": False,
}


@dataclass
class PlacementLine:
    selection: VariantSelection
    quantity: int
    variant: ResolvedVariant | None = None
    inventory_id: str | None = None
    purchased_from_stock: int | None = None


# Validating --------------------------------------------------------------

def _validate_placement(
    user_id,
    items,
    address,
    checkout_mode,
    payment_method,
) -> list[PlacementLine]:
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("user_id is required")
    if checkout_mode not in CHECKOUT_MODES:
        raise ValidationError(
            f"checkout_mode must be one of {', '.join(CHECKOUT_MODES)}",
            details={"checkout_mode": checkout_mode},
        )
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(
            f"payment_method must be one of {', '.join(PAYMENT_METHODS)}",
            details={"payment_method": payment_method},
        )
    if not isinstance(address, dict) or not address.get("address_id"):
        raise ValidationError("A delivery address with address_id is required")
    if not isinstance(items, list) or not items:
        raise ValidationError("Order must contain at least one item")

    lines = []
    for index, item in enumerate(items, start=1):
        selection = VariantSelection.from_payload(item)
        quantity = item.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantityError(
                f"Item {index}: quantity must be a positive integer",
                details={"line": index, "quantity": quantity},
            )
        lines.append(PlacementLine(selection=selection, quantity=quantity))
    return lines


# ResolvingItems ----------------------------------------------------------

def _resolve_items(lines: list[PlacementLine]) -> None:
    for line in lines:
        _, variant = catalog_service.find_product_variant(line.selection)
        inventory = inventory_service.find_by_variant(variant.key, description=variant.describe())
        line.variant = variant
        line.inventory_id = inventory.inventory_id


# ReservingStock ----------------------------------------------------------

def _release(lines: list[PlacementLine], *, order_id: str, actor: str, reason: str) -> list[dict]:
    """Compensate reserved lines, newest first. Returns the lines that could not be restored."""
    failures = []
    for line in reversed(lines):
        try:
            inventory_service.add_stock(
                line.inventory_id,
                line.quantity,
                reason,
                order_id,
                actor,
                entry_type="returned",
            )
        except Exception as e:
            current_app.logger.exception(
                "Rollback failed for %s x%d on order %s", line.inventory_id, line.quantity, order_id
            )
            failures.append({"inventory_id": line.inventory_id, "quantity": line.quantity, "error": str(e)})
    return failures


def _reserve_stock(lines: list[PlacementLine], *, order_id: str, actor: str) -> None:
    reserved: list[PlacementLine] = []
    for line in lines:
        try:
            entry = inventory_service.reserve_stock(
                line.inventory_id, line.quantity, order_id=order_id, actor=actor
            )
        except Exception:
            current_app.logger.warning(
                "Stock reservation failed on %s for order %s; rolling back %d item(s)",
                line.variant.describe(), order_id, len(reserved),
            )
            _release(reserved, order_id=order_id, actor=actor, reason="Order placement rolled back")
            raise
        line.purchased_from_stock = entry.previous_stock
        reserved.append(line)


# Persisting --------------------------------------------------------------

def _address_snapshot(address: dict) -> dict:
    return {
        field: address.get(field) if address.get(field) not in (None, "") else default
        for field, default in ADDRESS_SNAPSHOT_FIELDS.items()
    }


def _persist(
    lines: list[PlacementLine],
    *,
    order_id: str,
    user_id: str,
    address: dict,
    checkout_mode: str,
    payment_method: str,
    transaction_id: str | None,
) -> Order:
    placed_at = utcnow()
    policy = policy_from_config(current_app.config)

    items = []
    line_pricing = []
    for number, line in enumerate(lines, start=1):
        key = line.variant.key
        offer = offer_service.resolve_offer(key.product_id, key.color_id, key.model_id, at=placed_at)
        pricing = price_line(line.variant.unit_price, offer.offer_percentage if offer else 0, line.quantity)
        line_pricing.append(pricing)
        items.append(OrderItem(
            line_number=number,
            product_id=key.product_id,
            product_name=line.variant.product_name,
            color_id=key.color_id,
            color_name=line.variant.color_name,
            model_id=key.model_id,
            model_name=line.variant.model_name,
            fragrance=key.fragrance,
            size=line.variant.size,
            quantity=line.quantity,
            unit_price=pricing.unit_price,
            offer_percentage=pricing.offer_percentage,
            offer_price=pricing.offer_price,
            total_price=pricing.line_total,
            saved_amount=pricing.line_savings,
            offer_id=offer.offer_id if offer else None,
            offer_label=offer.offer_label if offer else "",
            purchased_from_stock=line.purchased_from_stock,
            inventory_id=line.inventory_id,
            status="pending",
        ))

    totals = price_order(line_pricing, policy)
    prepaid = payment_method in PREPAID_METHODS

    order = Order(
        order_id=order_id,
        user_id=user_id,
        checkout_mode=checkout_mode,
        subtotal=totals.subtotal,
        total_savings=totals.total_savings,
        shipping=totals.shipping,
        tax=totals.tax,
        tax_percentage=totals.tax_percentage,
        total=totals.total,
        delivery_address=_address_snapshot(address),
        payment_method=payment_method,
        payment_status="paid" if prepaid else "pending",
        transaction_id=transaction_id,
        paid_amount=totals.total if prepaid else None,
        payment_date=placed_at if prepaid else None,
        placed_at=placed_at,
        estimated_delivery=placed_at + timedelta(days=current_app.config.get("ESTIMATED_DELIVERY_DAYS", 5)),
        order_status="pending",
        items=items,
    )
    db.session.add(order)
    db.session.commit()
    return order


# ClearingSource ----------------------------------------------------------

def _clear_cart(user_id: str, order_id: str) -> None:
    try:
        cart_service.delete_all_by_user(user_id)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to clear cart for user %s after order %s", user_id, order_id)


def place_order(
    *,
    user_id: str,
    items: list[dict],
    address: dict,
    checkout_mode: str = "cart",
    payment_method: str = "cod",
    transaction_id: str | None = None,
) -> Order:
    """
    Place an order. Raises StorefrontError subclasses for every business
    failure; stock is restored before any such error leaves this function.
    """
    lines = _validate_placement(user_id, items, address, checkout_mode, payment_method)
    _resolve_items(lines)

    order_id = generate_order_id()
    _reserve_stock(lines, order_id=order_id, actor=user_id)

    try:
        order = _persist(
            lines,
            order_id=order_id,
            user_id=user_id,
            address=address,
            checkout_mode=checkout_mode,
            payment_method=payment_method,
            transaction_id=transaction_id,
        )
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to persist order %s; releasing reserved stock", order_id)
        _release(lines, order_id=order_id, actor=user_id, reason="Order placement rolled back")
        raise

    current_app.logger.info(
        "Order %s placed by %s: %d item(s), total %s", order_id, user_id, len(lines), order.total
    )

    if checkout_mode == "cart":
        _clear_cart(user_id, order_id)

    return order


# Reads -------------------------------------------------------------------

def get_order(order_id: str) -> Order:
    order = db.session.query(Order).filter_by(order_id=order_id).first()
    if order is None:
        raise OrderNotFoundError("Order not found", details={"order_id": order_id})
    return order


def list_user_orders(user_id: str, *, status: str | None = None, page: int = 1, limit: int = 10) -> dict:
    if status is not None and status not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(ORDER_STATUSES)}")
    page = max(page, 1)
    limit = max(min(limit, 100), 1)

    query = db.session.query(Order).filter_by(user_id=user_id)
    if status:
        query = query.filter_by(order_status=status)

    total = query.count()
    orders = (
        query.order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    counts = (
        db.session.query(Order.order_status, db.func.count(Order.id))
        .filter(Order.user_id == user_id)
        .group_by(Order.order_status)
        .all()
    )
    summary = {s: 0 for s in ORDER_STATUSES}
    summary.update({s: c for s, c in counts})

    return {
        "orders": [o.to_dict() for o in orders],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit,
        },
        "summary": summary,
    }


# Lifecycle ---------------------------------------------------------------

def _apply_transition(order: Order, new_status: str, now) -> None:
    if new_status not in ALLOWED_TRANSITIONS.get(order.order_status, set()):
        raise InvalidTransitionError(
            f"Cannot change order status from {order.order_status} to {new_status}",
            details={"order_id": order.order_id, "from": order.order_status, "to": new_status},
        )

    order.order_status = new_status
    stamp = TIMELINE_STAMPS.get(new_status)
    if stamp and getattr(order, stamp) is None:
        setattr(order, stamp, now)

    if new_status == "delivered" and order.payment_method == "cod" and order.payment_status != "paid":
        order.payment_status = "paid"
        order.paid_amount = order.total
        order.payment_date = now

    for item in order.items:
        item.status = new_status


def cancel_order(order_id: str, *, reason: str | None = None) -> tuple[Order, list[dict]]:
    """
    Cancel a pending or processing order and restore its stock.

    Every item is restocked even if another fails. Returns the order and the
    restock failures.
    """
    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(order_id=order_id)).populate_existing().first()
        if order is None:
            raise OrderNotFoundError("Order not found", details={"order_id": order_id})
        if order.order_status not in CANCELLABLE_STATUSES:
            raise InvalidTransitionError(
                f"Order cannot be cancelled from status {order.order_status}",
                details={"order_id": order_id, "order_status": order.order_status},
            )
        _apply_transition(order, "cancelled", utcnow())
        if reason:
            order.notes = f"Cancelled: {reason}"
        db.session.commit()
        return order

    try:
        order = run_with_retry(_op)
    except StorefrontError:
        db.session.rollback()
        raise

    failures = []
    for item in order.items:
        try:
            inventory_service.add_stock(
                item.inventory_id,
                item.quantity,
                "Order cancelled",
                order.order_id,
                order.user_id,
                entry_type="returned",
            )
        except Exception as e:
            db.session.rollback()
            current_app.logger.exception(
                "Failed to restock line %d of cancelled order %s", item.line_number, order.order_id
            )
            failures.append({
                "line_number": item.line_number,
                "inventory_id": item.inventory_id,
                "quantity": item.quantity,
                "error": str(e),
            })

    current_app.logger.info(
        "Order %s cancelled; restocked %d of %d item(s)",
        order.order_id, len(order.items) - len(failures), len(order.items),
    )
    return order, failures


def update_order_status(order_id: str, new_status: str) -> tuple[Order, list[dict]]:
    """
    Move an order along its lifecycle. A move to 'cancelled' runs the full
    cancellation, so the second element carries its restock failures.
    """
    if new_status not in ORDER_STATUSES:
        raise ValidationError(
            f"status must be one of {', '.join(ORDER_STATUSES)}",
            details={"status": new_status},
        )
    if new_status == "cancelled":
        return cancel_order(order_id)

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(order_id=order_id)).populate_existing().first()
        if order is None:
            raise OrderNotFoundError("Order not found", details={"order_id": order_id})
        _apply_transition(order, new_status, utcnow())
        db.session.commit()
        return order

    try:
        order = run_with_retry(_op)
    except StorefrontError:
        db.session.rollback()
        raise

    current_app.logger.info("Order %s moved to %s", order_id, new_status)
    return order, []
