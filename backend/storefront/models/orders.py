from __future__ import annotations

from uuid import uuid4

from ..extensions import db
from ..money import to_json_number
from ..variants import DEFAULT_OPTION, NO_MODEL
from storefront.time_utils import to_utc_z, utcnow

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled", "returned")
PAYMENT_METHODS = ("cod", "card", "upi")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
CHECKOUT_MODES = ("cart", "buy-now")


def generate_order_id() -> str:
    return f"ORD-{utcnow():%Y%m%d}-{uuid4().hex[:12].upper()}"


class Order(db.Model):
    """
    Customer order.

    IMMUTABILITY: items, pricing and delivery_address are snapshots taken at
    placement and are never rewritten. Only order_status, the timeline
    stamps, payment status fields and notes change after creation.

    PRICING IDENTITY:
    - total == (subtotal - total_savings) + shipping + tax
    - sum(items.total_price) == subtotal - total_savings
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        db.Index("ix_orders_status", "order_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(40), nullable=False, unique=True, default=generate_order_id)
    user_id = db.Column(db.String(64), nullable=False, index=True)

    checkout_mode = db.Column(db.String(16), nullable=False, default="cart")

    # Pricing snapshot (currency units)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    total_savings = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    shipping = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_percentage = db.Column(db.Numeric(5, 2), nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    # Address snapshot, not a live reference
    delivery_address = db.Column(db.JSON, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False, default="cod")
    payment_status = db.Column(db.String(16), nullable=False, default="pending")
    transaction_id = db.Column(db.String(128), nullable=True)
    paid_amount = db.Column(db.Numeric(12, 2), nullable=True)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=True)

    placed_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    shipped_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    returned_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    estimated_delivery = db.Column(db.DateTime(timezone=True), nullable=False)

    order_status = db.Column(db.String(16), nullable=False, default="pending")
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.line_number",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order {self.order_id} user={self.user_id} status={self.order_status}>"

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    def pricing_dict(self) -> dict:
        return {
            "subtotal": to_json_number(self.subtotal),
            "total_savings": to_json_number(self.total_savings),
            "shipping": to_json_number(self.shipping),
            "tax": to_json_number(self.tax),
            "tax_percentage": to_json_number(self.tax_percentage),
            "total": to_json_number(self.total),
        }

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "user_id": self.user_id,
            "checkout_mode": self.checkout_mode,
            "order_status": self.order_status,
            "items_count": len(self.items),
            "total_items": self.total_items,
            "items": [item.to_dict() for item in self.items],
            "pricing": self.pricing_dict(),
            "delivery_address": self.delivery_address,
            "payment": {
                "method": self.payment_method,
                "status": self.payment_status,
                "transaction_id": self.transaction_id,
                "paid_amount": to_json_number(self.paid_amount),
                "payment_date": to_utc_z(self.payment_date),
            },
            "timeline": {
                "placed_at": to_utc_z(self.placed_at),
                "processed_at": to_utc_z(self.processed_at),
                "shipped_at": to_utc_z(self.shipped_at),
                "delivered_at": to_utc_z(self.delivered_at),
                "returned_at": to_utc_z(self.returned_at),
                "estimated_delivery": to_utc_z(self.estimated_delivery),
                "cancelled_at": to_utc_z(self.cancelled_at),
            },
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    """Line snapshot. Only status changes after placement."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.UniqueConstraint("order_pk", "line_number", name="uq_order_items_order_line"),
        db.Index("ix_order_items_product", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_pk = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.String(36), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)
    color_id = db.Column(db.String(36), nullable=False)
    color_name = db.Column(db.String(128), nullable=False)
    model_id = db.Column(db.String(36), nullable=False, default=NO_MODEL)
    model_name = db.Column(db.String(128), nullable=False, default=DEFAULT_OPTION)
    fragrance = db.Column(db.String(128), nullable=False, default=DEFAULT_OPTION)
    size = db.Column(db.String(64), nullable=False, default="")

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    offer_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    offer_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)
    saved_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    offer_id = db.Column(db.String(36), nullable=True)
    offer_label = db.Column(db.String(128), nullable=False, default="")

    # Stock level the line was reserved from, and the ledger it came out of
    purchased_from_stock = db.Column(db.Integer, nullable=False)
    inventory_id = db.Column(db.String(36), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="pending")

    order = db.relationship("Order", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "line_number": self.line_number,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "color_id": self.color_id,
            "color_name": self.color_name,
            "model_id": self.model_id,
            "model_name": self.model_name,
            "fragrance": self.fragrance,
            "size": self.size,
            "quantity": self.quantity,
            "unit_price": to_json_number(self.unit_price),
            "offer_percentage": to_json_number(self.offer_percentage),
            "offer_price": to_json_number(self.offer_price),
            "total_price": to_json_number(self.total_price),
            "saved_amount": to_json_number(self.saved_amount),
            "offer_id": self.offer_id,
            "offer_label": self.offer_label,
            "purchased_from_stock": self.purchased_from_stock,
            "inventory_id": self.inventory_id,
            "status": self.status,
        }
