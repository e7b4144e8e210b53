from __future__ import annotations

from ..extensions import db
from ..money import to_json_number
from ..variants import DEFAULT_OPTION, NO_MODEL
from storefront.time_utils import to_utc_z, utcnow


class CartItem(db.Model):
    """
    One line of a user's cart.

    Prices here are display hints captured when the item was added. Order
    placement ignores them and reprices from the catalog.
    """
    __tablename__ = "cart_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1 AND quantity <= 99", name="ck_cart_items_quantity_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)

    product_id = db.Column(db.String(36), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)

    selected_model_id = db.Column(db.String(36), nullable=False, default=NO_MODEL)
    selected_model_name = db.Column(db.String(128), nullable=False, default=DEFAULT_OPTION)
    selected_color_id = db.Column(db.String(36), nullable=False)
    selected_color_name = db.Column(db.String(128), nullable=False)
    selected_fragrance = db.Column(db.String(128), nullable=False, default=DEFAULT_OPTION)
    selected_size = db.Column(db.String(64), nullable=False, default="")

    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.Numeric(12, 2), nullable=True)
    final_price = db.Column(db.Numeric(12, 2), nullable=True)

    added_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        # Same shape the order workflow accepts as an item
        return {
            "id": self.id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "selected_model": {
                "model_id": self.selected_model_id,
                "model_name": self.selected_model_name,
            },
            "selected_color": {
                "color_id": self.selected_color_id,
                "color_name": self.selected_color_name,
            },
            "selected_fragrance": self.selected_fragrance,
            "selected_size": self.selected_size,
            "quantity": self.quantity,
            "unit_price": to_json_number(self.unit_price),
            "final_price": to_json_number(self.final_price),
            "added_at": to_utc_z(self.added_at),
            "updated_at": to_utc_z(self.updated_at),
        }
