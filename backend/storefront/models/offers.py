from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from ..extensions import db
from ..money import to_json_number
from ..variants import DEFAULT_OPTION, NO_MODEL
from storefront.time_utils import to_utc_z, utcnow


class ProductOffer(db.Model):
    """
    Percentage discount for one color scope of a product.

    SCOPE: (product_id, variable_model_id, color_id). variable_model_id is ""
    for simple products.

    UNIQUENESS: at most one ACTIVE offer per scope, enforced by a partial
    unique index on is_active. Validity windows do not participate, so a
    scheduled future offer and a running one cannot both be active on the
    same color.
    """
    __tablename__ = "product_offers"
    __table_args__ = (
        db.Index(
            "uq_product_offers_active_scope",
            "product_id", "variable_model_id", "color_id",
            unique=True,
            sqlite_where=db.text("is_active = 1"),
            postgresql_where=db.text("is_active"),
        ),
        db.CheckConstraint(
            "offer_percentage >= 0 AND offer_percentage <= 100",
            name="ck_product_offers_percentage_range",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    offer_id = db.Column(db.String(36), nullable=False, unique=True, default=lambda: str(uuid4()))

    product_id = db.Column(db.String(36), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    color_id = db.Column(db.String(36), nullable=False)
    color_name = db.Column(db.String(128), nullable=False)
    model_name = db.Column(db.String(128), nullable=False, default=DEFAULT_OPTION)
    variable_model_id = db.Column(db.String(36), nullable=False, default=NO_MODEL)

    offer_percentage = db.Column(db.Numeric(5, 2), nullable=False)
    offer_label = db.Column(db.String(128), nullable=False, default="Special Offer")

    start_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    # NULL = open-ended
    end_date = db.Column(db.DateTime(timezone=True), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def is_valid_at(self, at: datetime) -> bool:
        if not self.is_active:
            return False
        if at < self.start_date:
            return False
        return self.end_date is None or at <= self.end_date

    def to_dict(self) -> dict:
        return {
            "offer_id": self.offer_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "color_id": self.color_id,
            "color_name": self.color_name,
            "model_name": self.model_name,
            "variable_model_id": self.variable_model_id,
            "offer_percentage": to_json_number(self.offer_percentage),
            "offer_label": self.offer_label,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "is_active": self.is_active,
            "is_currently_valid": self.is_valid_at(utcnow()),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
