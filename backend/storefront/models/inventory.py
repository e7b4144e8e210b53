from __future__ import annotations

from uuid import uuid4

from ..extensions import db
from ..errors import InsufficientStockError, InvalidQuantityError
from ..variants import DEFAULT_OPTION, NO_MODEL, VariantKey
from storefront.time_utils import to_utc_z, utcnow

# History entry types and the direction they move stock in
STOCK_INCREASING_TYPES = {"added", "initial", "returned"}
STOCK_DECREASING_TYPES = {"deducted", "sold"}
STOCK_HISTORY_TYPES = STOCK_INCREASING_TYPES | STOCK_DECREASING_TYPES | {"adjusted"}


class Inventory(db.Model):
    """
    Stock ledger for one variant.

    INVARIANTS:
    - stock >= 0 at all times (CheckConstraint + method guards).
    - Every change appends a StockHistory row with previous_stock/new_stock;
      stock always equals the newest row's new_stock.
    - At most one ACTIVE record per variant key (partial unique index).
    - Mutated only through add_stock / deduct_stock / set_stock.

    CONCURRENCY: version_id is SQLAlchemy's optimistic lock. A flush whose
    UPDATE no longer matches the version it read raises StaleDataError and the
    service retries from a fresh read (see services.concurrency).
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.Index(
            "uq_inventory_active_variant",
            "product_id", "variable_model_id", "color_id", "fragrance",
            unique=True,
            sqlite_where=db.text("is_active = 1"),
            postgresql_where=db.text("is_active"),
        ),
        db.Index("ix_inventory_product_active", "product_id", "is_active"),
        db.CheckConstraint("stock >= 0", name="ck_inventory_stock_non_negative"),
        db.CheckConstraint("threshold >= 0", name="ck_inventory_threshold_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.String(36), nullable=False, unique=True, default=lambda: str(uuid4()))

    # Variant key, denormalized with display names
    product_id = db.Column(db.String(36), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    model_name = db.Column(db.String(128), nullable=False, default=DEFAULT_OPTION)
    variable_model_id = db.Column(db.String(36), nullable=False, default=NO_MODEL)
    variable_model_name = db.Column(db.String(128), nullable=True)
    color_id = db.Column(db.String(36), nullable=False)
    color_name = db.Column(db.String(128), nullable=False)
    fragrance = db.Column(db.String(128), nullable=False, default=DEFAULT_OPTION)

    stock = db.Column(db.Integer, nullable=False, default=0)
    threshold = db.Column(db.Integer, nullable=False, default=10)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    history = db.relationship(
        "StockHistory",
        back_populates="inventory",
        cascade="all, delete-orphan",
        order_by="StockHistory.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Inventory {self.inventory_id} {self.describe()!r} stock={self.stock}>"

    @property
    def variant_key(self) -> VariantKey:
        return VariantKey(
            product_id=self.product_id,
            color_id=self.color_id,
            model_id=self.variable_model_id,
            fragrance=self.fragrance,
        )

    def describe(self) -> str:
        parts = [self.color_name]
        if self.variable_model_id:
            parts.insert(0, self.variable_model_name or self.model_name)
        if self.fragrance != DEFAULT_OPTION:
            parts.append(self.fragrance)
        return f"{self.product_name} ({' / '.join(parts)})"

    def stock_status(self) -> str:
        if self.stock == 0:
            return "out-of-stock"
        if self.stock < self.threshold:
            return "low-stock"
        return "in-stock"

    # Mutations ------------------------------------------------------------
    # These only change the in-memory record; callers lock, flush and commit.

    def _record(self, entry_type: str, quantity: int, new_stock: int, reason: str, notes: str, actor: str):
        entry = StockHistory(
            type=entry_type,
            quantity=quantity,
            previous_stock=self.stock,
            new_stock=new_stock,
            reason=reason or "",
            notes=notes or "",
            added_by=actor or "admin",
            date=utcnow(),
        )
        self.history.append(entry)
        self.stock = new_stock
        self.updated_at = entry.date
        return entry

    def record_initial(self, quantity: int, actor: str = "admin") -> "StockHistory":
        if quantity < 0:
            raise InvalidQuantityError("Initial stock cannot be negative", details={"quantity": quantity})
        return self._record("initial", quantity, self.stock + quantity, "Initial stock", "", actor)

    def add_stock(self, quantity: int, reason: str = "", notes: str = "", actor: str = "admin",
                  entry_type: str = "added") -> "StockHistory":
        if entry_type not in STOCK_INCREASING_TYPES:
            raise ValueError(f"{entry_type} does not increase stock")
        if quantity <= 0:
            raise InvalidQuantityError("Quantity must be greater than 0", details={"quantity": quantity})
        return self._record(entry_type, quantity, self.stock + quantity, reason, notes, actor)

    def deduct_stock(self, quantity: int, reason: str = "", notes: str = "", actor: str = "admin",
                     entry_type: str = "deducted") -> "StockHistory":
        if entry_type not in STOCK_DECREASING_TYPES:
            raise ValueError(f"{entry_type} does not decrease stock")
        if quantity <= 0:
            raise InvalidQuantityError("Quantity must be greater than 0", details={"quantity": quantity})
        if quantity > self.stock:
            raise InsufficientStockError(
                f"Insufficient stock for {self.describe()}. Available: {self.stock}, Requested: {quantity}",
                details={"inventory_id": self.inventory_id, "available": self.stock, "requested": quantity},
            )
        return self._record(entry_type, quantity, self.stock - quantity, reason, notes, actor)

    def set_stock(self, new_value: int, reason: str = "", notes: str = "", actor: str = "admin") -> "StockHistory":
        if new_value < 0:
            raise InvalidQuantityError("Stock cannot be negative", details={"stock": new_value})
        difference = new_value - self.stock
        entry_type = "added" if difference >= 0 else "deducted"
        return self._record(entry_type, abs(difference), new_value, reason, notes, actor)

    def to_dict(self, include_history: bool = False) -> dict:
        data = {
            "inventory_id": self.inventory_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "model_name": self.model_name,
            "variable_model_id": self.variable_model_id,
            "variable_model_name": self.variable_model_name,
            "color_id": self.color_id,
            "color_name": self.color_name,
            "fragrance": self.fragrance,
            "stock": self.stock,
            "threshold": self.threshold,
            "status": self.stock_status(),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_history:
            data["stock_history"] = [h.to_dict() for h in self.history]
        return data


class StockHistory(db.Model):
    """Append-only. Rows are never updated or deleted."""
    __tablename__ = "stock_history"
    __table_args__ = (
        db.Index("ix_stock_history_inventory_date", "inventory_pk", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    history_id = db.Column(db.String(36), nullable=False, unique=True, default=lambda: str(uuid4()))
    inventory_pk = db.Column(db.Integer, db.ForeignKey("inventory.id"), nullable=False)

    type = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=False, default="")
    notes = db.Column(db.String(500), nullable=False, default="")
    added_by = db.Column(db.String(128), nullable=False, default="admin")

    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    inventory = db.relationship("Inventory", back_populates="history")

    def to_dict(self) -> dict:
        return {
            "history_id": self.history_id,
            "type": self.type,
            "quantity": self.quantity,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "reason": self.reason,
            "notes": self.notes,
            "added_by": self.added_by,
            "date": to_utc_z(self.date),
        }
