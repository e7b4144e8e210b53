# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/storefront/services/inventory_service.py

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import InventoryNotFoundError, InvalidQuantityError, StorefrontError
from ..models import Inventory, StockHistory
from ..models.inventory import STOCK_DECREASING_TYPES, STOCK_INCREASING_TYPES
from ..variants import DEFAULT_OPTION, NO_MODEL, ResolvedVariant, VariantKey
from .concurrency import lock_for_update, run_with_retry
"""
Inventory Ledger Invariants (authoritative)

Stock model:
- One Inventory row per variant key holds the current stock counter.
- Every stock change appends a StockHistory row in the same DB transaction:
  new_stock = previous_stock +/- quantity, and Inventory.stock always equals
  the newest row's new_stock. History rows are never updated or deleted.

Business invariants:
- stock never goes negative. deduct_stock fails before mutating when the
  quantity exceeds stock; it never clamps to zero.
- add_stock / deduct_stock require quantity > 0; set_stock requires a value >= 0
  and records an added/deducted entry sized to the delta.
- At most one active Inventory row per variant key.

Atomicity:
- Each mutation is one read-modify-write on one row: lock (where supported),
  mutate, flush with a version_id compare-and-swap, commit. A concurrent
  writer makes the flush raise StaleDataError and the whole read is retried,
  so two writers can never both deduct against the same stale stock.
- Mutations on different rows are independent.
"""


def _require_quantity(value, field: str = "quantity", *, allow_zero: bool = False) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQuantityError(f"{field} must be an integer", details={field: value})
    if allow_zero and value < 0:
        raise InvalidQuantityError(f"{field} cannot be negative", details={field: value})
    if not allow_zero and value <= 0:
        raise InvalidQuantityError(f"{field} must be greater than 0", details={field: value})
    return value


def get_inventory(inventory_id: str, *, lock: bool = False) -> Inventory:
    query = db.session.query(Inventory).filter_by(inventory_id=inventory_id)
    if lock:
        # Overwrite any copy already in the session; mutations must see committed stock
        query = lock_for_update(query).populate_existing()
    inventory = query.first()
    if inventory is None:
        raise InventoryNotFoundError(
            "Inventory item not found",
            details={"inventory_id": inventory_id},
        )
    return inventory


def find_by_variant(key: VariantKey, *, description: str | None = None) -> Inventory:
    """Active inventory record for exactly this variant key."""
    inventory = (
        db.session.query(Inventory)
        .filter_by(is_active=True, **key.as_filter())
        .first()
    )
    if inventory is None:
        label = description or f"product {key.product_id}"
        raise InventoryNotFoundError(
            f"Inventory not found for {label} - {key.fragrance}",
            details=key.to_dict(),
        )
    return inventory


def create_inventory(
    variant: ResolvedVariant,
    *,
    initial_stock: int = 0,
    threshold: int | None = None,
    actor: str = "admin",
    commit: bool = True,
) -> Inventory:
    """Create the ledger for a variant, opening its history with an 'initial' entry."""
    _require_quantity(initial_stock, "stock", allow_zero=True)
    if threshold is None:
        threshold = current_app.config.get("DEFAULT_STOCK_THRESHOLD", 10)
    _require_quantity(threshold, "threshold", allow_zero=True)

    key = variant.key
    inventory = Inventory(
        product_id=key.product_id,
        product_name=variant.product_name,
        model_name=variant.model_name if not key.model_id else DEFAULT_OPTION,
        variable_model_id=key.model_id or NO_MODEL,
        variable_model_name=variant.model_name if key.model_id else None,
        color_id=key.color_id,
        color_name=variant.color_name,
        fragrance=key.fragrance,
        stock=0,
        threshold=threshold,
        is_active=True,
    )
    inventory.record_initial(initial_stock, actor=actor)
    db.session.add(inventory)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return inventory


def ensure_inventory(variant: ResolvedVariant, *, actor: str = "admin") -> Inventory:
    """Return the active ledger for a variant, creating an empty one lazily."""
    try:
        return find_by_variant(variant.key)
    except InventoryNotFoundError:
        return create_inventory(variant, actor=actor)


def _mutate(inventory_id: str, mutate) -> tuple[Inventory, StockHistory | None]:
    def _op():
        inventory = get_inventory(inventory_id, lock=True)
        try:
            entry = mutate(inventory)
            db.session.commit()
        except StorefrontError:
            db.session.rollback()
            raise
        return inventory, entry

    return run_with_retry(_op)


def add_stock(
    inventory_id: str,
    quantity: int,
    reason: str = "",
    notes: str = "",
    actor: str = "admin",
    *,
    entry_type: str = "added",
) -> Inventory:
    """
    Increase stock. entry_type is "added" for manual receipts and
    "returned" when stock comes back from an order.
    """
    _require_quantity(quantity)
    if entry_type not in STOCK_INCREASING_TYPES:
        raise ValueError(f"{entry_type} is not a stock-increasing entry type")
    return _mutate(
        inventory_id,
        lambda inv: inv.add_stock(quantity, reason, notes, actor, entry_type=entry_type),
    )[0]


def deduct_stock(
    inventory_id: str,
    quantity: int,
    reason: str = "",
    notes: str = "",
    actor: str = "admin",
    *,
    entry_type: str = "deducted",
) -> Inventory:
    """
    Decrease stock. Raises InsufficientStockError without touching the row
    when quantity > stock. entry_type is "deducted" or "sold".
    """
    _require_quantity(quantity)
    if entry_type not in STOCK_DECREASING_TYPES:
        raise ValueError(f"{entry_type} is not a stock-decreasing entry type")
    return _mutate(
        inventory_id,
        lambda inv: inv.deduct_stock(quantity, reason, notes, actor, entry_type=entry_type),
    )[0]


def reserve_stock(inventory_id: str, quantity: int, *, order_id: str, actor: str) -> StockHistory:
    """
    Deduct stock for an order line and return the 'sold' entry written,
    whose previous_stock is the level the line was reserved from.
    """
    _require_quantity(quantity)
    return _mutate(
        inventory_id,
        lambda inv: inv.deduct_stock(quantity, "Order placed", order_id, actor, entry_type="sold"),
    )[1]


def set_stock(
    inventory_id: str,
    new_value: int,
    reason: str = "",
    notes: str = "",
    actor: str = "admin",
) -> Inventory:
    _require_quantity(new_value, "stock", allow_zero=True)
    return _mutate(
        inventory_id,
        lambda inv: inv.set_stock(new_value, reason, notes, actor),
    )[0]


def update_threshold(inventory_id: str, threshold: int) -> Inventory:
    _require_quantity(threshold, "threshold", allow_zero=True)

    def _apply(inv: Inventory):
        inv.threshold = threshold

    return _mutate(inventory_id, _apply)[0]


def bulk_add_stock(updates: list[dict], actor: str = "admin") -> dict:
    """
    Add stock to many records. Each update stands alone: a bad row is
    reported in errors and the rest still apply.
    """
    results = []
    errors = []

    for update in updates:
        inventory_id = update.get("inventory_id") if isinstance(update, dict) else None
        if not inventory_id:
            errors.append({"inventory_id": inventory_id, "error": "inventory_id is required"})
            continue
        try:
            inventory = add_stock(
                inventory_id,
                update.get("quantity"),
                update.get("reason") or "Bulk stock addition",
                update.get("notes") or "",
                actor,
            )
        except StorefrontError as e:
            errors.append({"inventory_id": inventory_id, "error": str(e)})
            continue

        results.append({
            "inventory_id": inventory_id,
            "product_name": inventory.product_name,
            "color_name": inventory.color_name,
            "fragrance": inventory.fragrance,
            "added_quantity": update.get("quantity"),
            "new_stock": inventory.stock,
        })

    return {
        "results": results,
        "errors": errors,
        "successful": len(results),
        "failed": len(errors),
    }


BULK_OPERATIONS = ("add", "deduct", "set")


def bulk_update_variant_stock(
    *,
    product_id: str,
    color_id: str,
    updates: list[dict],
    model_id: str = NO_MODEL,
    actor: str = "admin",
) -> dict:
    """Apply add/deduct/set per fragrance of one product color."""
    results = []
    errors = []

    for update in updates:
        if not isinstance(update, dict):
            errors.append({"fragrance": None, "error": "Invalid data"})
            continue

        fragrance = update.get("fragrance") or DEFAULT_OPTION
        operation = update.get("operation")
        quantity = update.get("quantity")
        reason = update.get("reason") or f"Bulk stock {operation}"
        notes = update.get("notes") or ""

        if operation not in BULK_OPERATIONS:
            errors.append({"fragrance": fragrance, "error": f"operation must be one of {', '.join(BULK_OPERATIONS)}"})
            continue

        key = VariantKey(product_id=product_id, color_id=color_id, model_id=model_id, fragrance=fragrance)
        try:
            inventory = find_by_variant(key)
            if operation == "add":
                inventory = add_stock(inventory.inventory_id, quantity, reason, notes, actor)
            elif operation == "deduct":
                inventory = deduct_stock(inventory.inventory_id, quantity, reason, notes, actor)
            else:
                inventory = set_stock(inventory.inventory_id, quantity, reason, notes, actor)
        except StorefrontError as e:
            errors.append({"fragrance": fragrance, "error": str(e)})
            continue

        results.append({
            "fragrance": fragrance,
            "operation": operation,
            "quantity": quantity,
            "new_stock": inventory.stock,
        })

    return {
        "product_id": product_id,
        "color_id": color_id,
        "results": results,
        "errors": errors,
        "successful": len(results),
        "failed": len(errors),
    }


def get_stock_history(inventory_id: str, *, page: int = 1, limit: int = 50) -> dict:
    """Newest-first page of one record's history."""
    inventory = get_inventory(inventory_id)
    page = max(page, 1)
    limit = max(min(limit, 500), 1)

    query = db.session.query(StockHistory).filter_by(inventory_pk=inventory.id)
    total = query.count()
    rows = (
        query.order_by(StockHistory.date.desc(), StockHistory.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "inventory": inventory.to_dict(),
        "current_stock": inventory.stock,
        "total_history": total,
        "page": page,
        "limit": limit,
        "total_pages": (total + limit - 1) // limit,
        "history": [h.to_dict() for h in rows],
    }


def list_low_stock() -> list[Inventory]:
    return (
        db.session.query(Inventory)
        .filter(Inventory.is_active.is_(True), Inventory.stock < Inventory.threshold)
        .order_by(Inventory.stock.asc(), Inventory.id.asc())
        .all()
    )


def list_product_inventory(product_id: str) -> list[Inventory]:
    return (
        db.session.query(Inventory)
        .filter_by(product_id=product_id, is_active=True)
        .order_by(Inventory.variable_model_id, Inventory.color_name, Inventory.fragrance)
        .all()
    )


def get_variant_stock_status(
    product_id: str,
    *,
    color_id: str | None = None,
    model_id: str | None = None,
    fragrance: str | None = None,
) -> dict:
    """Storefront stock badge. Missing records read as out of stock."""
    query = db.session.query(Inventory).filter_by(product_id=product_id, is_active=True)
    if color_id:
        query = query.filter_by(color_id=color_id)
    if model_id:
        query = query.filter_by(variable_model_id=model_id)
    if fragrance:
        query = query.filter_by(fragrance=fragrance)

    inventory = query.order_by(Inventory.id.asc()).first()
    if inventory is None:
        return {
            "stock": 0,
            "threshold": current_app.config.get("DEFAULT_STOCK_THRESHOLD", 10),
            "status": "out-of-stock",
            "message": "Inventory not found",
            "fragrance": fragrance or DEFAULT_OPTION,
        }

    return {
        "inventory_id": inventory.inventory_id,
        "stock": inventory.stock,
        "threshold": inventory.threshold,
        "status": inventory.stock_status(),
        "color_name": inventory.color_name,
        "fragrance": inventory.fragrance,
        "model_name": inventory.variable_model_name or inventory.model_name,
    }


def deactivate_product_inventory(product_id: str) -> int:
    """Soft-deactivate every ledger of a product. Caller commits."""
    rows = db.session.query(Inventory).filter_by(product_id=product_id, is_active=True).all()
    for inventory in rows:
        inventory.is_active = False
    db.session.flush()
    return len(rows)


def replay_history(entries: list[StockHistory]) -> tuple[int | None, list[str]]:
    """
    Replay entries oldest-first from the first entry's previous_stock.

    Returns (replayed_stock, problems). An empty history replays to None.
    """
    problems = []
    if not entries:
        return None, problems

    stock = entries[0].previous_stock
    for entry in entries:
        if entry.previous_stock != stock:
            problems.append(
                f"{entry.history_id}: previous_stock {entry.previous_stock} does not continue from {stock}"
            )
        delta = entry.new_stock - entry.previous_stock
        if abs(delta) != entry.quantity:
            problems.append(f"{entry.history_id}: quantity {entry.quantity} does not match delta {delta}")
        if entry.type in STOCK_INCREASING_TYPES and delta < 0:
            problems.append(f"{entry.history_id}: {entry.type} entry decreased stock")
        if entry.type in STOCK_DECREASING_TYPES and delta > 0:
            problems.append(f"{entry.history_id}: {entry.type} entry increased stock")
        if entry.new_stock < 0:
            problems.append(f"{entry.history_id}: new_stock is negative")
        stock = entry.new_stock

    return stock, problems


def audit_inventory(inventory_id: str | None = None) -> list[dict]:
    """
    Reconcile stock counters against their history. Operators run this after
    a crash between stock reservation and order persistence.
    """
    query = db.session.query(Inventory)
    if inventory_id:
        query = query.filter_by(inventory_id=inventory_id)

    findings = []
    for inventory in query.order_by(Inventory.id.asc()).all():
        replayed, problems = replay_history(list(inventory.history))
        if replayed is None:
            problems.append("no stock history")
        elif replayed != inventory.stock:
            problems.append(f"stock {inventory.stock} but history replays to {replayed}")
        if problems:
            findings.append({
                "inventory_id": inventory.inventory_id,
                "description": inventory.describe(),
                "stock": inventory.stock,
                "replayed_stock": replayed,
                "problems": problems,
            })
    return findings

