# backend/storefront/routes/system.py
"""
System health and version endpoints.

Health covers the database and the inventory ledger, the one piece of
shared mutable state order traffic depends on.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Inventory, Order, Product
from storefront.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        product_count = db.session.query(Product).filter_by(is_active=True).count()
        order_count = db.session.query(Order).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "active_products": product_count,
                "orders": order_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_inventory_health() -> dict:
    """
    Report out-of-stock and low-stock records. Low stock degrades but
    never fails the check.
    """
    start_time = time.time()
    try:
        active = db.session.query(Inventory).filter_by(is_active=True)
        out_of_stock = active.filter(Inventory.stock == 0).count()
        low_stock = active.filter(Inventory.stock > 0, Inventory.stock < Inventory.threshold).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "degraded" if out_of_stock else "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "out_of_stock": out_of_stock,
                "low_stock": low_stock,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Inventory health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Inventory check error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    inventory_health = check_inventory_health()

    all_checks = [database_health, inventory_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "inventory": inventory_health,
        }
    }

    return response, http_status
