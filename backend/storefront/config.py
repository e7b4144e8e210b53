# backend/storefront/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storefront.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storefront.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Order pricing (currency units, not cents)
    TAX_PERCENTAGE = os.environ.get("TAX_PERCENTAGE", "18")
    FREE_SHIPPING_THRESHOLD = os.environ.get("FREE_SHIPPING_THRESHOLD", "1000")
    SHIPPING_FEE = os.environ.get("SHIPPING_FEE", "50")
    ESTIMATED_DELIVERY_DAYS = int(os.environ.get("ESTIMATED_DELIVERY_DAYS", "5"))

    # Reorder alert level for newly created inventory records
    DEFAULT_STOCK_THRESHOLD = int(os.environ.get("DEFAULT_STOCK_THRESHOLD", "10"))

    # Optimistic-lock retries for stock mutations
    STOCK_RETRY_ATTEMPTS = int(os.environ.get("STOCK_RETRY_ATTEMPTS", "3"))

    # Lifetime of issued bearer tokens, in seconds
    AUTH_TOKEN_MAX_AGE = int(os.environ.get("AUTH_TOKEN_MAX_AGE", str(24 * 60 * 60)))
