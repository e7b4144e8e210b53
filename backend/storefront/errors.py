# Overview: Domain error taxonomy shared by services and routes.

from __future__ import annotations


class StorefrontError(Exception):
    """
    Base class for expected business errors.

    Routes translate these into JSON bodies of the form
    {"error": code, "message": str(e), "details": {...}} using status_code.
    Anything that is not a StorefrontError is a fault: logged with stack,
    answered with a generic 500.
    """
    status_code = 400
    code = "bad_request"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.code, "message": str(self)}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(StorefrontError, ValueError):
    """400-level input problem. Raised before any mutation."""
    code = "bad_request"


class ConflictError(StorefrontError):
    """409-level uniqueness conflict (e.g., a second active offer on a color)."""
    status_code = 409
    code = "conflict"


class NotFoundError(StorefrontError):
    status_code = 404
    code = "not_found"


class ProductNotFoundError(NotFoundError):
    code = "product_not_found"


class VariantNotFoundError(NotFoundError):
    code = "variant_not_found"


class InventoryNotFoundError(NotFoundError):
    code = "inventory_not_found"


class OfferNotFoundError(NotFoundError):
    code = "offer_not_found"


class OrderNotFoundError(NotFoundError):
    code = "order_not_found"


class InvalidQuantityError(StorefrontError):
    code = "invalid_quantity"


class InsufficientStockError(StorefrontError):
    code = "insufficient_stock"


class InvalidTransitionError(StorefrontError):
    code = "invalid_transition"

