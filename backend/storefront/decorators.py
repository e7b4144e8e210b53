# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'identity')


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.identity to the verified Identity (subject_id, role).

    SECURITY: Returns 401 if:
    - No Authorization header
    - Token tampered with, malformed or expired
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "unauthorized", "message": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        identity = session_service.verify_token(token)

        if not identity:
            return jsonify({"error": "unauthorized", "message": "Invalid or expired token"}), 401

        g.identity = identity
        return f(*args, **kwargs)

    return decorated_function


def require_role(role: str):
    """Require the authenticated caller to hold a role. Use after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "unauthorized", "message": "Authentication required"}), 401

            if g.identity.role != role:
                return jsonify({
                    "error": "forbidden",
                    "message": f"Requires role: {role}",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
