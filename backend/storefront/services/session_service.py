# Overview: Service-layer operations for bearer tokens; verifies caller identity for routes.

"""
Bearer Token Service

Tokens are self-contained: a signed, timestamped payload of
{"sub": subject_id, "role": role}. Nothing is kept in process memory or in
the database, so any number of server instances can verify them, and
expiry is enforced from the signature timestamp (AUTH_TOKEN_MAX_AGE).

SECURITY FEATURES:
- HMAC signature keyed by SECRET_KEY with a dedicated salt
- Absolute lifetime enforced on every verification
- Role is part of the signed payload and cannot be altered by the client
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

TOKEN_SALT = "storefront-bearer"
ROLES = ("user", "admin")


@dataclass(frozen=True)
class Identity:
    """Verified caller. subject_id is a user_id or an admin_id depending on role."""
    subject_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def can_act_for(self, user_id: str) -> bool:
        return self.is_admin or self.subject_id == user_id


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def issue_token(subject_id: str, role: str = "user") -> str:
    if not subject_id:
        raise ValueError("subject_id is required")
    if role not in ROLES:
        raise ValueError(f"role must be one of {', '.join(ROLES)}")
    return _serializer().dumps({"sub": str(subject_id), "role": role})


def verify_token(token: str) -> Identity | None:
    """
    Verify a bearer token.

    Returns None for missing, tampered, expired or malformed tokens.
    """
    if not token:
        return None

    max_age = current_app.config.get("AUTH_TOKEN_MAX_AGE", 24 * 60 * 60)
    try:
        payload = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        current_app.logger.info("Rejected expired bearer token")
        return None
    except BadSignature:
        return None

    if not isinstance(payload, dict):
        return None
    subject_id = payload.get("sub")
    role = payload.get("role")
    if not subject_id or role not in ROLES:
        return None
    return Identity(subject_id=subject_id, role=role)
