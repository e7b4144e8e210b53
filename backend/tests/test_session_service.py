"""
Bearer token tests.

Verifies:
- Issued tokens verify to the same identity
- Tampered, foreign-key and expired tokens are rejected
"""

import pytest
from itsdangerous import URLSafeTimedSerializer

from storefront.services import session_service
from storefront.services.session_service import Identity


def test_round_trip(app):
    token = session_service.issue_token("user-1")
    assert session_service.verify_token(token) == Identity("user-1", "user")


def test_admin_identity(app):
    identity = session_service.verify_token(session_service.issue_token("admin-1", "admin"))
    assert identity.is_admin
    assert identity.can_act_for("anyone")


def test_user_acts_only_for_self(app):
    identity = Identity("user-1", "user")
    assert identity.can_act_for("user-1")
    assert not identity.can_act_for("user-2")


@pytest.mark.parametrize("token", ["", "garbage", None])
def test_rejects_malformed(app, token):
    assert session_service.verify_token(token) is None


def test_rejects_tampered(app):
    token = session_service.issue_token("user-1")
    tampered = token[:-1] + ("A" if token[-1] != "A" else "B")
    assert session_service.verify_token(tampered) is None


def test_rejects_token_signed_with_another_key(app):
    forged = URLSafeTimedSerializer("other-secret", salt=session_service.TOKEN_SALT).dumps(
        {"sub": "admin-1", "role": "admin"}
    )
    assert session_service.verify_token(forged) is None


def test_rejects_unknown_role_in_payload(app):
    token = URLSafeTimedSerializer(app.config["SECRET_KEY"], salt=session_service.TOKEN_SALT).dumps(
        {"sub": "user-1", "role": "root"}
    )
    assert session_service.verify_token(token) is None


def test_rejects_expired(app, monkeypatch):
    token = session_service.issue_token("user-1")
    monkeypatch.setitem(app.config, "AUTH_TOKEN_MAX_AGE", -1)
    assert session_service.verify_token(token) is None


@pytest.mark.parametrize("subject_id,role", [("", "user"), ("user-1", "root")])
def test_issue_rejects_bad_input(app, subject_id, role):
    with pytest.raises(ValueError):
        session_service.issue_token(subject_id, role)
