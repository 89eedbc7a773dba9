"""Unit tests for bearer token verification."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from jose import jwt

from retainer.auth.context import AuthContext, JWTManager
from retainer.core.exceptions import AuthenticationError

SECRET = "unit-test-secret"


def _token(claims: dict, secret: str = SECRET) -> str:
    payload = {"exp": datetime.now(timezone.utc) + timedelta(minutes=5), **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def manager() -> JWTManager:
    return JWTManager(secret_key=SECRET, algorithm="HS256")


def test_context_from_valid_token(manager):
    token = _token({"org_id": "org-1", "user_id": "user-1"})

    context = manager.auth_context_from_token(token)

    assert context == AuthContext(org_id="org-1", user_id="user-1", token=token)
    assert context.authorization_header == f"bearer {token}"


def test_wrong_signature_rejected(manager):
    with pytest.raises(AuthenticationError):
        manager.auth_context_from_token(_token({"org_id": "org-1"}, secret="another-secret"))


def test_expired_token_rejected(manager):
    token = _token({"org_id": "org-1", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)})
    assert manager.verify_token(token) is None


def test_token_without_org_rejected(manager):
    with pytest.raises(AuthenticationError, match="org"):
        manager.auth_context_from_token(_token({"user_id": "user-1"}))


def test_missing_secret_is_configuration_error(monkeypatch):
    settings = SimpleNamespace(jwt_secret_key=None, jwt_algorithm="HS256")
    monkeypatch.setattr("retainer.auth.context.get_settings_instance", lambda: settings)
    with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
        JWTManager()
