"""Password hashing and access token tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from src.app.config import get_settings
from src.app.core.exceptions import UnauthenticatedError
from src.app.core.security import (
    Principal,
    create_access_token,
    hash_password,
    verify_password,
    verify_token,
)


# ── Password Hashing ──────────────────────────────────────────────────────────


def test_hash_password_roundtrip():
    hashed = hash_password("pass1")
    assert hashed != "pass1"
    assert verify_password("pass1", hashed) is True


def test_verify_password_wrong_password():
    hashed = hash_password("pass1")
    assert verify_password("pass2", hashed) is False


def test_verify_password_non_bcrypt_hash():
    """A corrupted stored hash fails verification instead of raising."""
    assert verify_password("pass1", "not-a-bcrypt-hash") is False


def test_hash_password_is_salted():
    assert hash_password("same") != hash_password("same")


# ── Tokens ────────────────────────────────────────────────────────────────────


def test_access_token_claims():
    token = create_access_token(42, "a@example.com")
    settings = get_settings()
    payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])

    assert payload["sub"] == "42"
    assert payload["email"] == "a@example.com"
    assert payload["type"] == "access"
    lifetime = payload["exp"] - payload["iat"]
    assert lifetime == settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60


def test_verify_token_returns_principal():
    principal = verify_token(create_access_token(7, "p@example.com"))
    assert principal == Principal(user_id=7, email="p@example.com")


@pytest.mark.parametrize("token", [None, ""])
def test_verify_token_missing(token):
    with pytest.raises(UnauthenticatedError) as exc_info:
        verify_token(token)
    assert exc_info.value.message == "missing token"
    assert exc_info.value.status_code == 401


def test_verify_token_garbage():
    with pytest.raises(UnauthenticatedError) as exc_info:
        verify_token("not.a.jwt")
    assert exc_info.value.message == "invalid token"


def test_verify_token_expired():
    token = create_access_token(1, "a@example.com", expires_delta=timedelta(seconds=-1))
    with pytest.raises(UnauthenticatedError):
        verify_token(token)


def test_verify_token_wrong_secret():
    settings = get_settings()
    token = jwt.encode(
        {"sub": "1", "type": "access", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        "some-other-secret",
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(UnauthenticatedError):
        verify_token(token)


def test_verify_token_wrong_type():
    settings = get_settings()
    token = jwt.encode(
        {"sub": "1", "type": "refresh", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(UnauthenticatedError):
        verify_token(token)


def test_verify_token_non_numeric_subject():
    settings = get_settings()
    token = jwt.encode(
        {"sub": "abc", "type": "access", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(UnauthenticatedError):
        verify_token(token)


def test_long_password_uses_first_72_bytes():
    """Passwords beyond bcrypt's 72-byte limit hash instead of raising."""
    hashed = hash_password("x" * 100)
    assert verify_password("x" * 100, hashed) is True
    assert verify_password("x" * 72, hashed) is True
    assert verify_password("x" * 71, hashed) is False


def test_long_multibyte_password():
    password = "ü" * 60  # 120 bytes in UTF-8
    assert verify_password(password, hash_password(password)) is True
