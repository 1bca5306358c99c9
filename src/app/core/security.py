"""JWT authentication and password hashing.

Provides the session-issuer primitives used by the auth endpoints and the
``get_current_principal`` dependency. Tokens are self-contained: there is no
revocation list and verification never touches the database, so expiry is
the only lifecycle bound.

Uses bcrypt directly (not passlib) for Python 3.13 compatibility.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from src.app.config import get_settings
from src.app.core.exceptions import UnauthenticatedError


@dataclass(frozen=True)
class Principal:
    """The authenticated user making a request, taken from the token subject."""

    user_id: int
    email: str


# ── Password Hashing ──────────────────────────────────────────────────────────

BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    """UTF-8 password cut to the 72 bytes bcrypt actually uses."""
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a plaintext password using bcrypt."""
    salt = bcrypt.gensalt(rounds=get_settings().BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a plaintext password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


# ── JWT Token Creation ────────────────────────────────────────────────────────


def create_access_token(
    user_id: int, email: str, expires_delta: timedelta | None = None
) -> str:
    """Create a signed access token for ``user_id``.

    Claims: ``sub`` (user id as string), ``email``, ``iat``, ``exp`` and
    ``type="access"``.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "exp": expire,
        "iat": now,
        "type": "access",
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


# ── JWT Token Verification ────────────────────────────────────────────────────


def verify_token(token: str | None) -> Principal:
    """Decode and validate an access token.

    Args:
        token: The JWT string (may be None or empty).

    Returns:
        The Principal encoded in the token.

    Raises:
        UnauthenticatedError: If the token is missing, invalid, expired,
            of the wrong type, or carries no numeric subject.
    """
    if not token:
        raise UnauthenticatedError("missing token")

    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        raise UnauthenticatedError("invalid token")

    if payload.get("type") != "access":
        raise UnauthenticatedError("invalid token")

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise UnauthenticatedError("invalid token")

    return Principal(user_id=user_id, email=str(payload.get("email", "")))
