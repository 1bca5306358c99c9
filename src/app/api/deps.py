"""FastAPI dependency injection for repositories and authentication.

Repositories and the analytics aggregator are created once in the
application lifespan and stored on ``app.state``; the getters below hand
them to endpoints and fail with 503 if startup did not complete.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

from fastapi import HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.core.exceptions import InvalidInputError
from src.app.core.security import Principal, verify_token
from src.app.crm.schemas import MAX_ID


def _from_state(request: Request, name: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{name} not initialized",
        )
    return value


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get a database session from the application's session factory."""
    session_factory = _from_state(request, "session_factory")
    async with session_factory() as session:
        yield session


def get_contact_repository(request: Request) -> Any:
    return _from_state(request, "contact_repository")


def get_note_repository(request: Request) -> Any:
    return _from_state(request, "note_repository")


def get_deal_repository(request: Request) -> Any:
    return _from_state(request, "deal_repository")


def get_analytics(request: Request) -> Any:
    return _from_state(request, "analytics")


def _bearer_token(request: Request) -> str:
    """Token from the Authorization header; the ``Bearer`` prefix is optional."""
    header = request.headers.get("Authorization", "").strip()
    if header[:7].lower() == "bearer ":
        return header[7:].strip()
    return header


async def get_current_principal(request: Request) -> Principal:
    """Authenticate the request from its bearer token.

    Raises:
        UnauthenticatedError: ``missing token`` when no header is sent,
            ``invalid token`` when it does not verify.
    """
    principal = verify_token(_bearer_token(request))
    request.state.user_id = principal.user_id
    return principal


def parse_id(raw: str) -> int:
    """Parse a path id in ``1..MAX_ID``, raising InvalidInputError otherwise."""
    if not (raw.isascii() and raw.isdigit()) or len(raw) > len(str(MAX_ID)):
        raise InvalidInputError()
    value = int(raw)
    if value < 1 or value > MAX_ID:
        raise InvalidInputError()
    return value

