"""Authentication API endpoints.

Provides signup and login. Both are public; login returns a bearer token
used by every other CRM endpoint.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.api.deps import get_db
from src.app.core.exceptions import ConflictError, InvalidCredentialsError
from src.app.core.security import create_access_token, hash_password, verify_password
from src.app.models.user import User
from src.app.schemas.auth import LoginRequest, SignupRequest, TokenResponse, UserResponse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def signup(body: SignupRequest, db: AsyncSession = Depends(get_db)):
    """Create an account. Emails are unique; a duplicate returns 409."""
    result = await db.execute(select(User.id).where(User.email == body.email))
    if result.scalar_one_or_none() is not None:
        raise ConflictError("email already registered")

    user = User(email=body.email, hashed_password=hash_password(body.password))
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same email
        await db.rollback()
        raise ConflictError("email already registered")
    await db.refresh(user)

    logger.info("auth.signup", user_id=user.id)
    return UserResponse(id=user.id, email=user.email)


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate a user and return a bearer token."""
    result = await db.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(body.password, user.hashed_password):
        logger.info("auth.login_failed")
        raise InvalidCredentialsError()

    logger.info("auth.login", user_id=user.id)
    return TokenResponse(token=create_access_token(user.id, user.email))
