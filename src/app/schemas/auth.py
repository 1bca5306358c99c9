"""Pydantic schemas for authentication API endpoints."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field


class SignupRequest(BaseModel):
    """Request schema for creating an account."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=4, description="User password")


class LoginRequest(BaseModel):
    """Request schema for user login."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=4, description="User password")


class UserResponse(BaseModel):
    """Public view of an account. Never includes the password hash."""

    id: int
    email: str


class TokenResponse(BaseModel):
    """Bearer token valid for JWT_ACCESS_TOKEN_EXPIRE_MINUTES."""

    token: str
