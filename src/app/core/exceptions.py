"""Domain exceptions mapped to HTTP responses by ``src.app.api.errors``."""

from __future__ import annotations

from typing import Any


class CRMError(Exception):
    """Base exception for the CRM application."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Any | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ValidationFailedError(CRMError):
    """Raised when a request body or query string fails validation."""

    def __init__(self, message: str = "validation failed", details: Any | None = None) -> None:
        super().__init__(message, code="VALIDATION_FAILED", status_code=400, details=details)


class InvalidInputError(CRMError):
    """Raised for malformed identifiers in the request path."""

    def __init__(self, message: str = "invalid id", details: Any | None = None) -> None:
        super().__init__(message, code="INVALID_INPUT", status_code=400, details=details)


class UnauthenticatedError(CRMError):
    """Raised when the bearer token is missing, malformed, or expired."""

    def __init__(self, message: str = "invalid token", details: Any | None = None) -> None:
        super().__init__(message, code="UNAUTHENTICATED", status_code=401, details=details)


class InvalidCredentialsError(UnauthenticatedError):
    """Raised when login email/password do not match a user."""

    def __init__(self) -> None:
        super().__init__("invalid credentials")


class ForbiddenError(CRMError):
    """Raised when a resource is missing or owned by someone else.

    The two cases are deliberately indistinguishable to the caller.
    """

    def __init__(self, message: str = "forbidden", details: Any | None = None) -> None:
        super().__init__(message, code="FORBIDDEN", status_code=403, details=details)


class ConflictError(CRMError):
    """Raised when creating a row would violate a uniqueness rule."""

    def __init__(self, message: str = "conflict", details: Any | None = None) -> None:
        super().__init__(message, code="CONFLICT", status_code=409, details=details)
