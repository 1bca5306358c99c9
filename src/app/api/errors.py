"""Exception handlers rendering every failure as ``{error, code, details}``."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.app.core.exceptions import CRMError, UnauthenticatedError, ValidationFailedError

logger = structlog.get_logger(__name__)


class ErrorResponse(BaseModel):
    error: str
    code: str
    details: Any | None = None


def _error_response(
    status_code: int,
    error: str,
    code: str,
    details: Any | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, code=code, details=details).model_dump(),
        headers=headers,
    )


def _field_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Reduce pydantic errors to JSON-safe ``{loc, msg, type}`` entries."""
    return [
        {
            "loc": [str(part) for part in err.get("loc", ())],
            "msg": str(err.get("msg", "")),
            "type": str(err.get("type", "")),
        }
        for err in exc.errors()
    ]


def add_exception_handlers(app: FastAPI) -> None:
    """Registers exception handlers with the FastAPI app."""

    @app.exception_handler(CRMError)
    async def crm_exception_handler(request: Request, exc: CRMError):
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
        return _error_response(exc.status_code, exc.message, exc.code, exc.details, headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        error = ValidationFailedError(details=_field_errors(exc))
        return _error_response(error.status_code, error.message, error.code, error.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handles standard HTTP exceptions (404 for unknown routes, 405, 503)."""
        return _error_response(
            exc.status_code,
            str(exc.detail),
            "HTTP_ERROR",
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            "request.unhandled_exception",
            method=request.method,
            path=request.url.path,
            error=str(exc),
            exc_info=exc,
        )
        return _error_response(500, "server error", "INTERNAL_ERROR")
