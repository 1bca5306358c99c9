"""Health check endpoints.

Provides a root banner (/), liveness (/health) and readiness
(/health/ready). None of them require authentication.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy import text

from src.app.config import get_settings

router = APIRouter(tags=["health"])

BANNER = "Mini-CRM API is running. Try GET /health or open /docs for Swagger."


@router.get("/", response_class=PlainTextResponse)
async def root():
    return BANNER


@router.get("/health")
async def health_check():
    """Basic liveness check.

    No external dependencies are checked -- just that the server is running.
    """
    settings = get_settings()
    return {"ok": True, "status": "ok", "environment": settings.ENVIRONMENT.value}


async def _check_database(request: Request) -> dict:
    checks: dict = {"database": "ok"}
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        checks["database"] = "error"
        checks["database_error"] = "not initialized"
        return checks

    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        checks["database"] = "error"
        checks["database_error"] = str(e)
    return checks


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness check: verifies database connectivity.

    Returns 200 if the database answers, 503 otherwise.
    """
    checks = await _check_database(request)
    healthy = checks["database"] == "ok"

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if healthy else "degraded",
            "checks": checks,
        },
    )
