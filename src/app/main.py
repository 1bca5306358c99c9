"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS, Sentry,
exception handlers, lifespan events for database initialization, and the
v1 API router.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncEngine

from src.app.analytics.aggregator import AnalyticsAggregator
from src.app.api.errors import add_exception_handlers
from src.app.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.app.api.v1.router import router as v1_router
from src.app.config import get_settings
from src.app.core.database import close_db, get_engine, init_db, make_session_factory
from src.app.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.app.crm.ownership import OwnershipGuard
from src.app.crm.repository import ContactRepository, DealRepository, NoteRepository

LOCALHOST_ORIGIN_REGEX = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"


def init_app_state(
    app: FastAPI, engine: AsyncEngine, recalc_delay: float | None = None
) -> None:
    """Wire the session factory, repositories and aggregator onto app.state.

    Called from the lifespan; tests call it directly with their own engine.
    """
    settings = get_settings()
    session_factory = make_session_factory(engine)
    guard = OwnershipGuard(session_factory)
    deal_repository = DealRepository(session_factory, guard)

    app.state.session_factory = session_factory
    app.state.contact_repository = ContactRepository(session_factory, guard)
    app.state.note_repository = NoteRepository(session_factory, guard)
    app.state.deal_repository = deal_repository
    app.state.analytics = AnalyticsAggregator(
        deal_repository,
        recalc_delay=(
            settings.ANALYTICS_RECALC_DELAY_SECONDS if recalc_delay is None else recalc_delay
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: init DB and Sentry on startup, close on shutdown."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()

    engine = get_engine()
    await init_db(engine)

    # Initialize Sentry if DSN is configured
    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    init_app_state(app, engine)
    log.info("app.started", environment=settings.ENVIRONMENT.value, port=settings.PORT)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    analytics = getattr(app.state, "analytics", None)
    if analytics is not None:
        await analytics.shutdown()

    await close_db()
    log.info("app.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Mini-CRM API",
        version="0.1.0",
        description="Multi-user CRM: contacts, notes, deals and per-user analytics",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    # CORS middleware
    cors_options: dict = {
        "allow_credentials": True,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
    }
    if settings.CORS_ALLOWED_ORIGINS == "*":
        cors_options["allow_origins"] = ["*"]
    elif settings.CORS_ALLOWED_ORIGINS.strip():
        cors_options["allow_origins"] = [
            o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",") if o.strip()
        ]
    else:
        cors_options["allow_origin_regex"] = LOCALHOST_ORIGIN_REGEX
    app.add_middleware(CORSMiddleware, **cors_options)

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    add_exception_handlers(app)

    # Include v1 API router (health, auth, contacts, deals, analytics)
    app.include_router(v1_router)

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("src.app.main:app", host="0.0.0.0", port=get_settings().PORT)
