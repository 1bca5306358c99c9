"""Async SQLAlchemy engine, declarative base, and session factories.

Provides:
- Base: Declarative base for every CRM table (users, contacts, notes, deals)
- get_engine(): Lazily created engine singleton built from DATABASE_URL
- make_session_factory(): async_sessionmaker bound to an explicit engine
- init_db() / close_db(): create tables on startup, dispose on shutdown
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from src.app.config import get_settings

SessionFactory = async_sessionmaker[AsyncSession]

# ── Module-level engine (lazy init) ────────────────────────────────────────

_engine: AsyncEngine | None = None


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with pool settings suited to the backend.

    In-memory SQLite needs a single shared connection, otherwise every
    checkout would see an empty database. SQLite's LIKE is switched to
    case-sensitive so contact search behaves the same as on PostgreSQL.
    """
    if not url.startswith("sqlite"):
        return create_async_engine(
            url,
            pool_size=20,
            max_overflow=10,
            pool_pre_ping=True,
            echo=echo,
        )

    kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in url or url.rstrip("/").endswith(":"):
        kwargs["poolclass"] = StaticPool
    engine = create_async_engine(url, echo=echo, **kwargs)

    @event.listens_for(engine.sync_engine, "connect")
    def _sqlite_pragmas(dbapi_conn: Any, connection_record: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA case_sensitive_like = ON")
        cursor.close()

    return engine


def get_engine() -> AsyncEngine:
    """Get or create the async engine singleton."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    return _engine


# ── Declarative Base ────────────────────────────────────────────────────────


class Base(DeclarativeBase):
    """Base class for all CRM models."""


# ── Session Factories ───────────────────────────────────────────────────────


def make_session_factory(engine: AsyncEngine | None = None) -> SessionFactory:
    """Return a session factory bound to ``engine`` (default: the singleton)."""
    return async_sessionmaker(engine or get_engine(), expire_on_commit=False)


# ── Database Initialization ─────────────────────────────────────────────────


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create all tables if they don't exist."""
    # Model modules register their tables on Base.metadata when imported
    import src.app.crm.models  # noqa: F401
    import src.app.models.user  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine and close all connections."""
    global _engine
    if _engine:
        await _engine.dispose()
        _engine = None
