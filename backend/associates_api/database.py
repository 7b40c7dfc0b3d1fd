"""
Associates Backend — Database Session Management
=================================================

What:  Async SQLAlchemy engine construction, declarative base, and the
       per-request session dependency.
Why:   Centralizes all database connection logic in one place.
How:   The lifespan handler calls create_engine_from_settings() once and keeps
       the engine and session factory on app.state. get_db_session() pulls the
       factory from there for every request, so nothing here is an ambient
       module-level connection.
Who:   Routes receive sessions via Depends(get_db_session); tests override that
       dependency with a mock session.

Connection Pooling Strategy:
    pool_size / max_overflow come from settings; pool_pre_ping catches stale
    connections after a database restart; pool_recycle=3600 retires
    long-lived connections.
"""

from typing import AsyncGenerator, Tuple

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from associates_api.config import Settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic reads for --autogenerate.
    """
    pass


def create_engine_from_settings(
    settings: Settings,
) -> Tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """
    Build the async engine and its session factory.

    When:    Once, during application startup.
    Returns: (engine, session_factory). The engine must be passed to
             dispose_engine() on shutdown.

    expire_on_commit=False: attributes stay readable after the request's
    commit, which the route layer relies on when serializing responses.
    """
    engine_kwargs = {
        "pool_pre_ping": settings.db_pool_pre_ping,
        "echo": settings.log_level == "DEBUG",
    }
    # SQLite (used in local runs and tests) has no server-side pool to size
    if not settings.database_url.startswith("sqlite"):
        engine_kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=3600,
        )

    engine = create_async_engine(settings.database_url, **engine_kwargs)
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return engine, session_factory


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory stored on app.state
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back and re-raises for the global handlers
        5. Always: closes the session (returns connection to pool)

    Protected routes declare require_identity ahead of this dependency, so an
    unauthenticated request never opens a session at all.
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine(engine: AsyncEngine) -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
