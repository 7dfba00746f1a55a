"""Database session management for the async SQLAlchemy engine."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from notification_service.core.database import Base
from notification_service.core.settings import get_app_settings, get_db_settings

if TYPE_CHECKING:
    from notification_service.core.settings import PostgresSettings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def create_engine(db_settings: PostgresSettings | None = None) -> AsyncEngine:
    """Create an async engine from database settings.

    Pool sizing only applies to PostgreSQL; the SQLite fallback uses the
    driver's default pool.
    """
    db_settings = db_settings or get_db_settings()
    url = db_settings.get_sqlalchemy_url()
    kwargs: dict[str, Any] = {"echo": db_settings.echo or get_app_settings().debug}
    if not db_settings.is_sqlite:
        kwargs.update(
            pool_size=db_settings.pool_size,
            max_overflow=db_settings.max_overflow,
            pool_timeout=db_settings.pool_timeout,
            pool_recycle=db_settings.pool_recycle,
            pool_pre_ping=db_settings.pool_pre_ping,
        )
    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory used by repository adapters."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = create_engine()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory, creating it on first use."""
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(get_engine())
    return _session_factory


async def init_database(engine: AsyncEngine | None = None) -> None:
    """Verify connectivity and create any missing tables.

    Table creation is idempotent (``checkfirst``), so it is safe on every
    startup as long as no migrations tool owns the schema.
    """
    # Import models so they register on Base.metadata
    from notification_service.features.notifications import models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized", extra={"dialect": engine.dialect.name})


async def close_database() -> None:
    """Dispose the engine and drop the cached factory."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Database connections closed")
    _engine = None
    _session_factory = None
