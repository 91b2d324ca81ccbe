"""
Database engine and session management.

Each store operation opens its own short-lived session from the factory.
The vote core never relies on a transaction that spans more than one
repository call.
"""

from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from validtot.core.config import settings

logger = structlog.get_logger(__name__)

# Global engine and factory (lazy-initialized)
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_engine() -> AsyncEngine:
    """Get or create the async engine."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            settings.DATABASE_URL,
            echo=settings.DATABASE_ECHO,
            pool_pre_ping=True,
        )
    return _engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a session factory bound to an engine."""
    return async_sessionmaker(engine, expire_on_commit=False)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    FastAPI dependency returning the shared session factory.

    Repositories receive the factory rather than a session so that every
    store call is an independent unit of work.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(get_engine())
    return _session_factory


async def init_db(create_tables: bool = False) -> None:
    """Initialize the engine and optionally create tables (local development)."""
    engine = get_engine()
    if create_tables:
        from validtot.db.base import Base
        from validtot import models  # noqa: F401  (register tables)

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_tables_created")
    get_session_factory()
    logger.info("database_initialized")


async def close_db() -> None:
    """Dispose the engine. Called during application shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("database_closed")
