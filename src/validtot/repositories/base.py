"""
Shared repository helpers.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from validtot.core.errors import BackendUnavailableError

logger = structlog.get_logger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]


def is_valid_id(value: str | None) -> bool:
    """Post and vote ids are UUIDs; anything else cannot exist in the store."""
    if not value:
        return False
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


@asynccontextmanager
async def store_errors(operation: str) -> AsyncGenerator[None, None]:
    """Translate driver and network failures into BackendUnavailableError."""
    try:
        yield
    except (SQLAlchemyError, OSError) as e:
        logger.warning("store_call_failed", operation=operation, error=str(e), error_type=type(e).__name__)
        raise BackendUnavailableError() from e
