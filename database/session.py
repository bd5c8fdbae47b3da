"""
Async database engine and session factory for the Lead Engine.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
    AsyncEngine,
)

from .models import Base

logger = logging.getLogger(__name__)


def normalize_database_url(database_url: str) -> str:
    """Ensure an async driver is named in the URL."""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


async def init_db(
    database_url: str,
    pool_size: int = 5,
    max_overflow: int = 10,
) -> Tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """
    Create the async engine and session factory, and create tables.

    Args:
        database_url: SQLAlchemy URL (asyncpg or aiosqlite driver)
        pool_size: Connection pool size (ignored for SQLite)
        max_overflow: Max overflow connections (ignored for SQLite)
    """
    url = normalize_database_url(database_url)

    engine_kwargs = {"echo": False}
    if not url.startswith("sqlite"):
        engine_kwargs.update(pool_size=pool_size, max_overflow=max_overflow)

    engine = create_async_engine(url, **engine_kwargs)
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info(f"Database initialized ({engine.url.drivername})")
    return engine, session_factory


async def close_db(engine: Optional[AsyncEngine]):
    """Close the database engine."""
    if engine:
        await engine.dispose()
        logger.info("Database connection closed")
