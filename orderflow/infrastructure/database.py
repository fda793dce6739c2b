"""Database configuration and session management.

Provides async SQLAlchemy engine and session factory. Nothing connects
until ``database_url`` is configured; without it orders stay in memory.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from orderflow.infrastructure.config import settings

# Base class for models
Base = declarative_base()


def build_engine(database_url: str | None = None) -> AsyncEngine:
    """Create an async engine.

    Args:
        database_url: SQLAlchemy URL; defaults to ``settings.database_url``.

    Raises:
        RuntimeError: If no URL is configured.
    """
    url = database_url or settings.database_url
    if not url:
        raise RuntimeError("database_url is not configured")
    return create_async_engine(url, echo=settings.debug, pool_pre_ping=True)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create the order tables if they do not exist yet."""
    # Registers the models on Base.metadata
    from orderflow.infrastructure import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
