"""
Database configuration and session management for SQLAlchemy with async support.
"""

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)

from track_inspector.core.config import settings

logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> dict:
    """Pool and timeout options for the configured driver."""
    options = {
        "echo": settings.DB_ECHO,
        "pool_pre_ping": True,
    }
    if database_url.startswith("postgresql+asyncpg://"):
        options["pool_size"] = settings.DB_POOL_SIZE
        options["connect_args"] = {
            "timeout": settings.DB_CONNECT_TIMEOUT_SECONDS,
            "command_timeout": settings.DB_COMMAND_TIMEOUT_SECONDS,
        }
    return options


# Create async engine
engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    **_engine_options(settings.DATABASE_URL),
)

# Create async session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function to get database session for FastAPI routes.

    Yields:
        AsyncSession: Database session for the request
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    """
    Create all tables that do not exist yet.
    Should be called on application startup.
    """
    async with engine.begin() as conn:
        from track_inspector.models import Base  # noqa: F811 - registers every model
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """
    Close the database connection pool.
    Should be called on application shutdown.
    """
    await engine.dispose()
