"""
Database configuration and connection management.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from ..core.exceptions import ProductVerificationError
from .settings import Settings

logger = structlog.get_logger(module=__name__)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def _engine_options(settings: Settings) -> Dict[str, Any]:
    if settings.is_sqlite:
        # sqlite3 busy timeout bounds lock waits between concurrent writers
        return {"connect_args": {"timeout": settings.store_timeout_seconds}}
    return {
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "pool_timeout": settings.store_timeout_seconds,
    }


class Database:
    """Owns the async engine and session factory for one application instance."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine: AsyncEngine = create_async_engine(
            settings.database_url,
            echo=settings.database_echo,
            **_engine_options(settings)
        )
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )
        logger.info("Database engine created", dialect=self.engine.dialect.name)

    async def create_all(self) -> None:
        """Create tables and indexes for all registered models."""
        from ..models import database  # noqa: F401  registers the models

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database schema initialized")

    async def dispose(self) -> None:
        """Close database connections."""
        await self.engine.dispose()
        logger.info("Database connections closed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Yield a session, rolling back on error.

        Yields:
            AsyncSession: Database session
        """
        async with self.session_maker() as session:
            try:
                yield session
            except ProductVerificationError as e:
                logger.debug("Session closed on request error", error_type=type(e).__name__)
                await session.rollback()
                raise
            except Exception as e:
                logger.error("Database session error", error=str(e))
                await session.rollback()
                raise

    async def check_connection(self) -> bool:
        """
        Check if database connection is working.

        Returns:
            bool: True if connection is successful, False otherwise
        """
        try:
            async with self.session_maker() as session:
                result = await session.execute(text("SELECT 1 AS health_check"))
                row = result.fetchone()
                if row and row[0] == 1:
                    logger.debug("Database connection check successful")
                    return True
                logger.warning("Database connection check returned unexpected result")
                return False
        except Exception as e:
            logger.error("Database connection check failed", error=str(e), error_type=type(e).__name__)
            return False
