"""
Async Postgres engine, sessions and connectivity checks.

One ``AsyncSession`` is opened per request by :func:`get_db`; it commits when
the handler returns and rolls back when anything raises, so a failed status
change or a version conflict leaves the stored order untouched.
"""

import asyncio
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from merchdash.core.config import get_settings
from merchdash.core.logging import get_logger

logger = get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _convert_database_url_to_async(url: str) -> str:
    """Swap a plain ``postgresql://`` URL onto the asyncpg driver."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def _pool_options() -> dict:
    settings = get_settings()
    if settings.is_test:
        return {"poolclass": NullPool}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


def get_engine() -> AsyncEngine:
    """
    Return the process-wide engine, creating it on first use.

    Raises:
        RuntimeError: If the engine cannot be created from the settings
    """
    global _engine

    if _engine is None:
        settings = get_settings()
        try:
            _engine = create_async_engine(
                _convert_database_url_to_async(settings.database_url),
                echo=settings.debug,
                connect_args={
                    "server_settings": {"application_name": settings.app_name},
                    "command_timeout": 60,
                },
                **_pool_options(),
            )
        except (SQLAlchemyError, ValueError, ImportError) as e:
            logger.error(
                "Failed to create database engine",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RuntimeError(f"Database engine initialization failed: {e}") from e

        logger.info(
            "Database engine created",
            pool_size=settings.db_pool_size,
            environment=settings.environment,
        )

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding the request's unit of work.

    Example:
        @router.get("/stores")
        async def list_stores(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.warning(
                "Database session rolled back",
                error_type=type(e).__name__,
            )
            raise


async def check_database_health(max_retries: int = 3, retry_delay: float = 1.0) -> bool:
    """
    Run ``SELECT 1``, retrying connection failures with exponential backoff.

    Args:
        max_retries: Maximum number of connection attempts
        retry_delay: Base delay between retries in seconds

    Returns:
        True if database is healthy, False otherwise
    """
    for attempt in range(1, max_retries + 1):
        try:
            async with get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (OperationalError, DBAPIError) as e:
            logger.warning(
                "Database health check failed",
                attempt=attempt,
                max_retries=max_retries,
                error=str(e),
            )
        except (SQLAlchemyError, RuntimeError, OSError) as e:
            logger.error(
                "Database health check failed with unexpected error",
                attempt=attempt,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if attempt < max_retries:
            await asyncio.sleep(retry_delay * 2 ** (attempt - 1))

    return False


async def close_database_connections() -> None:
    """Dispose of the engine during application shutdown."""
    global _engine, _session_factory

    if _engine is not None:
        try:
            await _engine.dispose()
            logger.info("Database engine disposed")
        finally:
            _engine = None
            _session_factory = None
