"""
Database connection and session management for the Retainer service.

This module provides database connection management, session handling,
and the transaction scope used by the configuration workflows.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .config import get_settings_instance
from .exceptions import DatabaseConnectionError, DatabaseSessionError
from .logging import get_logger

logger = get_logger(__name__)

# Create declarative base
Base = declarative_base()

# Global async engine and session factory - lazy initialization
_async_engine = None
_AsyncSessionLocal = None


def _redact(database_url: str) -> str:
    """Return host/database part of a URL without credentials."""
    return database_url.split("@")[1] if "@" in database_url else "URL format"


def get_async_engine():
    global _async_engine
    if _async_engine is None:
        try:
            settings = get_settings_instance()
            logger.debug(f"Database configuration: {_redact(settings.database_url)}")
            _async_engine = create_async_engine(
                settings.database_url,
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                pool_timeout=settings.database_pool_timeout,
                pool_recycle=settings.database_pool_recycle,
                pool_pre_ping=True,
                echo=False,
            )
        except Exception as e:
            logger.error(f"Failed to create async database engine: {e!s}")
            raise DatabaseConnectionError(f"engine creation: {e!s}")
    return _async_engine


def get_async_session_local():
    global _AsyncSessionLocal
    if _AsyncSessionLocal is None:
        try:
            engine = get_async_engine()
            _AsyncSessionLocal = async_sessionmaker(
                bind=engine,
                expire_on_commit=False,
                autoflush=False,
                autocommit=False,
                class_=AsyncSession,
            )
        except DatabaseConnectionError:
            raise
        except Exception as e:
            logger.error(f"Failed to create async session factory: {e!s}")
            raise DatabaseSessionError(f"session factory creation: {e!s}")
    return _AsyncSessionLocal


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    session_local = get_async_session_local()
    async with session_local() as session:
        try:
            yield session
        except SQLAlchemyError as e:
            logger.error(f"Database session error: {e!s}")
            await session.rollback()
            raise DatabaseSessionError(f"session operation: {e!s}")
        finally:
            await session.close()


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run a unit of work on ``db`` that is committed on success.

    Every exit path releases the transaction: an exception (including ones
    raised after partial writes) rolls back and re-raises; a clean exit
    commits. Operations executed inside must not commit on their own.
    """
    try:
        yield db
    except BaseException:
        await db.rollback()
        raise
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Transaction commit failed: {e!s}")
        raise DatabaseSessionError(f"commit: {e!s}")


async def close_db() -> None:
    global _async_engine, _AsyncSessionLocal
    if _async_engine is None:
        return
    try:
        await _async_engine.dispose()
        logger.debug("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database connections: {e!s}")
    finally:
        _async_engine = None
        _AsyncSessionLocal = None


async def check_db_connection() -> bool:
    """Check if database connection is working."""
    try:
        engine = get_async_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e!s}")
        return False
