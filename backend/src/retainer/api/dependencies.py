"""
FastAPI dependencies for the Retainer API.

This module provides reusable dependencies for database sessions,
the caller's auth context and the retention plugin service.
"""

from collections.abc import AsyncGenerator

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.context import AuthContext, JWTManager
from ..core.database import get_db as core_get_db
from ..core.exceptions import AuthenticationError
from ..services.retention_plugin_service import RetentionPluginService

security = HTTPBearer(auto_error=False)

_jwt_manager: JWTManager | None = None


def get_jwt_manager() -> JWTManager:
    global _jwt_manager  # noqa: PLW0603
    if _jwt_manager is None:
        _jwt_manager = JWTManager()
    return _jwt_manager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database session dependency.

    Yields an async database session and ensures it's closed after use.
    """
    async for session in core_get_db():
        yield session


async def get_auth_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    jwt_manager: JWTManager = Depends(get_jwt_manager),
) -> AuthContext:
    """Resolve the caller from the bearer token."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")
    return jwt_manager.auth_context_from_token(credentials.credentials)


async def get_retention_plugin_service(db: AsyncSession = Depends(get_db)) -> RetentionPluginService:
    return RetentionPluginService(db)
