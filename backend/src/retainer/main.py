"""Retainer - FastAPI Application

This module creates and configures the FastAPI application for Retainer.
"""

import traceback
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from .api.health import router as health_router
from .api.retention_plugins import router as retention_plugins_router
from .core.config import get_settings_instance
from .core.database import check_db_connection, close_db
from .core.exceptions import RetainerException
from .core.logging import get_logger, setup_logging
from .core.response import RetainerResponse
from .services.script_service_client import close_script_service_client

logger = get_logger(__name__)


def generate_error_id() -> str:
    """Generate a unique error ID for tracking."""
    return f"ERR-{uuid.uuid4().hex[:8].upper()}"


def get_request_context(request: Request) -> dict[str, Any]:
    """Extract relevant context from request for error logging."""
    return {
        "method": request.method,
        "path": request.url.path,
        "query_params": dict(request.query_params),
        "client": {
            "host": request.client.host if request.client else None,
        },
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    settings = get_settings_instance()

    logger.info("Starting Retainer...")
    logger.info(f"Version: {settings.version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Cron script service: {settings.script_service_url}")
    if not settings.db_key:
        logger.warning("RETAINER_DB_KEY is not set; encrypted columns cannot be read or written")

    if await check_db_connection():
        logger.info("Database connection verified")
    else:
        logger.warning("Database is not reachable; readiness probe will fail until it is")

    yield

    logger.info("Shutting down Retainer...")

    try:
        await close_script_service_client()
        logger.info("Cron script service client closed")
    except Exception as e:
        logger.error(f"Error closing cron script service client: {e}")

    await close_db()

    logger.info("Retainer shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings_instance()
    app = FastAPI(
        title=settings.app_name,
        description="Data retention plugin configuration API",
        version=settings.version,
        debug=settings.debug,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_exception_handlers(app)
    setup_routes(app)

    logger.info("Retainer FastAPI application created successfully")
    return app


def setup_exception_handlers(app: FastAPI) -> None:
    """Register handlers that render errors as ``{"error": {...}}``.

    Server errors (5xx) get an error id that is logged alongside the request
    context.
    """
    settings = get_settings_instance()

    @app.exception_handler(RetainerException)
    async def retainer_exception_handler(request: Request, exc: RetainerException):
        error_id = generate_error_id() if exc.status_code >= 500 else None

        if exc.status_code >= 500:
            logger.error(
                "Retainer server error",
                extra={
                    "error_id": error_id,
                    "error_code": exc.error_code,
                    "error_message": exc.message,
                    "details": exc.details,
                    "request_context": get_request_context(request),
                },
            )
        else:
            logger.warning(
                "Retainer client error",
                extra={
                    "error_code": exc.error_code,
                    "error_message": exc.message,
                    "request_context": get_request_context(request),
                },
            )

        return RetainerResponse.error(
            message=exc.message,
            code=exc.error_code,
            details=exc.details,
            status_code=exc.status_code,
            error_id=error_id,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning(
            "Request validation failed",
            extra={"request_context": get_request_context(request)},
        )
        return RetainerResponse.error(
            message="Request validation failed",
            code="VALIDATION_ERROR",
            details={"errors": exc.errors()},
            status_code=422,
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        error_id = generate_error_id() if exc.status_code >= 500 else None
        if error_id:
            logger.error(
                "HTTP server error",
                extra={"error_id": error_id, "detail": exc.detail, "request_context": get_request_context(request)},
            )
        return RetainerResponse.error(
            message=str(exc.detail),
            code=f"HTTP_{exc.status_code}",
            status_code=exc.status_code,
            error_id=error_id,
            headers=getattr(exc, "headers", None) or None,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        error_id = generate_error_id()
        include_traceback = settings.debug or settings.environment == "development"

        logger.error(
            "Unhandled exception",
            extra={
                "error_id": error_id,
                "exception_type": type(exc).__name__,
                "exception_message": str(exc),
                "request_context": get_request_context(request),
            },
            exc_info=include_traceback,
        )

        details = {}
        if include_traceback:
            details = {
                "exception_type": type(exc).__name__,
                "exception_message": str(exc),
                "traceback": traceback.format_exc().split("\n"),
            }

        return RetainerResponse.error(
            message="Internal server error",
            code="INTERNAL_SERVER_ERROR",
            details=details,
            status_code=500,
            error_id=error_id,
        )


def setup_routes(app: FastAPI) -> None:
    """Configure application routes."""
    settings = get_settings_instance()

    app.include_router(health_router, prefix=settings.api_v1_prefix)
    app.include_router(retention_plugins_router, prefix=settings.api_v1_prefix)

    @app.get("/")
    async def root():
        return RetainerResponse.success(
            {"name": settings.app_name, "version": settings.version, "docs": "/docs" if settings.debug else None}
        )


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings_instance()
    uvicorn.run(
        "retainer.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
