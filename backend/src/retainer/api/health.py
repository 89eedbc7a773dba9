"""Health probe endpoints for Retainer."""

import os
import time

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings_instance
from ..core.logging import get_logger
from ..core.response import RetainerResponse
from .dependencies import get_db

logger = get_logger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


@router.get("/readiness", summary="Readiness probe", description="Kubernetes readiness probe endpoint.")
async def readiness_probe(db: AsyncSession = Depends(get_db)):
    """Readiness probe for Kubernetes.

    Checks database connectivity. The cron script service is not probed;
    its failures surface per request.
    """
    logger.debug("Performing readiness check")

    start_time = time.time()
    readiness_status = {"ready": True, "timestamp": time.time(), "checks": {}, "errors": []}

    try:
        await db.execute(text("SELECT 1"))
        readiness_status["checks"]["database"] = "ready"
    except Exception as e:
        readiness_status["ready"] = False
        readiness_status["checks"]["database"] = "not_ready"
        readiness_status["errors"].append(f"Database not ready: {e!s}")

    execution_time = time.time() - start_time
    readiness_status["execution_time"] = execution_time

    if not readiness_status["ready"]:
        logger.warning(
            "Readiness check failed",
            extra={"errors": readiness_status["errors"], "execution_time": execution_time},
        )
        return RetainerResponse.error(
            message="Application not ready",
            code="READINESS_CHECK_FAILED",
            details=readiness_status,
            status_code=503,
        )

    return RetainerResponse.success(readiness_status)


@router.get("/liveness", summary="Liveness probe", description="Kubernetes liveness probe endpoint.")
async def liveness_probe():
    """Liveness probe for Kubernetes."""
    liveness_status = {
        "alive": True,
        "timestamp": time.time(),
        "pid": os.getpid(),
        "version": get_settings_instance().version,
    }
    return RetainerResponse.success(liveness_status)
