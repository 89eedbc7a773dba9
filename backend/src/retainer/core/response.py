"""Response helpers for the Retainer API.

Successful responses are wrapped in a single ``{"data": ...}`` envelope;
errors use ``{"error": {"code", "message", "details"}}``.
"""

from typing import Any

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

from .logging import get_logger

logger = get_logger(__name__)


def to_serializable(obj):
    """Recursively convert Pydantic models, lists, and dicts to serializable types."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if isinstance(obj, list):
        return [to_serializable(item) for item in obj]
    if isinstance(obj, dict):
        return {k: to_serializable(v) for k, v in obj.items()}
    return obj


class RetainerResponse:
    """Consistent envelope formatting for API endpoints."""

    @staticmethod
    def success(data: Any, status_code: int = status.HTTP_200_OK) -> JSONResponse:
        content = jsonable_encoder({"data": to_serializable(data)})
        logger.debug(
            "Creating success response",
            extra={"status_code": status_code, "data_type": type(data).__name__},
        )
        return JSONResponse(content=content, status_code=status_code)

    @staticmethod
    def error(
        message: str,
        code: str = "API_ERROR",
        details: Any | None = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        error_id: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> JSONResponse:
        error_content: dict[str, Any] = {"code": code, "message": message, "details": to_serializable(details or {})}
        if error_id:
            error_content["error_id"] = error_id
        return JSONResponse(
            content=jsonable_encoder({"error": error_content}),
            status_code=status_code,
            headers=headers,
        )

    @staticmethod
    def created(data: Any) -> JSONResponse:
        return RetainerResponse.success(data, status.HTTP_201_CREATED)

    @staticmethod
    def no_content() -> Response:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
