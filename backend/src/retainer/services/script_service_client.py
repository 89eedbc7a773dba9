"""Client for the remote cron script (scheduling) service.

The scheduling service owns the body, frequency, enabled flag, target
clusters and configuration document of every retention script. This client
exposes its narrow contract over HTTP/JSON:

- ``POST   /scripts``            create, returns ``{"id": ...}``
- ``PATCH  /scripts/{id}``       partial update
- ``DELETE /scripts/{id}``
- ``GET    /scripts/{id}``       returns ``{"script": {...}}``
- ``POST   /scripts:batchGet``   ``{"ids": [...]}`` -> ``{"scripts": [...]}``

Every call forwards the caller's bearer token. A 404 from the service is
raised as ``ScriptServiceNotFoundError`` so callers can decide whether a
missing script is an error.
"""

from typing import Any

import httpx

from ..auth.context import AuthContext
from ..core.config import get_settings_instance
from ..core.exceptions import ScriptServiceError, ScriptServiceNotFoundError
from ..core.logging import get_logger
from ..schemas.retention import RemoteScript

logger = get_logger(__name__)


def _remote_script_from_payload(payload: dict[str, Any]) -> RemoteScript:
    return RemoteScript(
        id=str(payload.get("id", "")),
        script=payload.get("script") or "",
        frequency_s=int(payload.get("frequencyS") or 0),
        enabled=bool(payload.get("enabled", False)),
        cluster_ids=[str(c) for c in payload.get("clusterIds") or []],
        configs=payload.get("configs") or "",
    )


class ScriptServiceClient:
    """Async HTTP client for the cron script service."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings_instance()
        self._base_url = (base_url or settings.script_service_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.script_service_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create the pooled HTTP client."""
        if self._client is None:
            logger.debug("Creating cron script service HTTP client", extra={"base_url": self._base_url})
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout),
                limits=httpx.Limits(max_keepalive_connections=20, max_connections=100, keepalive_expiry=30.0),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            logger.debug("Closing cron script service HTTP client")
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        auth: AuthContext,
        *,
        json_body: dict[str, Any] | None = None,
        script_id: str | None = None,
    ) -> dict[str, Any]:
        client = await self.get_client()
        try:
            response = await client.request(
                method,
                path,
                json=json_body,
                headers={"Authorization": auth.authorization_header},
            )
        except httpx.HTTPError as e:
            logger.error(f"Cron script service {operation} request failed: {e}")
            raise ScriptServiceError(operation, str(e) or type(e).__name__)

        if response.status_code == 404 and script_id is not None:
            raise ScriptServiceNotFoundError(operation, script_id)
        if response.status_code >= 400:
            raise ScriptServiceError(
                operation,
                f"unexpected status {response.status_code}",
                status_code=response.status_code,
            )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise ScriptServiceError(operation, "invalid JSON response", status_code=response.status_code)

    async def create_script(
        self,
        auth: AuthContext,
        *,
        script: str,
        cluster_ids: list[str],
        frequency_s: int,
        configs: str,
    ) -> str:
        """Create a scheduled script and return its id."""
        payload = await self._request(
            "create",
            "POST",
            "/scripts",
            auth,
            json_body={
                "script": script,
                "clusterIds": list(cluster_ids),
                "frequencyS": frequency_s,
                "configs": configs,
            },
        )
        script_id = payload.get("id")
        if not script_id:
            raise ScriptServiceError("create", "response has no script id")
        return str(script_id)

    async def update_script(
        self,
        auth: AuthContext,
        script_id: str,
        *,
        script: str | None = None,
        cluster_ids: list[str] | None = None,
        enabled: bool | None = None,
        frequency_s: int | None = None,
        configs: str | None = None,
    ) -> None:
        """Update only the provided fields of a scheduled script."""
        body: dict[str, Any] = {}
        if script is not None:
            body["script"] = script
        if cluster_ids is not None:
            body["clusterIds"] = list(cluster_ids)
        if enabled is not None:
            body["enabled"] = enabled
        if frequency_s is not None:
            body["frequencyS"] = frequency_s
        if configs is not None:
            body["configs"] = configs
        await self._request("update", "PATCH", f"/scripts/{script_id}", auth, json_body=body, script_id=script_id)

    async def delete_script(self, auth: AuthContext, script_id: str) -> None:
        await self._request("delete", "DELETE", f"/scripts/{script_id}", auth, script_id=script_id)

    async def get_script(self, auth: AuthContext, script_id: str) -> RemoteScript:
        payload = await self._request("get", "GET", f"/scripts/{script_id}", auth, script_id=script_id)
        return _remote_script_from_payload(payload.get("script") or {})

    async def get_scripts(self, auth: AuthContext, script_ids: list[str]) -> list[RemoteScript]:
        if not script_ids:
            return []
        payload = await self._request("batch_get", "POST", "/scripts:batchGet", auth, json_body={"ids": list(script_ids)})
        return [_remote_script_from_payload(s) for s in payload.get("scripts") or []]


# Global client instance - lazy initialization
_script_service_client: ScriptServiceClient | None = None


def get_script_service_client() -> ScriptServiceClient:
    """Get the process-wide cron script service client."""
    global _script_service_client  # noqa: PLW0603
    if _script_service_client is None:
        _script_service_client = ScriptServiceClient()
    return _script_service_client


async def close_script_service_client() -> None:
    """Close the process-wide client (call during shutdown)."""
    global _script_service_client  # noqa: PLW0603
    if _script_service_client is not None:
        await _script_service_client.close()
        _script_service_client = None
