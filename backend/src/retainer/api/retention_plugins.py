"""Retention plugin API endpoints.

Catalog endpoints (``/plugins*``) expose plugin releases. Org endpoints
(``/org/retention/*``) act on the caller's org, taken from the bearer token.
"""

from fastapi import APIRouter, Depends, Query

from ..auth.context import AuthContext
from ..core.response import RetainerResponse
from ..schemas.retention import (
    CreateRetentionScriptRequest,
    CreateRetentionScriptResponse,
    PluginKind,
    UpdateOrgPluginConfigRequest,
    UpdateRetentionScriptRequest,
)
from ..services.retention_plugin_service import RetentionPluginService
from .dependencies import get_auth_context, get_retention_plugin_service

router = APIRouter(tags=["retention-plugins"])


@router.get("/plugins")
async def list_plugins(
    kind: PluginKind = Query(PluginKind.ALL, description="'all' or 'retention'"),
    _auth: AuthContext = Depends(get_auth_context),
    service: RetentionPluginService = Depends(get_retention_plugin_service),
):
    return RetainerResponse.success(await service.get_plugins(kind))


@router.get("/plugins/{plugin_id}/versions/{version}/retention")
async def get_retention_plugin_config(
    plugin_id: str,
    version: str,
    _auth: AuthContext = Depends(get_auth_context),
    service: RetentionPluginService = Depends(get_retention_plugin_service),
):
    return RetainerResponse.success(await service.get_retention_plugin_config(plugin_id, version))


@router.get("/org/retention/plugins")
async def list_org_retention_plugins(
    auth: AuthContext = Depends(get_auth_context),
    service: RetentionPluginService = Depends(get_retention_plugin_service),
):
    return RetainerResponse.success(await service.get_retention_plugins_for_org(auth.org_id))


@router.get("/org/retention/plugins/{plugin_id}")
async def get_org_retention_plugin_config(
    plugin_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: RetentionPluginService = Depends(get_retention_plugin_service),
):
    return RetainerResponse.success(await service.get_org_retention_plugin_config(auth.org_id, plugin_id))


@router.patch("/org/retention/plugins/{plugin_id}")
async def update_org_retention_plugin_config(
    plugin_id: str,
    body: UpdateOrgPluginConfigRequest,
    auth: AuthContext = Depends(get_auth_context),
    service: RetentionPluginService = Depends(get_retention_plugin_service),
):
    """Enable, disable, reconfigure or upgrade a retention plugin."""
    result = await service.update_org_plugin_config(auth.org_id, plugin_id, body, auth)
    return RetainerResponse.success(result)


@router.get("/org/retention/scripts")
async def list_retention_scripts(
    auth: AuthContext = Depends(get_auth_context),
    service: RetentionPluginService = Depends(get_retention_plugin_service),
):
    return RetainerResponse.success(await service.get_retention_scripts(auth.org_id, auth))


@router.post("/org/retention/scripts")
async def create_retention_script(
    body: CreateRetentionScriptRequest,
    auth: AuthContext = Depends(get_auth_context),
    service: RetentionPluginService = Depends(get_retention_plugin_service),
):
    script_id = await service.create_retention_script(auth.org_id, body, auth)
    return RetainerResponse.created(CreateRetentionScriptResponse(id=script_id))


@router.get("/org/retention/scripts/{script_id}")
async def get_retention_script(
    script_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: RetentionPluginService = Depends(get_retention_plugin_service),
):
    return RetainerResponse.success(await service.get_retention_script(auth.org_id, script_id, auth))


@router.patch("/org/retention/scripts/{script_id}")
async def update_retention_script(
    script_id: str,
    body: UpdateRetentionScriptRequest,
    auth: AuthContext = Depends(get_auth_context),
    service: RetentionPluginService = Depends(get_retention_plugin_service),
):
    await service.update_retention_script(script_id, body, auth)
    return RetainerResponse.no_content()


@router.delete("/org/retention/scripts/{script_id}")
async def delete_retention_script(
    script_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: RetentionPluginService = Depends(get_retention_plugin_service),
):
    await service.delete_retention_script(auth.org_id, script_id, auth)
    return RetainerResponse.no_content()
