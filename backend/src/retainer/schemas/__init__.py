"""
Pydantic schemas for the Retainer service.

This package contains Pydantic models for request/response validation
and serialization.
"""

from .retention import (
    CreateRetentionScriptRequest,
    CreateRetentionScriptResponse,
    DetailedRetentionScript,
    OrgPluginConfig,
    OrgPluginState,
    PluginKind,
    PluginSummary,
    PresetScript,
    PropagationReport,
    RemoteScript,
    RetentionPluginConfig,
    RetentionScript,
    RetentionScriptSummary,
    UpdateOrgPluginConfigRequest,
    UpdateOrgPluginConfigResponse,
    UpdateRetentionScriptRequest,
)

__all__ = [
    "CreateRetentionScriptRequest",
    "CreateRetentionScriptResponse",
    "DetailedRetentionScript",
    "OrgPluginConfig",
    "OrgPluginState",
    "PluginKind",
    "PluginSummary",
    "PresetScript",
    "PropagationReport",
    "RemoteScript",
    "RetentionPluginConfig",
    "RetentionScript",
    "RetentionScriptSummary",
    "UpdateOrgPluginConfigRequest",
    "UpdateOrgPluginConfigResponse",
    "UpdateRetentionScriptRequest",
]
