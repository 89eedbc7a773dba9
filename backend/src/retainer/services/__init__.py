"""
Services package for the Retainer service.

This package contains the retention plugin configuration workflows and the
stores and clients they drive.
"""

from .config_store import ConfigStore, EffectivePluginConfig
from .retention_plugin_service import RetentionPluginService, TransitionKind
from .script_service_client import ScriptServiceClient, get_script_service_client
from .script_sync import ScriptSynchronizer, render_config_document, resolve_effective_export_url

__all__ = [
    "ConfigStore",
    "EffectivePluginConfig",
    "RetentionPluginService",
    "ScriptServiceClient",
    "ScriptSynchronizer",
    "TransitionKind",
    "get_script_service_client",
    "render_config_document",
    "resolve_effective_export_url",
]
