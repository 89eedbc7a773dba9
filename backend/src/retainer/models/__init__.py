"""
Database models for the Retainer service.
"""

from .base import BaseModel, TimestampMixin
from .org_retention_plugin import OrgRetentionPlugin
from .plugin_release import PluginRelease, RetentionPluginRelease
from .retention_script import PluginRetentionScript

__all__ = [
    "BaseModel",
    "OrgRetentionPlugin",
    "PluginRelease",
    "PluginRetentionScript",
    "RetentionPluginRelease",
    "TimestampMixin",
]
