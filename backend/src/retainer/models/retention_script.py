"""Local record of a scheduled export job.

Only ownership and naming live here. Schedule metadata (frequency, enabled
flag, target clusters, script body) is held by the remote cron script
service and referenced by ``script_id``.
"""

from sqlalchemy import Boolean, Column, Index, String, Text

from .base import BaseModel


class PluginRetentionScript(BaseModel):
    __tablename__ = "plugin_retention_scripts"

    org_id = Column(String(36), primary_key=True)
    script_id = Column(String(36), primary_key=True)
    plugin_id = Column(String(100), nullable=False)
    script_name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    is_preset = Column(Boolean, nullable=False, default=False)

    # Encrypted; NULL means "use the plugin's effective export URL"
    export_url = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_plugin_retention_scripts_org_plugin", "org_id", "plugin_id"),
        Index("ix_plugin_retention_scripts_script_id", "script_id", unique=True),
    )

    def __repr__(self) -> str:
        return f"<PluginRetentionScript(org_id={self.org_id}, script_id={self.script_id}, preset={self.is_preset})>"
