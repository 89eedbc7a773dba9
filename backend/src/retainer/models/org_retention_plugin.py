"""Per-org enablement record for a data retention plugin.

A row exists if and only if the plugin is enabled for the org. The
``configurations`` and ``custom_export_url`` columns hold Fernet tokens;
see ``retainer.core.encryption`` for the stored representation.
"""

from sqlalchemy import Column, ForeignKeyConstraint, String, Text

from .base import BaseModel


class OrgRetentionPlugin(BaseModel):
    __tablename__ = "org_data_retention_plugins"

    org_id = Column(String(36), primary_key=True)
    plugin_id = Column(String(100), primary_key=True)
    version = Column(String(50), nullable=False)

    # Encrypted
    configurations = Column(Text, nullable=True)
    custom_export_url = Column(Text, nullable=True)

    __table_args__ = (
        ForeignKeyConstraint(
            ["plugin_id", "version"],
            ["plugin_releases.id", "plugin_releases.version"],
            name="fk_org_retention_plugin_release",
        ),
    )

    def __repr__(self) -> str:
        return f"<OrgRetentionPlugin(org_id={self.org_id}, plugin_id={self.plugin_id}, version={self.version})>"
