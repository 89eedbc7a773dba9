"""Plugin catalog models.

A plugin is published as immutable releases keyed by ``(id, version)``.
Releases that can act as data retention destinations carry an extra row in
``data_retention_plugin_releases`` describing their configuration schema,
default export endpoint and preset scripts.
"""

from sqlalchemy import JSON, Boolean, Column, ForeignKeyConstraint, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel


class PluginRelease(BaseModel):
    __tablename__ = "plugin_releases"

    id = Column(String(100), primary_key=True)
    version = Column(String(50), primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    logo = Column(Text, nullable=True)
    data_retention_enabled = Column(Boolean, nullable=False, default=False, index=True)

    retention = relationship("RetentionPluginRelease", uselist=False, back_populates="release", lazy="raise")

    def __repr__(self) -> str:
        return f"<PluginRelease(id={self.id}, version={self.version})>"


class RetentionPluginRelease(BaseModel):
    """Retention-specific metadata of a plugin release.

    ``configurations`` maps each configuration key the plugin accepts to a
    human-readable description. ``preset_scripts`` is an ordered list of
    ``{"name", "description", "script", "defaultFrequencyS"}`` objects.
    """

    __tablename__ = "data_retention_plugin_releases"

    plugin_id = Column(String(100), primary_key=True)
    version = Column(String(50), primary_key=True)
    configurations = Column(JSON, nullable=True)
    preset_scripts = Column(JSON, nullable=True)
    documentation_url = Column(Text, nullable=True)
    default_export_url = Column(Text, nullable=True)
    allow_custom_export_url = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        ForeignKeyConstraint(
            ["plugin_id", "version"],
            ["plugin_releases.id", "plugin_releases.version"],
            ondelete="CASCADE",
            name="fk_retention_release_plugin_release",
        ),
    )

    release = relationship("PluginRelease", back_populates="retention", lazy="raise")

    def __repr__(self) -> str:
        return f"<RetentionPluginRelease(plugin_id={self.plugin_id}, version={self.version})>"
