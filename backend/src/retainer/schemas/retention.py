"""Pydantic schemas for retention plugins and retention scripts."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PluginKind(str, Enum):
    """Filter for catalog listings."""

    ALL = "all"
    RETENTION = "retention"


class PresetScript(BaseModel):
    """A scheduled export job definition shipped with a plugin release."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    script: str
    default_frequency_s: int = Field(alias="defaultFrequencyS", gt=0)


class PluginSummary(BaseModel):
    """Latest release of a plugin in the catalog."""

    id: str
    name: str
    description: str = ""
    logo: str = ""
    latest_version: str
    retention_enabled: bool = False


class RetentionPluginConfig(BaseModel):
    """Retention metadata of one plugin release."""

    plugin_id: str
    version: str
    configurations: dict[str, str] = Field(default_factory=dict)
    documentation_url: str = ""
    default_export_url: str = ""
    allow_custom_export_url: bool = False
    preset_scripts: list[PresetScript] = Field(default_factory=list)


class OrgPluginState(BaseModel):
    """A retention plugin enabled by an org, with the version in use."""

    plugin: PluginSummary
    enabled_version: str


class OrgPluginConfig(BaseModel):
    """Decrypted configuration an org holds for an enabled plugin."""

    org_id: str
    plugin_id: str
    version: str
    configurations: dict[str, str] = Field(default_factory=dict)
    custom_export_url: str | None = None


class RetentionScript(BaseModel):
    """Decrypted local record of a retention script.

    ``export_url`` is the script's own override; an empty string means the
    plugin's effective export URL applies.
    """

    org_id: str
    script_id: str = ""
    plugin_id: str
    script_name: str
    description: str = ""
    is_preset: bool = False
    export_url: str = ""


class RemoteScript(BaseModel):
    """Scheduling metadata held by the cron script service."""

    id: str
    script: str = ""
    frequency_s: int = 0
    enabled: bool = True
    cluster_ids: list[str] = Field(default_factory=list)
    configs: str = ""


class RetentionScriptSummary(BaseModel):
    script_id: str
    script_name: str
    description: str = ""
    plugin_id: str
    is_preset: bool = False
    frequency_s: int = 0
    enabled: bool = False
    cluster_ids: list[str] = Field(default_factory=list)


class DetailedRetentionScript(BaseModel):
    script: RetentionScriptSummary
    contents: str = ""
    export_url: str = ""


class UpdateOrgPluginConfigRequest(BaseModel):
    """Partial update of an org's plugin configuration.

    A field that is absent from the payload keeps its stored value. Presence
    is tracked through ``model_fields_set``, so sending ``custom_export_url``
    as ``""`` or ``null`` clears the override while omitting it keeps it.
    """

    model_config = ConfigDict(extra="forbid")

    enabled: bool | None = None
    version: str | None = None
    configurations: dict[str, str] | None = None
    custom_export_url: str | None = None

    def is_provided(self, field: str) -> bool:
        return field in self.model_fields_set

    @property
    def requested_enabled(self) -> bool | None:
        if not self.is_provided("enabled"):
            return None
        return self.enabled

    @property
    def requested_version(self) -> str | None:
        if not self.is_provided("version") or not self.version:
            return None
        return self.version


class CreateRetentionScriptRequest(BaseModel):
    """A custom (user-created) retention script."""

    model_config = ConfigDict(extra="forbid")

    plugin_id: str = Field(min_length=1)
    script_name: str = Field(min_length=1)
    description: str = ""
    contents: str
    cluster_ids: list[str] = Field(default_factory=list)
    frequency_s: int = Field(gt=0)
    export_url: str = ""


class UpdateRetentionScriptRequest(BaseModel):
    """Partial update of a retention script; omitted fields are unchanged."""

    model_config = ConfigDict(extra="forbid")

    script_name: str | None = None
    description: str | None = None
    export_url: str | None = None
    contents: str | None = None
    cluster_ids: list[str] | None = None
    enabled: bool | None = None
    frequency_s: int | None = Field(None, gt=0)


class PropagationReport(BaseModel):
    """Outcome of pushing a configuration change to existing scripts."""

    updated: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.failed


class UpdateOrgPluginConfigResponse(BaseModel):
    transition: str
    propagation: PropagationReport | None = None


class CreateRetentionScriptResponse(BaseModel):
    id: str
