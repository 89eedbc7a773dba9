"""Retention plugin service: the configuration state machine.

Per ``(org_id, plugin_id)`` a plugin is either Disabled (no config row) or
Enabled at some version. ``update_org_plugin_config`` decides the transition
from the stored state and the request, then drives the Config Store and the
Script Synchronizer inside one database transaction:

==========  ==============  ==================================================
current     requested       action
==========  ==============  ==================================================
Disabled    enable@V        insert config row, materialize presets of V
Enabled@V   disable         delete all scripts (remote, then local), delete row
Disabled    disable         nothing
Enabled@V   config change   propagate to scripts, update row
Enabled@V   version V'      propagate to custom scripts, update row to V',
                            create presets of V', then delete presets of V
==========  ==============  ==================================================

Remote calls cannot be rolled back. A failure in a remote call that must
succeed (preset creation, script deletion) aborts the request and rolls back
the local writes. Per-script propagation failures are reported in the
response instead of failing the request.
"""

import uuid
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.context import AuthContext
from ..core.config import get_settings_instance
from ..core.database import transaction
from ..core.exceptions import (
    AuthorizationError,
    PluginNotEnabledError,
    PresetScriptImmutableError,
    RetainerException,
    RetentionScriptNotFoundError,
    ValidationError,
)
from ..core.logging import get_logger
from ..schemas.retention import (
    CreateRetentionScriptRequest,
    DetailedRetentionScript,
    OrgPluginConfig,
    OrgPluginState,
    PluginKind,
    PluginSummary,
    RetentionPluginConfig,
    RetentionScript,
    RetentionScriptSummary,
    UpdateOrgPluginConfigRequest,
    UpdateOrgPluginConfigResponse,
    UpdateRetentionScriptRequest,
)
from .config_store import ConfigStore
from .script_service_client import ScriptServiceClient, get_script_service_client
from .script_sync import ScriptSynchronizer, render_config_document, resolve_effective_export_url

logger = get_logger(__name__)


class TransitionKind(str, Enum):
    ENABLE = "enable"
    DISABLE = "disable"
    NOOP_ALREADY_DISABLED = "noop_already_disabled"
    UPDATE_CONFIG = "update_config"
    UPGRADE = "upgrade"


def normalize_org_id(org_id: str | None) -> str:
    """Return the canonical form of a well-formed, non-nil org UUID."""
    if not org_id:
        raise ValidationError("Must specify OrgID")
    try:
        parsed = uuid.UUID(str(org_id))
    except ValueError:
        raise ValidationError("OrgID must be a UUID", details={"org_id": str(org_id)})
    if parsed.int == 0:
        raise ValidationError("Must specify OrgID")
    return str(parsed)


def validate_update_request(org_id: str | None, plugin_id: str | None, request: UpdateOrgPluginConfigRequest) -> str:
    """Check the request before any state is read; returns the normalized org id."""
    normalized = normalize_org_id(org_id)
    if not plugin_id:
        raise ValidationError("Must specify plugin ID")
    if request.requested_enabled is True and request.requested_version is None:
        raise ValidationError("Must specify plugin version when enabling")
    return normalized


def compute_transition(
    current: OrgPluginConfig | None,
    request: UpdateOrgPluginConfigRequest,
    *,
    org_id: str = "",
    plugin_id: str = "",
) -> TransitionKind:
    """Decide which transition a request causes from the current state.

    Raises PluginNotEnabledError for a configuration change (no ``enabled``
    flag) on a disabled plugin.
    """
    enabled = request.requested_enabled
    if current is None:
        if enabled is True:
            return TransitionKind.ENABLE
        if enabled is False:
            return TransitionKind.NOOP_ALREADY_DISABLED
        raise PluginNotEnabledError(org_id, plugin_id)
    if enabled is False:
        return TransitionKind.DISABLE
    target_version = request.requested_version or current.version
    if target_version != current.version:
        return TransitionKind.UPGRADE
    return TransitionKind.UPDATE_CONFIG


def _normalize_url(url: str | None) -> str | None:
    if url is None:
        return None
    url = url.strip()
    return url or None


class RetentionPluginService:
    """Service for org retention plugin configuration and retention scripts."""

    def __init__(
        self,
        db: AsyncSession,
        store: ConfigStore | None = None,
        client: ScriptServiceClient | None = None,
        synchronizer: ScriptSynchronizer | None = None,
    ):
        self.db = db
        if store is None:
            store = ConfigStore(get_settings_instance().db_key or "")
        self.store = store
        if synchronizer is None:
            synchronizer = ScriptSynchronizer(store, client or get_script_service_client())
        self.synchronizer = synchronizer

    # Catalog

    async def get_plugins(self, kind: PluginKind = PluginKind.ALL) -> list[PluginSummary]:
        return await self.store.list_latest_releases(self.db, kind)

    async def get_retention_plugin_config(self, plugin_id: str, version: str) -> RetentionPluginConfig:
        return await self.store.get_release(self.db, plugin_id, version)

    async def get_retention_plugins_for_org(self, org_id: str) -> list[OrgPluginState]:
        return await self.store.list_org_enabled_plugins(self.db, normalize_org_id(org_id))

    async def get_org_retention_plugin_config(self, org_id: str, plugin_id: str) -> OrgPluginConfig:
        return await self.store.get_org_config(self.db, normalize_org_id(org_id), plugin_id)

    # Configuration state machine

    async def update_org_plugin_config(
        self,
        org_id: str,
        plugin_id: str,
        request: UpdateOrgPluginConfigRequest,
        auth: AuthContext,
    ) -> UpdateOrgPluginConfigResponse:
        """Enable, disable, reconfigure or upgrade a plugin for an org."""
        org_id = validate_update_request(org_id, plugin_id, request)

        async with transaction(self.db):
            current = await self.store.find_org_config(self.db, org_id, plugin_id, for_update=True)
            kind = compute_transition(current, request, org_id=org_id, plugin_id=plugin_id)

            log_extra = {"org_id": org_id, "plugin_id": plugin_id, "transition": kind.value}
            logger.info("Updating org retention plugin config", extra=log_extra)

            if kind == TransitionKind.NOOP_ALREADY_DISABLED:
                return UpdateOrgPluginConfigResponse(transition=kind.value)

            if kind == TransitionKind.DISABLE:
                await self._disable(org_id, plugin_id, auth)
                return UpdateOrgPluginConfigResponse(transition=kind.value)

            configurations = self._resolve_configurations(current, request)
            custom_export_url = self._resolve_custom_export_url(current, request)

            if kind == TransitionKind.ENABLE:
                await self._enable(org_id, plugin_id, request.requested_version, configurations, custom_export_url, auth)
                return UpdateOrgPluginConfigResponse(transition=kind.value)

            target_version = request.requested_version or current.version
            release = await self.store.get_release(self.db, plugin_id, target_version)
            self._check_custom_export_url(release, custom_export_url)

            # Scripts are brought up to date before the config row changes
            report = await self.synchronizer.propagate_config_change(
                self.db,
                auth,
                org_id,
                plugin_id,
                release,
                configurations,
                custom_export_url,
                include_presets=kind == TransitionKind.UPDATE_CONFIG,
            )
            await self.store.put_org_config(
                self.db, org_id, plugin_id, target_version, configurations, custom_export_url
            )

            if kind == TransitionKind.UPGRADE:
                await self._replace_presets(org_id, plugin_id, release, configurations, custom_export_url, auth)
                logger.info(
                    "Plugin upgraded",
                    extra={**log_extra, "from_version": current.version, "to_version": target_version},
                )

            return UpdateOrgPluginConfigResponse(transition=kind.value, propagation=report)

    async def _enable(
        self,
        org_id: str,
        plugin_id: str,
        version: str,
        configurations: dict[str, str],
        custom_export_url: str | None,
        auth: AuthContext,
    ) -> None:
        release = await self.store.get_release(self.db, plugin_id, version)
        self._check_custom_export_url(release, custom_export_url)
        await self.store.put_org_config(self.db, org_id, plugin_id, version, configurations, custom_export_url)
        await self.synchronizer.materialize_presets(
            self.db, auth, org_id, plugin_id, release, configurations, custom_export_url
        )

    async def _replace_presets(
        self,
        org_id: str,
        plugin_id: str,
        release: RetentionPluginConfig,
        configurations: dict[str, str],
        custom_export_url: str | None,
        auth: AuthContext,
    ) -> None:
        """Create the presets of ``release``, then delete the previous ones.

        If the old presets cannot be deleted, the new remote scripts are
        discarded before the error propagates.
        """
        old_presets = await self.store.list_org_scripts(self.db, org_id, plugin_id, preset_only=True)
        created = await self.synchronizer.materialize_presets(
            self.db, auth, org_id, plugin_id, release, configurations, custom_export_url
        )
        try:
            await self.synchronizer.delete_plugin_scripts(
                self.db,
                auth,
                org_id,
                plugin_id,
                preset_only=True,
                script_ids={s.script_id for s in old_presets},
            )
        except RetainerException:
            await self.synchronizer.discard_remote(auth, created)
            raise

    async def _disable(self, org_id: str, plugin_id: str, auth: AuthContext) -> None:
        await self.synchronizer.delete_plugin_scripts(self.db, auth, org_id, plugin_id, preset_only=False)
        await self.store.delete_org_config(self.db, org_id, plugin_id)

    @staticmethod
    def _resolve_configurations(
        current: OrgPluginConfig | None, request: UpdateOrgPluginConfigRequest
    ) -> dict[str, str]:
        if request.is_provided("configurations") and request.configurations is not None:
            return dict(request.configurations)
        if current is not None:
            return dict(current.configurations)
        return {}

    @staticmethod
    def _resolve_custom_export_url(
        current: OrgPluginConfig | None, request: UpdateOrgPluginConfigRequest
    ) -> str | None:
        if request.is_provided("custom_export_url"):
            return _normalize_url(request.custom_export_url)
        if current is not None:
            return current.custom_export_url
        return None

    @staticmethod
    def _check_custom_export_url(release: RetentionPluginConfig, custom_export_url: str | None) -> None:
        if custom_export_url and not release.allow_custom_export_url:
            raise ValidationError(
                f"Plugin '{release.plugin_id}' does not allow a custom export URL",
                details={"plugin_id": release.plugin_id, "version": release.version},
            )

    # Retention scripts

    async def get_retention_scripts(self, org_id: str, auth: AuthContext) -> list[RetentionScriptSummary]:
        """List the org's scripts, merged with their remote schedule metadata."""
        org_id = normalize_org_id(org_id)
        scripts = await self.store.list_scripts_for_org(self.db, org_id)
        if not scripts:
            return []

        remote = await self.synchronizer.client.get_scripts(auth, [s.script_id for s in scripts])
        remote_by_id = {r.id: r for r in remote}

        summaries = []
        for script in scripts:
            summary = RetentionScriptSummary(
                script_id=script.script_id,
                script_name=script.script_name,
                description=script.description,
                plugin_id=script.plugin_id,
                is_preset=script.is_preset,
            )
            remote_script = remote_by_id.get(script.script_id)
            if remote_script is not None:
                summary.frequency_s = remote_script.frequency_s
                summary.enabled = remote_script.enabled
                summary.cluster_ids = list(remote_script.cluster_ids)
            summaries.append(summary)
        return summaries

    async def get_retention_script(self, org_id: str, script_id: str, auth: AuthContext) -> DetailedRetentionScript:
        org_id = normalize_org_id(org_id)
        script = await self.store.get_script(self.db, script_id, org_id=org_id)
        if script is None:
            raise RetentionScriptNotFoundError(script_id)

        remote = await self.synchronizer.client.get_script(auth, script_id)
        return DetailedRetentionScript(
            script=RetentionScriptSummary(
                script_id=script_id,
                script_name=script.script_name,
                description=script.description,
                plugin_id=script.plugin_id,
                is_preset=script.is_preset,
                frequency_s=remote.frequency_s,
                enabled=remote.enabled,
                cluster_ids=list(remote.cluster_ids),
            ),
            contents=remote.script,
            export_url=script.export_url,
        )

    async def create_retention_script(
        self, org_id: str, request: CreateRetentionScriptRequest, auth: AuthContext
    ) -> str:
        """Create a custom script for an enabled plugin; returns its id."""
        org_id = normalize_org_id(org_id)
        export_url = _normalize_url(request.export_url) or ""

        async with transaction(self.db):
            effective = await self.store.get_effective_plugin_config(self.db, org_id, request.plugin_id)
            if export_url and not effective.allow_custom_export_url:
                raise ValidationError(f"Plugin '{request.plugin_id}' does not allow a custom export URL")

            script_id = await self.synchronizer.create_script(
                self.db,
                auth,
                org_id,
                request.plugin_id,
                RetentionScript(
                    org_id=org_id,
                    plugin_id=request.plugin_id,
                    script_name=request.script_name,
                    description=request.description,
                    is_preset=False,
                    export_url=export_url,
                ),
                body=request.contents,
                cluster_ids=request.cluster_ids,
                frequency_s=request.frequency_s,
                effective=effective,
            )

        logger.info(
            "Retention script created",
            extra={"org_id": org_id, "plugin_id": request.plugin_id, "script_id": script_id},
        )
        return script_id

    async def update_retention_script(
        self, script_id: str, request: UpdateRetentionScriptRequest, auth: AuthContext
    ) -> None:
        """Update a script's local record and its remote schedule.

        Only members of the owning org may update a script. Preset scripts
        keep their name, description, export URL and body; their schedule
        (frequency, enabled flag, clusters) may change.
        """
        caller_org_id = normalize_org_id(auth.org_id)
        async with transaction(self.db):
            script = await self.store.get_script(self.db, script_id)
            if script is None:
                raise RetentionScriptNotFoundError(script_id)
            if script.org_id != caller_org_id:
                raise AuthorizationError()

            if script.is_preset:
                self._check_preset_update(script, request)

            script_name = request.script_name if request.script_name is not None else script.script_name
            description = request.description if request.description is not None else script.description
            export_url = script.export_url
            if request.export_url is not None:
                export_url = _normalize_url(request.export_url) or ""

            effective = await self.store.get_effective_plugin_config(self.db, script.org_id, script.plugin_id)
            if export_url and export_url != script.export_url and not effective.allow_custom_export_url:
                raise ValidationError(f"Plugin '{script.plugin_id}' does not allow a custom export URL")

            await self.store.update_script(
                self.db, script_id, script_name=script_name, description=description, export_url=export_url
            )

            config_document = render_config_document(
                effective.configurations,
                resolve_effective_export_url(effective.default_export_url, export_url, effective.custom_export_url),
            )
            # Remote update before commit: a failure here rolls the local change back
            await self.synchronizer.update_script_remote(
                auth,
                script_id,
                body=request.contents,
                cluster_ids=request.cluster_ids,
                enabled=request.enabled,
                frequency_s=request.frequency_s,
                config_document=config_document,
            )

    @staticmethod
    def _check_preset_update(script: RetentionScript, request: UpdateRetentionScriptRequest) -> None:
        if request.script_name is not None and request.script_name != script.script_name:
            raise PresetScriptImmutableError(script.script_id, "name is defined by the plugin")
        if request.description is not None and request.description != script.description:
            raise PresetScriptImmutableError(script.script_id, "description is defined by the plugin")
        if request.export_url is not None and (_normalize_url(request.export_url) or "") != script.export_url:
            raise PresetScriptImmutableError(script.script_id, "export URL follows the plugin configuration")
        if request.contents is not None:
            raise PresetScriptImmutableError(script.script_id, "script body is defined by the plugin")

    async def delete_retention_script(self, org_id: str, script_id: str, auth: AuthContext) -> None:
        """Delete a custom script owned by ``org_id``.

        Preset scripts are always rejected; only disable/upgrade removes them.
        """
        org_id = normalize_org_id(org_id)
        async with transaction(self.db):
            script = await self.store.get_script(self.db, script_id)
            if script is not None and script.is_preset:
                raise PresetScriptImmutableError(script_id, "preset scripts are removed by disabling the plugin")
            if script is None or script.org_id != org_id:
                raise RetentionScriptNotFoundError(script_id)

            await self.synchronizer.delete_script_remote(auth, script_id)
            if await self.store.delete_custom_script(self.db, org_id, script_id) == 0:
                raise RetentionScriptNotFoundError(script_id)

        logger.info("Retention script deleted", extra={"org_id": org_id, "script_id": script_id})
