"""Script Synchronizer: keeps the cron script service in step with plugin config.

Remote calls cannot take part in the local database transaction, so every
operation here follows a fixed order:

- create: remote create first, local row second. If the local write fails
  the just-created remote script is deleted again (best effort).
- delete: remote delete first, local delete second. A remote script that is
  already gone counts as deleted.
- propagate: one remote update per existing script. Failures are logged and
  reported, never raised, so one unreachable script does not block a
  legitimate configuration change.
"""

from collections.abc import Collection

import yaml
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.context import AuthContext
from ..core.exceptions import RetainerException, ScriptServiceError, ScriptServiceNotFoundError
from ..core.logging import get_logger
from ..schemas.retention import PropagationReport, RetentionPluginConfig, RetentionScript
from .config_store import ConfigStore, EffectivePluginConfig
from .script_service_client import ScriptServiceClient

logger = get_logger(__name__)


def resolve_effective_export_url(
    default_export_url: str | None,
    script_export_url: str | None = None,
    custom_export_url: str | None = None,
) -> str:
    """Org custom URL, else the script's override, else the release default."""
    if custom_export_url:
        return custom_export_url
    if script_export_url:
        return script_export_url
    return default_export_url or ""


def render_config_document(headers: dict[str, str] | None, export_url: str) -> str:
    """Render the configuration document handed to the cron script service.

    Keys are sorted so identical inputs always produce identical output.
    """
    document = {
        "otelEndpointConfig": {
            "url": export_url,
            "headers": {str(k): str(v) for k, v in sorted((headers or {}).items())},
        }
    }
    return yaml.safe_dump(document, sort_keys=True, default_flow_style=False, allow_unicode=True)


class ScriptSynchronizer:
    """Drives remote script lifecycle alongside the local script records."""

    def __init__(self, store: ConfigStore, client: ScriptServiceClient):
        self.store = store
        self.client = client

    # Remote primitives

    async def create_script_remote(
        self,
        auth: AuthContext,
        body: str,
        cluster_ids: list[str],
        frequency_s: int,
        config_document: str,
    ) -> str:
        return await self.client.create_script(
            auth,
            script=body,
            cluster_ids=cluster_ids,
            frequency_s=frequency_s,
            configs=config_document,
        )

    async def update_script_remote(
        self,
        auth: AuthContext,
        script_id: str,
        *,
        body: str | None = None,
        cluster_ids: list[str] | None = None,
        enabled: bool | None = None,
        frequency_s: int | None = None,
        config_document: str | None = None,
    ) -> None:
        await self.client.update_script(
            auth,
            script_id,
            script=body,
            cluster_ids=cluster_ids,
            enabled=enabled,
            frequency_s=frequency_s,
            configs=config_document,
        )

    async def delete_script_remote(self, auth: AuthContext, script_id: str) -> None:
        """Delete a remote script; an already-deleted script is not an error."""
        try:
            await self.client.delete_script(auth, script_id)
        except ScriptServiceNotFoundError:
            logger.debug("Remote script already deleted", extra={"script_id": script_id})

    # Script lifecycle

    async def create_script(
        self,
        db: AsyncSession,
        auth: AuthContext,
        org_id: str,
        plugin_id: str,
        script: RetentionScript,
        *,
        body: str,
        cluster_ids: list[str],
        frequency_s: int,
        effective: EffectivePluginConfig,
    ) -> str:
        """Create the remote script, then its local record."""
        export_url = resolve_effective_export_url(
            effective.default_export_url, script.export_url, effective.custom_export_url
        )
        config_document = render_config_document(effective.configurations, export_url)
        script_id = await self.create_script_remote(auth, body, cluster_ids, frequency_s, config_document)

        try:
            await self.store.insert_script(db, org_id, plugin_id, script.model_copy(update={"script_id": script_id}))
        except RetainerException:
            logger.error(
                "Failed to record retention script locally; removing remote script",
                extra={"org_id": org_id, "plugin_id": plugin_id, "script_id": script_id},
            )
            await self.discard_remote(auth, [script_id])
            raise
        return script_id

    async def materialize_presets(
        self,
        db: AsyncSession,
        auth: AuthContext,
        org_id: str,
        plugin_id: str,
        release: RetentionPluginConfig,
        configurations: dict[str, str] | None,
        custom_export_url: str | None,
    ) -> list[str]:
        """Create one preset script per preset definition of ``release``.

        On failure, remote scripts created by this call are deleted again and
        the error is re-raised so the caller rolls back its transaction.
        """
        effective = EffectivePluginConfig(
            version=release.version,
            default_export_url=release.default_export_url,
            custom_export_url=custom_export_url,
            configurations=dict(configurations or {}),
            allow_custom_export_url=release.allow_custom_export_url,
        )
        created: list[str] = []
        try:
            for preset in release.preset_scripts:
                script_id = await self.create_script(
                    db,
                    auth,
                    org_id,
                    plugin_id,
                    RetentionScript(
                        org_id=org_id,
                        plugin_id=plugin_id,
                        script_name=preset.name,
                        description=preset.description,
                        is_preset=True,
                        export_url="",
                    ),
                    body=preset.script,
                    cluster_ids=[],
                    frequency_s=preset.default_frequency_s,
                    effective=effective,
                )
                created.append(script_id)
        except RetainerException:
            logger.error(
                "Failed to create preset scripts",
                extra={"org_id": org_id, "plugin_id": plugin_id, "version": release.version, "created_count": len(created)},
            )
            await self.discard_remote(auth, created)
            raise

        logger.info(
            "Preset scripts created",
            extra={"org_id": org_id, "plugin_id": plugin_id, "version": release.version, "count": len(created)},
        )
        return created

    async def propagate_config_change(
        self,
        db: AsyncSession,
        auth: AuthContext,
        org_id: str,
        plugin_id: str,
        release: RetentionPluginConfig,
        configurations: dict[str, str] | None,
        custom_export_url: str | None,
        *,
        include_presets: bool = True,
    ) -> PropagationReport:
        """Push the new configuration document to every existing script.

        ``release`` supplies the default export URL for scripts without an
        override. Preset scripts are skipped when ``include_presets`` is
        false (they are about to be replaced).
        """
        report = PropagationReport()
        scripts = await self.store.list_org_scripts(db, org_id, plugin_id)
        for script in scripts:
            if script.is_preset and not include_presets:
                continue
            export_url = resolve_effective_export_url(release.default_export_url, script.export_url, custom_export_url)
            config_document = render_config_document(configurations, export_url)
            try:
                await self.update_script_remote(auth, script.script_id, config_document=config_document)
            except ScriptServiceError as e:
                logger.error(
                    "Failed to update cron script",
                    extra={"org_id": org_id, "plugin_id": plugin_id, "script_id": script.script_id, "error": e.message},
                )
                report.failed[script.script_id] = e.message
                continue
            report.updated.append(script.script_id)

        if report.failed:
            logger.warning(
                "Configuration change partially propagated",
                extra={
                    "org_id": org_id,
                    "plugin_id": plugin_id,
                    "updated": len(report.updated),
                    "failed": len(report.failed),
                },
            )
        return report

    async def delete_plugin_scripts(
        self,
        db: AsyncSession,
        auth: AuthContext,
        org_id: str,
        plugin_id: str,
        *,
        preset_only: bool,
        script_ids: Collection[str] | None = None,
    ) -> set[str]:
        """Delete the org's scripts for a plugin, remote first, then local.

        ``script_ids`` narrows the deletion to the given scripts. A remote
        failure other than "not found" raises and leaves the local rows in
        place for the caller to roll back.
        """
        scripts = await self.store.list_org_scripts(db, org_id, plugin_id, preset_only=preset_only)
        script_ids = [s.script_id for s in scripts if script_ids is None or s.script_id in script_ids]
        for script_id in script_ids:
            await self.delete_script_remote(auth, script_id)

        deleted = await self.store.delete_scripts(db, org_id, plugin_id, preset_only=preset_only, script_ids=script_ids)
        logger.info(
            "Retention scripts deleted",
            extra={"org_id": org_id, "plugin_id": plugin_id, "preset_only": preset_only, "count": len(deleted)},
        )
        return deleted

    async def discard_remote(self, auth: AuthContext, script_ids: list[str]) -> None:
        for script_id in script_ids:
            try:
                await self.delete_script_remote(auth, script_id)
            except ScriptServiceError as e:
                logger.error(
                    "Failed to delete orphaned remote script",
                    extra={"script_id": script_id, "error": e.message},
                )
