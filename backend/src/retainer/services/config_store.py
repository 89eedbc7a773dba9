"""Config Store: relational access to plugin releases, org plugin configs
and retention script records.

Every operation takes the caller's ``AsyncSession`` so the configuration
workflows can compose several of them into one transaction. Write operations
only flush; committing or rolling back is always the caller's decision.

Encrypted columns are encrypted on write and decrypted on read here, with
the key this store was constructed with. Callers only ever see plaintext.
"""

import re
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy import and_, delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.encryption import EncryptionGateway
from ..core.exceptions import DatabaseQueryError, PluginNotEnabledError, PluginReleaseNotFoundError
from ..core.logging import get_logger
from ..models.org_retention_plugin import OrgRetentionPlugin
from ..models.plugin_release import PluginRelease, RetentionPluginRelease
from ..models.retention_script import PluginRetentionScript
from ..schemas.retention import (
    OrgPluginConfig,
    OrgPluginState,
    PluginKind,
    PluginSummary,
    PresetScript,
    RetentionPluginConfig,
    RetentionScript,
)

logger = get_logger(__name__)

_VERSION_SPLIT = re.compile(r"[.\-+]")


def version_sort_key(version: str) -> tuple:
    """Order versions component-wise, numeric components numerically."""
    key = []
    for part in _VERSION_SPLIT.split(version or ""):
        if part.isdigit():
            key.append((1, int(part), ""))
        else:
            key.append((0, 0, part))
    return tuple(key)


@dataclass
class EffectivePluginConfig:
    """What a script needs to render its configuration document."""

    version: str
    default_export_url: str
    custom_export_url: str | None
    configurations: dict[str, str] = field(default_factory=dict)
    allow_custom_export_url: bool = False


def _summary_from_release(release: PluginRelease) -> PluginSummary:
    return PluginSummary(
        id=release.id,
        name=release.name,
        description=release.description or "",
        logo=release.logo or "",
        latest_version=release.version,
        retention_enabled=bool(release.data_retention_enabled),
    )


def _release_config(row: RetentionPluginRelease) -> RetentionPluginConfig:
    return RetentionPluginConfig(
        plugin_id=row.plugin_id,
        version=row.version,
        configurations={str(k): str(v) for k, v in (row.configurations or {}).items()},
        documentation_url=row.documentation_url or "",
        default_export_url=row.default_export_url or "",
        allow_custom_export_url=bool(row.allow_custom_export_url),
        preset_scripts=[PresetScript.model_validate(p) for p in (row.preset_scripts or [])],
    )


class ConfigStore:
    """Transactional store for retention plugin state."""

    def __init__(self, key: str, gateway: EncryptionGateway | None = None):
        self._key = key
        self._gateway = gateway or EncryptionGateway()

    async def _execute(self, db: AsyncSession, stmt, operation: str):
        try:
            return await db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Config store {operation} failed: {e}")
            raise DatabaseQueryError(f"{operation}: {e}")

    async def _flush(self, db: AsyncSession, operation: str) -> None:
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Config store {operation} flush failed: {e}")
            raise DatabaseQueryError(f"{operation}: {e}")

    def _decrypt_org_config(self, row: OrgRetentionPlugin) -> OrgPluginConfig:
        return OrgPluginConfig(
            org_id=row.org_id,
            plugin_id=row.plugin_id,
            version=row.version,
            configurations=self._gateway.decrypt_configurations(row.configurations, self._key),
            custom_export_url=self._gateway.decrypt_optional(row.custom_export_url, self._key),
        )

    def _decrypt_script(self, row: PluginRetentionScript) -> RetentionScript:
        return RetentionScript(
            org_id=row.org_id,
            script_id=row.script_id,
            plugin_id=row.plugin_id,
            script_name=row.script_name,
            description=row.description or "",
            is_preset=bool(row.is_preset),
            export_url=self._gateway.decrypt_optional(row.export_url, self._key) or "",
        )

    # Plugin releases

    async def list_latest_releases(self, db: AsyncSession, kind: PluginKind = PluginKind.ALL) -> list[PluginSummary]:
        """Return the latest release of every plugin, ordered by plugin id."""
        result = await self._execute(db, select(PluginRelease), "list_latest_releases")

        latest: dict[str, PluginRelease] = {}
        for release in result.scalars().all():
            current = latest.get(release.id)
            if current is None or version_sort_key(release.version) > version_sort_key(current.version):
                latest[release.id] = release

        # The retention filter applies to the latest release only
        if kind == PluginKind.RETENTION:
            latest = {plugin_id: r for plugin_id, r in latest.items() if r.data_retention_enabled}
        return [_summary_from_release(latest[plugin_id]) for plugin_id in sorted(latest)]

    async def get_release(self, db: AsyncSession, plugin_id: str, version: str) -> RetentionPluginConfig:
        stmt = select(RetentionPluginRelease).where(
            and_(RetentionPluginRelease.plugin_id == plugin_id, RetentionPluginRelease.version == version)
        )
        result = await self._execute(db, stmt, "get_release")
        row = result.scalar_one_or_none()
        if row is None:
            raise PluginReleaseNotFoundError(plugin_id, version)
        return _release_config(row)

    # Org plugin configs

    async def find_org_config(
        self, db: AsyncSession, org_id: str, plugin_id: str, *, for_update: bool = False
    ) -> OrgPluginConfig | None:
        stmt = select(OrgRetentionPlugin).where(
            and_(OrgRetentionPlugin.org_id == org_id, OrgRetentionPlugin.plugin_id == plugin_id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._execute(db, stmt, "find_org_config")
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return self._decrypt_org_config(row)

    async def get_org_config(
        self, db: AsyncSession, org_id: str, plugin_id: str, *, for_update: bool = False
    ) -> OrgPluginConfig:
        config = await self.find_org_config(db, org_id, plugin_id, for_update=for_update)
        if config is None:
            raise PluginNotEnabledError(org_id, plugin_id)
        return config

    async def list_org_enabled_plugins(self, db: AsyncSession, org_id: str) -> list[OrgPluginState]:
        stmt = (
            select(PluginRelease)
            .join(
                OrgRetentionPlugin,
                and_(
                    OrgRetentionPlugin.plugin_id == PluginRelease.id,
                    OrgRetentionPlugin.version == PluginRelease.version,
                ),
            )
            .where(OrgRetentionPlugin.org_id == org_id)
            .order_by(PluginRelease.id)
        )
        result = await self._execute(db, stmt, "list_org_enabled_plugins")
        states = []
        for release in result.scalars().all():
            summary = _summary_from_release(release)
            states.append(OrgPluginState(plugin=summary, enabled_version=release.version))
        return states

    async def put_org_config(
        self,
        db: AsyncSession,
        org_id: str,
        plugin_id: str,
        version: str,
        configurations: dict[str, str] | None,
        custom_export_url: str | None,
    ) -> None:
        """Insert or overwrite the org's config row."""
        encrypted_configs = self._gateway.encrypt_configurations(configurations, self._key)
        encrypted_url = self._gateway.encrypt_optional(custom_export_url, self._key)

        stmt = select(OrgRetentionPlugin).where(
            and_(OrgRetentionPlugin.org_id == org_id, OrgRetentionPlugin.plugin_id == plugin_id)
        )
        result = await self._execute(db, stmt, "put_org_config")
        row = result.scalar_one_or_none()
        if row is None:
            row = OrgRetentionPlugin(org_id=org_id, plugin_id=plugin_id)
            db.add(row)
        row.version = version
        row.configurations = encrypted_configs
        row.custom_export_url = encrypted_url
        await self._flush(db, "put_org_config")

    async def delete_org_config(self, db: AsyncSession, org_id: str, plugin_id: str) -> None:
        stmt = delete(OrgRetentionPlugin).where(
            and_(OrgRetentionPlugin.org_id == org_id, OrgRetentionPlugin.plugin_id == plugin_id)
        )
        await self._execute(db, stmt, "delete_org_config")

    async def get_effective_plugin_config(self, db: AsyncSession, org_id: str, plugin_id: str) -> EffectivePluginConfig:
        """Return the enabled release's default URL together with the org's overrides."""
        org_config = await self.get_org_config(db, org_id, plugin_id)
        release = await self.get_release(db, plugin_id, org_config.version)
        return EffectivePluginConfig(
            version=org_config.version,
            default_export_url=release.default_export_url,
            custom_export_url=org_config.custom_export_url,
            configurations=org_config.configurations,
            allow_custom_export_url=release.allow_custom_export_url,
        )

    # Retention scripts

    async def list_org_scripts(
        self, db: AsyncSession, org_id: str, plugin_id: str, *, preset_only: bool = False
    ) -> list[RetentionScript]:
        stmt = select(PluginRetentionScript).where(
            and_(PluginRetentionScript.org_id == org_id, PluginRetentionScript.plugin_id == plugin_id)
        )
        if preset_only:
            stmt = stmt.where(PluginRetentionScript.is_preset.is_(True))
        stmt = stmt.order_by(PluginRetentionScript.script_name, PluginRetentionScript.script_id)
        result = await self._execute(db, stmt, "list_org_scripts")
        return [self._decrypt_script(row) for row in result.scalars().all()]

    async def list_scripts_for_org(self, db: AsyncSession, org_id: str) -> list[RetentionScript]:
        """Return scripts of every plugin currently enabled by the org."""
        stmt = (
            select(PluginRetentionScript)
            .join(
                OrgRetentionPlugin,
                and_(
                    OrgRetentionPlugin.org_id == PluginRetentionScript.org_id,
                    OrgRetentionPlugin.plugin_id == PluginRetentionScript.plugin_id,
                ),
            )
            .where(PluginRetentionScript.org_id == org_id)
            .order_by(PluginRetentionScript.plugin_id, PluginRetentionScript.script_name)
        )
        result = await self._execute(db, stmt, "list_scripts_for_org")
        return [self._decrypt_script(row) for row in result.scalars().all()]

    async def get_script(self, db: AsyncSession, script_id: str, *, org_id: str | None = None) -> RetentionScript | None:
        stmt = select(PluginRetentionScript).where(PluginRetentionScript.script_id == script_id)
        if org_id is not None:
            stmt = stmt.where(PluginRetentionScript.org_id == org_id)
        result = await self._execute(db, stmt, "get_script")
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return self._decrypt_script(row)

    async def insert_script(self, db: AsyncSession, org_id: str, plugin_id: str, script: RetentionScript) -> str:
        """Insert a script row; uses ``script.script_id`` when set, else generates one."""
        script_id = script.script_id or str(uuid.uuid4())
        db.add(
            PluginRetentionScript(
                org_id=org_id,
                script_id=script_id,
                plugin_id=plugin_id,
                script_name=script.script_name,
                description=script.description,
                is_preset=script.is_preset,
                export_url=self._gateway.encrypt_optional(script.export_url, self._key),
            )
        )
        await self._flush(db, "insert_script")
        return script_id

    async def update_script(
        self, db: AsyncSession, script_id: str, *, script_name: str, description: str, export_url: str
    ) -> None:
        stmt = (
            update(PluginRetentionScript)
            .where(PluginRetentionScript.script_id == script_id)
            .values(
                script_name=script_name,
                description=description,
                export_url=self._gateway.encrypt_optional(export_url, self._key),
            )
        )
        await self._execute(db, stmt, "update_script")

    async def delete_scripts(
        self,
        db: AsyncSession,
        org_id: str,
        plugin_id: str,
        *,
        preset_only: bool,
        script_ids: Sequence[str] | None = None,
    ) -> set[str]:
        """Delete the org's scripts for a plugin and return the deleted ids.

        ``script_ids`` narrows the deletion to the given ids.
        """
        conditions = [PluginRetentionScript.org_id == org_id, PluginRetentionScript.plugin_id == plugin_id]
        if preset_only:
            conditions.append(PluginRetentionScript.is_preset.is_(True))
        if script_ids is not None:
            if not script_ids:
                return set()
            conditions.append(PluginRetentionScript.script_id.in_(list(script_ids)))

        result = await self._execute(db, select(PluginRetentionScript.script_id).where(and_(*conditions)), "delete_scripts")
        deleted = {str(script_id) for script_id in result.scalars().all()}
        if deleted:
            stmt = delete(PluginRetentionScript).where(
                and_(PluginRetentionScript.org_id == org_id, PluginRetentionScript.script_id.in_(sorted(deleted)))
            )
            await self._execute(db, stmt, "delete_scripts")
        return deleted

    async def delete_custom_script(self, db: AsyncSession, org_id: str, script_id: str) -> int:
        """Delete a non-preset script owned by ``org_id``; returns rows affected."""
        stmt = delete(PluginRetentionScript).where(
            and_(
                PluginRetentionScript.org_id == org_id,
                PluginRetentionScript.script_id == script_id,
                PluginRetentionScript.is_preset.is_(False),
            )
        )
        result = await self._execute(db, stmt, "delete_custom_script")
        return int(result.rowcount or 0)
