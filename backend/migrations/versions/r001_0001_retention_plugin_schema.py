"""Create retention plugin schema.

Revision ID: r001_0001
Revises:
Create Date: 2026-10-19

Plugin release catalog, retention release metadata, per-org plugin
enablement and the local records of retention scripts.
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import TIMESTAMP

from migrations.helpers import create_index_if_not_exists, drop_table_if_exists, table_exists

revision = "r001_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    inspector = sa.inspect(op.get_bind())

    if not table_exists(inspector, "plugin_releases"):
        op.create_table(
            "plugin_releases",
            sa.Column("id", sa.String(100), primary_key=True),
            sa.Column("version", sa.String(50), primary_key=True),
            sa.Column("name", sa.String(200), nullable=False),
            sa.Column("description", sa.Text, nullable=True),
            sa.Column("logo", sa.Text, nullable=True),
            sa.Column("data_retention_enabled", sa.Boolean, nullable=False, server_default=sa.false()),
            *_timestamps(),
        )
    create_index_if_not_exists(
        inspector, "plugin_releases", "ix_plugin_releases_data_retention_enabled", ["data_retention_enabled"]
    )

    if not table_exists(inspector, "data_retention_plugin_releases"):
        op.create_table(
            "data_retention_plugin_releases",
            sa.Column("plugin_id", sa.String(100), primary_key=True),
            sa.Column("version", sa.String(50), primary_key=True),
            sa.Column("configurations", sa.JSON, nullable=True),
            sa.Column("preset_scripts", sa.JSON, nullable=True),
            sa.Column("documentation_url", sa.Text, nullable=True),
            sa.Column("default_export_url", sa.Text, nullable=True),
            sa.Column("allow_custom_export_url", sa.Boolean, nullable=False, server_default=sa.false()),
            *_timestamps(),
            sa.ForeignKeyConstraint(
                ["plugin_id", "version"],
                ["plugin_releases.id", "plugin_releases.version"],
                ondelete="CASCADE",
                name="fk_retention_release_plugin_release",
            ),
        )

    if not table_exists(inspector, "org_data_retention_plugins"):
        op.create_table(
            "org_data_retention_plugins",
            sa.Column("org_id", sa.String(36), primary_key=True),
            sa.Column("plugin_id", sa.String(100), primary_key=True),
            sa.Column("version", sa.String(50), nullable=False),
            sa.Column("configurations", sa.Text, nullable=True),
            sa.Column("custom_export_url", sa.Text, nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(
                ["plugin_id", "version"],
                ["plugin_releases.id", "plugin_releases.version"],
                name="fk_org_retention_plugin_release",
            ),
        )

    if not table_exists(inspector, "plugin_retention_scripts"):
        op.create_table(
            "plugin_retention_scripts",
            sa.Column("org_id", sa.String(36), primary_key=True),
            sa.Column("script_id", sa.String(36), primary_key=True),
            sa.Column("plugin_id", sa.String(100), nullable=False),
            sa.Column("script_name", sa.String(200), nullable=False),
            sa.Column("description", sa.Text, nullable=False, server_default=""),
            sa.Column("is_preset", sa.Boolean, nullable=False, server_default=sa.false()),
            sa.Column("export_url", sa.Text, nullable=True),
            *_timestamps(),
        )
    create_index_if_not_exists(
        inspector, "plugin_retention_scripts", "ix_plugin_retention_scripts_org_plugin", ["org_id", "plugin_id"]
    )
    create_index_if_not_exists(
        inspector, "plugin_retention_scripts", "ix_plugin_retention_scripts_script_id", ["script_id"], unique=True
    )


def downgrade() -> None:
    inspector = sa.inspect(op.get_bind())
    for table_name in (
        "plugin_retention_scripts",
        "org_data_retention_plugins",
        "data_retention_plugin_releases",
        "plugin_releases",
    ):
        drop_table_if_exists(inspector, table_name)
