"""
Shared helper functions for Alembic migrations.

These helpers keep migrations idempotent by checking existence before
creating or dropping schema objects.
"""

from typing import Any

from alembic import op


def table_exists(inspector: Any, table_name: str) -> bool:
    """Check if a table exists in the database."""
    return table_name in inspector.get_table_names()


def index_exists(inspector: Any, table_name: str, index_name: str) -> bool:
    """Check if an index exists on a table."""
    try:
        indexes = inspector.get_indexes(table_name)
        return any(idx["name"] == index_name for idx in indexes)
    except Exception:
        return False


def create_index_if_not_exists(inspector: Any, table_name: str, index_name: str, columns: list[str], **kw) -> None:
    if not index_exists(inspector, table_name, index_name):
        op.create_index(index_name, table_name, columns, **kw)


def drop_table_if_exists(inspector: Any, table_name: str) -> None:
    """Drop a table if it exists."""
    if table_exists(inspector, table_name):
        op.drop_table(table_name)
