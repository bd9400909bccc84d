"""Build ``TableDef`` metadata from the live database catalog."""

from __future__ import annotations

from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy.engine import Connection

from .core import ColumnDef, TableDef

_COLUMNS_QUERY = sa.text(
    """
    SELECT column_name, data_type, udt_name
    FROM information_schema.columns
    WHERE table_schema = :schema AND table_name = :table
    ORDER BY ordinal_position
    """
)


def _native_type(data_type: str, udt_name: str) -> str:
    # Array columns report data_type ARRAY and an underscore-prefixed udt_name
    if data_type == "ARRAY" and udt_name.startswith("_"):
        return f"{udt_name[1:]}[]"
    if data_type == "USER-DEFINED":
        return udt_name
    return data_type


def reflect_table(
    conn: Connection,
    table_name: str,
    schema: str = "public",
    identity_column: Optional[str] = "id",
    created_at_column: Optional[str] = "created_at",
    updated_at_column: Optional[str] = "updated_at",
) -> Optional[TableDef]:
    """
    Read column names and native types for a table.

    Args:
        conn: SQLAlchemy connection
        table_name: Table to inspect
        schema: Schema holding the table
        identity_column: Identity column name, dropped if the table lacks it
        created_at_column: Creation timestamp column, dropped if absent
        updated_at_column: Modification timestamp column, dropped if absent

    Returns:
        TableDef, or None when the table does not exist or has no columns
    """
    result = conn.execute(_COLUMNS_QUERY, {"schema": schema, "table": table_name})
    columns: List[ColumnDef] = [
        ColumnDef(row.column_name, _native_type(row.data_type, row.udt_name))
        for row in result
    ]
    if not columns:
        return None

    names = {column.name for column in columns}
    return TableDef(
        table_name=table_name,
        columns=columns,
        pg_schema=schema,
        identity_column=identity_column if identity_column in names else None,
        created_at_column=created_at_column if created_at_column in names else None,
        updated_at_column=updated_at_column if updated_at_column in names else None,
    )


__all__ = ["reflect_table"]
