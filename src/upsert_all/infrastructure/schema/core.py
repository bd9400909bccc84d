"""Core table metadata types.

A ``TableDef`` describes the target of an upsert: its qualified name, its
ordered columns with their native PostgreSQL types, and which columns carry
the identity and creation/modification timestamp roles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class ColumnDef:
    """Definition of a single table column.

    ``database_type`` is the native type name used for explicit casts
    (e.g. ``text``, ``timestamp without time zone``, ``jsonb``); ``None``
    means the value is emitted without a cast. Columns compare by name.
    """

    name: str
    database_type: Optional[str] = field(default=None, compare=False)


@dataclass
class TableDef:
    """Complete metadata for an upsert target table."""

    table_name: str
    columns: List[ColumnDef] = field(default_factory=list)
    pg_schema: Optional[str] = None
    identity_column: Optional[str] = "id"
    created_at_column: Optional[str] = "created_at"
    updated_at_column: Optional[str] = "updated_at"

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    def get_column(self, name: str) -> Optional[ColumnDef]:
        for column in self.columns:
            if column.name == name:
                return column
        return None


__all__ = [
    "ColumnDef",
    "TableDef",
]
