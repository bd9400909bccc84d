"""Table metadata: column definitions, registry and catalog reflection."""

from .core import ColumnDef, TableDef
from .reflection import reflect_table
from .registry import get_table_for_type, list_tables, register_table, unregister_table

__all__ = [
    "ColumnDef",
    "TableDef",
    "get_table_for_type",
    "list_tables",
    "reflect_table",
    "register_table",
    "unregister_table",
]
