"""Table metadata registry.

Maps record types (pydantic models, or any class used as a record type) to
the ``TableDef`` they are persisted in.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from .core import TableDef


_TABLE_REGISTRY: Dict[type, TableDef] = {}


def register_table(record_type: type, table: TableDef) -> None:
    """Register the table backing ``record_type`` in the global registry."""
    if record_type in _TABLE_REGISTRY:
        raise ValueError(
            f"Record type '{record_type.__name__}' is already registered. "
            "Unregister it first."
        )
    _TABLE_REGISTRY[record_type] = table


def unregister_table(record_type: type) -> None:
    """Remove ``record_type`` from the registry if present."""
    _TABLE_REGISTRY.pop(record_type, None)


def get_table_for_type(record_type: type) -> Optional[TableDef]:
    """Return the table registered for ``record_type``, or None if unknown."""
    return _TABLE_REGISTRY.get(record_type)


def list_tables() -> List[str]:
    """List all registered table names."""
    return sorted(table.table_name for table in _TABLE_REGISTRY.values())


__all__ = [
    "register_table",
    "unregister_table",
    "get_table_for_type",
    "list_tables",
]
