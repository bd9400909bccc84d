"""Column classification for the upsert engine.

Runs once per call: decides which table columns take part in the statement
and which roles (conflict key, excluded from change detection, never
updated) each one plays.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Sequence, Set, Union

from upsert_all.infrastructure.schema.core import ColumnDef, TableDef
from upsert_all.infrastructure.sql.operations.upsert import ColumnPlan
from upsert_all.utils.logging import get_logger

from .models import InvalidArgumentError

logger = get_logger(__name__)

ColumnLike = Union[str, ColumnDef]


def column_name(column: ColumnLike) -> str:
    return column.name if isinstance(column, ColumnDef) else column


def _names(columns: Optional[Iterable[ColumnLike]]) -> List[str]:
    if not columns:
        return []
    names: List[str] = []
    for column in columns:
        name = column_name(column)
        if name not in names:
            names.append(name)
    return names


def _check_known(table: TableDef, names: Iterable[str], role: str) -> None:
    known = set(table.column_names)
    unknown = [name for name in names if name not in known]
    if unknown:
        raise InvalidArgumentError(
            f"{role} references columns not in table '{table.table_name}': {unknown}"
        )


def default_excluded(table: TableDef) -> Set[str]:
    """Identity and both timestamp columns."""
    return {
        name
        for name in (
            table.identity_column,
            table.created_at_column,
            table.updated_at_column,
        )
        if name
    }


def default_non_updatable(table: TableDef) -> Set[str]:
    """Identity and creation timestamp columns."""
    return {name for name in (table.identity_column, table.created_at_column) if name}


def classify_columns(
    table: Optional[TableDef],
    field_maps: Sequence[Mapping[str, Any]],
    unique_by: Iterable[ColumnLike],
    excluded: Optional[Iterable[ColumnLike]] = None,
    non_updatable: Optional[Iterable[ColumnLike]] = None,
) -> ColumnPlan:
    """
    Build the call-wide column plan.

    Args:
        table: Target table metadata (None when the record type is unknown)
        field_maps: Records converted to field maps
        unique_by: Conflict-key columns
        excluded: Columns ignored by change detection; empty means default
        non_updatable: Columns never rewritten on update; empty means default

    Returns:
        ColumnPlan with participating columns in table order

    Raises:
        InvalidArgumentError: Empty conflict key, missing table metadata, or
            column names the table does not have
    """
    if table is None:
        raise InvalidArgumentError("No table metadata could be resolved for the records")

    key_names = _names(unique_by)
    if not key_names:
        raise InvalidArgumentError("unique_by must name at least one column")
    _check_known(table, key_names, "unique_by")

    excluded_names = _names(excluded)
    non_updatable_names = _names(non_updatable)
    _check_known(table, excluded_names, "excluded columns")
    _check_known(table, non_updatable_names, "non-updatable columns")

    present: Set[str] = set()
    for field_map in field_maps:
        present.update(field_map.keys())

    ignored = present - set(table.column_names)
    if ignored:
        logger.warning(
            "upsert.columns.ignored",
            table=table.table_name,
            ignored_columns=sorted(ignored),
            count=len(ignored),
        )

    identity = table.identity_column
    columns = [
        column
        for column in table.columns
        if (column.name != identity or column.name in key_names)
        and (column.name in present or column.name in key_names)
    ]

    return ColumnPlan(
        table=table,
        columns=columns,
        unique_by=key_names,
        excluded=frozenset(excluded_names or default_excluded(table)),
        non_updatable=frozenset(non_updatable_names or default_non_updatable(table)),
    )


__all__ = [
    "classify_columns",
    "column_name",
    "default_excluded",
    "default_non_updatable",
]
