"""
SQL upsert statement builder.

Renders one statement per batch that inserts new rows, updates rows whose
content differs, and reports every row of the batch tagged with what
happened to it. The statement is a chain of common table expressions:

- ``input_values``: the batch as a literal VALUES table
- ``inserted_rows``: INSERT ... ON CONFLICT (conflict key) DO NOTHING
- ``updated_rows``: UPDATE of existing rows with at least one differing column
- ``unchanged_rows``: existing rows matched by key that were neither inserted
  nor updated
- ``results``: UNION ALL of the requested categories, tagged

All data-modifying CTEs run against the same snapshot, which is why the
unchanged set excludes updated keys explicitly instead of relying on the
table scan.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Protocol, Sequence

from upsert_all.infrastructure.schema.core import ColumnDef, TableDef

OUTCOME_COLUMN = "upsert_outcome"

INPUT_VALUES = "input_values"
INSERTED_ROWS = "inserted_rows"
UPDATED_ROWS = "updated_rows"
UNCHANGED_ROWS = "unchanged_rows"
TARGET_ALIAS = "target"


class UpsertReturnType(str, Enum):
    """Outcome category of an upserted row.

    The value is the tag written into the outcome discriminator column.
    """

    INSERTED = "inserted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"

    @classmethod
    def from_tag(cls, tag: Any) -> Optional["UpsertReturnType"]:
        """Map a discriminator value back to its category, None if unknown."""
        for member in cls:
            if member.value == tag:
                return member
        return None


CHANGES: FrozenSet[UpsertReturnType] = frozenset(
    {UpsertReturnType.INSERTED, UpsertReturnType.UPDATED}
)
ALL: FrozenSet[UpsertReturnType] = frozenset(UpsertReturnType)


class Dialect(Protocol):
    """Protocol for SQL dialects used by the upsert builder."""

    name: str

    def quote(self, identifier: str) -> str: ...
    def qualify(self, table: str, schema: Optional[str] = None) -> str: ...
    def column_ref(self, relation: str, column: str) -> str: ...
    def cast(self, expression: str, database_type: Optional[str]) -> str: ...
    def literal(
        self, value: Any, database_type: Optional[str] = None, cast: bool = False
    ) -> str: ...
    def comparable(self, expression: str, database_type: Optional[str]) -> str: ...
    def not_distinct(self, left: str, right: str) -> str: ...
    def distinct(self, left: str, right: str) -> str: ...
    def build_insert_select_on_conflict_do_nothing(
        self,
        table: str,
        columns: List[str],
        select_list: List[str],
        source: str,
        conflict_columns: List[str],
        returning: List[str],
        schema: Optional[str] = None,
    ) -> str: ...


@dataclass(frozen=True)
class ColumnPlan:
    """Call-wide column classification shared by every batch.

    Attributes:
        table: Target table metadata
        columns: Participating columns, in table order
        unique_by: Conflict-key column names
        excluded: Columns ignored by change detection
        non_updatable: Columns never written by the update path
    """

    table: TableDef
    columns: List[ColumnDef]
    unique_by: List[str]
    excluded: FrozenSet[str] = field(default_factory=frozenset)
    non_updatable: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    @property
    def column_types(self) -> Dict[str, Optional[str]]:
        types = {column.name: column.database_type for column in self.table.columns}
        types.update((column.name, column.database_type) for column in self.columns)
        return types

    @property
    def projection(self) -> List[str]:
        """Identity column followed by the participating columns."""
        identity = self.table.identity_column
        names = self.column_names
        if identity and identity not in names and self.table.get_column(identity):
            return [identity] + names
        return names

    @property
    def set_columns(self) -> List[str]:
        return [
            name
            for name in self.column_names
            if name not in self.unique_by and name not in self.non_updatable
        ]

    @property
    def compare_columns(self) -> List[str]:
        return [
            name
            for name in self.column_names
            if name not in self.unique_by and name not in self.excluded
        ]

    @property
    def skip_update(self) -> bool:
        """True when no column is left for the update path to write."""
        return not self.set_columns


class UpsertBuilder:
    """
    Builder for the batched insert / update-if-different / unchanged statement.

    Example:
        >>> from upsert_all.infrastructure.sql import PostgreSQLDialect
        >>> builder = UpsertBuilder(plan, {UpsertReturnType.INSERTED}, PostgreSQLDialect())
        >>> sql = builder.build([{"email": "a@example.com", "name": "A"}])
    """

    def __init__(
        self,
        plan: ColumnPlan,
        returning: Iterable[UpsertReturnType],
        dialect: Dialect,
    ):
        self.plan = plan
        self.returning = frozenset(returning)
        self.dialect = dialect
        self._types = plan.column_types
        self._table = dialect.qualify(plan.table.table_name, plan.table.pg_schema)
        self._target = f"{self._table} AS {dialect.quote(TARGET_ALIAS)}"
        self._target_ref = dialect.quote(TARGET_ALIAS)

    # ------------------------------------------------------------------
    # Fragments
    # ------------------------------------------------------------------

    def _ref(self, relation: str, column: str) -> str:
        return self.dialect.column_ref(relation, column)

    def _key_match(self, left: str, right: str) -> str:
        return " AND ".join(
            self.dialect.not_distinct(self._ref(left, key), self._ref(right, key))
            for key in self.plan.unique_by
        )

    def _comparable_projection(self, relation: str) -> str:
        return ", ".join(
            self.dialect.comparable(self._ref(relation, name), self._types.get(name))
            + f" AS {self.dialect.quote(name)}"
            for name in self.plan.projection
        )

    def _row_literals(self, row: Mapping[str, Any], cast: bool) -> str:
        return ", ".join(
            self.dialect.literal(row.get(name), self._types.get(name), cast=cast)
            for name in self.plan.column_names
        )

    # ------------------------------------------------------------------
    # CTE bodies
    # ------------------------------------------------------------------

    def input_values(self, rows: Sequence[Mapping[str, Any]]) -> str:
        """Literal VALUES table; only the first row carries explicit casts."""
        columns = ", ".join(self.dialect.quote(name) for name in self.plan.column_names)
        values = ",\n    ".join(
            f"({self._row_literals(row, cast=index == 0)})"
            for index, row in enumerate(rows)
        )
        return f"{INPUT_VALUES} ({columns}) AS (\n  VALUES\n    {values}\n)"

    def inserted_rows(self) -> str:
        select_list = [
            self.dialect.cast(self._ref(INPUT_VALUES, name), self._types.get(name))
            for name in self.plan.column_names
        ]
        insert = self.dialect.build_insert_select_on_conflict_do_nothing(
            table=self.plan.table.table_name,
            columns=self.plan.column_names,
            select_list=select_list,
            source=INPUT_VALUES,
            conflict_columns=self.plan.unique_by,
            returning=self.plan.projection,
            schema=self.plan.table.pg_schema,
        )
        return f"{INSERTED_ROWS} AS (\n{insert}\n)"

    def updated_rows(self) -> str:
        dialect = self.dialect
        set_list = ",\n    ".join(
            f"{dialect.quote(name)} = {self._ref(INPUT_VALUES, name)}"
            for name in self.plan.set_columns
        )
        conditions = [self._key_match(self._target_ref, INPUT_VALUES)]

        differences = [
            dialect.distinct(
                dialect.comparable(self._ref(self._target_ref, name), self._types.get(name)),
                dialect.comparable(self._ref(INPUT_VALUES, name), self._types.get(name)),
            )
            for name in self.plan.compare_columns
        ]
        if differences:
            conditions.append("(" + " OR ".join(differences) + ")")

        conditions.append(
            f"NOT EXISTS (SELECT 1 FROM {INSERTED_ROWS} "
            f"WHERE {self._key_match(self._target_ref, INSERTED_ROWS)})"
        )
        returning = ", ".join(
            self._ref(self._target_ref, name) for name in self.plan.projection
        )
        return (
            f"{UPDATED_ROWS} AS (\n"
            f"UPDATE {self._target}\n"
            f"SET {set_list}\n"
            f"FROM {INPUT_VALUES}\n"
            f"WHERE " + "\n  AND ".join(conditions) + "\n"
            f"RETURNING {returning}\n"
            ")"
        )

    def unchanged_rows(self) -> str:
        conditions = [
            f"EXISTS (SELECT 1 FROM {INPUT_VALUES} "
            f"WHERE {self._key_match(self._target_ref, INPUT_VALUES)})"
        ]
        subtracted = [
            f"SELECT {self._comparable_projection(INSERTED_ROWS)} FROM {INSERTED_ROWS}"
        ]
        if not self.plan.skip_update:
            # Same snapshot: the scan still returns the pre-update version
            conditions.append(
                f"NOT EXISTS (SELECT 1 FROM {UPDATED_ROWS} "
                f"WHERE {self._key_match(self._target_ref, UPDATED_ROWS)})"
            )
            subtracted.append(
                f"SELECT {self._comparable_projection(UPDATED_ROWS)} FROM {UPDATED_ROWS}"
            )
        return (
            f"{UNCHANGED_ROWS} AS (\n"
            f"SELECT {self._comparable_projection(self._target_ref)} FROM {self._target}\n"
            f"WHERE " + "\n  AND ".join(conditions) + "\n"
            "EXCEPT (\n  " + "\n  UNION ALL ".join(subtracted) + "\n)\n"
            ")"
        )

    def results(self) -> Optional[str]:
        """Tagged UNION ALL of the requested categories, None if none apply."""
        sources = [
            (UpsertReturnType.INSERTED, INSERTED_ROWS),
            (UpsertReturnType.UPDATED, UPDATED_ROWS),
            (UpsertReturnType.UNCHANGED, UNCHANGED_ROWS),
        ]
        selects = [
            f"SELECT {self._comparable_projection(source)}, "
            f"'{kind.value}' AS {self.dialect.quote(OUTCOME_COLUMN)} FROM {source}"
            for kind, source in sources
            if self._includes(kind)
        ]
        if not selects:
            return None
        return "results AS (\n  " + "\n  UNION ALL ".join(selects) + "\n)"

    def _includes(self, kind: UpsertReturnType) -> bool:
        if kind not in self.returning:
            return False
        return not (kind is UpsertReturnType.UPDATED and self.plan.skip_update)

    # ------------------------------------------------------------------
    # Statement
    # ------------------------------------------------------------------

    def build(self, rows: Sequence[Mapping[str, Any]]) -> str:
        """
        Render the statement for one batch.

        Args:
            rows: Field maps of the batch; missing keys render as NULL

        Returns:
            Complete SQL statement text
        """
        if not rows:
            raise ValueError("Cannot build an upsert statement for an empty batch")

        ctes = [self.input_values(rows), self.inserted_rows()]
        if not self.plan.skip_update:
            ctes.append(self.updated_rows())
        if self._includes(UpsertReturnType.UNCHANGED):
            ctes.append(self.unchanged_rows())

        results = self.results()
        if results is None:
            final = f"SELECT NULL AS {self.dialect.quote(OUTCOME_COLUMN)} WHERE FALSE"
        else:
            ctes.append(results)
            final = "SELECT * FROM results"

        return "WITH " + ",\n".join(ctes) + "\n" + final + ";"
