"""
PostgreSQL-specific SQL dialect implementation.

Provides PostgreSQL-specific syntax for the upsert statement: identifier
quoting, literal casts, nullable-safe comparisons and the canonical
comparison type for JSON columns.
"""

from typing import Any, List, Optional

from ..core.identifier import qualify_table, quote_identifier
from ..core.literals import encode_literal


class PostgreSQLDialect:
    """PostgreSQL SQL dialect implementation."""

    name = "postgresql"

    def quote(self, identifier: str) -> str:
        """Quote an identifier using PostgreSQL syntax (double quotes)."""
        return quote_identifier(identifier)

    def qualify(self, table: str, schema: Optional[str] = None) -> str:
        """Create a fully qualified table reference."""
        return qualify_table(table, schema)

    def column_ref(self, relation: str, column: str) -> str:
        """Reference ``column`` of an already-rendered relation name."""
        return f"{relation}.{self.quote(column)}"

    def cast(self, expression: str, database_type: Optional[str]) -> str:
        """Append an explicit cast when the native type is known."""
        if not database_type:
            return expression
        return f"{expression}::{database_type}"

    def literal(
        self, value: Any, database_type: Optional[str] = None, cast: bool = False
    ) -> str:
        """Encode a value as a literal, optionally cast to its column type."""
        encoded = encode_literal(value, database_type)
        return self.cast(encoded, database_type) if cast else encoded

    def comparable_type(self, database_type: Optional[str]) -> Optional[str]:
        """
        Return the type a column should be cast to for equality comparison.

        ``json`` has no equality operator and compares formatting, so JSON
        columns compare as ``jsonb``. Every other type compares as itself.

        Examples:
            >>> PostgreSQLDialect().comparable_type("json")
            'jsonb'
            >>> PostgreSQLDialect().comparable_type("json[]")
            'jsonb[]'
            >>> PostgreSQLDialect().comparable_type("jsonb")
            'jsonb'
        """
        if not database_type:
            return database_type
        normalized = database_type.strip()
        if normalized.lower() == "json":
            return "jsonb"
        if normalized.lower().replace(" ", "") == "json[]":
            return "jsonb[]"
        return database_type

    def comparable(self, expression: str, database_type: Optional[str]) -> str:
        """Cast an expression only when its comparable type differs."""
        target = self.comparable_type(database_type)
        if target == database_type:
            return expression
        return self.cast(expression, target)

    def not_distinct(self, left: str, right: str) -> str:
        """Nullable-safe equality: NULL matches NULL."""
        return f"{left} IS NOT DISTINCT FROM {right}"

    def distinct(self, left: str, right: str) -> str:
        """Nullable-safe inequality."""
        return f"{left} IS DISTINCT FROM {right}"

    def build_insert_select_on_conflict_do_nothing(
        self,
        table: str,
        columns: List[str],
        select_list: List[str],
        source: str,
        conflict_columns: List[str],
        returning: List[str],
        schema: Optional[str] = None,
    ) -> str:
        """
        Build INSERT ... SELECT ... ON CONFLICT DO NOTHING RETURNING.

        Args:
            table: Table name
            columns: Column names to insert
            select_list: Rendered select expressions, one per column
            source: Relation the rows are selected from
            conflict_columns: Columns for conflict detection
            returning: Column names to return
            schema: Optional schema name

        Returns:
            INSERT statement text
        """
        qualified_table = self.qualify(table, schema)
        quoted_cols = ", ".join(self.quote(c) for c in columns)
        conflict_cols = ", ".join(self.quote(c) for c in conflict_columns)
        returning_cols = ", ".join(self.quote(c) for c in returning)
        return (
            f"INSERT INTO {qualified_table} ({quoted_cols})\n"
            f"SELECT {', '.join(select_list)} FROM {source}\n"
            f"ON CONFLICT ({conflict_cols}) DO NOTHING\n"
            f"RETURNING {returning_cols}"
        )
