"""
SQL identifier handling utilities.

Provides functions for quoting and qualifying PostgreSQL identifiers
(table names, column names) so that mixed-case and non-ASCII names survive
and identifier text cannot break out of its quotes.
"""

from typing import Optional

# PostgreSQL truncates identifiers longer than NAMEDATALEN - 1 bytes
MAX_IDENTIFIER_LENGTH = 63


def quote_identifier(name: str) -> str:
    """
    Quote a SQL identifier (table or column name).

    Args:
        name: The identifier to quote

    Returns:
        Double-quoted identifier with internal quotes doubled

    Raises:
        ValueError: If name is empty or too long

    Examples:
        >>> quote_identifier("createdAt")
        '"createdAt"'
        >>> quote_identifier('odd"name')
        '"odd""name"'
    """
    if not name or not isinstance(name, str):
        raise ValueError("Identifier name must be non-empty string")
    if len(name.encode("utf-8")) > MAX_IDENTIFIER_LENGTH:
        raise ValueError(
            f"Identifier too long (max {MAX_IDENTIFIER_LENGTH} bytes): {name!r}"
        )

    escaped = name.replace('"', '""')
    return f'"{escaped}"'


def qualify_table(table: str, schema: Optional[str] = None) -> str:
    """
    Create a fully qualified table name with optional schema prefix.

    Examples:
        >>> qualify_table("users")
        '"users"'
        >>> qualify_table("users", schema="public")
        '"public"."users"'
    """
    quoted_table = quote_identifier(table)
    if schema and schema.strip():
        return f"{quote_identifier(schema.strip())}.{quoted_table}"
    return quoted_table
