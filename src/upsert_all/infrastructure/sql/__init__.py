"""
SQL module for centralized SQL generation.

This module provides reusable utilities for building SQL statements with
proper identifier quoting, literal encoding, schema qualification, and
dialect-specific syntax.
"""

from .core.identifier import qualify_table, quote_identifier
from .core.literals import encode_literal
from .dialects.postgresql import PostgreSQLDialect
from .operations.upsert import ColumnPlan, UpsertBuilder, UpsertReturnType

__all__ = [
    "quote_identifier",
    "qualify_table",
    "encode_literal",
    "PostgreSQLDialect",
    "ColumnPlan",
    "UpsertBuilder",
    "UpsertReturnType",
]
