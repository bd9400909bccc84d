"""SQL dialects."""

from .postgresql import PostgreSQLDialect

__all__ = ["PostgreSQLDialect"]
