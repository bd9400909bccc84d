"""SQL statement builders."""

from .upsert import (
    ALL,
    CHANGES,
    OUTCOME_COLUMN,
    ColumnPlan,
    UpsertBuilder,
    UpsertReturnType,
)

__all__ = [
    "ALL",
    "CHANGES",
    "OUTCOME_COLUMN",
    "ColumnPlan",
    "UpsertBuilder",
    "UpsertReturnType",
]
