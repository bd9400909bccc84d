"""
upsert-all - Batched, conflict-resolving bulk upsert for PostgreSQL.

Inserts new rows, updates rows whose content changed, leaves identical rows
alone, and reports every affected row tagged with the outcome it received.
"""

from upsert_all.io.loader import (
    InvalidArgumentError,
    ProtocolError,
    StoreExecutionError,
    UpsertError,
    UpsertReturnType,
    upsert_all,
)

__version__ = "0.1.0"

__all__ = [
    "InvalidArgumentError",
    "ProtocolError",
    "StoreExecutionError",
    "UpsertError",
    "UpsertReturnType",
    "upsert_all",
    "__version__",
]
