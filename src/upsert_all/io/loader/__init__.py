"""
Batched PostgreSQL upsert loader.

This package classifies columns, renders one conflict-resolving statement per
batch, executes batches in order and maps result rows back into records
grouped by outcome (inserted / updated / unchanged).
"""

from .models import (
    ALL,
    CHANGES,
    InvalidArgumentError,
    ProtocolError,
    ResultSet,
    StoreExecutionError,
    UpsertError,
    UpsertReturnType,
)
from .records import DictRecordCodec, PydanticRecordCodec, RecordCodec
from .upsert import prepare_upsert, upsert_all

__all__ = [
    "ALL",
    "CHANGES",
    "DictRecordCodec",
    "InvalidArgumentError",
    "ProtocolError",
    "PydanticRecordCodec",
    "RecordCodec",
    "ResultSet",
    "StoreExecutionError",
    "UpsertError",
    "UpsertReturnType",
    "prepare_upsert",
    "upsert_all",
]
