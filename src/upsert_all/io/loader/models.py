from typing import Dict, List, Optional, TypeVar

from upsert_all.infrastructure.sql.operations.upsert import (
    ALL,
    CHANGES,
    UpsertReturnType,
)

T = TypeVar("T")


class UpsertError(Exception):
    """Base class for errors raised by the upsert engine."""


class InvalidArgumentError(UpsertError, ValueError):
    """Raised before any store access when the call itself is invalid."""


class StoreExecutionError(UpsertError):
    """Raised when a batch statement fails in the database, including timeouts."""

    def __init__(
        self,
        message: str,
        statement: str = "",
        batch_index: Optional[int] = None,
        duration_ms: Optional[float] = None,
    ):
        super().__init__(message)
        self.statement = statement
        self.batch_index = batch_index
        self.duration_ms = duration_ms


class ProtocolError(UpsertError):
    """Raised when a result row carries an unknown outcome tag."""


# Mapping from outcome category to the records that received it
ResultSet = Dict[UpsertReturnType, List[T]]


__all__ = [
    "ALL",
    "CHANGES",
    "InvalidArgumentError",
    "ProtocolError",
    "ResultSet",
    "StoreExecutionError",
    "UpsertError",
    "UpsertReturnType",
]
