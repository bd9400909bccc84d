"""Sequential execution of rendered batch statements."""

from __future__ import annotations

import time
from typing import Any, Dict, List, NamedTuple, Optional

import sqlalchemy as sa
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from upsert_all.utils.logging import get_logger

from .models import StoreExecutionError

structured_logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60

_SHOW_TIMEOUT = sa.text("SHOW statement_timeout")
_SET_TIMEOUT = sa.text("SELECT set_config('statement_timeout', :value, true)")

# Literal statement text, never cached and never parameter-substituted
_STATEMENT_OPTIONS = {"compiled_cache": None, "no_parameters": True}


class ExecutionResult(NamedTuple):
    rows: List[Dict[str, Any]]
    duration_ms: float


class BatchExecutor:
    """
    Runs batch statements on the caller's connection or on the engine pool.

    A supplied connection is used as-is: the executor never commits, rolls
    back or closes it. Without one, each batch runs in its own
    ``engine.begin()`` block.
    """

    def __init__(
        self,
        engine: Optional[Engine] = None,
        connection: Optional[Connection] = None,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
        logger: Any = None,
    ):
        if engine is None and connection is None:
            raise ValueError("BatchExecutor needs an engine or a connection")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        self.engine = engine
        self.connection = connection
        self.timeout_seconds = timeout_seconds
        self._logger = logger or structured_logger

    def _run(self, conn: Connection, statement: str) -> List[Dict[str, Any]]:
        previous = conn.execute(_SHOW_TIMEOUT).scalar()
        conn.execute(_SET_TIMEOUT, {"value": f"{self.timeout_seconds * 1000}ms"})
        result = conn.exec_driver_sql(statement, execution_options=_STATEMENT_OPTIONS)
        rows = [dict(row) for row in result.mappings()]
        conn.execute(_SET_TIMEOUT, {"value": previous})
        return rows

    def execute(self, statement: str, batch_index: int = 0) -> ExecutionResult:
        """
        Execute one batch statement and return its raw result rows.

        Raises:
            StoreExecutionError: The statement failed or timed out. The
                failure is logged with the statement text and elapsed time.
        """
        start_time = time.perf_counter()
        try:
            if self.connection is not None:
                rows = self._run(self.connection, statement)
            else:
                with self.engine.begin() as conn:
                    rows = self._run(conn, statement)
        except SQLAlchemyError as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self._logger.error(
                "upsert.batch.failed",
                batch_index=batch_index,
                statement=statement,
                duration_ms=duration_ms,
                error=str(exc),
            )
            raise StoreExecutionError(
                f"Upsert batch {batch_index} failed: {exc}",
                statement=statement,
                batch_index=batch_index,
                duration_ms=duration_ms,
            ) from exc

        return ExecutionResult(rows, (time.perf_counter() - start_time) * 1000)


__all__ = ["BatchExecutor", "DEFAULT_TIMEOUT_SECONDS", "ExecutionResult"]
