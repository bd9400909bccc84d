"""Batched insert / update-if-different / unchanged upsert.

``upsert_all`` writes a collection of records into their table and returns
every affected row grouped by the outcome it received. Columns are
classified once per call; each batch is rendered into a single statement
and executed in order on the caller's connection or on the default engine.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.engine import Connection, Engine

from upsert_all.config import get_engine, get_settings
from upsert_all.infrastructure.schema.core import TableDef
from upsert_all.infrastructure.schema.registry import get_table_for_type
from upsert_all.infrastructure.sql.dialects.postgresql import PostgreSQLDialect
from upsert_all.infrastructure.sql.operations.upsert import ColumnPlan, UpsertBuilder
from upsert_all.utils.logging import get_logger

from .batching import batch_count, chunked
from .columns import ColumnLike, classify_columns
from .executor import BatchExecutor
from .models import CHANGES, InvalidArgumentError, ResultSet, UpsertReturnType
from .records import RecordCodec, default_codec_for
from .results import classify_rows, outcome_counts

structured_logger = get_logger(__name__)


@dataclass
class PreparedUpsert:
    """Everything computed once per call, before any store access."""

    record_type: Optional[type]
    codec: RecordCodec
    field_maps: List[Dict[str, Any]]
    plan: ColumnPlan
    builder: UpsertBuilder
    batch_size: int

    def statements(self) -> Iterable[str]:
        for batch in chunked(self.field_maps, self.batch_size):
            yield self.builder.build(batch)


def _resolve_batch_size(batch_size: Optional[int]) -> int:
    if batch_size is None:
        batch_size = get_settings().DB_BATCH_SIZE
    if not isinstance(batch_size, int) or isinstance(batch_size, bool) or batch_size <= 0:
        raise InvalidArgumentError(f"batch_size must be a positive integer, got {batch_size!r}")
    return batch_size


def prepare_upsert(
    records: Sequence[Any],
    unique_by: Iterable[ColumnLike],
    batch_size: Optional[int] = None,
    excluded_criteria_columns: Optional[Iterable[ColumnLike]] = None,
    non_updatable_columns: Optional[Iterable[ColumnLike]] = None,
    returning: Iterable[UpsertReturnType] = CHANGES,
    record_type: Optional[type] = None,
    table: Optional[TableDef] = None,
    codec: Optional[RecordCodec] = None,
) -> PreparedUpsert:
    """
    Validate arguments, classify columns and set up the statement builder.

    Raises:
        InvalidArgumentError: Bad batch size, empty conflict key, unknown
            columns, or no table metadata for the record type
    """
    size = _resolve_batch_size(batch_size)
    if record_type is None and records:
        record_type = type(records[0])
    if table is None and record_type is not None:
        table = get_table_for_type(record_type)
    if codec is None:
        try:
            codec = default_codec_for(record_type)
        except TypeError as exc:
            raise InvalidArgumentError(str(exc)) from exc

    field_maps = [codec.to_field_map(record) for record in records]
    plan = classify_columns(
        table,
        field_maps,
        unique_by,
        excluded=excluded_criteria_columns,
        non_updatable=non_updatable_columns,
    )
    builder = UpsertBuilder(plan, returning, PostgreSQLDialect())
    return PreparedUpsert(record_type, codec, field_maps, plan, builder, size)


def upsert_all(
    records: Iterable[Any],
    *,
    unique_by: Iterable[ColumnLike],
    batch_size: Optional[int] = None,
    excluded_criteria_columns: Optional[Iterable[ColumnLike]] = None,
    non_updatable_columns: Optional[Iterable[ColumnLike]] = None,
    returning: Iterable[UpsertReturnType] = CHANGES,
    transaction: Optional[Connection] = None,
    engine: Optional[Engine] = None,
    record_type: Optional[type] = None,
    table: Optional[TableDef] = None,
    codec: Optional[RecordCodec] = None,
    timeout_seconds: Optional[int] = None,
    logger: Any = None,
) -> ResultSet:
    """
    Insert new rows, update changed rows and report every affected row.

    Args:
        records: Records to write; never mutated
        unique_by: Conflict-key columns (names or ColumnDef)
        batch_size: Records per statement (default DB_BATCH_SIZE, 100)
        excluded_criteria_columns: Columns ignored when deciding whether a
            row changed (default identity and both timestamps)
        non_updatable_columns: Columns never rewritten on update (default
            identity and creation timestamp)
        returning: Outcome categories to report (default inserted + updated)
        transaction: Caller-managed SQLAlchemy connection; all batches run on
            it and it is never committed, rolled back or closed here
        engine: Engine used when no transaction is given (default engine
            from settings)
        record_type: Record class; taken from the first record if omitted
        table: Table metadata; looked up in the registry if omitted
        codec: Record <-> field map converter; chosen from record_type
        timeout_seconds: Per-batch statement timeout (default
            DB_STATEMENT_TIMEOUT, 60)
        logger: structlog-compatible logger receiving progress events

    Returns:
        Mapping from outcome to records in batch order, then row order

    Raises:
        InvalidArgumentError: Invalid call, raised before any store access
        StoreExecutionError: A batch failed; earlier batches are left to
            the surrounding transaction
        ProtocolError: A result row carried an unknown outcome tag

    Note:
        When no column is left to update (every participating column is
        part of ``unique_by`` or non-updatable), the update path is skipped
        and ``UPDATED`` is never reported, even if requested.

        A conflict key must not appear in two batches of the same call.
        Batches run in order, so the later batch sees the earlier batch's
        write and reports that key as updated or unchanged.

    Example:
        >>> results = upsert_all(users, unique_by=["email"], engine=engine)
        >>> results.get(UpsertReturnType.INSERTED, [])
    """
    records = list(records)
    if not records:
        return {}

    logger = logger or structured_logger
    returning = frozenset(returning)
    prepared = prepare_upsert(
        records,
        unique_by,
        batch_size=batch_size,
        excluded_criteria_columns=excluded_criteria_columns,
        non_updatable_columns=non_updatable_columns,
        returning=returning,
        record_type=record_type,
        table=table,
        codec=codec,
    )
    plan = prepared.plan
    table_name = plan.table.table_name

    if timeout_seconds is None:
        timeout_seconds = get_settings().DB_STATEMENT_TIMEOUT
    if timeout_seconds <= 0:
        raise InvalidArgumentError("timeout_seconds must be greater than zero")

    if plan.skip_update and UpsertReturnType.UPDATED in returning:
        logger.info(
            "upsert.update_skipped",
            table=table_name,
            unique_by=plan.unique_by,
            columns=plan.column_names,
        )

    if transaction is None and engine is None:
        engine = get_engine()
    executor = BatchExecutor(
        engine=engine,
        connection=transaction,
        timeout_seconds=timeout_seconds,
        logger=logger,
    )

    execution_id = uuid.uuid4().hex
    total_batches = batch_count(len(records), prepared.batch_size)
    start_time = time.perf_counter()
    logger.info(
        "upsert.started",
        table=table_name,
        records=len(records),
        batch_size=prepared.batch_size,
        batches=total_batches,
        returning=sorted(kind.value for kind in returning),
        execution_id=execution_id,
    )

    results: ResultSet = {}
    rows_classified = 0
    for index, batch in enumerate(chunked(prepared.field_maps, prepared.batch_size)):
        logger.debug(
            "upsert.batch.started",
            table=table_name,
            batch_index=index + 1,
            batches=total_batches,
            start=index * prepared.batch_size,
            size=len(batch),
            execution_id=execution_id,
        )
        statement = prepared.builder.build(batch)
        executed = executor.execute(statement, batch_index=index + 1)
        rows_classified += classify_rows(
            executed.rows, prepared.codec, prepared.record_type, results, logger=logger
        )
        logger.info(
            "upsert.batch.completed",
            table=table_name,
            batch_index=index + 1,
            batches=total_batches,
            size=len(batch),
            duration_ms=executed.duration_ms,
            rows_classified=rows_classified,
            execution_id=execution_id,
        )

    logger.info(
        "upsert.completed",
        table=table_name,
        duration_ms=(time.perf_counter() - start_time) * 1000,
        outcomes=outcome_counts(results),
        execution_id=execution_id,
    )
    return results


__all__ = ["PreparedUpsert", "prepare_upsert", "upsert_all"]
