"""Mapping of raw result rows back into typed records, grouped by outcome."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from upsert_all.infrastructure.sql.operations.upsert import OUTCOME_COLUMN
from upsert_all.utils.logging import get_logger

from .models import ProtocolError, ResultSet, UpsertReturnType
from .records import RecordCodec, RecordNotRepresentable

structured_logger = get_logger(__name__)


def outcome_of(row: Mapping[str, Any]) -> UpsertReturnType:
    """Read the outcome discriminator of a raw row."""
    tag = row.get(OUTCOME_COLUMN)
    kind = UpsertReturnType.from_tag(tag)
    if kind is None:
        raise ProtocolError(f"Unknown upsert outcome tag: {tag!r}")
    return kind


def classify_rows(
    rows: Sequence[Mapping[str, Any]],
    codec: RecordCodec,
    record_type: Optional[type],
    results: ResultSet,
    logger: Any = None,
) -> int:
    """
    Fold raw rows into ``results`` in row order.

    Rows the codec cannot rebuild are dropped with a warning; an unknown
    outcome tag raises ProtocolError.

    Returns:
        Number of rows appended to ``results``
    """
    logger = logger or structured_logger
    appended = 0
    for row in rows:
        kind = outcome_of(row)
        fields: Dict[str, Any] = {k: v for k, v in row.items() if k != OUTCOME_COLUMN}
        try:
            record = codec.from_row(record_type, fields)
        except RecordNotRepresentable as exc:
            logger.warning(
                "upsert.row.skipped",
                outcome=kind.value,
                reason=str(exc),
            )
            continue
        results.setdefault(kind, []).append(record)
        appended += 1
    return appended


def outcome_counts(results: ResultSet) -> Dict[str, int]:
    """Count of records per outcome, for logging."""
    return {kind.value: len(records) for kind, records in results.items()}


__all__ = ["classify_rows", "outcome_counts", "outcome_of"]
