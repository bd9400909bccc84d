"""Partitioning of the record collection into bounded batches."""

from __future__ import annotations

from typing import Iterator, Sequence, TypeVar

T = TypeVar("T")


def chunked(rows: Sequence[T], batch_size: int) -> Iterator[Sequence[T]]:
    """Yield contiguous slices of ``rows``, the last one possibly shorter.

    Calling it again over the same sequence yields the same batches.
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be greater than zero")
    for start in range(0, len(rows), batch_size):
        yield rows[start : start + batch_size]


def batch_count(total: int, batch_size: int) -> int:
    """Number of batches ``chunked`` yields for ``total`` rows."""
    if batch_size <= 0:
        raise ValueError("batch_size must be greater than zero")
    return -(-total // batch_size)
