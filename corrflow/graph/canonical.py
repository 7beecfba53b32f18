"""Deterministic total order over the records of one correlation group."""

from __future__ import annotations

from typing import Iterable

from corrflow.models import TraceRecord


def canonical_key(record: TraceRecord) -> tuple[int, int, str, str]:
    """Sort key: timestamp, then depth, then message, then type name."""
    return (record.timestamp_ms, record.depth, record.message, record.type_name)


def canonical_order(records: Iterable[TraceRecord]) -> list[TraceRecord]:
    """Return a new list in canonical order.

    The position of a record in this list is its row on the swim-lane grid,
    and it decides ties during ancestor inference. Records with equal keys
    keep their input order.
    """
    return sorted(records, key=canonical_key)
