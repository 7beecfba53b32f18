"""Load exported plugin trace log rows from JSON files."""

from __future__ import annotations

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Any, Iterable

from corrflow.models import TraceRecord

logger = logging.getLogger(__name__)


def _parse_row(row: Any) -> TraceRecord:
    if not isinstance(row, dict):
        raise ValueError(f"Expected a JSON object per trace row, got {type(row).__name__}")
    # Raw platform rows are keyed by plugintracelogid; our own exports by id
    if "plugintracelogid" in row:
        return TraceRecord.from_plugin_trace_log(row)
    return TraceRecord.model_validate(row)


def parse_records(data: Any) -> list[TraceRecord]:
    """Parse already-decoded JSON into trace records.

    Accepts a list of rows or an OData envelope ({"value": [...]}).

    Raises:
        ValueError: If the top-level shape isn't supported.
        pydantic.ValidationError: If a row has no usable id.
    """
    if isinstance(data, dict) and "value" in data:
        data = data["value"]
    if not isinstance(data, list):
        raise ValueError("Trace file must contain a JSON array of rows or an object with a 'value' array")
    return [_parse_row(row) for row in data]


def load_records(path: Path) -> list[TraceRecord]:
    """Load trace records from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        json.JSONDecodeError: If the file isn't valid JSON.
        ValueError: If the top-level shape isn't supported.
        pydantic.ValidationError: If a row has no usable id.
    """
    data = json.loads(path.read_text())
    records = parse_records(data)
    duplicates = sorted(record_id for record_id, n in Counter(r.id for r in records).items() if n > 1)
    if duplicates:
        logger.warning("Repeated record ids in %s: %s", path, ", ".join(duplicates))
    logger.debug("Loaded %d trace records from %s", len(records), path)
    return records


def group_by_correlation(records: Iterable[TraceRecord]) -> dict[str, list[TraceRecord]]:
    """Group records by correlation id, in first-seen order.

    Records without a correlation id are grouped under "".
    """
    groups: dict[str, list[TraceRecord]] = {}
    for record in records:
        groups.setdefault(record.correlation_id or "", []).append(record)
    return groups
