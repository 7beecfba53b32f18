"""Shared fixtures and record factories."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from corrflow.models import TraceRecord

T0 = datetime(2024, 5, 2, 10, 15, 0, tzinfo=timezone.utc)

EXAMPLE_TRACE_FILE = Path(__file__).parent.parent / "examples" / "plugin_trace_logs.json"


def make_record(
    record_id: str,
    depth: int = 0,
    offset_ms: int = 0,
    type_name: str = "Foo.Plugin",
    message: str = "Create",
    **kwargs,
) -> TraceRecord:
    """Record at T0 + offset_ms."""
    return TraceRecord(
        id=record_id,
        depth=depth,
        timestamp=T0 + timedelta(milliseconds=offset_ms),
        type_name=type_name,
        message=message,
        **kwargs,
    )


@pytest.fixture
def example_trace_file() -> Path:
    return EXAMPLE_TRACE_FILE
