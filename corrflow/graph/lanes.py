"""Map reported nesting depths to compact lane indices."""

from __future__ import annotations

from typing import Iterable

from corrflow.models import TraceRecord


def assign_lanes(records: Iterable[TraceRecord]) -> dict[int, int]:
    """Return {depth: lane} where lanes are the zero-based ranks of the distinct depths.

    Example: observed depths {1, 3} become lanes {1: 0, 3: 1}.
    """
    depths = sorted({r.depth for r in records})
    return {depth: lane for lane, depth in enumerate(depths)}


def lane_count(lanes: dict[int, int]) -> int:
    return len(lanes)
