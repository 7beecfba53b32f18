"""Infer which record most plausibly called which.

Trace records carry a depth and a timestamp but no parent reference. For a
record ``c`` the candidate ancestors are the records ``p`` that are strictly
shallower, not later in time, and reported under the same type prefix. Each
candidate is scored as::

    -(ts(c) - ts(p)) - DEPTH_GAP_WEIGHT * (depth(c) - depth(p))

so a smaller depth gap dominates a smaller time gap. The highest score wins;
on an exact tie the candidate earliest in canonical order wins.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Sequence

from corrflow.models import TraceRecord

logger = logging.getLogger(__name__)

TYPE_PREFIX_DELIMITER = "."
DEPTH_GAP_WEIGHT = 1000


def type_prefix(type_name: str | None) -> str:
    """Return the part of a type name before its first delimiter.

    Example: type_prefix("Contoso.Plugins.OnCreate") == "Contoso"
    """
    if not type_name:
        return ""
    head, _, _ = type_name.partition(TYPE_PREFIX_DELIMITER)
    return head


def is_eligible(candidate: TraceRecord, child: TraceRecord) -> bool:
    """Whether candidate may be reported as an ancestor of child."""
    if candidate.depth >= child.depth:
        return False
    if candidate.timestamp_ms > child.timestamp_ms:
        return False
    return type_prefix(candidate.type_name) == type_prefix(child.type_name)


def score_ancestor(candidate: TraceRecord, child: TraceRecord) -> int:
    """Score an eligible candidate; higher is more plausible."""
    time_gap = child.timestamp_ms - candidate.timestamp_ms
    depth_gap = child.depth - candidate.depth
    return -time_gap - DEPTH_GAP_WEIGHT * depth_gap


def _best_candidate(
    ordered: Sequence[TraceRecord],
    child_index: int,
    candidate_indices: Sequence[int],
) -> int | None:
    child = ordered[child_index]
    best_index: int | None = None
    best_score: int | None = None

    # candidate_indices must be ascending so strict ">" keeps the earliest on ties
    for i in candidate_indices:
        if i == child_index:
            continue
        candidate = ordered[i]
        if not is_eligible(candidate, child):
            continue
        score = score_ancestor(candidate, child)
        if best_score is None or score > best_score:
            best_score = score
            best_index = i

    return best_index


def find_ancestor_index(ordered: Sequence[TraceRecord], child_index: int) -> int | None:
    """Return the canonical index of the inferred ancestor of ordered[child_index].

    Scans every record. Returns None for records at depth 0 and for records
    with no eligible candidate.
    """
    if ordered[child_index].depth <= 0:
        return None
    return _best_candidate(ordered, child_index, range(len(ordered)))


def infer_ancestors(ordered: Sequence[TraceRecord]) -> list[int | None]:
    """Return, per canonical position, the index of its inferred ancestor or None.

    Candidates are bucketed by type prefix (kept in canonical order), which
    gives the same answers as find_ancestor_index for every position.
    """
    buckets: dict[str, list[int]] = defaultdict(list)
    for i, record in enumerate(ordered):
        buckets[type_prefix(record.type_name)].append(i)

    ancestors: list[int | None] = []
    for i, record in enumerate(ordered):
        if record.depth <= 0:
            ancestors.append(None)
            continue
        ancestor = _best_candidate(ordered, i, buckets[type_prefix(record.type_name)])
        if ancestor is None:
            logger.debug("No ancestor found for %s at depth %d", record.id, record.depth)
        ancestors.append(ancestor)

    return ancestors
