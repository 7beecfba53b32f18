"""Data models for plugin trace records and reconstructed correlation flow graphs."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


class TraceMode(str, Enum):
    SYNCHRONOUS = "Synchronous"
    ASYNCHRONOUS = "Asynchronous"


class TraceStage(str, Enum):
    PRE_VALIDATION = "PreValidation"
    PRE_OPERATION = "PreOperation"
    POST_OPERATION = "PostOperation"
    UNKNOWN = "Unknown"


_STAGE_BY_OPERATION_TYPE = {
    1: TraceStage.PRE_VALIDATION,
    2: TraceStage.PRE_OPERATION,
    4: TraceStage.POST_OPERATION,
}


def _as_number(value: Any) -> float | None:
    """Return value as a finite float, or None if it isn't one."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    millis = _as_number(value)
    if millis is None:
        return None
    try:
        return EPOCH + timedelta(milliseconds=millis)
    except OverflowError:
        return None


class TraceRecord(BaseModel):
    """One plugin execution step from a correlation group.

    Records carry no parent reference; the call hierarchy is inferred from
    depth, timestamp and type name (see corrflow.graph.ancestry).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type_name: str = ""
    message: str = ""
    mode: TraceMode = TraceMode.SYNCHRONOUS
    duration_ms: float = 0
    has_exception: bool = False
    depth: int = 0
    timestamp: datetime = EPOCH
    stage: TraceStage = TraceStage.UNKNOWN
    correlation_id: str | None = None

    @field_validator("id", "correlation_id", mode="before")
    @classmethod
    def _number_to_str(cls, value: Any) -> Any:
        # Ids are opaque; exports sometimes carry them as JSON numbers
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("type_name", "message", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("mode", mode="before")
    @classmethod
    def _coerce_mode(cls, value: Any) -> TraceMode:
        if isinstance(value, TraceMode):
            return value
        if isinstance(value, str):
            for mode in TraceMode:
                if value.strip().lower() == mode.value.lower():
                    return mode
        number = _as_number(value)
        if number is not None and number != 0:
            return TraceMode.ASYNCHRONOUS
        return TraceMode.SYNCHRONOUS

    @field_validator("stage", mode="before")
    @classmethod
    def _coerce_stage(cls, value: Any) -> TraceStage:
        if isinstance(value, TraceStage):
            return value
        if isinstance(value, str):
            try:
                return TraceStage(value)
            except ValueError:
                pass
        number = _as_number(value)
        if number is not None and number.is_integer():
            return _STAGE_BY_OPERATION_TYPE.get(int(number), TraceStage.UNKNOWN)
        return TraceStage.UNKNOWN

    @field_validator("depth", mode="before")
    @classmethod
    def _coerce_depth(cls, value: Any) -> int:
        number = _as_number(value)
        if number is None or number < 0 or not number.is_integer():
            logger.warning("Unusable depth %r, treating as 0", value)
            return 0
        return int(number)

    @field_validator("duration_ms", mode="before")
    @classmethod
    def _coerce_duration(cls, value: Any) -> float:
        if value is None:
            return 0
        number = _as_number(value)
        if number is None or number < 0:
            logger.warning("Unusable duration %r, treating as 0", value)
            return 0
        return number

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> datetime:
        parsed = _parse_timestamp(value)
        if parsed is None:
            logger.warning("Unusable timestamp %r, treating as epoch", value)
            return EPOCH
        return parsed

    @property
    def timestamp_ms(self) -> int:
        """Milliseconds since the Unix epoch, truncated to whole milliseconds."""
        return (self.timestamp - EPOCH) // _ONE_MS

    @classmethod
    def from_plugin_trace_log(cls, raw: dict[str, Any]) -> TraceRecord:
        """Build a record from a raw plugin trace log row as the platform returns it."""
        exception_details = raw.get("exceptiondetails")
        return cls(
            id=raw.get("plugintracelogid"),
            type_name=raw.get("typename"),
            message=raw.get("messagename"),
            mode=raw.get("mode", 0),
            duration_ms=raw.get("performanceexecutionduration"),
            has_exception=isinstance(exception_details, str) and exception_details.strip() != "",
            depth=raw.get("depth", 0),
            timestamp=raw.get("createdon"),
            stage=raw.get("operationtype"),
            correlation_id=raw.get("correlationid"),
        )


class Position(BaseModel):
    x: float
    y: float


class NodeData(BaseModel):
    """Read-only display fields attached to a graph node."""

    trace_id: str
    type_name: str
    message: str
    stage: TraceStage
    mode: TraceMode
    duration_ms: float
    has_exception: bool
    depth: int


class GraphNode(BaseModel):
    """A record placed on the swim-lane grid (lane = depth rank, row = canonical position)."""

    id: str
    lane: int
    row: int
    position: Position
    data: NodeData


class EdgeKind(str, Enum):
    PARENT_CHILD = "parent-child"


class GraphEdge(BaseModel):
    """An inferred (not authoritative) link from an ancestor to the record it plausibly triggered."""

    id: str
    source_id: str
    target_id: str
    kind: EdgeKind = EdgeKind.PARENT_CHILD


class FlowGraph(BaseModel):
    """Reconstructed execution graph for one correlation group."""

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)

    def node(self, node_id: str) -> GraphNode:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(f"Unknown node id: {node_id}")

    def incoming(self, node_id: str) -> list[GraphEdge]:
        return [e for e in self.edges if e.target_id == node_id]

    def parent_of(self, node_id: str) -> str | None:
        """Return the inferred ancestor id of a node, or None for roots."""
        for edge in self.edges:
            if edge.target_id == node_id and edge.kind == EdgeKind.PARENT_CHILD:
                return edge.source_id
        return None
