"""corrflow — reconstruct plugin execution flow graphs from correlated trace logs."""

__version__ = "0.1.0"

from corrflow.graph.builder import build_flow_graph, to_networkx
from corrflow.models import (
    EdgeKind,
    FlowGraph,
    GraphEdge,
    GraphNode,
    TraceMode,
    TraceRecord,
    TraceStage,
)

__all__ = [
    "EdgeKind",
    "FlowGraph",
    "GraphEdge",
    "GraphNode",
    "TraceMode",
    "TraceRecord",
    "TraceStage",
    "build_flow_graph",
    "to_networkx",
]
