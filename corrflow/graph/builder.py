"""Build correlation flow graphs from plugin trace records."""

from __future__ import annotations

import logging
from typing import Iterable

import networkx as nx

from corrflow.graph.ancestry import infer_ancestors
from corrflow.graph.canonical import canonical_order
from corrflow.graph.lanes import assign_lanes
from corrflow.models import (
    EdgeKind,
    FlowGraph,
    GraphEdge,
    GraphNode,
    NodeData,
    Position,
    TraceRecord,
)

logger = logging.getLogger(__name__)

LANE_WIDTH = 350  # horizontal spacing between depth lanes
ROW_SPACING = 200  # vertical spacing between rows


def _node_data(record: TraceRecord) -> NodeData:
    return NodeData(
        trace_id=record.id,
        type_name=record.type_name or "Unknown",
        message=record.message,
        stage=record.stage,
        mode=record.mode,
        duration_ms=record.duration_ms,
        has_exception=record.has_exception,
        depth=record.depth,
    )


def build_flow_graph(
    records: Iterable[TraceRecord],
    lane_width: float = LANE_WIDTH,
    row_spacing: float = ROW_SPACING,
) -> FlowGraph:
    """Build a swim-lane flow graph from the records of one correlation group.

    Nodes sit at (lane * lane_width, row * row_spacing) where the lane is the
    rank of the record's depth and the row is its canonical position. Edges
    are inferred parent-child links only; row order already shows sequence.
    """
    ordered = canonical_order(records)
    if not ordered:
        return FlowGraph()

    lanes = assign_lanes(ordered)
    ancestors = infer_ancestors(ordered)

    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []
    for row, record in enumerate(ordered):
        lane = lanes[record.depth]
        nodes.append(GraphNode(
            id=record.id,
            lane=lane,
            row=row,
            position=Position(x=lane * lane_width, y=row * row_spacing),
            data=_node_data(record),
        ))

        parent_index = ancestors[row]
        if parent_index is not None:
            parent_id = ordered[parent_index].id
            edges.append(GraphEdge(
                id=f"pc-{parent_id}-{record.id}",
                source_id=parent_id,
                target_id=record.id,
                kind=EdgeKind.PARENT_CHILD,
            ))

    logger.debug("Built flow graph: %d nodes, %d edges, %d lanes", len(nodes), len(edges), len(lanes))
    return FlowGraph(nodes=nodes, edges=edges)


def to_networkx(graph: FlowGraph) -> nx.DiGraph:
    """Convert a flow graph to a networkx DiGraph.

    Nodes are keyed by record id with lane, row and display data as
    attributes. Edges carry their kind.
    """
    digraph = nx.DiGraph()

    for node in graph.nodes:
        digraph.add_node(
            node.id,
            lane=node.lane,
            row=node.row,
            **node.data.model_dump(mode="json"),
        )

    for edge in graph.edges:
        digraph.add_edge(edge.source_id, edge.target_id, id=edge.id, kind=edge.kind.value)

    return digraph


def graph_stats(graph: FlowGraph) -> dict[str, int]:
    """Summary counts used by the CLI and reports."""
    digraph = to_networkx(graph)
    roots = [n for n in digraph.nodes if digraph.in_degree(n) == 0]
    isolated = list(nx.isolates(digraph))
    if not nx.is_directed_acyclic_graph(digraph):
        # only possible when record ids repeat within the group
        logger.warning("Flow graph contains a cycle; longest chain not computed")
        longest_chain = 0
    elif digraph.number_of_nodes():
        longest_chain = nx.dag_longest_path_length(digraph) + 1
    else:
        longest_chain = 0
    return {
        "nodes": digraph.number_of_nodes(),
        "edges": digraph.number_of_edges(),
        "lanes": len({node.lane for node in graph.nodes}),
        "roots": len(roots),
        "isolated": len(isolated),
        "longest_chain": longest_chain,
        "exceptions": sum(1 for node in graph.nodes if node.data.has_exception),
    }
