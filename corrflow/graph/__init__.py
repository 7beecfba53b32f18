"""Correlation flow graph reconstruction: canonical order, lanes, ancestry, assembly."""

from corrflow.graph.builder import build_flow_graph, graph_stats, to_networkx

__all__ = ["build_flow_graph", "graph_stats", "to_networkx"]
