"""Demo: reconstruct a correlation flow from exported plugin trace logs.

Run with:  uv run python examples/demo_flow.py
"""

from pathlib import Path

from corrflow.graph.builder import build_flow_graph, graph_stats
from corrflow.ingestion.loader import group_by_correlation, load_records

TRACE_FILE = Path(__file__).parent / "plugin_trace_logs.json"


def print_flow(correlation_id: str, records) -> None:
    graph = build_flow_graph(records)
    stats = graph_stats(graph)
    print(f"\n== {correlation_id} ({stats['nodes']} records, {stats['edges']} links)")
    for node in graph.nodes:
        parent = graph.parent_of(node.id)
        indent = "    " * node.lane
        marker = " !" if node.data.has_exception else ""
        link = f"  <- {parent}" if parent else "  (root)"
        print(f"  {node.row:>2} {indent}{node.data.type_name} [{node.data.message}]{marker}{link}")


def main() -> None:
    records = load_records(TRACE_FILE)
    for correlation_id, group in group_by_correlation(records).items():
        print_flow(correlation_id, group)


if __name__ == "__main__":
    main()
