"""Generate correlation flow reports in markdown and JSON formats."""

from __future__ import annotations

from pathlib import Path

from corrflow.graph.builder import graph_stats
from corrflow.models import FlowGraph, GraphNode


def _escape(text: str) -> str:
    """Keep pipes in cell text from splitting markdown table columns."""
    return text.replace("|", "\\|")


def _cell(node: GraphNode) -> str:
    data = node.data
    label = _escape(f"{data.type_name} ({data.message or '?'}, {data.duration_ms:g} ms)")
    if data.has_exception:
        label += " ⚠"
    return label


def _lane_table(graph: FlowGraph) -> list[str]:
    n_lanes = max(node.lane for node in graph.nodes) + 1
    header = "| Row | " + " | ".join(f"Lane {i}" for i in range(n_lanes)) + " |"
    divider = "|-----|" + "|".join("--------" for _ in range(n_lanes)) + "|"
    lines = [header, divider]
    for node in sorted(graph.nodes, key=lambda n: n.row):
        cells = [""] * n_lanes
        cells[node.lane] = _cell(node)
        lines.append(f"| {node.row} | " + " | ".join(cells) + " |")
    return lines


def generate_markdown_report(graph: FlowGraph, correlation_id: str = "") -> str:
    """Generate a markdown swim-lane report for one correlation group."""
    stats = graph_stats(graph)
    lines: list[str] = []

    lines.append(f"# Correlation Flow: {correlation_id or 'Unknown'}")
    lines.append(f"\n**Records:** {stats['nodes']}")
    lines.append(f"**Lanes:** {stats['lanes']}")
    lines.append(f"**Parent Links:** {stats['edges']}")
    lines.append(f"**Roots:** {stats['roots']}")
    lines.append(f"**Exceptions:** {stats['exceptions']}")

    if graph.nodes:
        lines.append("\n## Swim Lanes")
        lines.append("")
        lines.extend(_lane_table(graph))

    lines.append("\n## Parent Links")
    if graph.edges:
        lines.append("")
        for edge in graph.edges:
            source = graph.node(edge.source_id).data
            target = graph.node(edge.target_id).data
            lines.append(
                f"- {edge.source_id} ({source.type_name}, depth {source.depth}) "
                f"→ {edge.target_id} ({target.type_name}, depth {target.depth})"
            )
    else:
        lines.append("\nNo parent links inferred.")

    lines.append("")
    return "\n".join(lines)


def generate_json_report(graph: FlowGraph) -> str:
    """Generate a JSON report of the full graph."""
    return graph.model_dump_json(indent=2)


def generate_batch_summary(graphs: dict[str, FlowGraph], skipped: list[dict] | None = None) -> str:
    """Generate a markdown summary table across correlation groups."""
    skipped = skipped or []
    lines: list[str] = []

    lines.append("# Correlation Flow Summary")
    lines.append(f"\n**Groups Processed:** {len(graphs)}")
    lines.append(f"**Groups Skipped:** {len(skipped)}")

    lines.append("\n## Results")
    lines.append("")
    lines.append("| Correlation | Records | Parent Links | Roots | Exceptions |")
    lines.append("|-------------|---------|--------------|-------|------------|")
    for correlation_id, graph in graphs.items():
        stats = graph_stats(graph)
        lines.append(
            f"| {_escape(correlation_id) or '(none)'} | {stats['nodes']} "
            f"| {stats['edges']} | {stats['roots']} | {stats['exceptions']} |"
        )

    if skipped:
        lines.append("\n## Skipped Groups")
        for entry in skipped:
            lines.append(f"- **{entry['correlation_id'] or '(none)'}**: {entry['error']}")

    lines.append("")
    return "\n".join(lines)


def write_report(content: str, path: Path) -> None:
    """Write report content to a file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
