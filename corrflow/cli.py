"""CLI entry point for corrflow."""

import asyncio
import logging
from datetime import date
from pathlib import Path

import click
from dotenv import load_dotenv

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

load_dotenv()

from corrflow.graph.builder import LANE_WIDTH, ROW_SPACING, build_flow_graph, graph_stats
from corrflow.ingestion.loader import group_by_correlation, load_records
from corrflow.models import FlowGraph, TraceRecord
from corrflow.reporting.reporter import (
    generate_batch_summary,
    generate_json_report,
    generate_markdown_report,
    write_report,
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _load(trace_file: Path) -> list[TraceRecord]:
    click.echo(f"Loading trace records from {trace_file}...")
    try:
        records = load_records(trace_file)
    except ValueError as e:
        # covers json.JSONDecodeError and pydantic.ValidationError
        raise click.ClickException(f"Could not load {trace_file}: {e}") from e
    click.echo(f"Loaded {len(records)} record(s).")
    return records


def _select_group(records: list[TraceRecord], correlation_id: str | None) -> tuple[str, list[TraceRecord]]:
    """Pick the records of one correlation group."""
    groups = group_by_correlation(records)
    if correlation_id is not None:
        if correlation_id not in groups:
            raise click.ClickException(f"No records with correlation id '{correlation_id}'.")
        return correlation_id, groups[correlation_id]
    if len(groups) > 1:
        ids = ", ".join(cid or "(none)" for cid in groups)
        raise click.UsageError(f"File holds {len(groups)} correlation groups ({ids}); pass --correlation-id or use 'batch'.")
    if not groups:
        return "", []
    return next(iter(groups.items()))


def _report_dir(output_dir: Path, correlation_id: str) -> Path:
    return output_dir / date.today().isoformat() / (correlation_id or "uncorrelated")


def _echo_stats(graph: FlowGraph) -> None:
    stats = graph_stats(graph)
    click.echo(
        f"Graph: {stats['nodes']} nodes, {stats['edges']} edges, {stats['lanes']} lane(s), "
        f"{stats['roots']} root(s), longest chain {stats['longest_chain']}."
    )
    if stats["isolated"]:
        click.echo(f"  {stats['isolated']} record(s) have no inferred caller or callee.")


@click.group()
@click.option(
    "--log-level",
    envvar="CORRFLOW_LOG_LEVEL",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    help="Log level (or set CORRFLOW_LOG_LEVEL).",
)
def main(log_level: str):
    """corrflow — reconstruct plugin execution flow from correlated trace logs."""
    logging.getLogger().setLevel(log_level.upper())


@main.command()
@click.argument("trace_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--correlation-id", "-c", default=None, help="Correlation group to build (required when the file holds several).")
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None, help="Output markdown report path.")
@click.option("--json-output", "-j", type=click.Path(path_type=Path), default=None, help="Output JSON graph path.")
@click.option("--output-dir", envvar="CORRFLOW_OUTPUT_DIR", type=click.Path(file_okay=False, path_type=Path), default=Path("logs"), help="Base directory for default report paths (or set CORRFLOW_OUTPUT_DIR).")
@click.option("--lane-width", envvar="CORRFLOW_LANE_WIDTH", type=float, default=LANE_WIDTH, help="Horizontal spacing between lanes (or set CORRFLOW_LANE_WIDTH).")
@click.option("--row-spacing", envvar="CORRFLOW_ROW_SPACING", type=float, default=ROW_SPACING, help="Vertical spacing between rows (or set CORRFLOW_ROW_SPACING).")
def build(
    trace_file: Path,
    correlation_id: str | None,
    output: Path | None,
    json_output: Path | None,
    output_dir: Path,
    lane_width: float,
    row_spacing: float,
):
    """Build the flow graph of one correlation group."""
    # 1. Ingest records
    records = _load(trace_file)
    correlation_id, group = _select_group(records, correlation_id)

    # 2. Build graph
    click.echo(f"Building flow graph for '{correlation_id or '(none)'}' ({len(group)} records)...")
    graph = build_flow_graph(group, lane_width=lane_width, row_spacing=row_spacing)
    _echo_stats(graph)

    # 3. Write reports — default to ./logs/{date}/{correlation}/
    report_dir = _report_dir(output_dir, correlation_id)
    if not output:
        output = report_dir / "flow.md"
    if not json_output:
        json_output = report_dir / "flow.json"

    write_report(generate_markdown_report(graph, correlation_id), output)
    click.echo(f"Markdown report written to {output}")

    write_report(generate_json_report(graph), json_output)
    click.echo(f"JSON graph written to {json_output}")


async def _run_batch(
    groups: dict[str, list[TraceRecord]],
    output_dir: Path,
    lane_width: float,
    row_spacing: float,
    concurrency: int,
) -> tuple[dict[str, FlowGraph], list[dict]]:
    """Build all groups, offloading each build to a worker thread under a semaphore."""
    sem = asyncio.Semaphore(concurrency)
    skipped: list[dict] = []

    async def _process_one(correlation_id: str, records: list[TraceRecord]) -> tuple[str, FlowGraph] | None:
        async with sem:
            try:
                graph = await asyncio.to_thread(build_flow_graph, records, lane_width, row_spacing)
                group_dir = _report_dir(output_dir, correlation_id)
                write_report(generate_markdown_report(graph, correlation_id), group_dir / "flow.md")
                write_report(generate_json_report(graph), group_dir / "flow.json")
            except Exception as e:
                logger.error("Failed to build flow for correlation %s: %s", correlation_id, e)
                skipped.append({"correlation_id": correlation_id, "error": str(e)})
                return None

            click.echo(f"  {correlation_id or '(none)'}: {len(graph.nodes)} node(s), {len(graph.edges)} edge(s)")
            return correlation_id, graph

    raw_results = await asyncio.gather(*[_process_one(cid, recs) for cid, recs in groups.items()])
    graphs = dict(r for r in raw_results if r is not None)
    return graphs, skipped


@main.command()
@click.argument("trace_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output-dir", envvar="CORRFLOW_OUTPUT_DIR", type=click.Path(file_okay=False, path_type=Path), default=Path("logs"), help="Base directory for reports (or set CORRFLOW_OUTPUT_DIR).")
@click.option("--lane-width", envvar="CORRFLOW_LANE_WIDTH", type=float, default=LANE_WIDTH, help="Horizontal spacing between lanes (or set CORRFLOW_LANE_WIDTH).")
@click.option("--row-spacing", envvar="CORRFLOW_ROW_SPACING", type=float, default=ROW_SPACING, help="Vertical spacing between rows (or set CORRFLOW_ROW_SPACING).")
@click.option("--concurrency", type=click.IntRange(min=1), default=5, show_default=True, help="Groups built in parallel.")
def batch(trace_file: Path, output_dir: Path, lane_width: float, row_spacing: float, concurrency: int):
    """Build one flow graph per correlation group in a trace file."""
    records = _load(trace_file)
    groups = group_by_correlation(records)
    click.echo(f"Found {len(groups)} correlation group(s).")

    graphs, skipped = asyncio.run(_run_batch(groups, output_dir, lane_width, row_spacing, concurrency))

    # Keep file order in the summary
    ordered_graphs = {cid: graphs[cid] for cid in groups if cid in graphs}
    summary_path = output_dir / date.today().isoformat() / "summary.md"
    write_report(generate_batch_summary(ordered_graphs, skipped), summary_path)

    click.echo(f"\n{'='*60}")
    click.echo(f"Batch complete: {len(graphs)} processed, {len(skipped)} skipped.")
    click.echo(f"Summary written to {summary_path}")


@main.command()
@click.argument("trace_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def groups(trace_file: Path):
    """List the correlation groups in a trace file."""
    records = _load(trace_file)
    for correlation_id, group in group_by_correlation(records).items():
        depths = sorted({r.depth for r in group})
        click.echo(f"  {correlation_id or '(none)':<40} {len(group):>4} records  depths {depths}")


if __name__ == "__main__":
    main()
