"""Tests for markdown/JSON report generation."""

from __future__ import annotations

import json
from pathlib import Path

from corrflow.graph.builder import build_flow_graph
from corrflow.models import FlowGraph
from corrflow.reporting.reporter import (
    generate_batch_summary,
    generate_json_report,
    generate_markdown_report,
    write_report,
)

from conftest import make_record


def _graph() -> FlowGraph:
    return build_flow_graph([
        make_record("p", depth=0, type_name="Foo.Parent"),
        make_record("c", depth=1, type_name="Foo.Child", has_exception=True, duration_ms=7),
    ])


class TestMarkdownReport:
    def test_header_and_counts(self):
        md = generate_markdown_report(_graph(), "corr-1")
        assert "# Correlation Flow: corr-1" in md
        assert "**Records:** 2" in md
        assert "**Parent Links:** 1" in md
        assert "**Exceptions:** 1" in md

    def test_lane_table(self):
        md = generate_markdown_report(_graph(), "corr-1")
        assert "| Row | Lane 0 | Lane 1 |" in md
        assert "Foo.Child (Create, 7 ms) ⚠" in md

    def test_pipes_in_cells_are_escaped(self):
        md = generate_markdown_report(build_flow_graph([make_record("a", type_name="Foo|Bar", message="")]))
        assert "| 0 | Foo\\|Bar (?, 0 ms) |" in md

    def test_parent_links(self):
        md = generate_markdown_report(_graph(), "corr-1")
        assert "- p (Foo.Parent, depth 0) → c (Foo.Child, depth 1)" in md

    def test_no_links(self):
        md = generate_markdown_report(build_flow_graph([make_record("solo")]))
        assert "No parent links inferred." in md
        assert "# Correlation Flow: Unknown" in md

    def test_empty_graph(self):
        md = generate_markdown_report(FlowGraph(), "empty")
        assert "**Records:** 0" in md
        assert "Swim Lanes" not in md


class TestJsonReport:
    def test_round_trips_through_model(self):
        graph = _graph()
        assert FlowGraph.model_validate_json(generate_json_report(graph)) == graph

    def test_edge_kind_serialised(self):
        data = json.loads(generate_json_report(_graph()))
        assert data["edges"][0]["kind"] == "parent-child"


class TestBatchSummary:
    def test_rows_and_skipped(self):
        md = generate_batch_summary(
            {"corr-1": _graph(), "": FlowGraph()},
            skipped=[{"correlation_id": "corr-9", "error": "boom"}],
        )
        assert "**Groups Processed:** 2" in md
        assert "| corr-1 | 2 | 1 | 1 | 1 |" in md
        assert "| (none) | 0 | 0 | 0 | 0 |" in md
        assert "- **corr-9**: boom" in md


def test_write_report_creates_directories(tmp_path: Path):
    path = tmp_path / "a" / "b" / "flow.md"
    write_report("hello", path)
    assert path.read_text() == "hello"
