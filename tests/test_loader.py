"""Tests for loading trace record files and grouping by correlation id."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from corrflow.ingestion.loader import group_by_correlation, load_records, parse_records
from corrflow.models import TraceStage

from conftest import make_record


class TestParseRecords:
    def test_plain_list_of_model_rows(self):
        records = parse_records([{"id": "a", "depth": 1, "type_name": "Foo.Bar"}])
        assert records[0].id == "a"
        assert records[0].depth == 1

    def test_odata_envelope_of_raw_rows(self):
        records = parse_records({"value": [{"plugintracelogid": "x", "operationtype": 2}]})
        assert records[0].id == "x"
        assert records[0].stage == TraceStage.PRE_OPERATION

    def test_unsupported_shape(self):
        with pytest.raises(ValueError, match="JSON array"):
            parse_records({"rows": []})

    def test_non_object_row(self):
        with pytest.raises(ValueError, match="JSON object"):
            parse_records(["not-a-row"])

    def test_row_without_id(self):
        with pytest.raises(ValidationError):
            parse_records([{"depth": 1}])

    def test_numeric_raw_id_does_not_fail_the_file(self):
        records = parse_records([{"plugintracelogid": 1001}, {"plugintracelogid": "abc"}])
        assert [r.id for r in records] == ["1001", "abc"]

    def test_bad_fields_do_not_fail_the_file(self):
        records = parse_records([
            {"id": "good", "depth": 1, "timestamp": "2024-05-02T10:15:00Z"},
            {"id": "bad", "depth": -3, "timestamp": "not a time"},
        ])
        assert [r.depth for r in records] == [1, 0]


class TestLoadRecords:
    def test_example_file(self, example_trace_file: Path):
        records = load_records(example_trace_file)
        assert len(records) == 6
        assert {r.correlation_id for r in records} == {"corr-001", "corr-002"}

    def test_repeated_ids_are_reported(self, tmp_path: Path, caplog):
        path = tmp_path / "dupes.json"
        path.write_text(json.dumps([{"id": "x", "depth": 0}, {"id": "x", "depth": 1}]))
        with caplog.at_level("WARNING", logger="corrflow.ingestion.loader"):
            records = load_records(path)
        assert len(records) == 2
        assert "Repeated record ids" in caplog.text

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_records(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(json.JSONDecodeError):
            load_records(path)


class TestGroupByCorrelation:
    def test_first_seen_order(self):
        records = [
            make_record("a", correlation_id="c2"),
            make_record("b", correlation_id="c1"),
            make_record("c", correlation_id="c2"),
        ]
        groups = group_by_correlation(records)
        assert list(groups) == ["c2", "c1"]
        assert [r.id for r in groups["c2"]] == ["a", "c"]

    def test_missing_correlation_id(self):
        groups = group_by_correlation([make_record("a")])
        assert list(groups) == [""]
