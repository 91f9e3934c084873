"""Tests for batch parsing and file loading."""

from pathlib import Path

import pytest

from metricresolver.errors import (
    BatchValidationError,
    InvalidFieldError,
    InvalidQueryTypeError,
    MissingFieldError,
    QueryError,
)
from metricresolver.models.query import QueryDefinition
from metricresolver.parser.loader import load_batch_file, parse_batch, parse_query, validate_ref_ids


class TestParseQuery:
    def test_parse_valid_query(self):
        query = parse_query({"refId": "A", "queryType": "search", "namespace": "AWS/EC2"})
        assert isinstance(query, QueryDefinition)
        assert query.namespace == "AWS/EC2"

    def test_definition_passes_through(self, metric_stat_query: QueryDefinition):
        assert parse_query(metric_stat_query) is metric_stat_query

    def test_invalid_query_type(self):
        with pytest.raises(QueryError) as exc_info:
            parse_query({"refId": "A", "queryType": "logs"})
        assert exc_info.value.ref_id == "A"
        assert isinstance(exc_info.value.cause, InvalidQueryTypeError)
        assert exc_info.value.cause.value == "logs"

    def test_missing_query_type(self):
        with pytest.raises(QueryError) as exc_info:
            parse_query({"refId": "A"})
        assert isinstance(exc_info.value.cause, MissingFieldError)
        assert exc_info.value.cause.field == "queryType"

    def test_other_invalid_field(self):
        with pytest.raises(QueryError) as exc_info:
            parse_query({"refId": "A", "queryType": "query", "period": -5})
        assert isinstance(exc_info.value.cause, InvalidFieldError)
        assert exc_info.value.cause.field == "period"

    def test_snake_case_ref_id(self):
        query = parse_query({"ref_id": "A", "query_type": "query"})
        assert query.ref_id == "A"


class TestValidateRefIds:
    def test_returns_ids_in_order(self):
        assert validate_ref_ids([{"refId": "B"}, {"refId": "A"}]) == ["B", "A"]

    def test_duplicate(self):
        with pytest.raises(BatchValidationError, match="Duplicate refId: A"):
            validate_ref_ids([{"refId": "A"}, {"refId": "A"}])

    def test_missing(self):
        with pytest.raises(BatchValidationError, match="position 1"):
            validate_ref_ids([{"refId": "A"}, {}])


class TestParseBatch:
    def test_collects_query_errors(self):
        definitions, errors = parse_batch(
            [
                {"refId": "A", "queryType": "query"},
                {"refId": "B", "queryType": "nope"},
            ]
        )
        assert [d.ref_id for d in definitions] == ["A"]
        assert [e.ref_id for e in errors] == ["B"]

    def test_rejects_non_list(self):
        with pytest.raises(BatchValidationError):
            parse_batch({"refId": "A", "queryType": "query"})

    def test_rejects_non_mapping_items(self):
        with pytest.raises(BatchValidationError, match="must be a mapping"):
            parse_batch(["A"])

    def test_duplicates_rejected_before_parsing(self):
        """A bad query type doesn't hide the duplicate."""
        with pytest.raises(BatchValidationError):
            parse_batch([{"refId": "A", "queryType": "nope"}, {"refId": "A", "queryType": "query"}])


class TestLoadBatchFile:
    def test_load_mapping_with_context(self, batch_file: Path):
        queries, context = load_batch_file(batch_file)
        assert [q["refId"] for q in queries] == ["A", "B", "C", "D"]
        assert context["region"] == "eu-west-1"

    def test_load_bare_list(self, broken_batch_file: Path):
        queries, context = load_batch_file(broken_batch_file)
        assert len(queries) == 2
        assert context == {}

    def test_load_json(self, tmp_path: Path):
        path = tmp_path / "queries.json"
        path.write_text('[{"refId": "A", "queryType": "query", "expression": "1"}]')
        queries, _ = load_batch_file(path)
        assert queries == [{"refId": "A", "queryType": "query", "expression": "1"}]

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_batch_file(path) == ([], {})

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_batch_file(tmp_path / "nope.yaml")

    def test_queries_must_be_list(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("queries: A\n")
        with pytest.raises(BatchValidationError):
            load_batch_file(path)

    def test_scalar_top_level(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("just a string\n")
        with pytest.raises(BatchValidationError, match="Unexpected top-level"):
            load_batch_file(path)
