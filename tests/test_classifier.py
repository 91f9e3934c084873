"""Tests for query mode classification."""

import pytest

from metricresolver.compiler.classifier import classify, classify_batch
from metricresolver.models.query import ApiMode, QueryDefinition


def make_query(**kwargs) -> QueryDefinition:
    kwargs.setdefault("ref_id", "A")
    return QueryDefinition(**kwargs)


class TestClassify:
    def test_raw_query_is_sql(self):
        """Raw editor + query type is always SQL."""
        query = make_query(query_type="query", editor_mode="code", expression="SELECT AVG(CPUUtilization) FROM SCHEMA(\"AWS/EC2\")")
        assert classify(query) == ApiMode.SQL_EXPRESSION

    def test_raw_query_wins_over_other_fields(self):
        """A populated statistic and leftover expression don't change raw sql mode."""
        query = make_query(
            query_type="query",
            editor_mode="code",
            expression="A * 2",
            statistic="Average",
            period=300,
            namespace="AWS/EC2",
            metric_name="CPUUtilization",
        )
        assert classify(query) == ApiMode.SQL_EXPRESSION

    def test_raw_query_without_expression_is_still_sql(self):
        query = make_query(query_type="query", editor_mode="code")
        assert classify(query) == ApiMode.SQL_EXPRESSION

    @pytest.mark.parametrize("query_type", ["query", "search"])
    def test_builder_with_expression_is_math(self, query_type: str):
        query = make_query(query_type=query_type, editor_mode="builder", expression="A*100")
        assert classify(query) == ApiMode.MATH_EXPRESSION

    def test_raw_search_with_expression_is_math(self):
        query = make_query(query_type="search", editor_mode="code", expression="SUM(METRICS())")
        assert classify(query) == ApiMode.MATH_EXPRESSION

    @pytest.mark.parametrize("editor_mode", ["builder", "code"])
    def test_search_without_expression_is_inferred_search(self, editor_mode: str):
        query = make_query(query_type="search", editor_mode=editor_mode, namespace="AWS/EC2")
        assert classify(query) == ApiMode.INFERRED_SEARCH_EXPRESSION

    def test_builder_query_without_expression_is_metric_stat(self):
        query = make_query(
            query_type="query",
            editor_mode="builder",
            namespace="AWS/EC2",
            metric_name="CPUUtilization",
            statistic="Average",
            period=300,
        )
        assert classify(query) == ApiMode.METRIC_STAT

    def test_blank_expression_counts_as_absent(self):
        query = make_query(query_type="query", editor_mode="builder", expression="   ")
        assert classify(query) == ApiMode.METRIC_STAT

    def test_classification_is_idempotent(self):
        query = make_query(query_type="search", expression="B + 1")
        assert classify(query) == classify(query)

    def test_raw_rule_precedes_expression_rule(self):
        """Regression: swapping the first two rules would turn this into math."""
        query = make_query(query_type="query", editor_mode="code", expression="A + B")
        assert classify(query) != ApiMode.MATH_EXPRESSION
        assert classify(query) == ApiMode.SQL_EXPRESSION


class TestClassifyBatch:
    def test_keyed_by_ref_id_in_order(self):
        queries = [
            make_query(ref_id="B", query_type="query", expression="A*2"),
            make_query(ref_id="A", query_type="search"),
        ]
        modes = classify_batch(queries)
        assert list(modes) == ["B", "A"]
        assert modes["B"] == ApiMode.MATH_EXPRESSION
        assert modes["A"] == ApiMode.INFERRED_SEARCH_EXPRESSION

    def test_empty_batch(self):
        assert classify_batch([]) == {}
