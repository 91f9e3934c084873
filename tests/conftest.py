"""Pytest fixtures for MetricResolver tests."""

import os
from collections.abc import Generator
from datetime import datetime, timezone
from pathlib import Path

import pytest

from metricresolver.config import Settings, get_settings
from metricresolver.models.link import LinkContext
from metricresolver.models.query import QueryDefinition


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep host env vars out of settings and drop the cached instance."""
    for key in [key for key in os.environ if key.startswith("METRICRESOLVER_")]:
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(default_region="us-east-1", default_statistic="Average", default_period=300)


@pytest.fixture
def sample_batch_yaml() -> str:
    """Sample batch covering all four api modes."""
    return """
context:
  start: "2024-01-01T00:00:00Z"
  end: "2024-01-01T03:00:00Z"
  region: eu-west-1

queries:
  - refId: A
    queryType: query
    editorMode: builder
    namespace: AWS/EC2
    metricName: CPUUtilization
    statistic: Average
    period: 300
    dimensions:
      InstanceId: i-0123

  - refId: B
    queryType: query
    editorMode: builder
    expression: "A * 100"
    label: CPU percent

  - refId: C
    queryType: search
    namespace: AWS/EC2
    metricName: NetworkIn
    dimensions:
      InstanceId: "*"

  - refId: D
    queryType: query
    editorMode: code
    expression: 'SELECT AVG(CPUUtilization) FROM SCHEMA("AWS/EC2", InstanceId)'
"""


@pytest.fixture
def batch_file(tmp_path: Path, sample_batch_yaml: str) -> Path:
    path = tmp_path / "queries.yaml"
    path.write_text(sample_batch_yaml)
    return path


@pytest.fixture
def broken_batch_file(tmp_path: Path) -> Path:
    """Batch where B's expression references a query that doesn't exist."""
    path = tmp_path / "broken.yaml"
    path.write_text(
        """
- refId: A
  queryType: query
  namespace: AWS/EC2
  metricName: CPUUtilization
  statistic: Average
  period: 60
- refId: B
  queryType: query
  expression: "Z * 2"
"""
    )
    return path


@pytest.fixture
def metric_stat_query() -> QueryDefinition:
    return QueryDefinition(
        ref_id="A",
        query_type="query",
        editor_mode="builder",
        namespace="AWS/EC2",
        metric_name="CPUUtilization",
        statistic="Average",
        period=300,
        dimensions={"InstanceId": ["i-0123"]},
    )


@pytest.fixture
def math_query() -> QueryDefinition:
    return QueryDefinition(ref_id="B", query_type="query", expression="A*100")


@pytest.fixture
def link_context() -> LinkContext:
    return LinkContext(
        start=datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc),
        end=datetime(2024, 1, 1, 3, 0, tzinfo=timezone.utc),
    )
