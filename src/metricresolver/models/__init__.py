"""Pydantic models for MetricResolver."""

from metricresolver.models.link import ConsoleLink, LinkContext
from metricresolver.models.query import ApiMode, EditorMode, QueryDefinition, QueryType
from metricresolver.models.request import MetricExpression, MetricRequest, MetricStatMeta

__all__ = [
    "ApiMode",
    "ConsoleLink",
    "EditorMode",
    "LinkContext",
    "MetricExpression",
    "MetricRequest",
    "MetricStatMeta",
    "QueryDefinition",
    "QueryType",
]
