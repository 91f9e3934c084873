"""MetricResolver - query classification and request resolution for metric data sources."""

from metricresolver.compiler.classifier import classify
from metricresolver.errors import BatchValidationError, QueryError
from metricresolver.models import ApiMode, ConsoleLink, LinkContext, QueryDefinition
from metricresolver.pipeline import BatchResult, QueryPipeline

__version__ = "0.1.0"

__all__ = [
    "ApiMode",
    "BatchResult",
    "BatchValidationError",
    "ConsoleLink",
    "LinkContext",
    "QueryDefinition",
    "QueryError",
    "QueryPipeline",
    "classify",
]
