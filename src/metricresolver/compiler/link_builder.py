"""Console link building.

the link has to show the same thing the request asked for, so the descriptors
are read off the built request rather than the raw definition.
"""

from typing import Any

from metricresolver.config import Settings, get_settings
from metricresolver.models.link import ConsoleLink, LinkContext, format_timestamp
from metricresolver.models.query import ApiMode, QueryDefinition
from metricresolver.models.request import MetricRequest


def _metric_descriptor(request: MetricRequest) -> list[Any]:
    """Console's array form: namespace, metric, dim key/value pairs, then the stat.

    positions matter, so a dimension-only search still gets an empty metric slot.
    """
    descriptor: list[Any] = [request.namespace, request.metric_name or ""]
    for key, values in sorted(request.dimensions.items()):
        if values:
            descriptor.extend([key, values[0]])
    if request.metric_stat:
        descriptor.append(request.metric_stat.to_descriptor())
    return descriptor


def build_link(
    definition: QueryDefinition,
    mode: ApiMode,
    request: MetricRequest,
    context: LinkContext,
    settings: Settings | None = None,
) -> ConsoleLink:
    """Build the console link for a query whose request was built already."""
    settings = settings or get_settings()

    if mode.is_expression and request.metric_expression:
        metrics: list[Any] = [request.metric_expression.to_descriptor()]
    else:
        metrics = [_metric_descriptor(request)]

    return ConsoleLink(
        view=context.view,
        stacked=context.stacked,
        title=context.title or definition.label or definition.ref_id,
        start=format_timestamp(context.start),
        end=format_timestamp(context.end),
        region=context.region or definition.region or settings.default_region,
        metrics=metrics,
    )
