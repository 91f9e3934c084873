"""Request building for classified queries.

pure translation - takes a definition plus the mode the classifier picked and
produces the MetricRequest the api client will send. validation of the fields
each mode needs happens here, so anything downstream (the link builder in
particular) can assume the request is complete.
"""

import logging
from collections.abc import Iterable, Mapping

from metricresolver.compiler.search import build_search_expression
from metricresolver.config import Settings, get_settings
from metricresolver.errors import EmptyExpressionError, MissingFieldError, QueryError
from metricresolver.models.query import ApiMode, QueryDefinition
from metricresolver.models.request import MetricExpression, MetricRequest, MetricStatMeta

logger = logging.getLogger(__name__)

# checked in this order so the reported missing field never depends on dict order
METRIC_STAT_REQUIRED = (
    ("namespace", "namespace"),
    ("metricName", "metric_name"),
    ("statistic", "statistic"),
    ("period", "period"),
)


class RequestBuilder:
    """Builds GetMetricData requests from classified queries."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def build(self, definition: QueryDefinition, mode: ApiMode) -> MetricRequest:
        """Build the request for one query.

        Raises:
            QueryError: when a field the mode requires is missing.
        """
        try:
            if mode == ApiMode.METRIC_STAT:
                request = self._build_metric_stat(definition)
            elif mode == ApiMode.INFERRED_SEARCH_EXPRESSION:
                request = self._build_search(definition)
            else:
                request = self._build_expression(definition, mode)
        except (MissingFieldError, EmptyExpressionError) as e:
            raise QueryError(definition.ref_id, e) from e

        logger.debug("built %s request for query %s", mode.value, definition.ref_id)
        return request

    def build_all(
        self,
        definitions: Iterable[QueryDefinition],
        modes: Mapping[str, ApiMode],
    ) -> tuple[dict[str, MetricRequest], list[QueryError]]:
        """Build every query, collecting failures instead of stopping."""
        requests: dict[str, MetricRequest] = {}
        errors: list[QueryError] = []
        for definition in definitions:
            try:
                requests[definition.ref_id] = self.build(definition, modes[definition.ref_id])
            except QueryError as e:
                logger.warning("%s", e)
                errors.append(e)
        return requests, errors

    def _build_metric_stat(self, definition: QueryDefinition) -> MetricRequest:
        for wire_name, attr in METRIC_STAT_REQUIRED:
            if not getattr(definition, attr):
                raise MissingFieldError(wire_name)

        return MetricRequest(
            ref_id=definition.ref_id,
            mode=ApiMode.METRIC_STAT,
            namespace=definition.namespace,
            metric_name=definition.metric_name,
            dimensions=definition.dimensions,
            metric_stat=MetricStatMeta(
                stat=definition.statistic,
                period=definition.period,
                label=definition.label,
            ),
            return_data=not definition.hide,
        )

    def _build_search(self, definition: QueryDefinition) -> MetricRequest:
        if not definition.namespace:
            raise MissingFieldError("namespace")
        if not definition.metric_name and not definition.has_dimensions:
            # a search needs something to match on besides the namespace
            raise MissingFieldError("metricName")

        stat = definition.statistic or self.settings.default_statistic
        period = definition.period or self.settings.default_period

        return MetricRequest(
            ref_id=definition.ref_id,
            mode=ApiMode.INFERRED_SEARCH_EXPRESSION,
            namespace=definition.namespace,
            metric_name=definition.metric_name,
            dimensions=definition.dimensions,
            metric_stat=MetricStatMeta(stat=stat, period=period, label=definition.label),
            search_expression=build_search_expression(definition, stat, period),
            return_data=not definition.hide,
        )

    def _build_expression(self, definition: QueryDefinition, mode: ApiMode) -> MetricRequest:
        if not definition.has_expression:
            raise EmptyExpressionError()

        return MetricRequest(
            ref_id=definition.ref_id,
            mode=mode,
            metric_expression=MetricExpression(
                expression=definition.expression,
                label=definition.label,
            ),
            period=definition.period,
            return_data=not definition.hide,
        )
