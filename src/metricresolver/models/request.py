"""Pydantic models for built GetMetricData requests.

the request model is what the api client receives. it keeps the resolved
payloads (stat metadata or expression) alongside the metric identity so the
console link can be built from the same values that were sent.
"""

from typing import Any

from pydantic import BaseModel, Field

from metricresolver.models.query import ApiMode


class MetricExpression(BaseModel):
    """Expression payload for math and sql queries."""

    expression: str
    label: str | None = None

    def to_descriptor(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class MetricStatMeta(BaseModel):
    """Statistic payload for metric stat and inferred search queries."""

    stat: str
    period: int
    label: str | None = None

    def to_descriptor(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class MetricRequest(BaseModel):
    """A single query translated into its api mode.

    exactly one of metric_stat / metric_expression is set, depending on the
    mode. search_expression is only set for inferred search queries.
    """

    ref_id: str
    mode: ApiMode
    namespace: str | None = None
    metric_name: str | None = None
    dimensions: dict[str, list[str]] = Field(default_factory=dict)
    metric_stat: MetricStatMeta | None = None
    metric_expression: MetricExpression | None = None
    search_expression: str | None = None
    period: int | None = None  # only meaningful for expression modes
    return_data: bool = True

    @property
    def label(self) -> str | None:
        payload = self.metric_stat or self.metric_expression
        return payload.label if payload else None

    def to_api_params(self) -> dict[str, Any]:
        """Render the MetricDataQuery dict for the GetMetricData call.

        key names follow the aws api casing, not ours.
        """
        params: dict[str, Any] = {"Id": self.ref_id}

        if self.mode == ApiMode.METRIC_STAT and self.metric_stat:
            params["MetricStat"] = {
                "Metric": {
                    "Namespace": self.namespace,
                    "MetricName": self.metric_name,
                    "Dimensions": [
                        {"Name": key, "Value": values[0]}
                        for key, values in sorted(self.dimensions.items())
                        if values
                    ],
                },
                "Period": self.metric_stat.period,
                "Stat": self.metric_stat.stat,
            }
        elif self.mode == ApiMode.INFERRED_SEARCH_EXPRESSION and self.metric_stat:
            params["Expression"] = self.search_expression
            params["Period"] = self.metric_stat.period
        elif self.metric_expression:
            params["Expression"] = self.metric_expression.expression
            if self.period:
                params["Period"] = self.period

        params["ReturnData"] = self.return_data
        if self.label:
            params["Label"] = self.label
        return params
