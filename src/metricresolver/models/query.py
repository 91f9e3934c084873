"""Pydantic models for metric query definitions.

a query definition is exactly what the editor sends us - no resolution has
happened yet. the classifier and builders read these, they never change them.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class QueryType(str, Enum):
    """Whether a query resolves via metric search or the query language."""

    SEARCH = "search"
    QUERY = "query"


class EditorMode(str, Enum):
    """How the query fields were authored.

    "code" is the raw text editor. the wire format has always called it
    that so we keep it, but "raw" is accepted on input too.
    """

    BUILDER = "builder"
    RAW = "code"


class ApiMode(str, Enum):
    """The four ways a query can be sent to GetMetricData."""

    METRIC_STAT = "MetricStat"
    INFERRED_SEARCH_EXPRESSION = "InferredSearchExpression"
    MATH_EXPRESSION = "MathExpression"
    SQL_EXPRESSION = "SQLExpression"

    @property
    def is_expression(self) -> bool:
        return self in (ApiMode.MATH_EXPRESSION, ApiMode.SQL_EXPRESSION)


# older dashboards store the enums as their integer position
_QUERY_TYPE_CODES = {0: QueryType.SEARCH, 1: QueryType.QUERY}
_EDITOR_MODE_CODES = {0: EditorMode.BUILDER, 1: EditorMode.RAW}
_EDITOR_MODE_NAMES = {"builder": EditorMode.BUILDER, "code": EditorMode.RAW, "raw": EditorMode.RAW}


def parse_query_type(value: Any) -> QueryType:
    """Decode a query type from its name or wire integer."""
    if isinstance(value, QueryType):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        if value in _QUERY_TYPE_CODES:
            return _QUERY_TYPE_CODES[value]
    elif isinstance(value, str):
        try:
            return QueryType(value.strip().lower())
        except ValueError:
            pass
    raise ValueError(f"invalid query type {value!r}")


def parse_editor_mode(value: Any) -> EditorMode:
    """Decode an editor mode from its name or wire integer."""
    if isinstance(value, EditorMode):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        if value in _EDITOR_MODE_CODES:
            return _EDITOR_MODE_CODES[value]
    elif isinstance(value, str):
        mode = _EDITOR_MODE_NAMES.get(value.strip().lower())
        if mode is not None:
            return mode
    raise ValueError(f"invalid editor mode {value!r}")


class QueryDefinition(BaseModel):
    """One user-authored metric query.

    field names follow the editor's camelCase json on the wire, snake_case in
    python. everything except ref_id and query_type is optional because which
    fields matter depends on the mode the query ends up in.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    ref_id: str
    query_type: QueryType
    editor_mode: EditorMode = EditorMode.BUILDER
    expression: str | None = None
    statistic: str | None = None
    period: int | None = Field(default=None, gt=0)  # seconds
    label: str | None = None
    namespace: str | None = None
    metric_name: str | None = None
    dimensions: dict[str, list[str]] = Field(default_factory=dict)
    region: str | None = None
    match_exact: bool = True
    hide: bool = False

    @field_validator("ref_id")
    @classmethod
    def validate_ref_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("refId must not be empty")
        return value

    @field_validator("query_type", mode="before")
    @classmethod
    def validate_query_type(cls, value: Any) -> QueryType:
        return parse_query_type(value)

    @field_validator("editor_mode", mode="before")
    @classmethod
    def validate_editor_mode(cls, value: Any) -> EditorMode:
        if value is None:
            return EditorMode.BUILDER
        return parse_editor_mode(value)

    @field_validator("dimensions", mode="before")
    @classmethod
    def normalize_dimensions(cls, value: Any) -> Any:
        """Accept a single value per key as shorthand for a one-element list."""
        if value is None:
            return {}
        if isinstance(value, dict):
            return {
                key: [values] if isinstance(values, str) else values
                for key, values in value.items()
            }
        return value

    @property
    def has_expression(self) -> bool:
        return bool(self.expression and self.expression.strip())

    @property
    def has_dimensions(self) -> bool:
        return bool(self.dimensions)
