"""Error types for MetricResolver.

every failure that belongs to a single query is wrapped in a QueryError so the
host can show it against the right panel. the cause classes carry the detail,
QueryError only adds the refId.
"""


class QueryCauseError(ValueError):
    """Base class for the reasons a single query can fail."""


class UnknownReferenceError(QueryCauseError):
    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(f"expression references unknown query {reference!r}")


class CyclicReferenceError(QueryCauseError):
    def __init__(self, cycle: list[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(f"cyclic reference between queries: {', '.join(self.cycle)}")


class FailedDependencyError(QueryCauseError):
    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(f"expression references query {reference!r} which failed")


class MissingFieldError(QueryCauseError):
    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"missing required field {field!r}")


class EmptyExpressionError(QueryCauseError):
    def __init__(self) -> None:
        super().__init__("expression must not be empty")


class InvalidQueryTypeError(QueryCauseError):
    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"invalid query type {value!r}, expected 'search' or 'query'")


class InvalidEditorModeError(QueryCauseError):
    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"invalid editor mode {value!r}, expected 'builder' or 'code'")


class InvalidExpressionError(QueryCauseError):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"could not tokenize expression: {detail}")


class InvalidFieldError(QueryCauseError):
    def __init__(self, field: str, detail: str) -> None:
        self.field = field
        self.detail = detail
        super().__init__(f"invalid value for {field!r}: {detail}")


class QueryError(Exception):
    """A failure attributed to one query in a batch."""

    def __init__(self, ref_id: str, cause: Exception) -> None:
        if not ref_id:
            raise ValueError("QueryError requires a refId")
        self.ref_id = ref_id
        self.cause = cause
        super().__init__(ref_id, cause)

    def __str__(self) -> str:
        return f'error parsing query "{self.ref_id}", {self.cause}'

    def __repr__(self) -> str:
        return f"QueryError(ref_id={self.ref_id!r}, cause={self.cause!r})"

    def __eq__(self, other: object) -> bool:
        # equal when they'd render the same - makes batch results comparable in tests
        if not isinstance(other, QueryError):
            return NotImplemented
        return (
            self.ref_id == other.ref_id
            and type(self.cause) is type(other.cause)
            and str(self.cause) == str(other.cause)
        )

    def __hash__(self) -> int:
        return hash((self.ref_id, type(self.cause), str(self.cause)))


class BatchValidationError(ValueError):
    """The batch as a whole is malformed (blank or duplicate refIds)."""
