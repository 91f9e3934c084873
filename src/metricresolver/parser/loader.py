"""Batch parsing and validation for MetricResolver.

turns raw editor payloads (dicts from json/yaml) into QueryDefinitions.
batch-shape problems - blank or duplicate refIds - reject the whole batch since
nothing downstream can attribute errors without a unique refId. anything wrong
with a single query is collected as a QueryError instead.
"""

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from metricresolver.errors import (
    BatchValidationError,
    InvalidEditorModeError,
    InvalidFieldError,
    InvalidQueryTypeError,
    MissingFieldError,
    QueryError,
)
from metricresolver.models.query import QueryDefinition

logger = logging.getLogger(__name__)

# both spellings show up in the wild depending on who serialized the query
_REF_ID_KEYS = ("refId", "ref_id")


def _raw_ref_id(data: Mapping[str, Any]) -> str | None:
    for key in _REF_ID_KEYS:
        value = data.get(key)
        if value is not None:
            return str(value)
    return None


def _cause_from_validation_error(exc: ValidationError, data: Mapping[str, Any]) -> Exception:
    """Map the first pydantic error onto our error taxonomy."""
    error = exc.errors()[0]
    field = str(error["loc"][0]) if error["loc"] else "query"

    if field in ("queryType", "query_type"):
        if error["type"] == "missing":
            return MissingFieldError("queryType")
        return InvalidQueryTypeError(data.get("queryType", data.get("query_type")))
    if field in ("editorMode", "editor_mode"):
        return InvalidEditorModeError(data.get("editorMode", data.get("editor_mode")))
    if error["type"] == "missing":
        return MissingFieldError(field)
    return InvalidFieldError(field, error["msg"])


def validate_ref_ids(batch: Iterable[Mapping[str, Any] | QueryDefinition]) -> list[str]:
    """Ensure every query has a non-blank refId and no refId repeats.

    Raises:
        BatchValidationError: on the first blank or duplicate refId.
    """
    seen: list[str] = []
    for position, item in enumerate(batch):
        ref_id = item.ref_id if isinstance(item, QueryDefinition) else _raw_ref_id(item)
        if ref_id is None or not ref_id.strip():
            raise BatchValidationError(f"Query at position {position} has no refId")
        if ref_id in seen:
            raise BatchValidationError(f"Duplicate refId: {ref_id}")
        seen.append(ref_id)
    return seen


def parse_query(data: Mapping[str, Any] | QueryDefinition) -> QueryDefinition:
    """Validate a single raw query.

    Raises:
        QueryError: wrapping the reason, attributed to the query's refId.
    """
    if isinstance(data, QueryDefinition):
        return data

    ref_id = _raw_ref_id(data)
    if not ref_id:
        # without a refId there is nothing to attribute a QueryError to
        raise BatchValidationError("Query has no refId")

    try:
        return QueryDefinition.model_validate(dict(data))
    except ValidationError as e:
        raise QueryError(ref_id, _cause_from_validation_error(e, data)) from e


def parse_batch(
    batch: Iterable[Mapping[str, Any] | QueryDefinition],
) -> tuple[list[QueryDefinition], list[QueryError]]:
    """Parse a whole batch, collecting per-query failures.

    the refId check runs over the entire batch first, so a bad batch is rejected
    before a single query is validated.
    """
    if isinstance(batch, (str, bytes, Mapping)):
        raise BatchValidationError("Query batch must be a list of queries")

    items = list(batch)
    for position, item in enumerate(items):
        if not isinstance(item, (Mapping, QueryDefinition)):
            raise BatchValidationError(
                f"Query at position {position} must be a mapping, got {type(item).__name__}"
            )
    validate_ref_ids(items)

    definitions: list[QueryDefinition] = []
    errors: list[QueryError] = []
    for item in items:
        try:
            definitions.append(parse_query(item))
        except QueryError as e:
            logger.warning("%s", e)
            errors.append(e)

    logger.debug("parsed %d queries, %d rejected", len(definitions), len(errors))
    return definitions, errors


def load_batch_file(path: str | Path) -> tuple[list[dict[str, Any]], dict[str, Any]]:
    """Read a query batch from a YAML or JSON file.

    the file is either a bare list of queries or a mapping with a `queries` list
    and an optional `context` block for console links. json is valid yaml so
    one loader handles both.

    Returns:
        (raw queries, raw link context - empty when the file has none)
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Query file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return [], {}

    if isinstance(data, list):
        return data, {}

    if isinstance(data, dict):
        queries = data.get("queries", [])
        context = data.get("context") or {}
        if not isinstance(queries, list):
            raise BatchValidationError(f"'queries' in {path} must be a list")
        if not isinstance(context, dict):
            raise BatchValidationError(f"'context' in {path} must be a mapping")
        return queries, context

    raise BatchValidationError(f"Unexpected top-level value in {path}: {type(data).__name__}")
