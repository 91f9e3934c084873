"""Query mode classification.

deciding the api mode looks like a simple switch on query type but it isn't -
the editor leaves stale fields around when users flip between modes, so several
signals can be present at once. the rules below are ordered and the first match
wins. do not reorder them:

  1. raw editor + query type "query"  -> SQLExpression
  2. non-blank expression             -> MathExpression
  3. query type "search"              -> InferredSearchExpression
  4. anything else                    -> MetricStat

rule 1 has to beat rule 2: an expression left over from builder mode must not
turn a raw sql query into a math expression.
"""

import logging
from collections.abc import Iterable

from metricresolver.models.query import ApiMode, EditorMode, QueryDefinition, QueryType

logger = logging.getLogger(__name__)


def classify(definition: QueryDefinition) -> ApiMode:
    """Return the api mode for a query. Total and pure."""
    if definition.editor_mode == EditorMode.RAW and definition.query_type == QueryType.QUERY:
        mode = ApiMode.SQL_EXPRESSION
    elif definition.has_expression:
        mode = ApiMode.MATH_EXPRESSION
    elif definition.query_type == QueryType.SEARCH:
        mode = ApiMode.INFERRED_SEARCH_EXPRESSION
    else:
        mode = ApiMode.METRIC_STAT

    logger.debug(
        "query %s (%s/%s) classified as %s",
        definition.ref_id,
        definition.query_type.value,
        definition.editor_mode.value,
        mode.value,
    )
    return mode


def classify_batch(definitions: Iterable[QueryDefinition]) -> dict[str, ApiMode]:
    """Classify every query, keyed by refId in batch order."""
    return {definition.ref_id: classify(definition) for definition in definitions}
