"""Search expression generation for inferred search queries.

builder-mode search queries don't name concrete series, so we hand the api a
SEARCH() expression and let it find the matching ones. REMOVE_EMPTY drops the
series that have no datapoints in the window.

examples:
  exact match:
    REMOVE_EMPTY(SEARCH('{"AWS/EC2","InstanceId"} MetricName="CPUUtilization"
      "InstanceId"=("i-1" OR "i-2")', 'Average', 300))
  loose match:
    REMOVE_EMPTY(SEARCH('Namespace="AWS/EC2" MetricName="CPUUtilization"
      "InstanceId"', 'Average', 300))
"""

from metricresolver.models.query import QueryDefinition

WILDCARD = "*"


def _quote(value: str) -> str:
    return '"' + value.replace('"', '\\"') + '"'


def _dimension_filter(key: str, values: list[str]) -> str:
    joined = " OR ".join(_quote(value) for value in values)
    if len(values) > 1:
        joined = f"({joined})"
    return f"{_quote(key)}={joined}"


def build_search_expression(definition: QueryDefinition, stat: str, period: int) -> str:
    """Build the SEARCH() expression for a search query.

    a dimension whose values include "*" matches any value, so it only shows up
    in the schema (exact match) or as a bare key (loose match), never as a filter.
    """
    known: dict[str, list[str]] = {}
    unknown: list[str] = []
    for key, values in definition.dimensions.items():
        if not values or WILDCARD in values:
            unknown.append(key)
        else:
            known[key] = values

    terms = []
    if definition.metric_name:
        terms.append(f"MetricName={_quote(definition.metric_name)}")
    for key in sorted(known):
        terms.append(_dimension_filter(key, known[key]))

    if definition.match_exact:
        schema_keys = [definition.namespace or ""] + sorted(definition.dimensions)
        schema = "{" + ",".join(_quote(key) for key in schema_keys) + "}"
        search = " ".join([schema, *terms])
    else:
        terms.extend(_quote(key) for key in sorted(unknown))
        search = " ".join([f"Namespace={_quote(definition.namespace or '')}", *terms])

    # single quotes delimit the search string itself
    search = search.replace("'", "\\'")
    return f"REMOVE_EMPTY(SEARCH('{search}', '{stat}', {period}))"
