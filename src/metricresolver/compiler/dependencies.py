"""Dependency resolution between math expressions.

a math expression like "A * 100" reads the result of query A, so A has to be
part of the same GetMetricData call. we don't evaluate expressions - we only
need to know which identifiers they mention. that part is behind the
ReferenceRecognizer protocol so the expression grammar can change without
touching the resolver.

the resolver never stops at the first problem. every unknown or cyclic
reference becomes its own QueryError so each panel can show its own failure.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

from sqlglot.errors import TokenError
from sqlglot.tokens import Token, Tokenizer, TokenType

from metricresolver.compiler.classifier import classify
from metricresolver.errors import (
    CyclicReferenceError,
    InvalidExpressionError,
    QueryError,
    UnknownReferenceError,
)
from metricresolver.models.query import ApiMode, QueryDefinition

logger = logging.getLogger(__name__)

# bare constants metric math takes as function arguments:
# FILL(m, REPEAT|LINEAR), SORT(m, AVG|MAX|..., ASC|DESC), etc
MATH_ARGUMENT_KEYWORDS = frozenset(
    {
        "REPEAT",
        "LINEAR",
        "AVG",
        "MAX",
        "MIN",
        "SUM",
        "STDDEV",
        "ASC",
        "DESC",
    }
)


class ReferenceRecognizer(Protocol):
    """Finds the query identifiers an expression refers to."""

    def references(self, expression: str) -> list[str]:
        """Return referenced identifiers, first-seen order, no duplicates."""
        ...


class TokenReferenceRecognizer:
    """Recognizes references with sqlglot's tokenizer.

    math expressions are close enough to sql lexically that the tokenizer copes
    fine: string literals (the SEARCH(...) bodies) come back as single STRING
    tokens and numbers as NUMBER tokens. a bare identifier followed by "(" is a
    function name (SUM, METRICS, FILL...) so it's skipped, and so are the bare
    argument constants in MATH_ARGUMENT_KEYWORDS.
    """

    def __init__(self) -> None:
        self._tokenizer = Tokenizer()

    def references(self, expression: str) -> list[str]:
        tokens: list[Token] = self._tokenizer.tokenize(expression)
        found: list[str] = []
        for index, token in enumerate(tokens):
            if token.token_type != TokenType.VAR:
                continue
            next_token = tokens[index + 1] if index + 1 < len(tokens) else None
            if next_token is not None and next_token.token_type == TokenType.L_PAREN:
                continue
            if token.text.upper() in MATH_ARGUMENT_KEYWORDS:
                continue
            if token.text not in found:
                found.append(token.text)
        return found


@dataclass
class DependencyResolution:
    """Outcome of resolving a batch.

    order holds every refId without a resolver error, dependencies first.
    errors holds everything that failed - both can be non-empty at once.
    """

    order: list[str] = field(default_factory=list)
    errors: list[QueryError] = field(default_factory=list)
    # refId -> batch refIds it reads, including ones that failed parsing
    references: dict[str, list[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def failed_ref_ids(self) -> set[str]:
        return {error.ref_id for error in self.errors}


class DependencyResolver:
    """Validates math expression references across a batch."""

    def __init__(self, recognizer: ReferenceRecognizer | None = None) -> None:
        self.recognizer = recognizer or TokenReferenceRecognizer()

    def resolve(
        self,
        definitions: Iterable[QueryDefinition],
        modes: Mapping[str, ApiMode] | None = None,
        known_ref_ids: Iterable[str] = (),
    ) -> DependencyResolution:
        """Check references and compute an evaluation order.

        the batch must be complete - a missing query shows up as an unknown
        reference, not as something to wait for.
        """
        definitions = list(definitions)
        batch_ids = [definition.ref_id for definition in definitions]
        # ids that are in the batch but failed parsing still count as present
        known = set(batch_ids) | set(known_ref_ids)
        result = DependencyResolution()

        # step 1: build the reference graph, collecting unknown references as we go
        graph: dict[str, list[str]] = {ref_id: [] for ref_id in batch_ids}
        reads: dict[str, list[str]] = {}
        for definition in definitions:
            mode = modes[definition.ref_id] if modes else classify(definition)
            if mode != ApiMode.MATH_EXPRESSION:
                continue

            try:
                identifiers = self.recognizer.references(definition.expression or "")
            except TokenError as e:
                result.errors.append(QueryError(definition.ref_id, InvalidExpressionError(str(e))))
                continue

            for identifier in identifiers:
                if identifier not in known:
                    result.errors.append(
                        QueryError(definition.ref_id, UnknownReferenceError(identifier))
                    )
                    continue
                reads.setdefault(definition.ref_id, []).append(identifier)
                # unparsed queries have no node, only parsed ones take part in ordering
                if identifier in graph:
                    graph[definition.ref_id].append(identifier)

        result.references = reads

        # step 2: every query on a cycle gets its own error
        for component in self._cyclic_components(graph, batch_ids):
            for ref_id in component:
                result.errors.append(QueryError(ref_id, CyclicReferenceError(component)))

        # step 3: order whatever is left
        result.order = self._topological_order(graph, batch_ids, result.failed_ref_ids)

        for error in result.errors:
            logger.warning("%s", error)
        logger.debug("resolved order: %s", result.order)
        return result

    def _cyclic_components(self, graph: dict[str, list[str]], batch_ids: list[str]) -> list[list[str]]:
        """Find strongly connected components that form cycles (Tarjan).

        a component is cyclic if it has more than one member or a self loop.
        members come back in batch order so error messages are stable.
        """
        index_of: dict[str, int] = {}
        lowlink: dict[str, int] = {}
        stack: list[str] = []
        on_stack: set[str] = set()
        components: list[list[str]] = []
        counter = 0

        def visit(node: str) -> None:
            nonlocal counter
            index_of[node] = lowlink[node] = counter
            counter += 1
            stack.append(node)
            on_stack.add(node)

            for target in graph[node]:
                if target not in index_of:
                    visit(target)
                    lowlink[node] = min(lowlink[node], lowlink[target])
                elif target in on_stack:
                    lowlink[node] = min(lowlink[node], index_of[target])

            if lowlink[node] == index_of[node]:
                members = set()
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    members.add(member)
                    if member == node:
                        break
                if len(members) > 1 or node in graph[node]:
                    components.append([ref_id for ref_id in batch_ids if ref_id in members])

        for ref_id in batch_ids:
            if ref_id not in index_of:
                visit(ref_id)

        # keep component order tied to the batch too
        components.sort(key=lambda members: batch_ids.index(members[0]))
        return components

    def _topological_order(
        self, graph: dict[str, list[str]], batch_ids: list[str], excluded: set[str]
    ) -> list[str]:
        """Dependencies-first order, following batch order where there's a choice.

        excluded nodes (and edges into them) are dropped; with the cycles gone
        a plain depth-first post-order is enough.
        """
        order: list[str] = []
        visited: set[str] = set()

        def visit(node: str) -> None:
            visited.add(node)
            for target in graph[node]:
                if target not in visited and target not in excluded:
                    visit(target)
            order.append(node)

        for ref_id in batch_ids:
            if ref_id not in visited and ref_id not in excluded:
                visit(ref_id)
        return order
