"""Main QueryPipeline interface for MetricResolver."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from metricresolver.compiler.classifier import classify_batch
from metricresolver.compiler.dependencies import DependencyResolver, ReferenceRecognizer
from metricresolver.compiler.link_builder import build_link
from metricresolver.compiler.request_builder import RequestBuilder
from metricresolver.config import Settings, get_settings
from metricresolver.errors import FailedDependencyError, QueryError
from metricresolver.models.link import ConsoleLink, LinkContext
from metricresolver.models.query import ApiMode, QueryDefinition
from metricresolver.models.request import MetricRequest
from metricresolver.parser.loader import parse_batch

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Everything one batch produced.

    partial results are normal - a query that failed only shows up in errors,
    the rest of the batch still has its requests and links.
    """

    modes: dict[str, ApiMode] = field(default_factory=dict)
    order: list[str] = field(default_factory=list)
    requests: dict[str, MetricRequest] = field(default_factory=dict)
    links: dict[str, ConsoleLink] = field(default_factory=dict)
    errors: list[QueryError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def errors_for(self, ref_id: str) -> list[QueryError]:
        return [error for error in self.errors if error.ref_id == ref_id]

    def error_messages(self) -> list[str]:
        return [str(error) for error in self.errors]

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view, mostly for the CLI."""
        return {
            "modes": {ref_id: mode.value for ref_id, mode in self.modes.items()},
            "order": self.order,
            "requests": {
                ref_id: request.to_api_params() for ref_id, request in self.requests.items()
            },
            "links": {ref_id: link.model_dump() for ref_id, link in self.links.items()},
            "errors": [{"refId": error.ref_id, "error": str(error)} for error in self.errors],
        }


class QueryPipeline:
    """Runs a batch through parse, classify, resolve, build and link."""

    def __init__(
        self,
        settings: Settings | None = None,
        recognizer: ReferenceRecognizer | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.resolver = DependencyResolver(recognizer)
        self.builder = RequestBuilder(self.settings)

    def run(
        self,
        batch: Iterable[Mapping[str, Any] | QueryDefinition],
        context: LinkContext | None = None,
    ) -> BatchResult:
        """Resolve a whole batch.

        Args:
            batch: Raw query dicts or QueryDefinitions. Must be the complete batch.
            context: Display context; links are only built when one is given.

        Returns:
            BatchResult with per-query requests, links and errors.

        Raises:
            BatchValidationError: if a refId is blank or repeated.
        """
        definitions, errors = parse_batch(batch)
        result = BatchResult(errors=list(errors))

        # step 1: classify - can't fail
        result.modes = classify_batch(definitions)

        # step 2: references need the whole batch at once
        resolution = self.resolver.resolve(
            definitions, result.modes, known_ref_ids=[error.ref_id for error in errors]
        )
        result.errors.extend(resolution.errors)

        # step 3: build what's still standing
        failed = resolution.failed_ref_ids
        buildable = [d for d in definitions if d.ref_id not in failed]
        requests, build_errors = self.builder.build_all(buildable, result.modes)
        result.requests = requests
        result.errors.extend(build_errors)

        # step 4: a query reading a failed query can't be sent either. order is
        # dependencies first, so one pass catches chains
        failed = {error.ref_id for error in result.errors}
        for ref_id in resolution.order:
            if ref_id in failed:
                continue
            broken = [r for r in resolution.references.get(ref_id, []) if r in failed]
            if broken:
                error = QueryError(ref_id, FailedDependencyError(broken[0]))
                logger.warning("%s", error)
                result.errors.append(error)
                requests.pop(ref_id, None)
                failed.add(ref_id)
        result.order = [ref_id for ref_id in resolution.order if ref_id not in failed]

        # step 5: links, only for queries that built
        if context is not None:
            by_ref_id = {d.ref_id: d for d in definitions}
            for ref_id, request in requests.items():
                result.links[ref_id] = build_link(
                    by_ref_id[ref_id], result.modes[ref_id], request, context, self.settings
                )

        logger.info(
            "resolved batch of %d queries: %d requests, %d errors",
            len(definitions) + len(errors),
            len(result.requests),
            len(result.errors),
        )
        return result

    def link_url(self, link: ConsoleLink) -> str:
        """Render a link with the configured console domain."""
        return link.to_url(self.settings.console_domain)
