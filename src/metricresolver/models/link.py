"""Pydantic models for console deep links."""

import json
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlencode

from pydantic import BaseModel, Field


def format_timestamp(value: datetime) -> str:
    """Render a datetime as RFC 3339 in UTC, which is what the console expects.

    naive datetimes are assumed to already be utc.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


class LinkContext(BaseModel):
    """Display context supplied by the caller - nothing here comes from the query."""

    start: datetime
    end: datetime
    view: str = "timeSeries"
    stacked: bool = False
    region: str | None = None
    title: str | None = None


class ConsoleLink(BaseModel):
    """A navigable console view for one query.

    the serialized field names are a contract with the console's deeplink
    handler, so don't add fields here without checking it understands them.
    """

    view: str
    stacked: bool
    title: str
    start: str
    end: str
    region: str
    metrics: list[Any] = Field(default_factory=list)  # opaque per-metric descriptors

    def to_json(self) -> str:
        # compact separators keep the url shorter
        return json.dumps(self.model_dump(), separators=(",", ":"))

    def to_url(self, console_domain: str = "console.aws.amazon.com") -> str:
        """Build the deeplink url.

        the graph definition goes into the fragment, so it never reaches the
        server - only the region is a real query parameter.
        """
        base = f"https://{self.region}.{console_domain}/cloudwatch/deeplink.js"
        query = urlencode({"region": self.region})
        fragment = urlencode({"graph": self.to_json()})
        return f"{base}?{query}#metricsV2:{fragment}"
