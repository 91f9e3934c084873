"""CLI for MetricResolver."""

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from metricresolver.compiler.classifier import classify
from metricresolver.config import get_settings
from metricresolver.errors import BatchValidationError
from metricresolver.models.link import LinkContext
from metricresolver.parser.loader import load_batch_file, parse_batch
from metricresolver.pipeline import BatchResult, QueryPipeline

app = typer.Typer(
    name="mr",
    help="MetricResolver - classify metric queries and build API requests",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    try:
        settings = get_settings()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading config: {e}[/red]")
        raise typer.Exit(1)

    level = logging.DEBUG if verbose else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load(path: Path) -> tuple[list, dict]:
    try:
        return load_batch_file(path)
    except Exception as e:
        console.print(f"[red]Error loading queries: {e}[/red]")
        raise typer.Exit(1)


def _parse_time(value: str | datetime | None) -> datetime | None:
    # yaml already turns unquoted timestamps into datetimes
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        console.print(f"[red]Invalid timestamp: {value}[/red]")
        raise typer.Exit(1)


def _build_context(
    raw_context: dict,
    start: str | None,
    end: str | None,
    region: str | None,
) -> LinkContext:
    """Merge file context with command line overrides.

    defaults to the last three hours when no time range is given anywhere.
    """
    end_time = _parse_time(end or raw_context.get("end")) or datetime.now(timezone.utc)
    start_time = _parse_time(start or raw_context.get("start")) or end_time - timedelta(hours=3)
    data = {
        **raw_context,
        "start": start_time,
        "end": end_time,
        "view": raw_context.get("view", get_settings().link_view),
    }
    if region:
        data["region"] = region
    return LinkContext.model_validate(data)


def _print_errors(result: BatchResult) -> None:
    console.print("[red]Query errors:[/red]")
    for message in result.error_messages():
        console.print(f"  - {message}")


@app.command("classify")
def classify_queries(
    path: Annotated[Path, typer.Argument(help="YAML or JSON file with the query batch")],
) -> None:
    """Show which API mode each query resolves to."""
    raw_queries, _ = _load(path)

    try:
        definitions, errors = parse_batch(raw_queries)
    except BatchValidationError as e:
        console.print(f"[red]Invalid batch: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Query Modes")
    table.add_column("RefId", style="cyan")
    table.add_column("Query Type", style="green")
    table.add_column("Editor Mode", style="yellow")
    table.add_column("API Mode")

    for definition in definitions:
        table.add_row(
            definition.ref_id,
            definition.query_type.value,
            definition.editor_mode.value,
            classify(definition).value,
        )

    console.print(table)

    if errors:
        console.print("[red]Query errors:[/red]")
        for error in errors:
            console.print(f"  - {error}")
        raise typer.Exit(1)


@app.command()
def resolve(
    path: Annotated[Path, typer.Argument(help="YAML or JSON file with the query batch")],
    links: Annotated[bool, typer.Option("--links", help="Also build console links")] = False,
    start: Annotated[str | None, typer.Option("--start", help="Link start time (ISO 8601)")] = None,
    end: Annotated[str | None, typer.Option("--end", help="Link end time (ISO 8601)")] = None,
    region: Annotated[str | None, typer.Option("--region", "-r", help="Link region")] = None,
    output: Annotated[str, typer.Option("--output", "-o", help="Output format: table, json")] = "table",
) -> None:
    """Resolve a batch into API requests."""
    raw_queries, raw_context = _load(path)
    context = _build_context(raw_context, start, end, region) if links else None

    try:
        result = QueryPipeline().run(raw_queries, context)
    except BatchValidationError as e:
        console.print(f"[red]Invalid batch: {e}[/red]")
        raise typer.Exit(1)

    if output == "json":
        console.print(json.dumps(result.to_dict(), indent=2, default=str), soft_wrap=True, markup=False)
    else:
        _print_requests(result)

    if not result.ok:
        _print_errors(result)
        raise typer.Exit(1)


def _print_requests(result: BatchResult) -> None:
    table = Table(title=f"Requests ({len(result.requests)} built, {len(result.errors)} errors)")
    table.add_column("RefId", style="cyan")
    table.add_column("Mode", style="green")
    table.add_column("Request")

    for ref_id in result.order:
        request = result.requests[ref_id]
        table.add_row(ref_id, request.mode.value, json.dumps(request.to_api_params()))

    console.print(table)

    if result.links:
        domain = get_settings().console_domain
        for ref_id in result.order:
            console.print(f"[cyan]{ref_id}[/cyan] {result.links[ref_id].to_url(domain)}", soft_wrap=True)


@app.command()
def validate(
    path: Annotated[Path, typer.Argument(help="YAML or JSON file with the query batch")],
) -> None:
    """Validate a query batch without printing requests."""
    raw_queries, _ = _load(path)

    try:
        result = QueryPipeline().run(raw_queries)
    except BatchValidationError as e:
        console.print(f"[red]Invalid batch: {e}[/red]")
        raise typer.Exit(1)

    if not result.ok:
        console.print("[red]Validation failed:[/red]")
        for message in result.error_messages():
            console.print(f"  - {message}")
        raise typer.Exit(1)

    console.print(f"[green]Validated {len(result.requests)} queries successfully![/green]")


@app.command()
def link(
    path: Annotated[Path, typer.Argument(help="YAML or JSON file with the query batch")],
    ref_id: Annotated[str, typer.Argument(help="RefId of the query to link")],
    start: Annotated[str | None, typer.Option("--start", help="Start time (ISO 8601)")] = None,
    end: Annotated[str | None, typer.Option("--end", help="End time (ISO 8601)")] = None,
    region: Annotated[str | None, typer.Option("--region", "-r", help="Console region")] = None,
    show_json: Annotated[bool, typer.Option("--json", help="Show the link definition")] = False,
) -> None:
    """Print the console deep link for one query."""
    raw_queries, raw_context = _load(path)
    context = _build_context(raw_context, start, end, region)

    pipeline = QueryPipeline()
    try:
        result = pipeline.run(raw_queries, context)
    except BatchValidationError as e:
        console.print(f"[red]Invalid batch: {e}[/red]")
        raise typer.Exit(1)

    if ref_id not in result.links:
        errors = result.errors_for(ref_id)
        if errors:
            for error in errors:
                console.print(f"[red]{error}[/red]")
        else:
            console.print(f"[red]Unknown refId: {ref_id}[/red]")
        raise typer.Exit(1)

    console_link = result.links[ref_id]
    if show_json:
        console.print(Syntax(json.dumps(console_link.model_dump(), indent=2), "json", theme="monokai"))
    console.print(pipeline.link_url(console_link), soft_wrap=True)


if __name__ == "__main__":
    app()
