"""Command-line interface for the Polarity REST API client."""

import asyncio
import csv
import json
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import structlog
import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .api.client import PolarityClient
from .config import PolarityConfig, load_config
from .observability import configure_logging
from .utils.exceptions import (
    PartialUploadError,
    PolarityError,
    TagUploadError,
    TagValidationError,
)
from .utils.helpers import get_integration_id

app = typer.Typer(
    name="polarity",
    help="Polarity REST API client - bulk tagging, channels and integrations",
    add_completion=False,
)

console = Console()
logger = structlog.get_logger(__name__)


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Path | None = typer.Option(
        None, "--config", "-c", help="Configuration file (default: POLARITY_* env vars)"
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    ),
    json_logs: bool = typer.Option(False, "--json-logs", help="Write logs as JSON"),
) -> None:
    """Polarity REST API client."""
    ctx.obj = {"config_file": config_file, "log_level": log_level, "json_logs": json_logs}


def _load(ctx: typer.Context) -> PolarityConfig:
    options = ctx.obj or {}
    try:
        config = load_config(options.get("config_file"))
    except (OSError, ValueError) as e:
        console.print(f"[red]ERROR: Could not load configuration:[/red] {e}")
        raise typer.Exit(code=1) from e

    configure_logging(
        level=options.get("log_level") or config.logging.level,
        json_logs=options.get("json_logs") or config.logging.format == "json",
        log_file=config.logging.file,
    )

    if config.connection is None:
        console.print("[red]ERROR: No Polarity connection configured.[/red]")
        console.print("(Set POLARITY_HOST/USERNAME/PASSWORD env vars or provide --config)")
        raise typer.Exit(code=1)
    return config


def _run(ctx: typer.Context, operation: Callable[[PolarityClient], Awaitable[Any]]) -> Any:
    """Connect, run ``operation`` with the client, and disconnect."""
    config = _load(ctx)

    async def run() -> Any:
        async with PolarityClient(
            config.connection,
            logger=logger,
            tagging=config.tagging,
            channels=config.channels,
            search=config.search,
        ) as polarity:
            return await operation(polarity)

    try:
        return asyncio.run(run())
    except PolarityError as e:
        console.print(f"\n[bold red]ERROR:[/bold red] {e.detail}")
        raise typer.Exit(code=1) from e


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


def _read_rows(csv_file: Path) -> list[list[str]]:
    with open(csv_file, newline="", encoding="utf-8-sig") as f:
        return [row for row in csv.reader(f)]


@app.command("apply-tags")
def apply_tags(
    ctx: typer.Context,
    csv_file: Path = typer.Argument(..., help="CSV of entity,tag,tag,...", exists=True),
    channel: str | None = typer.Option(None, "--channel", help="Channel name"),
    channel_id: int | None = typer.Option(None, "--channel-id", help="Channel id"),
    stop_on_invalid_data: bool = typer.Option(
        False, "--stop-on-invalid-data", help="Fail on the first invalid entity or tag"
    ),
) -> None:
    """
    Apply tags to entities from a CSV file.

    Each row holds an entity followed by one or more tags. Pairs are
    uploaded in batches of at most 2000.

    Examples:
        polarity apply-tags tags.csv --channel threat-intel
        polarity apply-tags tags.csv --channel-id 12 --stop-on-invalid-data
    """
    if (channel is None) == (channel_id is None):
        console.print("[red]ERROR: Provide exactly one of --channel or --channel-id[/red]")
        raise typer.Exit(code=1)

    rows = _read_rows(csv_file)
    console.print(f"\n[bold blue]Applying tags from:[/bold blue] {csv_file} ({len(rows)} rows)\n")

    async def operation(polarity: PolarityClient) -> Any:
        target = channel_id
        if target is None:
            target = int(await polarity.get_channel_id(channel))
        return await polarity.apply_tags(
            rows, target, stop_on_invalid_data=stop_on_invalid_data or None
        )

    try:
        result = _run(ctx, operation)
    except typer.Exit as e:
        cause = e.__cause__
        if isinstance(cause, TagUploadError):
            kind = "partially" if isinstance(cause, PartialUploadError) else "not"
            console.print(
                f"[yellow]Tags {kind} applied: {cause.pairs_submitted} pairs stored in "
                f"{cause.batches_submitted} batches before batch {cause.batch_index} failed[/yellow]"
            )
        elif isinstance(cause, TagValidationError) and cause.result is not None:
            kind = "partially" if cause.result.has_uploads else "not"
            console.print(
                f"[yellow]Tags {kind} applied: {cause.result.pairs_submitted} pairs stored in "
                f"{cause.result.batches_submitted} batches before row {cause.row_index} "
                "was rejected[/yellow]"
            )
        raise

    table = Table(title="Tag Upload Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")
    table.add_row("Batches", str(result.batches_submitted))
    table.add_row("Pairs", str(result.pairs_submitted))
    table.add_row("Rejected", str(len(result.rejected)))
    console.print(table)

    for rejection in result.rejected:
        console.print(f"  [yellow]-[/yellow] {escape(str(rejection))}")


@app.command("clear-channel")
def clear_channel(
    ctx: typer.Context,
    channel: str = typer.Argument(..., help="Channel name"),
    no_wait: bool = typer.Option(
        False, "--no-wait", help="Return as soon as the server accepts the request"
    ),
) -> None:
    """
    Delete every tag in a channel.

    Large channels are cleared in the background by the server. By default
    the command polls until the channel is empty.
    """
    console.print(f"\n[bold blue]Clearing channel:[/bold blue] {channel}\n")
    if not no_wait:
        console.print("[dim]Waiting for the server to finish clearing the channel...[/dim]")

    result = _run(
        ctx, lambda polarity: polarity.clear_channel_by_name(channel, wait_until_complete=not no_wait)
    )

    if result.get("clearComplete"):
        console.print(f"[green]Channel {channel} cleared[/green]")
    else:
        console.print(f"[yellow]Channel {channel} is still being cleared by the server[/yellow]")
    _print_json(result)


@app.command("create-channel")
def create_channel(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Channel name"),
    description: str = typer.Option("", "--description", "-d", help="Channel description"),
) -> None:
    """Create a channel."""
    result = _run(ctx, lambda polarity: polarity.create_channel(name, description))
    console.print(f"[green]Created channel {name}[/green]")
    _print_json(result)


@app.command()
def users(ctx: typer.Context) -> None:
    """List users."""
    result = _run(ctx, lambda polarity: polarity.get_users())

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="cyan")
    table.add_column("Username")
    table.add_column("Email")
    for user in (result or {}).get("data", []):
        attributes = user.get("attributes", {})
        table.add_row(
            str(user.get("id")),
            str(attributes.get("username", "")),
            str(attributes.get("email", "")),
        )
    console.print(table)


@app.command()
def integrations(ctx: typer.Context) -> None:
    """List integrations."""
    result = _run(ctx, lambda polarity: polarity.get_integrations())

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Status")
    for integration in (result or {}).get("data", []):
        attributes = integration.get("attributes", {})
        table.add_row(
            str(integration.get("id")),
            str(attributes.get("name", "")),
            str(attributes.get("status", "")),
        )
    console.print(table)


@app.command("restart-integration")
def restart_integration(
    ctx: typer.Context,
    integration: str = typer.Argument(..., help="Integration id or directory name"),
) -> None:
    """Restart an integration."""
    integration_id = get_integration_id(integration)
    _run(ctx, lambda polarity: polarity.restart_integration(integration_id))
    console.print(f"[green]Restarted integration {integration_id}[/green]")


@app.command("update-integration-option")
def update_integration_option(
    ctx: typer.Context,
    integration: str = typer.Argument(..., help="Integration id or directory name"),
    option_key: str = typer.Argument(..., help="Option key, e.g. apiKey"),
    value: str = typer.Option(..., "--value", help="New option value"),
    admin_only: bool | None = typer.Option(
        None, "--admin-only/--no-admin-only", help="Only admins can see the option"
    ),
    user_can_edit: bool | None = typer.Option(
        None, "--user-can-edit/--no-user-can-edit", help="Users may change the option"
    ),
) -> None:
    """Update one option of an integration."""
    integration_id = get_integration_id(integration)
    attributes: dict[str, Any] = {"value": value}
    if admin_only is not None:
        attributes["admin-only"] = admin_only
    if user_can_edit is not None:
        attributes["user-can-edit"] = user_can_edit

    _run(
        ctx,
        lambda polarity: polarity.update_integration_option(integration_id, option_key, attributes),
    )
    console.print(f"[green]Updated {option_key} on {integration_id}[/green]")


@app.command("search-integrations")
def search_integrations(
    ctx: typer.Context,
    text: str = typer.Argument(..., help="Text to look up"),
    integration_ids: list[str] = typer.Option(
        ..., "--integration", "-i", help="Integration id (repeatable)"
    ),
    ignore_errors: bool = typer.Option(
        False, "--ignore-errors", help="Report failing integrations instead of aborting"
    ),
) -> None:
    """Look up the entities in TEXT with one or more integrations."""
    ids = [get_integration_id(i) for i in integration_ids]

    async def operation(polarity: PolarityClient) -> Any:
        try:
            return await polarity.search_integrations(ids, text, ignore_errors=ignore_errors)
        except ValueError as e:
            raise PolarityError(str(e)) from e

    results = _run(ctx, operation)
    for result in results:
        if "error" in result:
            console.print(f"[red]{result['integration_id']}: {result['error']}[/red]")
        else:
            console.print(f"[bold]{result['integration_id']}[/bold]")
            _print_json(result["result"])


@app.command()
def version() -> None:
    """Show version information."""
    console.print(
        Panel.fit(
            "[bold]Polarity REST API client[/bold]\n\n"
            f"Version: [cyan]{__version__}[/cyan]",
            title="About",
            border_style="blue",
        )
    )


if __name__ == "__main__":
    app()
