"""Typer CLI entrypoint for feed-ingest."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Iterable, NoReturn, Optional, Sequence

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, ConfigurationError, Publisher
from .engine import Post
from .engine.normalizer import format_timestamp
from .engine.store import StoreError
from .logging_conf import (
    available_publisher_logs,
    configure_logging,
    main_log_path,
    publisher_log_path,
    tail_log,
)
from .orchestrator import RefreshSummary
from .service import RefreshService

app = typer.Typer(
    help="feed-ingest: poll publisher feeds, store posts, signal new content.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
publisher_app = typer.Typer(name="publisher", help="Publisher registry commands", no_args_is_help=True)
posts_app = typer.Typer(name="posts", help="Stored post queries", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Log viewing commands", no_args_is_help=True)

console = Console()

STARTUP_ERRORS = (ConfigurationError, FileNotFoundError, ValidationError, StoreError, ValueError)


@dataclass
class AppState:
    verbose: bool
    service: RefreshService | None = None


def build_service(verbose: bool) -> RefreshService:
    configure_logging(verbose=verbose)
    return RefreshService.from_repository(ConfigRepository())


def _get_service(ctx: typer.Context) -> RefreshService:
    state: AppState = ctx.obj or AppState(verbose=False)
    ctx.obj = state
    if state.service is None:
        state.service = build_service(state.verbose)
    return state.service


def _failure(error: str, exc: Exception, as_json: bool) -> NoReturn:
    payload = {"success": False, "error": error, "message": str(exc)}
    if as_json:
        typer.echo(json.dumps(payload, ensure_ascii=False))
    else:
        console.print(f"{error}: {exc}", style="red")
    raise typer.Exit(code=1)


def _render_publishers_table(publishers: Sequence[Publisher]) -> Table:
    table = Table(title=f"Publishers · {len(publishers)}", box=box.SIMPLE_HEAD)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="magenta")
    table.add_column("Publication", style="green")
    table.add_column("Feed URL", style="yellow", overflow="fold")
    for publisher in publishers:
        table.add_row(
            publisher.id,
            publisher.name,
            publisher.publication_name or "-",
            publisher.feed_url or "(missing)",
        )
    return table


def _render_posts_table(posts: Iterable[Post], title: str) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAD)
    table.add_column("Published", style="dim", no_wrap=True)
    table.add_column("Publisher", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Subtitle", overflow="fold")
    for post in posts:
        table.add_row(
            format_timestamp(post.publish_date)[:16].replace("T", " "),
            post.publisher_name or post.author,
            post.title,
            post.subtitle,
        )
    return table


def _render_summary_table(summary: RefreshSummary) -> Table:
    table = Table(title="Refresh result", box=box.MINIMAL_DOUBLE_HEAD, show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="bold")
    table.add_row("Publishers", str(summary.total_publishers))
    table.add_row("Updated", str(summary.updated_count))
    table.add_row("New content", "yes" if summary.new_content_found else "no")
    table.add_row("New posts", str(len(summary.new_posts)))
    for outcome in summary.outcomes:
        if outcome.status in {"failed", "skipped", "empty"}:
            table.add_row(f"{outcome.publisher_id}", outcome.status)
    return table


app.add_typer(publisher_app, name="publisher")
app.add_typer(posts_app, name="posts")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context, verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging")
) -> None:
    ctx.obj = AppState(verbose=verbose)


@publisher_app.command("list", help="Show the publisher registry.")
def publisher_list(ctx: typer.Context) -> None:
    try:
        service = _get_service(ctx)
    except STARTUP_ERRORS as exc:
        _failure("Failed to load publishers", exc, as_json=False)
    console.print(_render_publishers_table(service.publishers))


@app.command("refresh", help="Refresh every publisher feed now and print the summary.")
def refresh(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Print the summary as JSON."),
) -> None:
    try:
        service = _get_service(ctx)
        service.check_store()
    except STARTUP_ERRORS as exc:
        _failure("Failed to refresh feeds", exc, as_json)

    summary = service.run_once()
    if as_json:
        typer.echo(json.dumps(summary.to_dict(), ensure_ascii=False))
        return
    if summary.skipped:
        console.print("A refresh is already running; request rejected.", style="yellow")
        return
    console.print(_render_summary_table(summary))
    if summary.new_posts:
        console.print(_render_posts_table(summary.new_posts, "New posts"))


@app.command("serve", help="Refresh at start and on the configured schedule until interrupted.")
def serve(ctx: typer.Context) -> None:
    try:
        service = _get_service(ctx)
    except STARTUP_ERRORS as exc:
        _failure("Failed to start", exc, as_json=False)
    service.start()
    console.print(
        f"Scheduler running for {len(service.publishers)} publishers. Press Ctrl+C to stop.",
        style="green",
    )
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("Stopping…", style="dim")
    finally:
        service.shutdown()


@posts_app.command("list", help="List stored posts, newest first.")
def posts_list(
    ctx: typer.Context,
    publisher: Optional[str] = typer.Option(None, "--publisher", help="Only this publisher id."),
    search: Optional[str] = typer.Option(None, "--search", help="Filter on title, subtitle or author."),
    page: int = typer.Option(1, "--page", min=1),
    limit: int = typer.Option(10, "--limit", min=1),
    as_json: bool = typer.Option(False, "--json", help="Print the page as JSON."),
) -> None:
    try:
        service = _get_service(ctx)
        result = service.list_posts(publisher_id=publisher, search=search, page=page, limit=limit)
    except STARTUP_ERRORS as exc:
        _failure("Failed to fetch posts", exc, as_json)
    if as_json:
        typer.echo(json.dumps(result.to_dict(), ensure_ascii=False))
        return
    title = f"Posts · page {result.page} · {result.total} total"
    console.print(_render_posts_table(result.posts, title))
    if result.has_more:
        console.print(f"More results: --page {result.page + 1}", style="dim")


@app.command("logo", help="Print the logo URL for a publisher (default image when unknown).")
def logo(ctx: typer.Context, publisher_id: str = typer.Argument(..., help="Publisher id.")) -> None:
    try:
        service = _get_service(ctx)
    except STARTUP_ERRORS as exc:
        _failure("Failed to resolve logo", exc, as_json=False)
    typer.echo(service.logo_for(publisher_id))


@log_app.command("tail", help="Show the last lines of the main or a publisher log.")
def log_tail(
    publisher: Optional[str] = typer.Option(None, "--publisher", help="Publisher id."),
    lines: int = typer.Option(50, "--lines", min=1),
) -> None:
    path = publisher_log_path(publisher) if publisher else main_log_path()
    content = tail_log(path, lines)
    if not content:
        console.print(f"No log entries at {path}", style="yellow")
        return
    for line in content:
        typer.echo(line.rstrip("\n"))


@log_app.command("list", help="List per-publisher log files.")
def log_list() -> None:
    paths = list(available_publisher_logs())
    if not paths:
        console.print("No publisher logs yet.", style="yellow")
        return
    for path in paths:
        typer.echo(path.stem)


if __name__ == "__main__":  # pragma: no cover
    app()
