"""
Command-line interface for Shinkan.

Uses Typer to drive one FeedService operation per invocation. Supports
loading .env files for channel credentials and data file locations.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
import json
from pathlib import Path
from typing import Iterator

import typer
from rich.console import Console
from rich.table import Table

from .config import AppConfig, load_config, validate_config
from .core.types import CheckOutcome, FeedRecord
from .errors import ConfigurationError, NotFoundError, PersistenceError, ShinkanError, ValidationError
from .service import FeedService, build_service
from .storage import migrate_legacy_document
from .utils.logging import setup_logging

try:
    from dotenv import load_dotenv
except Exception:  # noqa: BLE001
    load_dotenv = None

app = typer.Typer(add_completion=False, help="Track manga and anime releases from RSS feeds.")
console = Console()


@dataclass
class _State:
    config: Path | None = None
    log_level: str | None = None


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, help="YAML config file."),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
):
    """Shared options for every command."""
    # Load environment variables from .env if available
    if load_dotenv is not None:
        load_dotenv()
    ctx.obj = _State(config=config, log_level=log_level)


def _load(ctx: typer.Context) -> AppConfig:
    state: _State = ctx.obj or _State()
    cfg = load_config(str(state.config) if state.config else None)
    if state.log_level:
        cfg.logging.level = state.log_level
    validate_config(cfg)
    setup_logging(cfg.logging)
    return cfg


@contextmanager
def _service(ctx: typer.Context) -> Iterator[FeedService]:
    """Build the service, mapping startup and operation errors to exit codes."""
    try:
        cfg = _load(ctx)
        service = build_service(cfg)
    except (ConfigurationError, PersistenceError) as exc:
        console.print(f"[red]Startup failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    try:
        yield service
    except (NotFoundError, ValidationError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2) from exc
    except ShinkanError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        service.close()


def _feeds_table(feeds: list[FeedRecord]) -> Table:
    table = Table(title=f"Feeds ({len(feeds)})")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Category")
    table.add_column("Last chapter")
    table.add_column("Last checked")
    table.add_column("Fails", justify="right")
    for feed in feeds:
        table.add_row(
            feed.id,
            feed.name,
            feed.kind.value,
            feed.category,
            feed.last_chapter or "-",
            feed.last_checked or "never",
            f"[red]{feed.fail_count}[/red]" if feed.fail_count else "0",
        )
    return table


@app.command()
def check(ctx: typer.Context):
    """Check every stored feed once."""
    with _service(ctx) as service:
        summary = service.check_all()
    console.print(
        f"Checked {summary.total} feed(s): {summary.succeeded} ok, {summary.failed} failed, "
        f"{summary.notifications} notification(s)"
    )


@app.command("check-feed")
def check_feed(ctx: typer.Context, feed_id: str = typer.Argument(..., help="Feed id.")):
    """Check one feed now."""
    with _service(ctx) as service:
        response = service.check_feed(feed_id)
    result = response.result
    if result.outcome is CheckOutcome.FAILED:
        console.print(f"[red]Check failed after {result.attempts} attempt(s):[/red] {result.error}")
        raise typer.Exit(code=1)
    console.print(f"{response.feed.name}: {result.outcome.value}")
    console.print(f"Last chapter: {response.feed.last_chapter or '-'}")
    console.print(f"Last checked: {response.feed.last_checked}")


@app.command("test-feed")
def test_feed(ctx: typer.Context, feed_id: str = typer.Argument(..., help="Feed id.")):
    """Send a test notification for the newest item of a feed."""
    with _service(ctx) as service:
        result = service.test_feed(feed_id)
    if result.error:
        console.print(f"[yellow]{result.error}[/yellow]")
        return
    console.print(f"Test notification sent: {result.title}")
    console.print(f"Link: {result.link}")


@app.command("list")
def list_feeds(
    ctx: typer.Context,
    category: str | None = typer.Option(None, "--category", help="Only this category ('all' for every feed)."),
    search: str | None = typer.Option(None, "--search", "-s", help="Search name, URL and last chapter."),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
):
    """List stored feeds."""
    with _service(ctx) as service:
        feeds = service.list_feeds(category=category, search=search)
    if as_json:
        console.print_json(json.dumps([feed.to_dict() for feed in feeds], ensure_ascii=False))
        return
    console.print(_feeds_table(feeds))


@app.command()
def categories(ctx: typer.Context):
    """List the distinct categories."""
    with _service(ctx) as service:
        names = service.list_categories()
    for name in names:
        console.print(name)


@app.command()
def stats(ctx: typer.Context):
    """Show feed statistics."""
    with _service(ctx) as service:
        snapshot = service.get_stats()
    table = Table(title="Stats", show_header=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Total feeds", str(snapshot.total_feeds))
    table.add_row("Feeds with errors", str(snapshot.feeds_with_errors))
    table.add_row("Never checked", str(snapshot.feeds_never_checked))
    table.add_row("Categories", str(snapshot.categories))
    console.print(table)


@app.command()
def add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Display name."),
    rss_url: str = typer.Argument(..., help="Feed URL (manga URLs get /rss appended)."),
    kind: str = typer.Option("manga", "--type", "-t", help="manga or anime."),
    category: str = typer.Option("", "--category", help="Category label."),
    anilist_url: str | None = typer.Option(None, "--anilist-url", help="AniList page."),
    search_text: str | None = typer.Option(None, "--search-text", help="Anime title filter."),
    cover: str | None = typer.Option(None, "--cover", help="Cover image URL."),
):
    """Add a feed."""
    with _service(ctx) as service:
        feed = service.add_feed(
            name,
            rss_url,
            kind=kind,
            external_ref=anilist_url,
            category=category,
            search_filter=search_text,
            cover=cover,
        )
    console.print(f"Added {feed.name} ({feed.kind.value}) with id {feed.id}")


@app.command()
def delete(ctx: typer.Context, feed_id: str = typer.Argument(..., help="Feed id.")):
    """Delete a feed."""
    with _service(ctx) as service:
        service.delete_feed(feed_id)
    console.print(f"Deleted {feed_id}")


@app.command("import")
def import_feeds(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, readable=True, help="JSON export or list of feeds."),
):
    """Import feeds from a JSON file, skipping known URLs."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        console.print(f"[red]Cannot read {path}:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    entries = data.get("feeds", []) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        console.print("[red]Expected a list of feeds or an object with a 'feeds' list[/red]")
        raise typer.Exit(code=1)
    with _service(ctx) as service:
        summary = service.import_feeds(entries)
    console.print(f"Imported {summary.imported}, skipped {summary.skipped}")


@app.command()
def export(
    ctx: typer.Context,
    output: Path | None = typer.Option(None, "--output", "-o", help="Write to this file instead of stdout."),
):
    """Export every feed as JSON."""
    with _service(ctx) as service:
        document = service.export_feeds()
    content = json.dumps(document, ensure_ascii=False, indent=2)
    if output is None:
        console.print_json(content)
        return
    output.write_text(content + "\n", encoding="utf-8")
    console.print(f"Exported {document['count']} feed(s) to {output}")


@app.command()
def migrate(
    source: Path = typer.Argument(..., exists=True, readable=True, help="Legacy {'mangas': [...]} file."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Destination, defaults to SOURCE."),
):
    """Convert a legacy data file to the current format."""
    try:
        count = migrate_legacy_document(source, output)
    except PersistenceError as exc:
        console.print(f"[red]Migration failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    console.print(f"Migrated {count} feed(s) to {output or source}")


if __name__ == "__main__":
    app()
