"""CLI entry point for Podstash."""

import asyncio
import logging
import sys
from enum import IntEnum
from pathlib import Path

import typer
from platformdirs import user_data_dir
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from podstash.archive import Archive
from podstash.config.logging import apply_log_level, setup_logging
from podstash.feeds.feed import MediaReport
from podstash.utils.errors import (
    ArchiveLockedError,
    PodstashError,
)

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="podstash",
    help="Archive podcast feeds and republish them from local storage",
    no_args_is_help=True,
)
console = Console()


class ExitCode(IntEnum):
    """Process exit codes."""

    OK = 0
    ERROR = 1
    LOCKED = 3
    FEED_FAILURES = 4


def default_archive_dir() -> Path:
    return Path(user_data_dir("podstash"))


ArchiveOption = typer.Option(
    default_archive_dir(),
    "--archive",
    "-a",
    envvar="PODSTASH_ARCHIVE",
    help="Path to the archive directory",
)


def _fail(e: PodstashError) -> None:
    console.print(f"[red]✗[/red] {escape(str(e))}")
    if isinstance(e, ArchiveLockedError):
        sys.exit(ExitCode.LOCKED)
    sys.exit(ExitCode.ERROR)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose (DEBUG) logging"
    ),
    log_file: Path | None = typer.Option(
        None, "--log-file", help="Write logs to file"
    ),
) -> None:
    """Podstash - archive podcast feeds and republish them locally."""
    # Archive settings may adjust the level once an archive is opened
    setup_logging(verbose=verbose, log_file=log_file)


@app.command("version")
def show_version() -> None:
    """Show version information."""
    from podstash import __version__

    console.print(f"[bold cyan]Podstash[/bold cyan] v{__version__}")


@app.command("init")
def init_archive(
    base_url: str = typer.Option(
        ..., "--base-url", "-b", help="Base URL under which the archive directory is served"
    ),
    archive: Path = ArchiveOption,
) -> None:
    """Initialize a podcast archive directory.

    Examples:
        podstash init --archive ~/podcasts --base-url https://example.com/pod
    """
    try:
        with Archive.locked(archive, base_url=base_url) as created:
            console.print(
                f"[green]✓[/green] Initialized podcast archive under [bold]{created.path}[/bold]"
            )
            console.print(f"[dim]  Served at {created.base_url}[/dim]")
    except PodstashError as e:
        _fail(e)


@app.command("add")
def add_feed(
    url: str = typer.Argument(..., help="RSS feed URL"),
    name: str = typer.Option(..., "--name", "-n", help="Feed name (used as directory name)"),
    archive: Path = ArchiveOption,
) -> None:
    """Add a new podcast feed to be tracked.

    Examples:
        podstash add https://rss.example.org/feed.xml --name show1
    """
    try:
        with Archive.locked(archive) as opened:
            apply_log_level(opened.settings.log_level)
            feed = opened.new_feed(name, url)
            console.print(f"\n[green]✓[/green] Added podcast '[bold]{escape(name)}[/bold]' to archive")
            console.print(f"[dim]  Local RSS: {feed.local_url}[/dim]")
            console.print("\nFetch it now: [cyan]podstash update[/cyan]")
    except PodstashError as e:
        _fail(e)


@app.command("update")
def update_feeds(
    just_mp3: bool = typer.Option(
        False, "--just-mp3", help="Only download missing episodes, do not fetch feeds"
    ),
    archive: Path = ArchiveOption,
) -> None:
    """Update tracked podcasts and download new episodes."""

    async def run(opened: Archive) -> dict[str, MediaReport | Exception]:
        results = await opened.update(just_mp3=just_mp3)
        try:
            await opened.update_html()
        except Exception as e:
            logger.error(f"Error encountered generating HTML: {e}")
        return results

    try:
        with Archive.locked(archive) as opened:
            apply_log_level(opened.settings.log_level)
            results = asyncio.run(run(opened))
    except PodstashError as e:
        _fail(e)
        return

    if not results:
        console.print("[yellow]No feeds in this archive yet.[/yellow]")
        console.print("\nAdd a feed: [cyan]podstash add <url> --name <name>[/cyan]")
        return

    table = Table(title="[bold]Update results[/bold]")
    table.add_column("Feed", style="cyan", no_wrap=True)
    table.add_column("Downloaded", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Status")

    failures = 0
    for name, result in results.items():
        if isinstance(result, Exception):
            failures += 1
            table.add_row(name, "-", "-", f"[red]✗[/red] {escape(str(result))}")
        else:
            status = "[green]✓[/green]" if not result.failed else "[yellow]partial[/yellow]"
            table.add_row(name, str(len(result.downloaded)), str(len(result.failed)), status)

    console.print(table)

    if failures:
        console.print(f"\n[red]{failures} feed(s) failed to update[/red]")
        sys.exit(ExitCode.FEED_FAILURES)


@app.command("list")
def list_feeds(archive: Path = ArchiveOption) -> None:
    """List the podcasts that are currently in the archive."""

    async def collect(opened: Archive) -> list[tuple[str, str, str, str]]:
        rows = []
        for feed in opened.feeds():
            try:
                channel = await feed.channel()
                episodes = str(len(channel.episodes))
            except Exception as e:
                logger.debug(f"Unable to list {feed.name}: {e}")
                episodes = "-"
            rows.append((feed.name, feed.url, feed.local_url, episodes))
        return rows

    try:
        with Archive.locked(archive) as opened:
            apply_log_level(opened.settings.log_level)
            rows = asyncio.run(collect(opened))
    except PodstashError as e:
        _fail(e)
        return

    if not rows:
        console.print("[yellow]No feeds in this archive yet.[/yellow]")
        console.print("\nAdd a feed: [cyan]podstash add <url> --name <name>[/cyan]")
        return

    table = Table(title="[bold]Archived Podcasts[/bold]")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Tracked RSS", style="blue")
    table.add_column("Local RSS", style="blue")
    table.add_column("Episodes", justify="right", style="green")

    for row in rows:
        table.add_row(*(escape(value) for value in row))

    console.print(table)
    console.print(f"\n[dim]Total: {len(rows)} feed(s)[/dim]")


@app.command("config")
def show_config(archive: Path = ArchiveOption) -> None:
    """Show the settings of an archive."""
    try:
        opened = Archive.load(archive)
    except PodstashError as e:
        _fail(e)
        return

    settings = opened.settings
    table = Table(show_header=False, box=None)
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Archive", str(opened.path))
    table.add_row("Base URL", settings.base_url)
    table.add_row("Download delay", f"{settings.download_delay_seconds:g}s")
    table.add_row("Request timeout", f"{settings.request_timeout_seconds:g}s")
    table.add_row("User agent", settings.user_agent)
    table.add_row("Log level", settings.log_level)

    console.print(table)


if __name__ == "__main__":
    app()
