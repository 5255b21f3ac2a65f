"""CLI interface for frontpage."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from frontpage.config import load_config, merge_cli_overrides
from frontpage.errors import SnapshotWriteError
from frontpage.pipeline import load_state, refresh
from frontpage.sources import SourceName

app = typer.Typer(
    name="frontpage",
    help="Keep a cached, summarized copy of the Hacker News front page.",
)

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from frontpage import __version__

        console.print(f"frontpage {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """frontpage - cached, summarized Hacker News stories."""


@app.command("refresh")
def refresh_cmd(
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .frontpage.toml file."),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Data directory (state/ and app_data/)."),
    ] = None,
    source: Annotated[
        Optional[list[SourceName]],
        typer.Option("--source", "-s", help="Candidate sources to use (front, best, rss)."),
    ] = None,
    num_stories: Annotated[
        Optional[int],
        typer.Option("--num-stories", "-n", help="Candidates to take from each source."),
    ] = None,
    model: Annotated[
        Optional[str],
        typer.Option("--model", help="Claude model for summaries (e.g. haiku, sonnet)."),
    ] = None,
    resummarize: Annotated[
        bool,
        typer.Option("--resummarize", help="Re-summarize cached stories without fetching."),
    ] = False,
    rewrite_only: Annotated[
        bool,
        typer.Option("--rewrite-only", help="Re-emit the cached snapshot without fetching."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging."),
    ] = False,
) -> None:
    """Fetch the current front page, update the cache and write app data."""
    _setup_logging(verbose)

    if resummarize and rewrite_only:
        console.print("[red]Error:[/red] --resummarize and --rewrite-only are exclusive.")
        raise typer.Exit(1)

    config = merge_cli_overrides(
        load_config(config_path),
        output_directory=str(output) if output else None,
        sources=[s.value for s in source] if source else None,
        num_stories=num_stories,
        model=model,
    )

    try:
        result = refresh(config, resummarize=resummarize, rewrite_only=rewrite_only)
    except SnapshotWriteError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc

    report = result.report
    console.print(
        f"[green]Cached {len(result.records)} stories[/green] "
        f"({report.candidates} candidates, {report.suppressed} suppressed, "
        f"{report.dropped} dropped, {report.carried_forward} carried forward, "
        f"{result.summarizer_calls} summaries)"
    )
    for error in report.errors:
        item = f" {error.item_id}" if error.item_id is not None else ""
        console.print(f"[yellow]{error.stage}{item}:[/yellow] {error.message}")
    for path in result.written:
        console.print(f"  wrote {path}")


@app.command("status")
def status_cmd(
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .frontpage.toml file."),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Data directory (state/ and app_data/)."),
    ] = None,
) -> None:
    """Show the cached stories and suppression list."""
    config = merge_cli_overrides(
        load_config(config_path),
        output_directory=str(output) if output else None,
    )
    snapshot = load_state(config)

    if not snapshot.items:
        console.print("[yellow]No cached stories.[/yellow]")
    else:
        table = Table(title=f"{len(snapshot.items)} cached stories")
        table.add_column("id", justify="right")
        table.add_column("updated")
        table.add_column("title")
        for record in snapshot.items:
            table.add_row(
                str(record.item_id),
                record.updated.strftime("%Y-%m-%d %H:%M"),
                record.info.title,
            )
        console.print(table)

    last_run = snapshot.last_run.isoformat() if snapshot.last_run else "never"
    console.print(f"Suppressed: {len(snapshot.suppressed)}  Last run: {last_run}")


if __name__ == "__main__":
    app()
