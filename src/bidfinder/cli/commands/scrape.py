"""
Scrape commands for running source scrapes.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional

import typer
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from bidfinder.core.config import ConfigError

from ..common import console, err_console, load_settings, load_source_catalogue, load_tags, open_store

app = typer.Typer(
    help="Run scrape jobs",
    no_args_is_help=True,
)


class ProgressReporter:
    """Render orchestrator progress events as Rich progress bars."""

    def __init__(self, progress: Progress):
        self.progress = progress
        self._tasks: dict[str, Any] = {}
        self._current = ""

    def __call__(self, event: dict[str, Any]) -> None:
        key = event.get("source_key", "")
        step = event.get("step")

        if step == "start":
            self._current = event["source"]["label"]
            self._tasks[key] = self.progress.add_task(f"[cyan]{self._current}[/cyan]: fetching", total=None)
        elif step == "found":
            self.progress.update(
                self._tasks[key],
                total=event["count"],
                description=f"[cyan]{self._current}[/cyan]: {event['count']} found",
            )
        elif step == "tender":
            self.progress.update(self._tasks[key], completed=event["index"])


def _run_with_progress(coro_factory) -> Any:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        return asyncio.run(coro_factory(ProgressReporter(progress)))


@app.command("run")
def run_scrape(
    source: Optional[str] = typer.Option(
        None,
        "--source",
        "-s",
        help="Source key to scrape (default: the configured default source)",
    ),
    max_pages: Optional[int] = typer.Option(
        None,
        "--max-pages",
        "-n",
        help="Maximum listing pages to fetch",
    ),
    follow_details: Optional[bool] = typer.Option(
        None,
        "--follow-details/--no-follow-details",
        help="Fetch each tender's detail page for CPV codes and deadlines",
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Scrape one source.

    Examples:
        bidfinder scrape run
        bidfinder scrape run --source ukri --max-pages 5
    """
    from bidfinder.core.orchestrator import run_source

    config = load_settings(config_path)
    catalogue = load_source_catalogue(config)
    tag_rules = load_tags(config)

    with open_store(config) as store:
        try:
            result = _run_with_progress(
                lambda reporter: run_source(
                    source,
                    sources=catalogue,
                    store=store,
                    tag_rules=tag_rules,
                    max_pages=max_pages or config.fetch.max_pages,
                    follow_details=config.fetch.follow_details if follow_details is None else follow_details,
                    fetch_config=config.fetch,
                    default_key=config.default_source,
                    on_progress=reporter,
                )
            )
        except ConfigError as e:
            err_console.print(f"[red]{e}[/red]")
            if e.details:
                err_console.print(f"[dim]{e.details}[/dim]")
            raise typer.Exit(1)

    console.print()
    _show_summary({result.source_key: result})
    if not result.ok:
        raise typer.Exit(1)


@app.command("all")
def run_all_sources(
    max_pages: Optional[int] = typer.Option(
        None,
        "--max-pages",
        "-n",
        help="Maximum listing pages to fetch per source",
    ),
    follow_details: Optional[bool] = typer.Option(
        None,
        "--follow-details/--no-follow-details",
        help="Fetch each tender's detail page for CPV codes and deadlines",
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Scrape every enabled source, one after another."""
    from bidfinder.core.orchestrator import run_all

    config = load_settings(config_path)
    catalogue = load_source_catalogue(config)
    tag_rules = load_tags(config)

    with open_store(config) as store:
        results = _run_with_progress(
            lambda reporter: run_all(
                catalogue,
                store,
                tag_rules=tag_rules,
                max_pages=max_pages or config.fetch.max_pages,
                follow_details=config.fetch.follow_details if follow_details is None else follow_details,
                fetch_config=config.fetch,
                on_progress=reporter,
            )
        )

    console.print()
    _show_summary(results)


OUTCOME_STYLES = {
    "added": "[green]added[/green]",
    "no_new": "[yellow]no new tenders[/yellow]",
    "empty": "[yellow]nothing found[/yellow]",
    "failed": "[red]failed[/red]",
}


def _show_summary(results: dict) -> None:
    """Show summary table of scrape results."""
    table = Table(title="Scrape Summary")

    table.add_column("Source", style="cyan")
    table.add_column("Found", justify="right")
    table.add_column("New", justify="right", style="green")
    table.add_column("Outcome")

    total_found = 0
    total_added = 0

    for key, result in results.items():
        table.add_row(key, str(result.found), str(result.added), OUTCOME_STYLES[result.outcome])
        total_found += result.found
        total_added += result.added

    if len(results) > 1:
        table.add_section()
        table.add_row("[bold]Total[/bold]", str(total_found), str(total_added), "")

    console.print(table)

    for key, result in results.items():
        if result.error:
            console.print(f"[red]Error from {key}:[/red] {result.error}")

    console.print("[bold]done[/bold]")
