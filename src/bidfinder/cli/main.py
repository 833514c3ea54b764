"""
bidfinder CLI - Main entry point.

A terminal-first tender finder for UK and EU procurement portals.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
import yaml
from dotenv import load_dotenv
from rich.panel import Panel
from rich.table import Table
from rich.traceback import install as install_rich_traceback

from bidfinder import __app_name__, __version__

from .common import console, err_console, load_settings, load_source_catalogue, open_store

# Load environment variables from .env (if present)
load_dotenv()

install_rich_traceback(show_locals=False, width=120)

app = typer.Typer(
    name=__app_name__,
    help="Find tenders and contract awards on public procurement portals",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """bidfinder - procurement tender finder."""


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import scrape, tenders  # noqa: E402

app.add_typer(scrape.app, name="scrape", help="Run scrape jobs")
app.add_typer(tenders.app, name="tenders", help="View stored tenders")


# =============================================================================
# Init Command
# =============================================================================


DEFAULT_APP_YAML = """\
# bidfinder configuration

config_dir: configs
data_dir: data

# Source key used by `bidfinder scrape run` without --source
default_source: contracts_finder

database:
  url: ${BIDFINDER_DATABASE_URL:-sqlite:///data/bidfinder.db}
  echo: false

logging:
  level: INFO
  file: logs/bidfinder.log
  json_format: true
  rich_console: true

fetch:
  timeout_seconds: 30
  max_attempts: 2
  max_pages: 20
  follow_details: false
"""


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration",
    ),
) -> None:
    """Initialize the database and default configuration files."""
    from bidfinder.core.config import DEFAULT_SOURCES, DEFAULT_TAG_RULES

    for dir_path in (Path("configs"), Path("data"), Path("logs")):
        dir_path.mkdir(parents=True, exist_ok=True)

    written = []
    app_yaml = Path("configs/app.yaml")
    if force or not app_yaml.exists():
        app_yaml.write_text(DEFAULT_APP_YAML, encoding="utf-8")
        written.append(app_yaml)

    sources_yaml = Path("configs/sources.yaml")
    if force or not sources_yaml.exists():
        _write_yaml(sources_yaml, {"sources": DEFAULT_SOURCES})
        written.append(sources_yaml)

    tags_yaml = Path("configs/tags.yaml")
    if force or not tags_yaml.exists():
        _write_yaml(tags_yaml, DEFAULT_TAG_RULES)
        written.append(tags_yaml)

    config = load_settings(app_yaml, configure_logging=False)
    config.ensure_directories()
    with open_store(config):
        pass

    lines = "\n".join(f"  - [cyan]{path}[/cyan]" for path in written) or "  (configuration already present)"
    console.print(Panel.fit(
        "[bold green]bidfinder initialized[/bold green]\n\n"
        f"Written:\n{lines}\n\n"
        f"Database: [cyan]{config.database.url}[/cyan]\n\n"
        "Next steps:\n"
        "  1. Review sources: [yellow]bidfinder sources[/yellow]\n"
        "  2. Run a scrape: [yellow]bidfinder scrape run[/yellow]",
        title="[bold]Initialization Complete[/bold]",
        border_style="green",
    ))


def _write_yaml(path: Path, data: dict) -> None:
    path.write_text(
        yaml.safe_dump(data, sort_keys=False, allow_unicode=True),
        encoding="utf-8",
    )


# =============================================================================
# Sources Command
# =============================================================================


@app.command()
def sources(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
    validate: bool = typer.Option(False, "--validate", help="Validate sources.yaml and report problems"),
) -> None:
    """List configured listing sources."""
    from bidfinder.core.config import validate_sources_file

    config = load_settings(config_path, configure_logging=False)

    if validate and config.sources_path.exists():
        errors = validate_sources_file(config.sources_path)
        if errors:
            err_console.print(f"[red]{len(errors)} problem(s) in {config.sources_path}:[/red]")
            for error in errors:
                err_console.print(f"  - {error}")
            raise typer.Exit(1)
        console.print(f"[green]{config.sources_path} is valid[/green]")

    catalogue = load_source_catalogue(config)

    table = Table(title="Sources", show_header=True, header_style="bold magenta")
    table.add_column("Key", style="cyan")
    table.add_column("Label")
    table.add_column("Strategy")
    table.add_column("Kind")
    table.add_column("Enabled", justify="center")
    table.add_column("URL", style="dim", overflow="fold")

    for key, source in catalogue.items():
        marker = "*" if key == config.default_source else ""
        table.add_row(
            f"{key}{marker}",
            source.label,
            source.strategy.value,
            source.kind.value,
            "[green]yes[/green]" if source.enabled else "[red]no[/red]",
            source.url,
        )

    console.print(table)
    console.print("[dim]* default source[/dim]")


# =============================================================================
# Status Command
# =============================================================================


@app.command()
def status(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Show last run time, stored counts and per-source statistics."""
    config = load_settings(config_path, configure_logging=False)
    catalogue = load_source_catalogue(config)

    with open_store(config) as store:
        last_run = store.get_last_run_timestamp()
        total = store.count_tenders()
        awards = store.count_awards()
        stats = {stat.key: stat for stat in store.list_source_stats()}

        console.print()
        console.print("[bold]bidfinder status[/bold]")
        console.print(f"Last run: {last_run.strftime('%Y-%m-%d %H:%M') if last_run else 'Never'}")
        console.print(f"Stored tenders: {total}")
        console.print(f"Stored awards: {awards}")
        console.print()

        table = Table(title="Source Statistics", show_header=True, header_style="bold magenta")
        table.add_column("Source", style="cyan")
        table.add_column("Last Run", justify="right")
        table.add_column("Last Added", justify="right", style="green")
        table.add_column("Total Added", justify="right")
        table.add_column("Runs", justify="right")

        for key in list(catalogue) + [k for k in stats if k not in catalogue]:
            stat = stats.get(key)
            if stat is None:
                table.add_row(key, "Never", "-", "-", "0")
                continue
            table.add_row(
                key,
                stat.last_run_at.strftime("%Y-%m-%d %H:%M") if stat.last_run_at else "Never",
                str(stat.last_added),
                str(stat.total_added),
                str(stat.total_runs),
            )

        console.print(table)


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
