"""
Tender and award viewing commands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from bidfinder.core.logging import json_dumps

from ..common import console, load_settings, open_store

app = typer.Typer(
    help="View stored tenders and awards",
    no_args_is_help=True,
)


@app.command("list")
def list_tenders(
    source: Optional[str] = typer.Option(
        None,
        "--source",
        "-s",
        help="Filter by source label",
    ),
    tag: Optional[str] = typer.Option(
        None,
        "--tag",
        "-t",
        help="Filter by tag",
    ),
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        help="Maximum results to show",
    ),
    format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format (table, json)",
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """List the most recently scraped tenders.

    Examples:
        bidfinder tenders list --tag it
        bidfinder tenders list --source "Contracts Finder" --format json
    """
    config = load_settings(config_path, configure_logging=False)

    with open_store(config) as store:
        tenders = store.list_tenders(source=source, tag=tag, limit=limit)

        if not tenders:
            console.print("[dim]No tenders found matching criteria.[/dim]")
            return

        if format == "json":
            data = [
                {
                    "id": t.id,
                    "title": t.title,
                    "link": t.link,
                    "date": t.date_text,
                    "source": t.source,
                    "tags": t.tag_list,
                    "organisation": t.organisation,
                    "ocid": t.ocid,
                    "scraped_at": t.scraped_at.isoformat(),
                    "published_on": t.published_on.isoformat() if t.published_on else None,
                }
                for t in tenders
            ]
            console.print_json(json_dumps(data))
            return

        table = Table(title=f"Tenders ({len(tenders)} shown)", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Title", max_width=50)
        table.add_column("Source", style="cyan")
        table.add_column("Published", justify="right")
        table.add_column("Tags")

        for t in tenders:
            table.add_row(
                str(t.id),
                t.title,
                t.source,
                t.published_on.isoformat() if t.published_on else (t.date_text or "-"),
                ", ".join(t.tag_list) or "-",
            )

        console.print(table)


@app.command("awards")
def list_awards(
    source: Optional[str] = typer.Option(
        None,
        "--source",
        "-s",
        help="Filter by source label",
    ),
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        help="Maximum results to show",
    ),
    format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format (table, json)",
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """List the most recently scraped contract awards.

    Examples:
        bidfinder tenders awards
        bidfinder tenders awards --format json
    """
    config = load_settings(config_path, configure_logging=False)

    with open_store(config) as store:
        awards = store.list_awards(source=source, limit=limit)

        if not awards:
            console.print("[dim]No awards found matching criteria.[/dim]")
            return

        if format == "json":
            data = [
                {
                    "id": a.id,
                    "title": a.title,
                    "link": a.link,
                    "source": a.source,
                    "buyer": a.buyer,
                    "supplier": a.supplier,
                    "value": a.value,
                    "status": a.status,
                    "start_date": a.start_date,
                    "end_date": a.end_date,
                    "suitable_for_sme": a.suitable_for_sme,
                    "scraped_at": a.scraped_at.isoformat(),
                }
                for a in awards
            ]
            console.print_json(json_dumps(data))
            return

        table = Table(title=f"Awards ({len(awards)} shown)", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Title", max_width=50)
        table.add_column("Buyer", style="cyan")
        table.add_column("Value", justify="right")
        table.add_column("Term")

        for a in awards:
            term = f"{a.start_date} - {a.end_date}" if a.start_date or a.end_date else "-"
            table.add_row(str(a.id), a.title, a.buyer or "-", a.value or "-", term)

        console.print(table)
