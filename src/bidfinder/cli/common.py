"""
Shared CLI helpers: configuration, logging and store setup.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Generator

import typer
from rich.console import Console

from bidfinder.core.config import AppConfig, ConfigError, load_app_config, load_sources, load_tag_rules
from bidfinder.core.logging import setup_logging

if TYPE_CHECKING:
    from bidfinder.core.config import SourceConfig
    from bidfinder.persistence.repo import TenderStore


console = Console()
err_console = Console(stderr=True)

DEFAULT_APP_CONFIG = Path("configs/app.yaml")


def _fail(error: ConfigError) -> None:
    err_console.print(f"[red]Configuration error:[/red] {error}")
    if error.details:
        err_console.print(f"[dim]{error.details}[/dim]")
    raise typer.Exit(1)


def load_settings(config_path: Path | None = None, *, configure_logging: bool = True) -> AppConfig:
    """Load app.yaml and set up logging from it."""
    try:
        config = load_app_config(config_path or DEFAULT_APP_CONFIG)
    except ConfigError as e:
        _fail(e)

    if configure_logging:
        setup_logging(
            level=config.logging.level,
            log_file=config.logging.file,
            json_format=config.logging.json_format,
            rich_console=config.logging.rich_console,
        )
    return config


def load_source_catalogue(config: AppConfig) -> dict[str, "SourceConfig"]:
    try:
        return load_sources(config.sources_path)
    except ConfigError as e:
        _fail(e)
    return {}


def load_tags(config: AppConfig) -> dict[str, list[str]]:
    try:
        return load_tag_rules(config.tags_path)
    except ConfigError as e:
        _fail(e)
    return {}


@contextmanager
def open_store(config: AppConfig) -> Generator["TenderStore", None, None]:
    """Open a TenderStore on the configured database, creating tables."""
    from bidfinder.persistence.db import get_session, init_db
    from bidfinder.persistence.repo import TenderStore

    init_db(config.database.url, echo=config.database.echo)
    with get_session() as session:
        yield TenderStore(session)
