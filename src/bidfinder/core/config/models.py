"""
Pydantic configuration models for bidfinder.

These models provide type-safe configuration with validation for:
- Application settings
- Listing source definitions
- Fetch behaviour (timeouts, retries, page cap)
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Enums
# =============================================================================


class ExtractionStrategy(str, Enum):
    """Registered listing extraction strategies."""

    CONTRACTS_FINDER = "contracts_finder"
    SELL2WALES = "sell2wales"
    UKRI = "ukri"
    EU_SUPPLY = "eu_supply"
    RSS = "rss"


DEFAULT_STRATEGY = ExtractionStrategy.CONTRACTS_FINDER

# Older source files used camelCase parser names
STRATEGY_ALIASES = {
    "contractsfinder": ExtractionStrategy.CONTRACTS_FINDER,
    "eusupply": ExtractionStrategy.EU_SUPPLY,
}


class SourceKind(str, Enum):
    """What a source lists: open opportunities or awarded contracts."""

    TENDER = "tender"
    AWARD = "award"


class OrganisationKind(str, Enum):
    """Role an organisation plays on a tender."""

    BUYER = "buyer"
    SUPPLIER = "supplier"


# =============================================================================
# Source Configuration
# =============================================================================


class SourceConfig(BaseModel):
    """Definition of one listing endpoint.

    Instances are frozen: a run reads a snapshot and never mutates it.
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Unique source identifier",
    )
    label: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Human-readable label stored on every tender",
    )
    url: str = Field(
        ...,
        description="Listing page (or feed) URL",
    )
    base: str = Field(
        ...,
        description="Base URL used to resolve relative links",
    )
    strategy: ExtractionStrategy = Field(
        default=DEFAULT_STRATEGY,
        description="Extraction strategy for the listing markup",
    )
    kind: SourceKind = Field(
        default=SourceKind.TENDER,
        description="Whether the listing holds tenders or contract awards",
    )
    enabled: bool = Field(
        default=True,
        description="Whether run-all includes this source",
    )

    @field_validator("key")
    @classmethod
    def normalize_key(cls, v: str) -> str:
        """Keys are lowercase identifiers."""
        key = v.strip().lower()
        if not re.fullmatch(r"[a-z0-9_-]+", key):
            raise ValueError("key must contain only letters, digits, '_' or '-'")
        return key

    @field_validator("label")
    @classmethod
    def reject_markup(cls, v: str) -> str:
        """Labels are rendered downstream, so markup is refused."""
        if "<" in v or ">" in v:
            raise ValueError("label must not contain angle brackets")
        return v.strip()

    @field_validator("url", "base")
    @classmethod
    def require_https(cls, v: str) -> str:
        """Source URLs must use HTTPS."""
        parsed = urlparse(v.strip())
        if parsed.scheme != "https" or not parsed.netloc:
            raise ValueError(f"URL must be an absolute https:// URL: {v!r}")
        return v.strip()

    @field_validator("strategy", mode="before")
    @classmethod
    def fallback_strategy(cls, v: Any) -> Any:
        """Unknown strategy names fall back to the default strategy."""
        if isinstance(v, ExtractionStrategy):
            return v
        if v is None:
            return DEFAULT_STRATEGY
        name = str(v).strip().lower()
        if name in STRATEGY_ALIASES:
            return STRATEGY_ALIASES[name]
        try:
            return ExtractionStrategy(name)
        except ValueError:
            return DEFAULT_STRATEGY


# =============================================================================
# Fetch Configuration
# =============================================================================


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class FetchConfig(BaseModel):
    """Listing fetch settings."""

    timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Request timeout in seconds",
    )
    max_attempts: int = Field(
        default=2,
        ge=1,
        le=5,
        description="Attempts per page before the run fails",
    )
    max_pages: int = Field(
        default=20,
        ge=1,
        le=500,
        description="Maximum listing pages fetched per source run",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header sent with every request",
    )
    follow_details: bool = Field(
        default=False,
        description="Fetch each new tender's detail page for extra fields",
    )


# =============================================================================
# Database Configuration
# =============================================================================


class DatabaseConfig(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite:///data/bidfinder.db",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging)",
    )


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=Path("logs/bidfinder.log"),
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    This is the main configuration object loaded from app.yaml.
    """

    config_dir: Path = Field(
        default=Path("configs"),
        description="Configuration directory",
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Data storage directory",
    )
    default_source: str = Field(
        default="contracts_finder",
        description="Source key used when a run names no source",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)

    @property
    def sources_path(self) -> Path:
        return self.config_dir / "sources.yaml"

    @property
    def tags_path(self) -> Path:
        return self.config_dir / "tags.yaml"

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        for dir_path in [self.config_dir, self.data_dir]:
            dir_path.mkdir(parents=True, exist_ok=True)

        if self.logging.file:
            self.logging.file.parent.mkdir(parents=True, exist_ok=True)
