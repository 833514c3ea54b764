"""Configuration loading and validation."""

from .defaults import DEFAULT_SOURCES, DEFAULT_TAG_RULES
from .models import (
    # Enums
    ExtractionStrategy,
    OrganisationKind,
    SourceKind,
    DEFAULT_STRATEGY,
    # Config models
    AppConfig,
    DatabaseConfig,
    FetchConfig,
    LoggingConfig,
    SourceConfig,
)
from .loader import (
    ConfigError,
    build_sources,
    load_app_config,
    load_sources,
    load_tag_rules,
    validate_sources_file,
)

__all__ = [
    # Enums
    "ExtractionStrategy",
    "OrganisationKind",
    "SourceKind",
    "DEFAULT_STRATEGY",
    # Config models
    "AppConfig",
    "DatabaseConfig",
    "FetchConfig",
    "LoggingConfig",
    "SourceConfig",
    # Defaults
    "DEFAULT_SOURCES",
    "DEFAULT_TAG_RULES",
    # Loaders
    "ConfigError",
    "build_sources",
    "load_app_config",
    "load_sources",
    "load_tag_rules",
    "validate_sources_file",
]
