"""
Configuration loader for YAML files.

Loads and validates configuration from YAML files into Pydantic models.
Every loader returns a fresh snapshot; runs receive these snapshots
explicitly and never observe later edits.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .defaults import DEFAULT_SOURCES, DEFAULT_TAG_RULES
from .models import AppConfig, SourceConfig


ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


class ConfigError(Exception):
    """Configuration loading or validation error."""

    def __init__(self, message: str, path: Path | None = None, details: str | None = None):
        self.path = path
        self.details = details
        super().__init__(message)


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dictionary.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML contents

    Raises:
        ConfigError: If file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}", path=path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML in {path}",
            path=path,
            details=str(e),
        ) from e
    except OSError as e:
        raise ConfigError(
            f"Cannot read {path}",
            path=path,
            details=str(e),
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top of {path}", path=path)
    return data


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand environment variables in string values.

    Supports ${VAR} and ${VAR:-default} syntax.
    """
    if isinstance(data, str):
        def replacer(match: re.Match[str]) -> str:
            return os.environ.get(match.group(1), match.group(2) or "")

        return ENV_VAR_PATTERN.sub(replacer, data)
    if isinstance(data, dict):
        return {k: _expand_env_vars(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    return data


def load_app_config(
    path: Path | str | None = None,
    expand_env: bool = True,
) -> AppConfig:
    """Load application configuration from YAML file.

    Args:
        path: Path to app.yaml (default: configs/app.yaml)
        expand_env: Whether to expand environment variables

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigError: If configuration is invalid
    """
    path = Path(path) if path is not None else Path("configs/app.yaml")

    # If file doesn't exist, return defaults
    if not path.exists():
        return AppConfig()

    data = _load_yaml_file(path)
    if expand_env:
        data = _expand_env_vars(data)

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid app configuration in {path}",
            path=path,
            details=str(e),
        ) from e


def build_sources(
    raw: dict[str, dict[str, Any]],
    *,
    path: Path | None = None,
) -> dict[str, SourceConfig]:
    """Validate a mapping of source key -> definition.

    Raises:
        ConfigError: If any definition is invalid
    """
    sources: dict[str, SourceConfig] = {}

    for key, definition in raw.items():
        if not isinstance(definition, dict):
            raise ConfigError(f"Source '{key}' must be a mapping", path=path)
        try:
            source = SourceConfig.model_validate({**definition, "key": key})
        except ValidationError as e:
            raise ConfigError(
                f"Invalid source '{key}'",
                path=path,
                details=str(e),
            ) from e
        sources[source.key] = source

    return sources


def load_sources(
    path: Path | str | None = None,
    *,
    include_defaults: bool = True,
    expand_env: bool = True,
) -> dict[str, SourceConfig]:
    """Load source definitions from sources.yaml.

    The file holds a top-level ``sources`` mapping. Entries override the
    built-in catalogue key by key; ``enabled: false`` switches one off.

    Args:
        path: Path to sources.yaml (default: configs/sources.yaml)
        include_defaults: Merge over the built-in catalogue
        expand_env: Whether to expand environment variables

    Returns:
        Ordered mapping of source key to SourceConfig

    Raises:
        ConfigError: If any source definition is invalid
    """
    path = Path(path) if path is not None else Path("configs/sources.yaml")

    raw: dict[str, dict[str, Any]] = {}
    if include_defaults:
        raw.update({key: dict(value) for key, value in DEFAULT_SOURCES.items()})

    if path.exists():
        data = _load_yaml_file(path)
        if expand_env:
            data = _expand_env_vars(data)

        configured = data.get("sources") or {}
        if not isinstance(configured, dict):
            raise ConfigError(f"'sources' must be a mapping in {path}", path=path)

        for key, definition in configured.items():
            merged = dict(raw.get(key, {}))
            merged.update(definition or {})
            raw[key] = merged

    return build_sources(raw, path=path)


def load_tag_rules(path: Path | str | None = None) -> dict[str, list[str]]:
    """Load tag rules from tags.yaml.

    The file maps tag name to a list of keywords. Declaration order is
    preserved and becomes the order of tags on each tender.

    Returns:
        Tag rules, or the built-in rules when the file does not exist

    Raises:
        ConfigError: If the file is malformed
    """
    path = Path(path) if path is not None else Path("configs/tags.yaml")

    if not path.exists():
        return {tag: list(keywords) for tag, keywords in DEFAULT_TAG_RULES.items()}

    data = _load_yaml_file(path)
    rules: dict[str, list[str]] = {}

    for tag, keywords in data.items():
        if isinstance(keywords, str):
            keywords = [keywords]
        if not isinstance(keywords, list):
            raise ConfigError(f"Tag '{tag}' must map to a list of keywords", path=path)
        rules[str(tag)] = [str(k) for k in keywords if str(k).strip()]

    return rules


def validate_sources_file(path: Path | str) -> list[str]:
    """Validate a sources file without loading it.

    Returns:
        List of validation error messages (empty if valid)
    """
    path = Path(path)
    errors: list[str] = []

    if not path.exists():
        errors.append(f"File not found: {path}")
        return errors

    try:
        data = _load_yaml_file(path)
    except ConfigError as e:
        errors.append(str(e))
        return errors

    for key, definition in (data.get("sources") or {}).items():
        try:
            SourceConfig.model_validate({**DEFAULT_SOURCES.get(key, {}), **(definition or {}), "key": key})
        except ValidationError as e:
            for error in e.errors():
                loc = ".".join(str(x) for x in error["loc"])
                errors.append(f"{key}.{loc}: {error['msg']}")

    return errors
