"""Tests for configuration models and YAML loaders."""

from __future__ import annotations

import pytest
import yaml
from pydantic import ValidationError

from bidfinder.core.config import (
    DEFAULT_SOURCES,
    DEFAULT_TAG_RULES,
    ConfigError,
    ExtractionStrategy,
    SourceConfig,
    SourceKind,
    load_app_config,
    load_sources,
    load_tag_rules,
    validate_sources_file,
)


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


# =============================================================================
# SourceConfig
# =============================================================================


class TestSourceConfig:
    def base(self, **overrides):
        data = {
            "key": "cf",
            "label": "Contracts Finder",
            "url": "https://example.org/search",
            "base": "https://example.org",
        }
        data.update(overrides)
        return data

    def test_key_is_lowercased(self):
        assert SourceConfig.model_validate(self.base(key=" Sell2Wales ")).key == "sell2wales"

    def test_plain_http_rejected(self):
        with pytest.raises(ValidationError):
            SourceConfig.model_validate(self.base(url="http://example.org/search"))

    def test_relative_base_rejected(self):
        with pytest.raises(ValidationError):
            SourceConfig.model_validate(self.base(base="/search"))

    def test_label_markup_rejected(self):
        with pytest.raises(ValidationError):
            SourceConfig.model_validate(self.base(label="<b>CF</b>"))

    @pytest.mark.parametrize(
        "name, expected",
        [
            (None, ExtractionStrategy.CONTRACTS_FINDER),
            ("mystery", ExtractionStrategy.CONTRACTS_FINDER),
            ("RSS", ExtractionStrategy.RSS),
            ("euSupply", ExtractionStrategy.EU_SUPPLY),
        ],
    )
    def test_strategy_names(self, name, expected):
        assert SourceConfig.model_validate(self.base(strategy=name)).strategy is expected

    def test_kind_defaults_to_tender(self):
        assert SourceConfig.model_validate(self.base()).kind is SourceKind.TENDER
        assert SourceConfig.model_validate(self.base(kind="award")).kind is SourceKind.AWARD

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            SourceConfig.model_validate(self.base(kind="framework"))

    def test_frozen(self):
        source = SourceConfig.model_validate(self.base())
        with pytest.raises(ValidationError):
            source.label = "Changed"


# =============================================================================
# Loaders
# =============================================================================


class TestLoadSources:
    def test_defaults_without_file(self, tmp_path):
        sources = load_sources(tmp_path / "missing.yaml")
        assert list(sources) == list(DEFAULT_SOURCES)
        assert sources["contracts_finder"].label == "Contracts Finder"
        assert sources["contracts_finder_awards"].kind is SourceKind.AWARD

    def test_file_overrides_and_adds(self, tmp_path):
        path = write_yaml(tmp_path / "sources.yaml", {
            "sources": {
                "ukri": {"enabled": False},
                "find_a_tender": {
                    "label": "Find a Tender",
                    "url": "https://www.find-tender.service.gov.uk/Search",
                    "base": "https://www.find-tender.service.gov.uk",
                },
            }
        })

        sources = load_sources(path)

        assert sources["ukri"].enabled is False
        assert sources["ukri"].url == DEFAULT_SOURCES["ukri"]["url"]
        assert sources["find_a_tender"].strategy is ExtractionStrategy.CONTRACTS_FINDER
        assert list(sources)[-1] == "find_a_tender"

    def test_without_defaults(self, tmp_path):
        path = write_yaml(tmp_path / "sources.yaml", {
            "sources": {"only": {"label": "Only", "url": "https://a.example/x", "base": "https://a.example"}}
        })
        assert list(load_sources(path, include_defaults=False)) == ["only"]

    def test_env_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PORTAL_HOST", "portal.example.org")
        path = write_yaml(tmp_path / "sources.yaml", {
            "sources": {
                "portal": {
                    "label": "Portal",
                    "url": "https://${PORTAL_HOST}/list",
                    "base": "https://${PORTAL_HOST}",
                    "strategy": "${PORTAL_STRATEGY:-ukri}",
                }
            }
        })

        source = load_sources(path)["portal"]

        assert source.url == "https://portal.example.org/list"
        assert source.strategy is ExtractionStrategy.UKRI

    def test_invalid_source_raises(self, tmp_path):
        path = write_yaml(tmp_path / "sources.yaml", {"sources": {"bad": {"label": "Bad", "url": "ftp://x"}}})
        with pytest.raises(ConfigError) as exc_info:
            load_sources(path)
        assert exc_info.value.path == path
        assert exc_info.value.details

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "sources.yaml"
        path.write_text("sources: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_sources(path)


class TestValidateSourcesFile:
    def test_valid_override(self, tmp_path):
        path = write_yaml(tmp_path / "sources.yaml", {"sources": {"ukri": {"enabled": False}}})
        assert validate_sources_file(path) == []

    def test_reports_field_errors(self, tmp_path):
        path = write_yaml(tmp_path / "sources.yaml", {"sources": {"bad": {"label": "Bad", "url": "http://x"}}})
        errors = validate_sources_file(path)
        assert any(error.startswith("bad.url") for error in errors)
        assert any(error.startswith("bad.base") for error in errors)

    def test_missing_file(self, tmp_path):
        assert validate_sources_file(tmp_path / "nope.yaml")[0].startswith("File not found")


class TestLoadTagRules:
    def test_defaults_without_file(self, tmp_path):
        assert load_tag_rules(tmp_path / "missing.yaml") == DEFAULT_TAG_RULES

    def test_order_and_single_keyword(self, tmp_path):
        path = tmp_path / "tags.yaml"
        path.write_text("zeta:\n  - alpha\nalpha: beta\n", encoding="utf-8")

        rules = load_tag_rules(path)

        assert list(rules) == ["zeta", "alpha"]
        assert rules["alpha"] == ["beta"]

    def test_non_list_rejected(self, tmp_path):
        path = tmp_path / "tags.yaml"
        path.write_text("it:\n  software: 1\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_tag_rules(path)


class TestLoadAppConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_app_config(tmp_path / "app.yaml")
        assert config.default_source == "contracts_finder"
        assert config.fetch.max_pages == 20
        assert config.fetch.max_attempts == 2

    def test_env_default_used(self, tmp_path, monkeypatch):
        monkeypatch.delenv("BIDFINDER_DATABASE_URL", raising=False)
        path = write_yaml(tmp_path / "app.yaml", {
            "database": {"url": "${BIDFINDER_DATABASE_URL:-sqlite:///fallback.db}"},
            "fetch": {"max_pages": 5},
        })

        config = load_app_config(path)

        assert config.database.url == "sqlite:///fallback.db"
        assert config.fetch.max_pages == 5

    def test_invalid_values(self, tmp_path):
        path = write_yaml(tmp_path / "app.yaml", {"fetch": {"max_attempts": 0}})
        with pytest.raises(ConfigError):
            load_app_config(path)
