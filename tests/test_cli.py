"""Tests for the command line interface."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from bidfinder import __version__
from bidfinder.cli.common import open_store
from bidfinder.cli.main import app
from bidfinder.core.config import load_app_config
from bidfinder.persistence.db import dispose_engine

from bidfinder.core.extract import AwardDetails

from conftest import make_candidate


runner = CliRunner()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("BIDFINDER_DATABASE_URL", raising=False)
    dispose_engine()
    yield tmp_path
    dispose_engine()


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_writes_configuration(workdir):
    result = runner.invoke(app, ["init"])

    assert result.exit_code == 0, result.output
    assert (workdir / "configs" / "app.yaml").exists()
    assert (workdir / "configs" / "sources.yaml").exists()
    assert (workdir / "configs" / "tags.yaml").exists()
    assert (workdir / "data" / "bidfinder.db").exists()


def test_sources_validate(workdir):
    runner.invoke(app, ["init"])
    result = runner.invoke(app, ["sources", "--validate"])
    assert result.exit_code == 0, result.output
    assert "is valid" in result.output


def test_sources_validate_reports_problems(workdir):
    runner.invoke(app, ["init"])
    (workdir / "configs" / "sources.yaml").write_text(
        "sources:\n  broken:\n    label: Broken\n    url: http://insecure.example\n",
        encoding="utf-8",
    )
    result = runner.invoke(app, ["sources", "--validate"])
    assert result.exit_code == 1


def test_status_and_listing(workdir):
    runner.invoke(app, ["init"])

    result = runner.invoke(app, ["status"])
    assert result.exit_code == 0, result.output
    assert "Stored tenders: 0" in result.output
    assert "Stored awards: 0" in result.output

    with open_store(load_app_config("configs/app.yaml")) as store:
        store.insert_if_absent(make_candidate(tags=["it"]))

    result = runner.invoke(app, ["tenders", "list", "--tag", "it", "--format", "json"])
    assert result.exit_code == 0, result.output
    assert "Cloud hosting services" in result.output

    result = runner.invoke(app, ["tenders", "list", "--tag", "health"])
    assert "No tenders found" in result.output


def test_award_listing(workdir):
    runner.invoke(app, ["init"])

    result = runner.invoke(app, ["tenders", "awards"])
    assert result.exit_code == 0, result.output
    assert "No awards found" in result.output

    with open_store(load_app_config("configs/app.yaml")) as store:
        store.insert_award_if_absent(
            make_candidate(title="Waste collection services"),
            AwardDetails(buyer="Cardiff Council", value="£1,200,000"),
        )

    result = runner.invoke(app, ["tenders", "awards", "--format", "json"])
    assert result.exit_code == 0, result.output
    assert "Cardiff Council" in result.output

    result = runner.invoke(app, ["status"])
    assert "Stored awards: 1" in result.output


def test_sources_show_kind(workdir):
    runner.invoke(app, ["init"])
    result = runner.invoke(app, ["sources"])
    assert result.exit_code == 0, result.output
    assert "award" in result.output
