"""Tests for the CLI entry point and config command."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from pagetap.cli.main import app
from pagetap.core.config import DEFAULT_CONFIG_FILENAME

runner = CliRunner()


@pytest.fixture(autouse=True)
def empty_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "pagetap 0.1.0" in result.output


def test_config_show_defaults() -> None:
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    data = yaml.safe_load(result.output)
    assert data["session"]["timeout"] == 10000
    assert data["driver"]["browser"] == "chromium"


def test_config_show_file(tmp_path: Path) -> None:
    path = tmp_path / DEFAULT_CONFIG_FILENAME
    path.write_text(yaml.dump({"session": {"base_url": "https://github.com"}}), encoding="utf-8")
    result = runner.invoke(app, ["config", "show", "--config", str(path)])
    assert result.exit_code == 0
    assert "https://github.com" in result.output


def test_config_show_bad_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["config", "show", "--config", str(tmp_path / "nope.yaml")])
    assert result.exit_code == 1
    assert "Error" in result.output
