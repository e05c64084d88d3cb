"""CLI fixtures: an isolated config service and a Typer runner."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from gitchat.config.settings import config_service


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(temp_dir, monkeypatch):
    """Point the global config service at a temp directory."""
    monkeypatch.setattr(config_service, "root_dir", temp_dir)
    monkeypatch.setattr(config_service, "default_config_path", temp_dir / "configs" / "default.yaml")
    monkeypatch.setattr(config_service, "project_config_path", temp_dir / "gitchat.yaml")
    monkeypatch.setattr(config_service, "user_config_path", temp_dir / "home" / "config.yaml")
    return temp_dir
