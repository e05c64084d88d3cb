"""
Unit tests for the configuration system.

Tests for:
- Settings models and validation
- ConfigService layering (CLI > ENV > User > Project > Default)
- Persisting and reading single values
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from gitchat.config.defaults import DEFAULT_CONFIG
from gitchat.config.settings import (
    ConfigService,
    LLMSettings,
    Settings,
    _deep_merge,
    _parse_scalar,
)


@pytest.fixture
def service(temp_dir) -> ConfigService:
    """ConfigService isolated in a temp directory."""
    svc = ConfigService(root_dir=temp_dir)
    svc.user_config_path = temp_dir / "home" / "config.yaml"
    return svc


def write_yaml(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data), encoding="utf-8")


# =============================================================================
# MODELS
# =============================================================================

class TestSettingsModels:
    """Tests for the pydantic models."""

    @pytest.mark.unit
    def test_defaults_validate(self):
        """The built-in tree is a valid configuration."""
        settings = Settings.from_dict(DEFAULT_CONFIG)
        assert settings.streaming.chunk_size == 8
        assert settings.routing.confirmation_marker == "Confirmation Required"

    @pytest.mark.unit
    def test_effective_llm_values(self):
        """Empty model and URL resolve to provider defaults."""
        llm = LLMSettings(provider="lmstudio")
        assert llm.effective_model == "openai/gpt-oss-20b"
        assert llm.effective_base_url == "http://localhost:1234/v1"

    @pytest.mark.unit
    def test_unknown_provider_rejected(self, service):
        """Invalid values raise a ValueError from load()."""
        with pytest.raises(ValueError, match="Invalid configuration"):
            service.load({"llm": {"provider": "openai"}})

    @pytest.mark.unit
    def test_chunk_size_must_be_positive(self, service):
        with pytest.raises(ValueError):
            service.load({"streaming": {"chunk_size": 0}})


# =============================================================================
# LAYERING
# =============================================================================

class TestConfigLayering:
    """Tests for source priority."""

    @pytest.mark.unit
    def test_builtin_defaults(self, service):
        settings = service.load()
        assert settings.llm.provider == "ollama"
        assert settings.git.review_max_files == 3

    @pytest.mark.unit
    def test_project_over_default_file(self, service, temp_dir):
        write_yaml(temp_dir / "configs" / "default.yaml", {"streaming": {"chunk_size": 4}})
        write_yaml(temp_dir / "gitchat.yaml", {"streaming": {"chunk_size": 12}})
        assert service.load().streaming.chunk_size == 12

    @pytest.mark.unit
    def test_user_over_project(self, service, temp_dir):
        write_yaml(temp_dir / "gitchat.yaml", {"llm": {"model": "project-model"}})
        write_yaml(service.user_config_path, {"llm": {"model": "user-model"}})
        assert service.load().llm.model == "user-model"

    @pytest.mark.unit
    def test_env_over_files(self, service):
        write_yaml(service.user_config_path, {"streaming": {"chunk_delay_ms": 10}})
        with patch.dict(os.environ, {"GITCHAT_STREAMING__CHUNK_DELAY_MS": "0"}):
            assert service.load().streaming.chunk_delay_ms == 0

    @pytest.mark.unit
    def test_single_underscore_env_key(self, service):
        with patch.dict(os.environ, {"GITCHAT_LLM_BASE_URL": "http://gpu:11434"}):
            assert service.load().llm.base_url == "http://gpu:11434"

    @pytest.mark.unit
    def test_cli_over_env(self, service):
        with patch.dict(os.environ, {"GITCHAT_LLM__PROVIDER": "lmstudio"}):
            settings = service.load({"llm": {"provider": "ollama"}})
        assert settings.llm.provider == "ollama"


# =============================================================================
# PERSISTENCE
# =============================================================================

class TestConfigPersistence:
    """Tests for set_value / get_value / reset."""

    @pytest.mark.unit
    def test_set_and_get(self, service):
        path = service.set_value("routing.use_workflows", False)
        assert path == service.user_config_path
        assert service.get_value("routing.use_workflows") is False

    @pytest.mark.unit
    def test_project_scope(self, service, temp_dir):
        service.set_value("git.review_max_files", 5, scope="project")
        assert yaml.safe_load((temp_dir / "gitchat.yaml").read_text())["git"]["review_max_files"] == 5

    @pytest.mark.unit
    def test_unknown_key(self, service):
        with pytest.raises(KeyError):
            service.get_value("llm.nope")

    @pytest.mark.unit
    def test_empty_key(self, service):
        with pytest.raises(ValueError):
            service.get_value("")

    @pytest.mark.unit
    def test_reset(self, service):
        service.set_value("streaming.chunk_size", 32)
        service.reset()
        assert not service.user_config_path.exists()
        assert service.load().streaming.chunk_size == 8

    @pytest.mark.unit
    def test_save_round_trip(self, service):
        settings = service.load({"llm": {"model": "phi3"}})
        service.save(settings)
        assert service.load().llm.model == "phi3"


# =============================================================================
# HELPERS
# =============================================================================

class TestHelpers:
    """Tests for merge and scalar parsing."""

    @pytest.mark.unit
    def test_deep_merge_does_not_mutate(self):
        base = {"a": {"b": 1, "c": 2}}
        merged = _deep_merge(base, {"a": {"b": 3}})
        assert merged == {"a": {"b": 3, "c": 2}}
        assert base == {"a": {"b": 1, "c": 2}}

    @pytest.mark.unit
    @pytest.mark.parametrize("raw,expected", [
        ("16", 16),
        ("0.5", 0.5),
        ("true", True),
        ("False", False),
        ("null", None),
        ("llama3.1:8b", "llama3.1:8b"),
    ])
    def test_parse_scalar(self, raw, expected):
        assert _parse_scalar(raw) == expected
