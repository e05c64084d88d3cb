"""Configuration system for gitchat.

Implements layered configuration with the following priority (high → low):
1) CLI overrides (explicit flags)
2) Environment variables (prefix: GITCHAT_)
3) User config file (~/.gitchat/config.yaml)
4) Project config file (./gitchat.yaml)
5) Default config file (configs/default.yaml)
6) Built-in defaults (fallback)
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from gitchat.config.defaults import (
    DEFAULT_CONFIG,
    DEFAULT_CONFIG_RELATIVE_PATH,
    ENV_PREFIX,
    PROJECT_CONFIG_FILENAME,
    PROVIDER_DEFAULTS,
    USER_CONFIG_PATH,
)


class GeneralSettings(BaseModel):
    verbosity: str = Field(default="warning")
    output_format: str = Field(default="text")
    color_enabled: bool = Field(default=True)


class LLMSettings(BaseModel):
    provider: Literal["ollama", "lmstudio"] = Field(default="ollama")
    model: str = Field(default="")
    base_url: str = Field(default="")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4096, gt=0)
    timeout_seconds: float = Field(default=120.0, gt=0)
    streaming: bool = Field(default=True)

    @property
    def effective_model(self) -> str:
        return self.model or PROVIDER_DEFAULTS[self.provider]["model"]

    @property
    def effective_base_url(self) -> str:
        return (self.base_url or PROVIDER_DEFAULTS[self.provider]["base_url"]).rstrip("/")


class GitSettings(BaseModel):
    working_directory: str = Field(default="")
    command_timeout_seconds: float = Field(default=30.0, gt=0)
    review_max_files: int = Field(default=3, ge=1)


class StreamingSettings(BaseModel):
    chunk_size: int = Field(default=8, ge=1)
    chunk_delay_ms: int = Field(default=25, ge=0)


class RoutingSettings(BaseModel):
    use_workflows: bool = Field(default=True)
    confirmation_marker: str = Field(default="Confirmation Required", min_length=1)


class Settings(BaseModel):
    general: GeneralSettings
    llm: LLMSettings
    git: GitSettings
    streaming: StreamingSettings
    routing: RoutingSettings

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        return cls.model_validate(data)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base, returning a new dict."""

    result = {**base}
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - unlikely with safe_load
        raise ValueError(f"Failed to parse YAML config at {path}: {exc}") from exc


def _ensure_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _parse_scalar(value: str) -> Any:
    """Best-effort parsing for CLI/env string values."""

    trimmed = value.strip()
    # JSON covers numbers, booleans, null and quoted strings
    try:
        return json.loads(trimmed)
    except json.JSONDecodeError:
        pass

    lowered = trimmed.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered in {"none", "null"}:
        return None
    return trimmed


def _set_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    current = target
    for key in path[:-1]:
        current = current.setdefault(key, {})
    current[path[-1]] = value


def _get_nested(data: dict[str, Any], path: list[str]) -> Any:
    current: Any = data
    for key in path:
        if not isinstance(current, dict) or key not in current:
            raise KeyError(".".join(path))
        current = current[key]
    return current


class ConfigService:
    """Loads, merges, and persists gitchat configuration."""

    def __init__(self, env_prefix: str = ENV_PREFIX, root_dir: Path | None = None):
        self.env_prefix = env_prefix
        self.root_dir = root_dir or Path.cwd()
        self.default_config_path = self.root_dir / DEFAULT_CONFIG_RELATIVE_PATH
        self.project_config_path = self.root_dir / PROJECT_CONFIG_FILENAME
        self.user_config_path = USER_CONFIG_PATH

    def load(self, cli_overrides: dict[str, Any] | None = None) -> Settings:
        data = DEFAULT_CONFIG

        file_chain = [
            self.default_config_path,
            self.project_config_path,
            self.user_config_path,
        ]

        for path in file_chain:
            data = _deep_merge(data, _load_yaml(path))

        data = _deep_merge(data, self._env_overrides())
        if cli_overrides:
            data = _deep_merge(data, cli_overrides)

        try:
            return Settings.from_dict(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid configuration: {exc}") from exc

    def save(self, settings: Settings, scope: Literal["user", "project"] = "user") -> Path:
        target = self.user_config_path if scope == "user" else self.project_config_path
        _ensure_dir(target)
        with target.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(settings.model_dump(), handle, sort_keys=False)
        return target

    def set_value(
        self, key_path: str, value: Any, scope: Literal["user", "project"] = "user"
    ) -> Path:
        target = self.user_config_path if scope == "user" else self.project_config_path
        current_data = _load_yaml(target)
        parts = self._normalize_key_path(key_path)
        _set_nested(current_data, parts, value)
        _ensure_dir(target)
        with target.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(current_data, handle, sort_keys=False)
        return target

    def get_value(self, key_path: str, cli_overrides: dict[str, Any] | None = None) -> Any:
        data = self.load(cli_overrides=cli_overrides).model_dump()
        parts = self._normalize_key_path(key_path)
        return _get_nested(data, parts)

    def reset(self, scope: Literal["user", "project"] = "user") -> None:
        target = self.user_config_path if scope == "user" else self.project_config_path
        if target.exists():
            target.unlink()

    def _env_overrides(self) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        prefix = f"{self.env_prefix}_"
        for key, raw_value in os.environ.items():
            if not key.startswith(prefix):
                continue
            path_part = key[len(prefix) :]
            path_segments = self._normalize_env_key(path_part)
            if len(path_segments) < 2:
                continue
            _set_nested(overrides, path_segments, _parse_scalar(raw_value))
        return overrides

    def _normalize_env_key(self, key: str) -> list[str]:
        # GITCHAT_LLM__BASE_URL and GITCHAT_LLM_BASE_URL both map to llm.base_url
        if "__" in key:
            segments = key.split("__")
        else:
            section, _, rest = key.partition("_")
            segments = [section, rest]
        return [segment.lower() for segment in segments if segment]

    def _normalize_key_path(self, key_path: str) -> list[str]:
        if not key_path:
            raise ValueError("Key path cannot be empty")
        return [segment.strip() for segment in key_path.split(".") if segment.strip()]


config_service = ConfigService()


# Convenience singleton for global settings access
_cached_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _cached_settings
    if _cached_settings is None:
        _cached_settings = config_service.load()
    return _cached_settings


def reload_settings() -> Settings:
    """Reload settings from configuration sources."""
    global _cached_settings
    _cached_settings = config_service.load()
    return _cached_settings
