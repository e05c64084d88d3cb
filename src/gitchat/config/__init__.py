"""
Configuration module for gitchat.

This module provides layered configuration management:
- Layered configuration loading (CLI > env > user > project > defaults)
- Pydantic-based settings validation
- Per-provider model and endpoint defaults
"""

from gitchat.config.defaults import (
    DEFAULT_CONFIG,
    DEFAULT_CONFIG_RELATIVE_PATH,
    ENV_PREFIX,
    PROJECT_CONFIG_FILENAME,
    PROVIDER_DEFAULTS,
    USER_CONFIG_PATH,
)
from gitchat.config.settings import (
    ConfigService,
    GeneralSettings,
    GitSettings,
    LLMSettings,
    RoutingSettings,
    Settings,
    StreamingSettings,
    config_service,
    get_settings,
    reload_settings,
)

__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_RELATIVE_PATH",
    "ENV_PREFIX",
    "PROJECT_CONFIG_FILENAME",
    "PROVIDER_DEFAULTS",
    "USER_CONFIG_PATH",
    "ConfigService",
    "GeneralSettings",
    "GitSettings",
    "LLMSettings",
    "RoutingSettings",
    "Settings",
    "StreamingSettings",
    "config_service",
    "get_settings",
    "reload_settings",
]
