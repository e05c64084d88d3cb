"""Default configuration values and constants for configuration loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any

# Default configuration tree used when no files are present.
DEFAULT_CONFIG: dict[str, Any] = {
    "general": {
        "verbosity": "warning",
        "output_format": "text",
        "color_enabled": True,
    },
    "llm": {
        # "ollama" or "lmstudio"
        "provider": "ollama",
        # Empty means the provider default model
        "model": "",
        # Empty means the provider default endpoint
        "base_url": "",
        "temperature": 0.7,
        "max_tokens": 4096,
        "timeout_seconds": 120.0,
        "streaming": True,
    },
    "git": {
        # Empty means the current working directory
        "working_directory": "",
        "command_timeout_seconds": 30.0,
        "review_max_files": 3,
    },
    "streaming": {
        "chunk_size": 8,
        "chunk_delay_ms": 25,
    },
    "routing": {
        "use_workflows": True,
        "confirmation_marker": "Confirmation Required",
    },
}

# Per-provider defaults applied when llm.model / llm.base_url are empty.
PROVIDER_DEFAULTS: dict[str, dict[str, str]] = {
    "ollama": {
        "model": "llama3.1:8b",
        "base_url": "http://localhost:11434",
    },
    "lmstudio": {
        "model": "openai/gpt-oss-20b",
        "base_url": "http://localhost:1234/v1",
    },
}

ENV_PREFIX = "GITCHAT"
PROJECT_CONFIG_FILENAME = "gitchat.yaml"
USER_CONFIG_PATH = Path.home() / ".gitchat" / "config.yaml"
DEFAULT_CONFIG_RELATIVE_PATH = Path("configs") / "default.yaml"
