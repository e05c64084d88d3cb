"""Fixtures that build real git repositories in a temp directory."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from gitchat.git.repository import GitRepository


def git(path: Path, *args: str) -> str:
    return subprocess.run(
        ["git", *args], cwd=path, check=True, capture_output=True, text=True
    ).stdout


@pytest.fixture
def git_dir(temp_dir) -> Path:
    """Initialized repository on main with one commit."""
    git(temp_dir, "init", "-q")
    git(temp_dir, "symbolic-ref", "HEAD", "refs/heads/main")
    git(temp_dir, "config", "user.name", "Test User")
    git(temp_dir, "config", "user.email", "test@example.com")
    git(temp_dir, "config", "commit.gpgsign", "false")
    (temp_dir / "app.py").write_text("def main():\n    return 1\n", encoding="utf-8")
    git(temp_dir, "add", ".")
    git(temp_dir, "commit", "-q", "-m", "Initial commit")
    return temp_dir


@pytest.fixture
def repo(git_dir) -> GitRepository:
    return GitRepository(str(git_dir))
