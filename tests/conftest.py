"""Pytest configuration and shared fixtures.

Test Categories:
| Category | Focus                          | Tools                     |
| Unit     | Patterns, parsers, config      | pytest                    |
| Agent    | Routing, gate, handlers        | pytest-asyncio, mock      |
| Git      | Repository collaborator        | pytest, real git repos    |
| CLI      | Typer commands                 | typer CliRunner           |
"""

from __future__ import annotations

import shutil
from collections.abc import Generator
from pathlib import Path

import pytest

from gitchat.agent.confirmation import ConfirmationGate
from tests.fixtures.mock_agent import (
    MockModelClient,
    create_mock_repository,
)

# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Tests that run real git commands")
    config.addinivalue_line("markers", "requires_git: Tests needing the git executable")


def pytest_collection_modifyitems(config, items):
    """Skip git-backed tests when git is not installed."""
    if shutil.which("git") is not None:
        return
    skip_git = pytest.mark.skip(reason="git executable not available")
    for item in items:
        if "requires_git" in item.keywords:
            item.add_marker(skip_git)


# =============================================================================
# COMMON FIXTURES
# =============================================================================


@pytest.fixture
def temp_dir(tmp_path) -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    yield tmp_path


@pytest.fixture
def offline_model() -> MockModelClient:
    """Model client that is always unreachable."""
    return MockModelClient(fail=True)


@pytest.fixture
def mock_repo():
    """Mock repository with a dirty working tree on main."""
    return create_mock_repository()


@pytest.fixture
def gate() -> ConfirmationGate:
    """Fresh confirmation gate."""
    return ConfirmationGate(gate_id="test-gate")
