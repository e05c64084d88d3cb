"""Agent-specific fixtures: routers and engines wired to mocks."""

from __future__ import annotations

import pytest

from gitchat.agent.router import WorkflowRouter
from gitchat.agent.streaming import ChatEngine


@pytest.fixture
def router(offline_model, mock_repo) -> WorkflowRouter:
    """Router whose model is unreachable, so every decision uses the fallbacks."""
    return WorkflowRouter(offline_model, mock_repo)


@pytest.fixture
def engine(offline_model, mock_repo) -> ChatEngine:
    """Engine with no typing delay."""
    return ChatEngine(offline_model, mock_repo, chunk_size=8, chunk_delay=0)
