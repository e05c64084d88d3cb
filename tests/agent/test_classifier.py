"""Unit tests for intent classification and operation resolution.

Tests cover:
- Model replies for both classification points
- Deterministic keyword fallbacks
- Fallback on unreachable or ambiguous model replies
"""

from __future__ import annotations

import pytest

from gitchat.agent.classifier import (
    IntentClassifier,
    OperationResolver,
    keyword_intent,
    keyword_operation,
    parse_intent_reply,
    parse_operation_reply,
)
from gitchat.agent.models import OperationKind, WorkflowType
from gitchat.llm.fallback import ResolutionSource
from tests.fixtures.mock_agent import MockModelClient


# =============================================================================
# REPLY PARSING
# =============================================================================

class TestReplyParsing:
    """Tests for reply validation helpers."""

    def test_intent_labels(self):
        """Each label is recognised on its own."""
        assert parse_intent_reply("git-analysis") is WorkflowType.GIT_ANALYSIS
        assert parse_intent_reply(" General-Chat\n") is WorkflowType.GENERAL_CHAT

    @pytest.mark.parametrize("reply", ["", "maybe", "git-analysis or general-chat"])
    def test_intent_ambiguous(self, reply):
        """Neither or both labels is ambiguous."""
        assert parse_intent_reply(reply) is None

    @pytest.mark.parametrize("reply,expected", [
        ("undo", OperationKind.UNDO),
        ("`stash`", OperationKind.STASH),
        ("Operation: review.", OperationKind.REVIEW),
    ])
    def test_operation_reply(self, reply, expected):
        """Replies naming exactly one kind are accepted."""
        assert parse_operation_reply(reply) is expected

    @pytest.mark.parametrize("reply", ["rebase", "status or diff", ""])
    def test_operation_reply_invalid(self, reply):
        """Unknown or multiple kinds are rejected."""
        assert parse_operation_reply(reply) is None


# =============================================================================
# KEYWORD FALLBACKS
# =============================================================================

class TestKeywordFallbacks:
    """Tests for the deterministic fallbacks."""

    @pytest.mark.parametrize("text,expected", [
        ("undo last commit", OperationKind.UNDO),
        ("revert my changes", OperationKind.UNDO),
        ("rollback please", OperationKind.UNDO),
        ("show me the diff", OperationKind.DIFF),
        ("what changed", OperationKind.DIFF),
        ("commit my work", OperationKind.COMMIT),
        ("delete my old-feature branch", OperationKind.BRANCH),
        ("push to origin", OperationKind.REMOTE),
        ("fetch updates", OperationKind.REMOTE),
        ("stash my work", OperationKind.STASH),
        ("review my code", OperationKind.REVIEW),
        ("analyze this", OperationKind.REVIEW),
        ("git status", OperationKind.STATUS),
        ("hello there", OperationKind.STATUS),
    ])
    def test_keyword_operation(self, text, expected):
        """First matching rule wins, status otherwise."""
        assert keyword_operation(text) is expected

    def test_rule_order(self):
        """undo outranks commit, diff outranks remote."""
        assert keyword_operation("undo the commit") is OperationKind.UNDO
        assert keyword_operation("push my changes") is OperationKind.DIFF

    def test_keyword_intent_defaults_on_topic(self):
        """The fallback never routes to off-topic."""
        assert keyword_intent("what's the weather") is WorkflowType.GIT_ANALYSIS
        assert keyword_intent("git status") is WorkflowType.GIT_ANALYSIS


# =============================================================================
# INTENT CLASSIFIER
# =============================================================================

class TestIntentClassifier:
    """Tests for IntentClassifier."""

    @pytest.mark.asyncio
    async def test_model_off_topic(self):
        """A general-chat reply classifies as off-topic."""
        model = MockModelClient(replies={"intent": "general-chat"})
        resolution = await IntentClassifier(model).classify("what's the weather today")
        assert resolution.value is WorkflowType.GENERAL_CHAT
        assert resolution.source is ResolutionSource.MODEL

    @pytest.mark.asyncio
    async def test_unreachable_model_is_on_topic(self, offline_model):
        """Collaborator failure biases towards on-topic."""
        resolution = await IntentClassifier(offline_model).classify("what's the weather today")
        assert resolution.value is WorkflowType.GIT_ANALYSIS
        assert resolution.source is ResolutionSource.FALLBACK
        assert "model offline" in resolution.error

    @pytest.mark.asyncio
    async def test_ambiguous_reply_is_on_topic(self):
        """An unparseable reply falls back to the keyword scan."""
        model = MockModelClient(replies={"intent": "I am not sure"})
        resolution = await IntentClassifier(model).classify("tell me a joke")
        assert resolution.value is WorkflowType.GIT_ANALYSIS
        assert resolution.source is ResolutionSource.FALLBACK


# =============================================================================
# OPERATION RESOLVER
# =============================================================================

class TestOperationResolver:
    """Tests for OperationResolver."""

    @pytest.mark.asyncio
    async def test_model_reply_wins(self):
        """A valid model reply is used as-is."""
        model = MockModelClient(replies={"operation": "stash"})
        resolution = await OperationResolver(model).resolve("put my work aside")
        assert resolution.value is OperationKind.STASH
        assert resolution.from_model

    @pytest.mark.asyncio
    async def test_invalid_reply_falls_back(self):
        """A kind outside the catalog triggers the keyword scan."""
        model = MockModelClient(replies={"operation": "rebase"})
        resolution = await OperationResolver(model).resolve("undo last commit")
        assert resolution.value is OperationKind.UNDO
        assert resolution.source is ResolutionSource.FALLBACK

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", [
        "",
        "???",
        "delete my old-feature branch",
        "make it so",
        "EXECUTE: push",
        "what is the meaning of life",
    ])
    async def test_always_valid_and_deterministic(self, offline_model, text):
        """With the model down every input resolves to one fixed kind."""
        resolver = OperationResolver(offline_model)
        first = await resolver.resolve(text)
        second = await resolver.resolve(text)
        assert first.value in set(OperationKind)
        assert first.value is second.value
