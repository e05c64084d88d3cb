"""Intent classification and operation resolution.

Two classification points, each model-first with a deterministic fallback:
- IntentClassifier: on-topic (git) vs off-topic (general chat)
- OperationResolver: one of the eight operation kinds

Both keep the pipeline fully operable when the model is unreachable.
"""

from __future__ import annotations

import re
from typing import Optional

from gitchat.agent.models import OperationKind, WorkflowType
from gitchat.llm.fallback import Resolution, resolve_with_fallback
from gitchat.llm.providers import ModelClient
from gitchat.utils.logging import get_logger

logger = get_logger("agent.classifier")

INTENT_PROMPT = """You are an intelligent workflow classifier for gitchat, a git assistant.

Analyze the user's request and determine which workflow is most appropriate.

User input: "{text}"

Available workflows:

**git-analysis**: All git operations and repository requests
- Repository status, file changes, branch, remote, stash, commit, undo and code review requests
- Examples: "git status", "show changes", "help me stash", "create branch", "push changes", "commit my changes"

**general-chat**: Questions unrelated to git or code development
- Examples: weather, cooking, general knowledge questions

Instructions:
- If it's related to git, version control, repository operations or code review -> git-analysis
- If it's unrelated to development -> general-chat

Respond with ONLY: git-analysis or general-chat"""

OPERATION_PROMPT = """Analyze the git operation request and return ONLY the operation type:

User input: "{text}"

Return ONE of: status, diff, commit, branch, remote, stash, undo, review

Examples:
- "git status" -> status
- "show changes" -> diff
- "commit my changes" -> commit
- "create branch" -> branch
- "push changes" -> remote
- "stash my work" -> stash
- "undo last commit" -> undo
- "revert changes" -> undo
- "review my code" -> review

Return ONLY the operation type, no other text."""

# Ordered keyword fallback; the first matching rule wins
OPERATION_KEYWORDS = (
    (re.compile(r"undo|revert|rollback"), OperationKind.UNDO),
    (re.compile(r"diff|change"), OperationKind.DIFF),
    (re.compile(r"commit"), OperationKind.COMMIT),
    (re.compile(r"branch"), OperationKind.BRANCH),
    (re.compile(r"push|pull|fetch|remote"), OperationKind.REMOTE),
    (re.compile(r"stash"), OperationKind.STASH),
    (re.compile(r"review|analyze"), OperationKind.REVIEW),
)

_KIND_WORD = re.compile(r"\b(" + "|".join(OperationKind.values()) + r")\b")


def keyword_intent(text: str) -> WorkflowType:
    """Deterministic intent fallback: always on-topic.

    The off-topic branch is a static redirect, so misrouting a real request
    there would block the user.
    """
    logger.debug("classifier.keyword_intent", text=text)
    return WorkflowType.GIT_ANALYSIS


def keyword_operation(text: str) -> OperationKind:
    """Deterministic operation fallback, defaulting to status."""
    lower = text.lower()
    for pattern, kind in OPERATION_KEYWORDS:
        if pattern.search(lower):
            return kind
    return OperationKind.STATUS


def parse_intent_reply(reply: str) -> Optional[WorkflowType]:
    """Return the label named by an unambiguous reply, else None."""
    content = reply.lower().strip()
    on_topic = "git-analysis" in content
    off_topic = "general-chat" in content
    if off_topic and not on_topic:
        return WorkflowType.GENERAL_CHAT
    if on_topic and not off_topic:
        return WorkflowType.GIT_ANALYSIS
    return None


def parse_operation_reply(reply: str) -> Optional[OperationKind]:
    """Validate a reply against the closed set of operation kinds."""
    content = reply.lower().strip().strip("`'\".")
    if content in OperationKind.values():
        return OperationKind(content)
    found = set(_KIND_WORD.findall(content))
    if len(found) == 1:
        return OperationKind(found.pop())
    return None


class IntentClassifier:
    """Classify requests as git-related or off-topic.

    Example:
        >>> classifier = IntentClassifier(model)
        >>> resolution = await classifier.classify("what's the weather today")
        >>> resolution.value
        <WorkflowType.GENERAL_CHAT: 'general-chat'>
    """

    def __init__(self, model: ModelClient):
        self.model = model

    async def classify(self, text: str) -> Resolution[WorkflowType]:
        async def ask_model() -> Optional[WorkflowType]:
            reply = await self.model.classify(INTENT_PROMPT.format(text=text))
            return parse_intent_reply(reply)

        resolution = await resolve_with_fallback(
            ask_model,
            lambda: keyword_intent(text),
            name="intent",
        )
        logger.debug(
            "router.classified",
            workflow_type=resolution.value.value,
            source=resolution.source.value,
        )
        return resolution


class OperationResolver:
    """Resolve on-topic text to one operation kind.

    Example:
        >>> resolver = OperationResolver(model)
        >>> (await resolver.resolve("undo last commit")).value
        <OperationKind.UNDO: 'undo'>
    """

    def __init__(self, model: ModelClient):
        self.model = model

    async def resolve(self, text: str) -> Resolution[OperationKind]:
        async def ask_model() -> Optional[OperationKind]:
            reply = await self.model.classify(OPERATION_PROMPT.format(text=text))
            return parse_operation_reply(reply)

        resolution = await resolve_with_fallback(
            ask_model,
            lambda: keyword_operation(text),
            name="operation",
        )
        logger.debug(
            "router.resolved",
            operation=resolution.value.value,
            source=resolution.source.value,
        )
        return resolution
