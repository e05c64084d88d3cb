"""Lexical patterns used before any model call.

Provides:
- Read-only request detection (bypasses the confirmation gate)
- ``EXECUTE:`` / ``SUGGEST:`` mode prefix parsing and rendering
- Decision reply recognition for pending confirmations
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from gitchat.agent.models import ConfirmationDecision, ExecutionMode

EXECUTE_PREFIX = "EXECUTE:"
SUGGEST_PREFIX = "SUGGEST:"

READ_ONLY_PREFIXES: List[str] = [
    "show",
    "list",
    "what",
    "which",
    "display",
    "view",
    "status",
    "diff",
    "changes",
    "give me",
    "tell me",
    "based on",
]

# Regex fragments; inflected forms count ("commits", "pushed", "merging")
MUTATING_VERBS: List[str] = [
    "create", "delete", "remove", "switch", "checkout", r"merg\w*",
    r"push\w*", r"pull\w*", r"fetch\w*", r"commit\w*", r"stash\w*", "pop", "apply",
    "drop", "clear", "undo", "revert", "reset", "rollback", "rebase",
    "make", "new",
]

_READ_ONLY_PATTERN = re.compile(
    r"^(?:git\s+)?(?:" + "|".join(re.escape(p) for p in READ_ONLY_PREFIXES) + r")\b",
    re.IGNORECASE,
)
_MUTATING_PATTERN = re.compile(
    r"\b(?:" + "|".join(MUTATING_VERBS) + r")\b",
    re.IGNORECASE,
)

# Inline replies to a confirmation carried in the history
HISTORY_DECISION_TOKENS = {
    "y": ConfirmationDecision.CONFIRMED,
    "yes": ConfirmationDecision.CONFIRMED,
    "n": ConfirmationDecision.DECLINED,
    "no": ConfirmationDecision.DECLINED,
}

# Replies to a pending descriptor held by the session
DECISION_PATTERNS: List[Tuple[str, ConfirmationDecision]] = [
    (r"^(?:yes|y|confirm)$", ConfirmationDecision.CONFIRMED),
    (r"^(?:no|n)$", ConfirmationDecision.DECLINED),
]


def is_read_only(text: str) -> bool:
    """Check whether a request only inspects repository state.

    A request is read-only when it starts with an inspection phrase
    ("show", "list", "what", "status", ...) and names no mutating verb.

    Args:
        text: Raw user text

    Returns:
        True if the request never needs confirmation
    """
    normalized = text.strip()
    if not normalized:
        return False
    if not _READ_ONLY_PATTERN.match(normalized):
        return False
    return _MUTATING_PATTERN.search(normalized) is None


def parse_execution_mode(text: str) -> Tuple[Optional[ExecutionMode], str]:
    """Split an optional mode prefix from the request.

    Returns:
        (mode, actual_text). mode is None when no prefix is present.
    """
    stripped = text.strip()
    if stripped.startswith(EXECUTE_PREFIX):
        return ExecutionMode.EXECUTE, stripped[len(EXECUTE_PREFIX):].strip()
    if stripped.startswith(SUGGEST_PREFIX):
        return ExecutionMode.SUGGEST, stripped[len(SUGGEST_PREFIX):].strip()
    return None, stripped


def build_resubmission(mode: ExecutionMode, text: str) -> str:
    """Render the prefixed request for a confirmed or declined operation."""
    if mode is ExecutionMode.EXECUTE:
        return f"{EXECUTE_PREFIX} {text}"
    if mode is ExecutionMode.SUGGEST:
        return f"{SUGGEST_PREFIX} {text}"
    raise ValueError(f"No resubmission prefix for mode: {mode.value}")


def history_decision(text: str) -> Optional[ConfirmationDecision]:
    """Map an exact y/yes/n/no reply to a decision."""
    return HISTORY_DECISION_TOKENS.get(text.strip().lower())


def parse_decision_reply(text: str) -> ConfirmationDecision:
    """Interpret a reply to a pending descriptor.

    Anything that is not an explicit yes or no cancels the operation.
    """
    normalized = text.strip().lower().rstrip(".!")
    for pattern, decision in DECISION_PATTERNS:
        if re.match(pattern, normalized):
            return decision
    return ConfirmationDecision.CANCELLED
