"""Parameter extraction for branch, remote, stash and undo requests.

Each sub-parser asks the model for a small JSON object ``{action, target}``
drawn from that kind's action set. Malformed JSON, an unknown action or an
unreachable model silently falls back to regex extraction.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Pattern, Tuple

from gitchat.agent.models import OperationKind
from gitchat.llm.fallback import Resolution, ResolutionSource, resolve_with_fallback
from gitchat.llm.providers import ModelClient
from gitchat.utils.logging import get_logger

logger = get_logger("agent.sub_parsers")

FILLER_WORDS = frozenset({
    "my", "the", "a", "an", "this", "that", "branch", "called", "named", "new", "to",
})

_FILLER = r"(?:(?:my|the|a|an|this|that|branch|called|named|new)\s+)*"
_NAME = r"([\w./-]+)"
_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_JSON_OBJECT = re.compile(r"\{.*?\}", re.DOTALL)
_STASH_REF = re.compile(r"stash@\{\d+\}")
_COMMIT_HASH = re.compile(r"\b(?=[0-9a-f]*\d)[0-9a-f]{7,40}\b")
_QUOTED = re.compile(r"[\"'`]([^\"'`]+)[\"'`]")

_PLACEHOLDER_TARGETS = frozenset({
    "", "none", "null", "branch_name_if_specified", "target", "<branch-name>",
})


@dataclass(frozen=True)
class ParsedAction:
    """Structured parameters of a request."""
    action: str
    target: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        """Convert to dictionary."""
        return {"action": self.action, "target": self.target}


def extract_json(reply: str) -> Optional[Dict[str, Any]]:
    """Parse the first JSON object in a model reply, tolerating code fences."""
    text = _CODE_FENCE.sub("", reply.strip())
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        match = _JSON_OBJECT.search(text)
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def _clean_target(target: Optional[str]) -> Optional[str]:
    if target is None:
        return None
    target = target.strip().strip("\"'`").rstrip(".,!?")
    if target.lower() in FILLER_WORDS or target.lower() in _PLACEHOLDER_TARGETS:
        return None
    return target


def _earliest(text: str, rules: List[Tuple[str, Pattern[str]]]) -> Optional[Tuple[str, "re.Match[str]"]]:
    """Return the action whose pattern matches earliest in the text."""
    best = None
    for action, pattern in rules:
        match = pattern.search(text)
        if match and (best is None or match.start() < best[1].start()):
            best = (action, match)
    return best


class SubParser:
    """Base for the per-kind extractors.

    Subclasses define the action set, the prompt examples and the regex
    fallback. ``parse()`` always returns a valid action.
    """

    kind: OperationKind
    actions: Tuple[str, ...] = ()
    default_action: str = ""
    examples: str = ""
    target_hint: str = "target_if_specified"

    def build_prompt(self, text: str) -> str:
        return f"""Analyze the git {self.kind.value} operation request and return ONLY a JSON object:

{{
  "action": "{'|'.join(self.actions)}",
  "target": "{self.target_hint}"
}}

User input: "{text}"

Examples:
{self.examples}

Return ONLY the JSON object."""

    async def parse(self, text: str, model: Optional[ModelClient]) -> Resolution[ParsedAction]:
        """Extract ``{action, target}`` from the request text.

        Args:
            text: Request text without any mode prefix
            model: Model client, or None to use the fallback directly

        Returns:
            Resolution with a ParsedAction whose action is in the action set
        """
        if model is None:
            return Resolution(self.fallback(text), ResolutionSource.FALLBACK)

        async def ask_model() -> Optional[ParsedAction]:
            reply = await model.classify(self.build_prompt(text))
            return self.validate(extract_json(reply))

        resolution = await resolve_with_fallback(
            ask_model, lambda: self.fallback(text), name=f"{self.kind.value}_action"
        )
        logger.debug(
            "sub_parser.parsed",
            kind=self.kind.value,
            action=resolution.value.action,
            target=resolution.value.target,
            source=resolution.source.value,
        )
        return resolution

    def validate(self, data: Optional[Dict[str, Any]]) -> Optional[ParsedAction]:
        """Check a decoded model reply, or return None."""
        if not data:
            return None
        action = str(data.get("action") or "").strip().lower().replace(" ", "_")
        if action not in self.actions:
            return None
        target = data.get("target")
        if target is not None and not isinstance(target, str):
            return None
        return ParsedAction(action, self.validate_target(action, _clean_target(target)))

    def validate_target(self, action: str, target: Optional[str]) -> Optional[str]:
        return target

    def fallback(self, text: str) -> ParsedAction:
        raise NotImplementedError


class BranchParser(SubParser):
    """Branch list/create/switch/delete/merge."""

    kind = OperationKind.BRANCH
    actions = ("list", "create", "switch", "delete", "merge")
    default_action = "list"
    target_hint = "branch_name_if_specified"
    examples = """- "list branches" -> {"action": "list"}
- "create branch feature" -> {"action": "create", "target": "feature"}
- "switch to main" -> {"action": "switch", "target": "main"}
- "delete old-branch" -> {"action": "delete", "target": "old-branch"}
- "merge feature into current branch" -> {"action": "merge", "target": "feature"}"""

    RULES: List[Tuple[str, Pattern[str]]] = [
        ("create", re.compile(r"\b(?:create|make|new)\s+" + _FILLER + _NAME, re.IGNORECASE)),
        ("switch", re.compile(r"\b(?:switch|checkout|check out)\s+(?:to\s+)?" + _FILLER + _NAME, re.IGNORECASE)),
        ("delete", re.compile(r"\b(?:delete|remove)\s+" + _FILLER + _NAME, re.IGNORECASE)),
        ("merge", re.compile(r"\bmerge\s+(?:in\s+)?" + _FILLER + _NAME, re.IGNORECASE)),
    ]

    VERBS: List[Tuple[str, Pattern[str]]] = [
        ("create", re.compile(r"\b(?:create|make|new)\b", re.IGNORECASE)),
        ("switch", re.compile(r"\b(?:switch|checkout|check out)\b", re.IGNORECASE)),
        ("delete", re.compile(r"\b(?:delete|remove)\b", re.IGNORECASE)),
        ("merge", re.compile(r"\bmerge\b", re.IGNORECASE)),
    ]

    def validate_target(self, action: str, target: Optional[str]) -> Optional[str]:
        if target and not re.fullmatch(r"[\w./-]+", target):
            return None
        return target

    def fallback(self, text: str) -> ParsedAction:
        found = _earliest(text, self.RULES)
        if found:
            action, match = found
            return ParsedAction(action, _clean_target(match.group(1)))

        # A verb without a usable name
        verb = _earliest(text, self.VERBS)
        if verb:
            return ParsedAction(verb[0])
        return ParsedAction(self.default_action)


class RemoteParser(SubParser):
    """Remote status/push/pull/fetch."""

    kind = OperationKind.REMOTE
    actions = ("status", "push", "pull", "fetch")
    default_action = "status"
    target_hint = "remote_name_if_specified"
    examples = """- "show remotes" -> {"action": "status"}
- "push my changes" -> {"action": "push"}
- "pull latest" -> {"action": "pull"}
- "fetch from origin" -> {"action": "fetch", "target": "origin"}"""

    RULES: List[Tuple[str, Pattern[str]]] = [
        ("push", re.compile(r"\bpush(?:ed|ing)?\b")),
        ("pull", re.compile(r"\bpull(?:ed|ing)?\b")),
        ("fetch", re.compile(r"\bfetch(?:ed|ing)?\b")),
    ]

    def fallback(self, text: str) -> ParsedAction:
        found = _earliest(text.lower(), self.RULES)
        return ParsedAction(found[0] if found else self.default_action)


class StashParser(SubParser):
    """Stash list/save/pop/apply/drop/clear."""

    kind = OperationKind.STASH
    actions = ("list", "save", "pop", "apply", "drop", "clear")
    default_action = "list"
    target_hint = "message_or_stash_ref_if_specified"
    examples = """- "show my stashes" -> {"action": "list"}
- "stash my work" -> {"action": "save"}
- "stash changes as \\"wip login\\"" -> {"action": "save", "target": "wip login"}
- "pop the stash" -> {"action": "pop"}
- "apply stash@{1}" -> {"action": "apply", "target": "stash@{1}"}
- "drop stash@{0}" -> {"action": "drop", "target": "stash@{0}"}
- "clear all stashes" -> {"action": "clear"}"""

    _SAVE = re.compile(
        r"\bsave\b|\bstash\s+(?:my|the|these|current|all|everything|changes|work)\b"
    )

    def validate_target(self, action: str, target: Optional[str]) -> Optional[str]:
        if action in ("pop", "apply", "drop"):
            return target if target and _STASH_REF.fullmatch(target) else None
        if action == "save":
            return target
        return None

    def fallback(self, text: str) -> ParsedAction:
        lower = text.lower()
        ref_match = _STASH_REF.search(lower)
        ref = ref_match.group(0) if ref_match else None

        if re.search(r"\bclear\b", lower) or (
            re.search(r"\b(?:drop|delete|remove)\b", lower) and re.search(r"\ball\b", lower)
        ):
            return ParsedAction("clear")
        if re.search(r"\bpop\b", lower):
            return ParsedAction("pop", ref)
        if re.search(r"\b(?:apply|restore)\b", lower):
            return ParsedAction("apply", ref)
        if re.search(r"\b(?:drop|delete|remove)\b", lower):
            return ParsedAction("drop", ref)
        if self._SAVE.search(lower):
            quoted = _QUOTED.search(text)
            return ParsedAction("save", quoted.group(1).strip() if quoted else None)
        return ParsedAction(self.default_action)


class UndoParser(SubParser):
    """Undo options/uncommitted/last_commit/commit/merge/push."""

    kind = OperationKind.UNDO
    actions = ("options", "uncommitted", "last_commit", "commit", "merge", "push")
    default_action = "options"
    target_hint = "commit_hash_if_specified"
    examples = """- "what can I undo" -> {"action": "options"}
- "undo my uncommitted changes" -> {"action": "uncommitted"}
- "undo last commit" -> {"action": "last_commit"}
- "revert commit a1b2c3d" -> {"action": "commit", "target": "a1b2c3d"}
- "undo the merge" -> {"action": "merge"}
- "undo my push" -> {"action": "push"}"""

    def validate_target(self, action: str, target: Optional[str]) -> Optional[str]:
        if target and _COMMIT_HASH.fullmatch(target.lower()):
            return target.lower()
        return None

    def validate(self, data: Optional[Dict[str, Any]]) -> Optional[ParsedAction]:
        parsed = super().validate(data)
        # Reverting a specific commit needs a valid hash
        if parsed is not None and parsed.action == "commit" and parsed.target is None:
            return None
        return parsed

    def fallback(self, text: str) -> ParsedAction:
        lower = text.lower()
        hash_match = _COMMIT_HASH.search(lower)
        if hash_match:
            return ParsedAction("commit", hash_match.group(0))
        if re.search(r"\b(?:last|latest|recent|previous)\s+commit\b", lower):
            return ParsedAction("last_commit")
        if "merge" in lower:
            return ParsedAction("merge")
        if re.search(r"\bpush", lower):
            return ParsedAction("push")
        if re.search(r"\b(?:uncommitted|changes?|modifications?|edits?)\b", lower):
            return ParsedAction("uncommitted")
        if re.search(r"\bcommit\b", lower):
            return ParsedAction("last_commit")
        return ParsedAction(self.default_action)


SUB_PARSERS: Dict[OperationKind, SubParser] = {
    OperationKind.BRANCH: BranchParser(),
    OperationKind.REMOTE: RemoteParser(),
    OperationKind.STASH: StashParser(),
    OperationKind.UNDO: UndoParser(),
}
