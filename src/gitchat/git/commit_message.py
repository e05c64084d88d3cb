"""Conventional commit message generation for smart commits.

Messages come from three sources, in priority order:
1. A message the user quoted in the request
2. The language model (validated against the conventional format)
3. A deterministic heuristic over the staged diff
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from gitchat.llm.fallback import Resolution, ResolutionSource, resolve_with_fallback
from gitchat.llm.providers import ModelClient
from gitchat.utils.logging import get_logger

logger = get_logger("git.commit_message")

CONVENTIONAL_PATTERN = re.compile(
    r"^(?P<type>\w+)(?:\((?P<scope>[^)]+)\))?(?P<breaking>!)?: (?P<description>.+)$"
)

_QUOTED_MESSAGE = re.compile(r"""(?:^|\s)(?P<quote>["'`])(?P<message>[^"'`]{3,}?)(?P=quote)(?=\s|$|[.,!?])""")

_SCOPE_RULES = (
    (("src/components",), "components"),
    (("src/services",), "services"),
    (("src/tools",), "tools"),
    (("src/workflows",), "workflows"),
    (("test", "spec"), "tests"),
    (("config", ".json"), "config"),
    (("docs", ".md"), "docs"),
    (("src/api",), "api"),
    (("src/utils",), "utils"),
)

MAX_DIFF_CHARS = 3000


@dataclass
class FileChangeSet:
    """Files touched by a staged diff."""
    added: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)

    @property
    def all_files(self) -> List[str]:
        return self.added + self.modified + self.deleted


@dataclass
class CodePatterns:
    """Line-level signals found in a staged diff."""
    has_tests: bool = False
    has_docs: bool = False
    has_config: bool = False
    has_new_functions: bool = False
    has_fix_patterns: bool = False
    has_refactoring: bool = False
    has_type_changes: bool = False
    added_lines: int = 0
    removed_lines: int = 0


@dataclass
class CommitMessage:
    """Parsed conventional commit message."""
    type: str
    description: str
    scope: Optional[str] = None

    @property
    def header(self) -> str:
        scope = f"({self.scope})" if self.scope else ""
        return f"{self.type}{scope}: {self.description}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"type": self.type, "scope": self.scope, "description": self.description}

    @classmethod
    def parse(cls, text: str) -> Optional["CommitMessage"]:
        """Parse a conventional header, or return None."""
        match = CONVENTIONAL_PATTERN.match(text.strip())
        if not match:
            return None
        return cls(
            type=match.group("type"),
            scope=match.group("scope"),
            description=match.group("description").strip(),
        )


def extract_user_message(request: str) -> Optional[str]:
    """Return a commit message the user quoted in the request."""
    match = _QUOTED_MESSAGE.search(request)
    if match:
        return match.group("message").strip()
    return None


class CommitMessageGenerator:
    """Generate commit messages using the model or heuristics.

    Example:
        >>> generator = CommitMessageGenerator(model)
        >>> resolution = await generator.generate(staged_diff)
        >>> print(resolution.value)
    """

    def __init__(self, model: Optional[ModelClient] = None):
        """Initialize generator.

        Args:
            model: Optional model client for generated messages
        """
        self.model = model

    async def generate(self, diff: str, request: str = "") -> Resolution[str]:
        """Generate a commit message for a staged diff.

        Args:
            diff: Output of ``git diff --cached``
            request: The user's original request text

        Returns:
            Resolution with the message header
        """
        user_message = extract_user_message(request) if request else None
        if user_message:
            return Resolution(user_message, ResolutionSource.USER)

        if self.model is None:
            return Resolution(self.generate_heuristic(diff), ResolutionSource.FALLBACK)

        model = self.model

        async def ask_model() -> Optional[str]:
            reply = await model.generate(self._build_prompt(diff))
            # Keep the first non-empty line, stripped of code fences and quotes
            for line in reply.strip().strip("`").splitlines():
                line = line.strip().strip('"').strip("'")
                if line:
                    parsed = CommitMessage.parse(line)
                    return parsed.header if parsed else None
            return None

        return await resolve_with_fallback(
            ask_model,
            lambda: self.generate_heuristic(diff),
            name="commit_message",
        )

    def _build_prompt(self, diff: str) -> str:
        """Build prompt for the model."""
        files = self.analyze_file_changes(diff.splitlines()).all_files
        files_summary = "\n".join(f"- {p}" for p in files[:10])

        if len(diff) > MAX_DIFF_CHARS:
            diff = diff[:MAX_DIFF_CHARS] + "\n... (truncated)"

        return f"""Generate a conventional commit message for these changes.

Files changed:
{files_summary}

Diff:
```
{diff}
```

Format: type(scope): description

Where type is one of: feat, fix, docs, style, refactor, test, chore, perf, ci, build

Respond with ONLY the commit message, nothing else."""

    # =========================================================================
    # Heuristic generation
    # =========================================================================

    def generate_heuristic(self, diff: str) -> str:
        """Build a conventional commit header from diff signals."""
        lines = diff.splitlines()
        changes = self.analyze_file_changes(lines)
        patterns = self.analyze_code_patterns(lines)
        commit_type = self.determine_type(changes, patterns)

        message = CommitMessage(
            type=commit_type,
            scope=self.determine_scope(changes),
            description=self._describe(commit_type, changes, patterns),
        )
        logger.debug("commit_message.heuristic", message=message.header)
        return message.header

    @staticmethod
    def analyze_file_changes(lines: List[str]) -> FileChangeSet:
        changes = FileChangeSet()
        old_paths = {_strip_prefix(l[4:]) for l in lines if l.startswith("--- ") and "/dev/null" not in l}
        new_paths = {_strip_prefix(l[4:]) for l in lines if l.startswith("+++ ") and "/dev/null" not in l}

        for line in lines:
            if line.startswith("+++ ") and "/dev/null" not in line:
                path = _strip_prefix(line[4:])
                if path in changes.added or path in changes.modified:
                    continue
                if path in old_paths:
                    changes.modified.append(path)
                else:
                    changes.added.append(path)
            elif line.startswith("--- ") and "/dev/null" not in line:
                path = _strip_prefix(line[4:])
                if path not in new_paths and path not in changes.deleted:
                    changes.deleted.append(path)
        return changes

    @staticmethod
    def analyze_code_patterns(lines: List[str]) -> CodePatterns:
        patterns = CodePatterns()
        for line in lines:
            lower = line.lower()
            if line.startswith("+") and not line.startswith("+++"):
                patterns.added_lines += 1
            elif line.startswith("-") and not line.startswith("---"):
                patterns.removed_lines += 1

            if "test" in lower or "spec" in lower:
                patterns.has_tests = True
            if "readme" in lower or ".md" in lower or "doc" in lower:
                patterns.has_docs = True
            if any(k in lower for k in ("config", ".json", ".yml", ".yaml", ".toml", ".env")):
                patterns.has_config = True
            if line.startswith("+") and any(k in lower for k in ("function", "def ", "class ", "export")):
                patterns.has_new_functions = True
            if any(k in lower for k in ("fix", "bug", "error", "patch")):
                patterns.has_fix_patterns = True
            if any(k in lower for k in ("refactor", "rename", "move", "extract")):
                patterns.has_refactoring = True
            if any(k in lower for k in ("type", "interface", "enum")):
                patterns.has_type_changes = True
        return patterns

    @staticmethod
    def determine_type(changes: FileChangeSet, patterns: CodePatterns) -> str:
        # Priority order
        if patterns.has_fix_patterns:
            return "fix"
        if patterns.has_new_functions and changes.added:
            return "feat"
        if patterns.has_tests:
            return "test"
        if patterns.has_docs:
            return "docs"
        if patterns.has_config:
            return "config"
        if patterns.has_refactoring:
            return "refactor"
        if patterns.has_type_changes:
            return "types"
        if changes.added:
            return "feat"
        if changes.deleted:
            return "remove"
        if patterns.added_lines > patterns.removed_lines * 2:
            return "enhance"
        return "update"

    @staticmethod
    def determine_scope(changes: FileChangeSet) -> Optional[str]:
        files = changes.all_files
        for needles, scope in _SCOPE_RULES:
            if any(needle in f for f in files for needle in needles):
                return scope

        common = _common_directory(files)
        if common:
            return common.rsplit("/", 1)[-1] or None
        return None

    @staticmethod
    def _describe(commit_type: str, changes: FileChangeSet, patterns: CodePatterns) -> str:
        added = len(changes.added)
        modified = len(changes.modified)
        deleted = len(changes.deleted)

        if commit_type == "feat":
            if patterns.has_new_functions:
                return f"add new functionality with {added + modified} file changes"
            return f"add {added} new file{'' if added == 1 else 's'}"
        if commit_type == "remove":
            return f"remove {deleted} obsolete file{'' if deleted == 1 else 's'}"
        if commit_type == "enhance":
            return f"improve existing functionality with {patterns.added_lines} additions"
        if commit_type == "update":
            return f"update {modified} file{'' if modified == 1 else 's'} with improvements"
        return {
            "fix": "resolve issues and improve stability",
            "refactor": "improve code structure and maintainability",
            "test": "add and update tests for better coverage",
            "docs": "update documentation and improve clarity",
            "config": "update configuration and build settings",
            "types": "improve type definitions and interfaces",
        }[commit_type]


def _strip_prefix(path: str) -> str:
    path = path.strip()
    if path.startswith(("a/", "b/")):
        return path[2:]
    return path


def _common_directory(files: List[str]) -> str:
    if not files:
        return ""
    if len(files) == 1:
        return posixpath.dirname(files[0])

    split = [posixpath.dirname(f).split("/") for f in files]
    common: List[str] = []
    for parts in zip(*split):
        if all(part == parts[0] for part in parts):
            common.append(parts[0])
        else:
            break
    return "/".join(common)
