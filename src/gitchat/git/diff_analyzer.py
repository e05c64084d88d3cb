"""Structured analysis of unified diff output.

Splits ``git diff`` output into per-file blocks and classifies each file by
change type and importance so that the diff handler can show the most
relevant files first.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from gitchat.utils.logging import get_logger

logger = get_logger("git.diff_analyzer")

_ADDED_LINE = re.compile(r"^\+[^+]", re.MULTILINE)
_REMOVED_LINE = re.compile(r"^-[^-]", re.MULTILINE)
_FILE_PATHS = re.compile(r"a/(\S+)\s+b/(\S+)")
_BLOCK_SPLIT = re.compile(r"^diff --git", re.MULTILINE)

CRITICAL_FILES = (
    "package.json",
    "pyproject.toml",
    "setup.py",
    "tsconfig.json",
    "webpack.config",
    "dockerfile",
    ".env",
)


class FileStatus(Enum):
    """How a file appears in the diff."""
    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"
    RENAMED = "renamed"


class Importance(Enum):
    """Relative importance of a file change."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def weight(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


@dataclass
class FileDiff:
    """Analysis of one file in a diff."""
    path: str
    status: FileStatus
    additions: int
    deletions: int
    change_type: str
    importance: Importance

    @property
    def total_changes(self) -> int:
        return self.additions + self.deletions

    @property
    def summary(self) -> str:
        name = self.path.rsplit("/", 1)[-1]
        size = "major" if self.total_changes > 100 else "moderate" if self.total_changes > 20 else "minor"
        detail = f"{self.change_type}, +{self.additions}/-{self.deletions}, {size}"
        if self.status is FileStatus.ADDED:
            return f"Added {name} ({detail})"
        if self.status is FileStatus.DELETED:
            return f"Deleted {name}"
        if self.status is FileStatus.RENAMED:
            return f"Renamed {name}"
        return f"Modified {name} ({detail})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "path": self.path,
            "status": self.status.value,
            "additions": self.additions,
            "deletions": self.deletions,
            "change_type": self.change_type,
            "importance": self.importance.value,
            "summary": self.summary,
        }


@dataclass
class DiffSummary:
    """Aggregate analysis of a diff."""
    files: List[FileDiff] = field(default_factory=list)
    overall_type: str = "mixed"
    key_changes: List[str] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def total_additions(self) -> int:
        return sum(f.additions for f in self.files)

    @property
    def total_deletions(self) -> int:
        return sum(f.deletions for f in self.files)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_files": self.total_files,
            "total_additions": self.total_additions,
            "total_deletions": self.total_deletions,
            "overall_type": self.overall_type,
            "key_changes": self.key_changes,
            "files": [f.to_dict() for f in self.files],
        }


class DiffAnalyzer:
    """Analyze unified diff text.

    Example:
        >>> analyzer = DiffAnalyzer()
        >>> summary = analyzer.analyze(repo.diff())
        >>> print(analyzer.format_summary(summary))
    """

    def analyze(self, diff_output: str) -> DiffSummary:
        """Parse diff output into a sorted summary.

        Args:
            diff_output: Raw ``git diff`` text

        Returns:
            DiffSummary with files ordered by importance, then size
        """
        if not diff_output.strip():
            return DiffSummary(key_changes=["no_changes"])

        files = []
        for block in _BLOCK_SPLIT.split(diff_output):
            if not block.strip():
                continue
            parsed = self._parse_block(block)
            if parsed is not None:
                files.append(parsed)

        files.sort(key=lambda f: f.importance.weight * 10 + f.total_changes, reverse=True)
        summary = DiffSummary(
            files=files,
            overall_type=self._overall_type([f.change_type for f in files]),
            key_changes=self._key_changes(files),
        )
        logger.debug(
            "diff.analyzed",
            files=summary.total_files,
            additions=summary.total_additions,
            deletions=summary.total_deletions,
        )
        return summary

    def _parse_block(self, block: str) -> FileDiff | None:
        match = _FILE_PATHS.search(block)
        if not match:
            return None
        path = match.group(2) or match.group(1)

        additions = len(_ADDED_LINE.findall(block))
        deletions = len(_REMOVED_LINE.findall(block))

        status = FileStatus.MODIFIED
        if "new file mode" in block:
            status = FileStatus.ADDED
        elif "deleted file mode" in block:
            status = FileStatus.DELETED
        elif "rename from" in block:
            status = FileStatus.RENAMED

        change_type = self._change_type(path, block, additions, deletions)
        return FileDiff(
            path=path,
            status=status,
            additions=additions,
            deletions=deletions,
            change_type=change_type,
            importance=self._importance(path, additions + deletions, change_type),
        )

    @staticmethod
    def _change_type(path: str, block: str, additions: int, deletions: int) -> str:
        lower_path = path.lower()
        lower_block = block.lower()

        if (
            lower_path.endswith((".test.ts", ".test.tsx", "_test.py"))
            or "__tests__" in lower_path
            or lower_path.rsplit("/", 1)[-1].startswith("test_")
        ):
            return "test"
        if lower_path.endswith((".md", ".rst")) or "readme" in lower_path:
            return "docs"
        if lower_path.endswith((".css", ".scss", ".less")):
            return "style"

        if any(word in lower_block for word in ("fix", "bug", "error")):
            return "fix"
        if any(word in lower_block for word in ("add", "new", "implement")):
            return "feature"
        if any(word in lower_block for word in ("refactor", "reorganize", "restructure")):
            return "refactor"

        if additions > deletions * 2:
            return "feature"
        if deletions > additions * 2:
            return "cleanup"
        return "modification"

    @staticmethod
    def _importance(path: str, total: int, change_type: str) -> Importance:
        lower_path = path.lower()
        if any(critical in lower_path for critical in CRITICAL_FILES):
            return Importance.HIGH

        if "src/" in lower_path and "test" not in lower_path:
            if total > 50 or change_type == "feature":
                return Importance.HIGH
            if total > 10:
                return Importance.MEDIUM

        if change_type in ("test", "docs"):
            return Importance.MEDIUM if total > 30 else Importance.LOW
        return Importance.MEDIUM if total > 20 else Importance.LOW

    @staticmethod
    def _overall_type(change_types: List[str]) -> str:
        counts = Counter(change_types)
        if not counts or len(counts) > 3:
            return "mixed"
        dominant = counts.most_common(1)[0][0]
        return dominant if dominant in {"feature", "fix", "refactor", "docs", "test", "style"} else "mixed"

    @staticmethod
    def _key_changes(files: List[FileDiff]) -> List[str]:
        changes = []
        high = [f for f in files if f.importance is Importance.HIGH]
        if high:
            changes.append(f"high_importance_files_{len(high)}")
        added = [f for f in files if f.status is FileStatus.ADDED]
        if added:
            changes.append(f"added_files_{len(added)}")
        deleted = [f for f in files if f.status is FileStatus.DELETED]
        if deleted:
            changes.append(f"deleted_files_{len(deleted)}")
        large = [f for f in files if f.total_changes > 100]
        if large:
            changes.append(f"large_changes_{len(large)}_files_over_100_lines")
        return changes or ["general_code_modifications"]

    def format_summary(self, summary: DiffSummary) -> str:
        """Render a compact, human-readable summary."""
        if not summary.files:
            return "No changes"

        lines = [
            f"📝 {summary.total_files} files changed, "
            f"+{summary.total_additions}, -{summary.total_deletions}",
            "",
        ]
        for f in summary.files:
            if f.total_changes > 50:
                icon = "🔥"
            elif f.total_changes > 10:
                icon = "📝"
            else:
                icon = "✏️"
            lines.append(f"{icon} **{f.path}** ({f.change_type}) +{f.additions}/-{f.deletions}")
        return "\n".join(lines)
