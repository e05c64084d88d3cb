"""Static review of modified code files.

Reviews the code files reported by ``git status`` with lightweight static
checks (debug output, TODO markers, loose typing, risky calls, size) and
renders a Markdown-style report.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import List

from gitchat.errors import RepositoryError
from gitchat.git.repository import FileChange, GitRepository
from gitchat.utils.logging import get_logger

logger = get_logger("git.code_review")

CODE_EXTENSIONS = frozenset({
    ".ts", ".tsx", ".js", ".jsx", ".py", ".java", ".cpp", ".c", ".h",
    ".go", ".rs", ".php", ".rb", ".swift",
})

_ADDED_LINE = re.compile(r"^\+[^+]", re.MULTILINE)
_REMOVED_LINE = re.compile(r"^-[^-]", re.MULTILINE)
_TODO = re.compile(r"TODO|FIXME")
_ANY_TYPE = re.compile(r": any\b")
_FUNCTION_LIKE = re.compile(r"function|const \w+ = |=>|\bdef ")


@dataclass
class FileReview:
    """Findings for a single file."""
    path: str
    line_count: int
    additions: int = 0
    deletions: int = 0
    has_diff: bool = False
    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    @property
    def extension(self) -> str:
        return PurePosixPath(self.path).suffix

    def render(self) -> str:
        text = f"📁 **{self.path}** ({self.extension}, {self.line_count} lines)\n\n"
        if self.has_diff:
            text += f"📈 **Changes**: +{self.additions} -{self.deletions} lines\n\n"
        if self.issues:
            text += "**🚨 Issues Found:**\n" + "\n".join(f"• {i}" for i in self.issues) + "\n\n"
        if self.suggestions:
            text += "**💡 Suggestions:**\n" + "\n".join(f"• {s}" for s in self.suggestions) + "\n\n"
        if not self.issues and not self.suggestions:
            text += "✅ **No issues found** - code looks good!\n\n"
        return text


def is_code_file(path: str) -> bool:
    if "node_modules" in path or ".git/" in path or path.startswith(".git"):
        return False
    return PurePosixPath(path).suffix.lower() in CODE_EXTENSIONS


class CodeReviewer:
    """Review modified code files in a repository.

    Example:
        >>> reviewer = CodeReviewer(GitRepository("."))
        >>> print(reviewer.review())
    """

    def __init__(self, repository: GitRepository, max_files: int = 3):
        self.repository = repository
        self.max_files = max_files

    def review(self) -> str:
        """Run the review and return the rendered report."""
        changes = self.repository.changed_files()
        if not changes:
            return "No modified files found. Working directory is clean."

        code_files = [c for c in changes if is_code_file(c.path) and "D" not in c.status]
        if not code_files:
            return "No code files were modified. Only non-code files have changes."

        reviews = []
        for change in code_files[: self.max_files]:
            try:
                reviews.append(self.review_file(change).render())
            except (OSError, UnicodeError, RepositoryError) as exc:
                reviews.append(f"❌ Could not analyze {change.path}: {exc}")

        report = "📊 Code Review Report\n\n"
        report += f"Files analyzed: {len(code_files)} modified code files\n\n"
        if len(code_files) > self.max_files:
            report += f"⚠️ Showing review for first {self.max_files} files only.\n\n"
        report += "\n\n---\n\n".join(reviews)

        logger.debug("review.completed", files=len(code_files), reviewed=len(reviews))
        return report

    def review_file(self, change: FileChange) -> FileReview:
        content = self.repository.read_file(change.path)
        try:
            diff = self.repository.diff(change.path)
        except RepositoryError:
            diff = ""
        return analyze_content(change.path, content, diff)


def analyze_content(path: str, content: str, diff: str = "") -> FileReview:
    """Apply the static checks to one file's content and diff."""
    lines = content.split("\n")
    review = FileReview(path=path, line_count=len(lines))
    ext = review.extension.lower()
    is_test = "test" in path.lower()

    if diff:
        review.has_diff = True
        review.additions = len(_ADDED_LINE.findall(diff))
        review.deletions = len(_REMOVED_LINE.findall(diff))
        if review.additions > 50:
            review.suggestions.append("📊 Large changes - ensure adequate testing")
        if "console.log" in diff or (ext == ".py" and "+print(" in diff.replace(" ", "")):
            review.issues.append("🐛 New debug output statements added")

    if not is_test:
        if "console.log(" in content:
            review.issues.append("Contains console.log statements (consider removing for production)")
        elif ext == ".py" and re.search(r"^\s*print\(", content, re.MULTILINE):
            review.issues.append("Contains print() calls (consider using logging)")

    todo_count = len(_TODO.findall(content))
    if todo_count:
        plural = "s" if todo_count > 1 else ""
        review.issues.append(f"Contains {todo_count} TODO/FIXME comment{plural} that need attention")

    if ext in (".ts", ".tsx"):
        any_count = len(_ANY_TYPE.findall(content))
        if any_count:
            plural = "s" if any_count > 1 else ""
            review.issues.append(f"Contains {any_count} 'any' type{plural} (consider using specific types)")
        if "interface" not in content and "type" not in content and len(lines) > 50:
            review.suggestions.append("Consider adding type definitions for better type safety")
        if "await " in content and "try" not in content and "catch" not in content:
            review.suggestions.append("Consider adding error handling for async operations")

    if len(lines) > 300:
        review.suggestions.append("Large file - consider breaking into smaller, focused modules")

    if len(_FUNCTION_LIKE.findall(content)) > 10:
        review.suggestions.append("High function density - consider splitting into multiple files")

    if ext in (".ts", ".tsx", ".js", ".jsx", ".py"):
        imports = [l for l in lines if l.strip().startswith(("import", "from "))]
        if len(imports) > 20:
            review.suggestions.append("Many imports - check if all are necessary")

    if "eval(" in content or "innerHTML" in content:
        review.issues.append("🔒 Potential security risk - avoid eval() or innerHTML")

    return review
