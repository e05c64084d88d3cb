"""Git repository operations for the chat engine.

Provides the repository-operations collaborator:
- Repository validation (every operation checks it runs inside a repository)
- Status, diff, branch, remote and stash operations
- Smart-commit primitives (stage, staged diff, commit)
- Undo helpers (auto-stash, soft reset or revert, merge revert)

Commands run through ``subprocess.run`` with argument lists, never through a
shell. A nonzero exit raises GitCommandError; callers at the handler boundary
turn it into a readable message.
"""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from gitchat.errors import GitCommandError, NotARepositoryError, RepositoryError
from gitchat.utils.logging import get_logger

logger = get_logger("git.repository")

# Every method that changes repository, index, working tree or remote state.
MUTATING_OPERATIONS = frozenset({
    "create_branch",
    "switch_branch",
    "delete_branch",
    "merge_branch",
    "push",
    "pull",
    "fetch",
    "stash_save",
    "stash_pop",
    "stash_apply",
    "stash_drop",
    "stash_clear",
    "stage_all",
    "commit",
    "stash_uncommitted",
    "undo_last_commit",
    "revert_commit",
    "undo_last_merge",
})

_STASH_REF = re.compile(r"^stash@\{\d+\}$")


@dataclass
class FileChange:
    """One entry of ``git status --porcelain``."""
    status: str
    path: str

    @property
    def index_status(self) -> str:
        return self.status[:1]

    @property
    def worktree_status(self) -> str:
        return self.status[1:2]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"status": self.status, "path": self.path}

    @classmethod
    def from_porcelain(cls, line: str) -> "FileChange":
        path = line[3:]
        # Renames are reported as "old -> new"
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        return cls(status=line[:2], path=path.strip().strip('"'))


@dataclass
class RepositoryStatus:
    """Snapshot of the working tree."""
    branch: str
    working_directory: str
    changes: List[FileChange] = field(default_factory=list)
    recent_commits: List[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.changes

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "branch": self.branch,
            "working_directory": self.working_directory,
            "changes": [c.to_dict() for c in self.changes],
            "recent_commits": self.recent_commits,
            "is_clean": self.is_clean,
        }


class GitRepository:
    """Git operations against one working directory.

    Example:
        >>> repo = GitRepository("/path/to/repo")
        >>> status = repo.status()
        >>> print(status.branch, status.is_clean)
        >>>
        >>> repo.create_branch("feature-x")
        'Created and switched to new branch: feature-x'
    """

    def __init__(
        self,
        working_dir: Optional[str] = None,
        timeout: float = 30.0,
    ):
        """Initialize repository operations.

        Args:
            working_dir: Repository directory (defaults to the process cwd)
            timeout: Per-command timeout in seconds
        """
        self.working_dir = str(Path(working_dir or Path.cwd()).resolve())
        self.timeout = timeout

    # =========================================================================
    # Command execution
    # =========================================================================

    def _run(self, *args: str) -> str:
        """Run ``git <args>`` and return stdout.

        Raises:
            GitCommandError: On nonzero exit or timeout
            RepositoryError: If git is not installed
        """
        command = ["git", *args]
        try:
            completed = subprocess.run(
                command,
                cwd=self.working_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise RepositoryError("git executable not found on PATH") from exc
        except subprocess.TimeoutExpired as exc:
            raise GitCommandError(command, -1, f"timed out after {self.timeout}s") from exc

        if completed.returncode != 0:
            logger.debug(
                "git.command_failed",
                command=" ".join(command),
                returncode=completed.returncode,
                stderr=completed.stderr,
            )
            raise GitCommandError(command, completed.returncode, completed.stderr or completed.stdout)

        logger.debug("git.command", command=" ".join(command))
        return completed.stdout

    def is_repository(self) -> bool:
        """Check if the working directory is a git repository."""
        if (Path(self.working_dir) / ".git").exists():
            return True
        try:
            self._run("rev-parse", "--git-dir")
        except RepositoryError:
            return False
        return True

    def validate(self) -> None:
        """Raise NotARepositoryError unless inside a repository."""
        if not self.is_repository():
            raise NotARepositoryError(self.working_dir)

    @staticmethod
    def _check_name(name: str, what: str = "Branch name") -> str:
        name = (name or "").strip()
        if not name:
            raise RepositoryError(f"{what} required")
        if name.startswith("-"):
            raise RepositoryError(f"Invalid {what.lower()}: {name}")
        return name

    @staticmethod
    def _check_stash_ref(ref: Optional[str]) -> List[str]:
        if not ref:
            return []
        if not _STASH_REF.match(ref):
            raise RepositoryError(f"Invalid stash reference: {ref}")
        return [ref]

    # =========================================================================
    # Read-only operations
    # =========================================================================

    def current_branch(self) -> str:
        self.validate()
        return self._run("branch", "--show-current").strip()

    def status(self) -> RepositoryStatus:
        """Get branch, porcelain changes and the last five commits."""
        self.validate()
        branch = self._run("branch", "--show-current").strip()
        porcelain = self._run("status", "--porcelain")
        try:
            log = self._run("log", "--oneline", "-5")
        except GitCommandError:
            # Fresh repository without commits
            log = ""

        return RepositoryStatus(
            branch=branch or "(detached HEAD)",
            working_directory=self.working_dir,
            changes=[FileChange.from_porcelain(line) for line in porcelain.splitlines() if line.strip()],
            recent_commits=[line for line in log.splitlines() if line.strip()],
        )

    def diff(self, path: Optional[str] = None) -> str:
        """Unstaged diff for all files or one path."""
        self.validate()
        if path:
            return self._run("diff", "--", path)
        return self._run("diff")

    def list_branches(self) -> str:
        self.validate()
        branches = self._run("branch", "-a").rstrip()
        current = self._run("branch", "--show-current").strip()
        return f"Current branch: {current}\n\nAll branches:\n{branches}"

    def remote_status(self) -> str:
        self.validate()
        remotes = self._run("remote", "-v").strip()
        current = self._run("branch", "--show-current").strip()
        try:
            tracking = self._run("status", "-b", "--porcelain").splitlines()
            tracking_info = tracking[0] if tracking else "No tracking info available"
        except GitCommandError:
            tracking_info = "No tracking info available"
        return (
            f"Current branch: {current}\nTracking: {tracking_info}\n\n"
            f"Configured remotes:\n{remotes or 'No remotes configured'}"
        )

    def stash_list(self) -> str:
        self.validate()
        stashes = self._run("stash", "list").strip()
        return stashes or "No stashes found"

    def has_changes(self) -> bool:
        self.validate()
        return bool(self._run("status", "--porcelain").strip())

    def staged_diff(self) -> str:
        self.validate()
        return self._run("diff", "--cached")

    def last_commit(self) -> str:
        self.validate()
        try:
            return self._run("log", "-1", "--oneline").strip()
        except GitCommandError:
            return ""

    def recent_merges(self, limit: int = 5) -> List[str]:
        self.validate()
        out = self._run("log", "--merges", "--oneline", f"-{limit}")
        return [line for line in out.splitlines() if line.strip()]

    def is_head_pushed(self) -> bool:
        """Whether HEAD is already on the upstream branch.

        When no upstream can be determined the commit is assumed to be
        pushed, which selects the history-preserving revert.
        """
        self.validate()
        try:
            counts = self._run("rev-list", "--left-right", "--count", "HEAD...@{u}").split()
            return int(counts[0]) == 0
        except (GitCommandError, ValueError, IndexError):
            return True

    def describe_commit(self, commit: str) -> str:
        self.validate()
        commit = self._check_name(commit, "Commit")
        return self._run("show", "--oneline", "-s", commit).strip()

    def is_merge_commit(self, commit: str) -> bool:
        self.validate()
        commit = self._check_name(commit, "Commit")
        parents = self._run("rev-list", "--parents", "-n", "1", commit).split()
        return len(parents) > 2

    def undo_options(self) -> str:
        """Summarize the current state and the available undo operations."""
        self.validate()
        short = self._run("status", "--short")
        try:
            commits = self._run("log", "--oneline", "-3").strip()
        except GitCommandError:
            commits = ""

        text = "**Git Repository Status**\n\n"
        if short.strip():
            text += f"**Uncommitted Changes:**\n```\n{short}```\n"
        if commits:
            text += f"\n**Recent Commits:**\n```\n{commits}\n```\n"
        text += (
            "\n**Common Undo Operations:**\n\n"
            "• `undo last commit` - Undo the most recent commit\n"
            "• `undo my changes` - Stash uncommitted changes\n"
            "• `undo the merge` - Revert the last merge\n"
            "• `undo the push` - Revert the last pushed commit\n\n"
            "**Or describe what you want to undo in natural language.**"
        )
        return text

    def changed_files(self) -> List[FileChange]:
        self.validate()
        porcelain = self._run("status", "--porcelain")
        return [FileChange.from_porcelain(line) for line in porcelain.splitlines() if line.strip()]

    def read_file(self, path: str) -> str:
        self.validate()
        target = (Path(self.working_dir) / path).resolve()
        if not target.is_relative_to(Path(self.working_dir)):
            raise RepositoryError(f"Path escapes the repository: {path}")
        return target.read_text(encoding="utf-8", errors="replace")

    # =========================================================================
    # Branch operations
    # =========================================================================

    def create_branch(self, name: str) -> str:
        self.validate()
        name = self._check_name(name)
        self._run("checkout", "-b", name)
        return f"Created and switched to new branch: {name}"

    def switch_branch(self, name: str) -> str:
        self.validate()
        name = self._check_name(name)
        self._run("checkout", name)
        return f"Switched to branch: {name}"

    def delete_branch(self, name: str) -> str:
        self.validate()
        name = self._check_name(name)
        current = self._run("branch", "--show-current").strip()
        if name == current:
            raise RepositoryError(
                f'Cannot delete current branch "{name}". Switch to another branch first.'
            )
        self._run("branch", "-d", name)
        return f"Deleted branch: {name}"

    def merge_branch(self, name: str) -> str:
        self.validate()
        name = self._check_name(name)
        out = self._run("merge", name)
        return f'Merged branch "{name}":\n{out.strip()}'

    # =========================================================================
    # Remote operations
    # =========================================================================

    def push(self) -> str:
        self.validate()
        current = self._run("branch", "--show-current").strip()
        completed = self._run("push", "origin", "HEAD")
        return f'Pushed branch "{current}" to origin:\n{completed.strip()}'.rstrip()

    def pull(self) -> str:
        self.validate()
        return f"Pulled updates:\n{self._run('pull').strip()}".rstrip()

    def fetch(self) -> str:
        self.validate()
        return f"Fetched from remote:\n{self._run('fetch').strip()}".rstrip()

    # =========================================================================
    # Stash operations
    # =========================================================================

    def stash_save(self, message: Optional[str] = None) -> str:
        self.validate()
        out = self._run("stash", "push", "-m", message or "Stashed changes")
        if message:
            return f'Stashed changes with message "{message}":\n{out.strip()}'
        return f"Stashed current changes:\n{out.strip()}"

    def stash_pop(self, ref: Optional[str] = None) -> str:
        self.validate()
        args = self._check_stash_ref(ref)
        out = self._run("stash", "pop", *args)
        label = f'stash "{ref}"' if ref else "latest stash"
        return f"Popped {label}:\n{out.strip()}"

    def stash_apply(self, ref: Optional[str] = None) -> str:
        self.validate()
        args = self._check_stash_ref(ref)
        out = self._run("stash", "apply", *args)
        label = f'stash "{ref}"' if ref else "latest stash"
        return f"Applied {label}:\n{out.strip()}"

    def stash_drop(self, ref: Optional[str] = None) -> str:
        self.validate()
        args = self._check_stash_ref(ref)
        out = self._run("stash", "drop", *args)
        label = f'stash "{ref}"' if ref else "latest stash"
        return f"Dropped {label}:\n{out.strip()}"

    def stash_clear(self) -> str:
        self.validate()
        self._run("stash", "clear")
        return "Cleared all stashes"

    # =========================================================================
    # Commit operations
    # =========================================================================

    def stage_all(self) -> None:
        self.validate()
        self._run("add", ".")

    def commit(self, message: str) -> str:
        self.validate()
        if not message.strip():
            raise RepositoryError("Commit message cannot be empty")
        return self._run("commit", "-m", message).strip()

    # =========================================================================
    # Undo operations
    # =========================================================================

    def stash_uncommitted(self) -> str:
        """Stash uncommitted changes as a reversible undo."""
        self.validate()
        changes = self._run("status", "--short")
        if not changes.strip():
            return "✅ No uncommitted changes to undo. Your working tree is clean."

        self._run("stash", "push", "-m", "Auto-stash before undo operation")
        entries = self._run("stash", "list").splitlines()
        entry = entries[0] if entries else ""
        return (
            "✅ **Successfully Stashed Uncommitted Changes**\n\n"
            f"Stashed changes:\n```\n{changes}```\n\n"
            f"Stash entry: {entry}\n\n"
            "**Your working directory is now clean.**\n\n"
            "**To restore changes:**\n"
            "- `git stash pop` - Restore and remove from stash\n"
            "- `git stash apply` - Restore but keep in stash\n"
            "- `git stash drop` - Permanently delete the stash"
        )

    def undo_last_commit(self) -> str:
        """Revert a pushed HEAD, or soft-reset an unpushed one."""
        self.validate()
        last = self.last_commit()
        if not last:
            return "✅ No commits to undo. Repository is empty or at initial commit."

        if self.is_head_pushed():
            out = self._run("revert", "--no-edit", "HEAD")
            new_commit = self.last_commit()
            return (
                "✅ **Successfully Reverted Pushed Commit**\n\n"
                f"Original commit: {last}\n"
                f"Revert commit: {new_commit}\n\n"
                f"{out.strip()}\n\n"
                "**Next steps:**\n"
                "- Your changes have been safely reverted\n"
                "- The revert commit preserves history\n"
                "- You can now push: `git push`"
            )

        self._run("reset", "--soft", "HEAD~1")
        staged = self._run("status", "--short").strip()
        return (
            "✅ **Successfully Reset Last Commit**\n\n"
            f"Undone commit: {last}\n\n"
            "**Your changes are now staged and ready for editing:**\n"
            f"```\n{staged or 'No staged changes'}\n```\n\n"
            "**Next steps:**\n"
            "- Edit your changes if needed\n"
            "- Re-commit with: `git commit`\n"
            "- Or unstage with: `git reset HEAD`"
        )

    def revert_commit(self, commit: str) -> str:
        """Create a revert commit, using the first parent for merges."""
        self.validate()
        info = self.describe_commit(commit)
        args = ["revert", "--no-edit"]
        if self.is_merge_commit(commit):
            args += ["-m", "1"]
        out = self._run(*args, commit)
        return (
            "✅ **Successfully Reverted Commit**\n\n"
            f"Reverted: {info}\n"
            f"Revert commit: {self.last_commit()}\n\n"
            f"{out.strip()}"
        ).rstrip()

    def undo_last_merge(self) -> str:
        self.validate()
        merges = self.recent_merges()
        if not merges:
            return "✅ No recent merge commits found to undo."
        merge_hash = merges[0].split(" ", 1)[0]
        return self.revert_commit(merge_hash)
