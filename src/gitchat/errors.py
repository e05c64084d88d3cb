"""Exception hierarchy shared by the model and repository collaborators."""

from __future__ import annotations


class GitChatError(Exception):
    """Base class for gitchat errors."""


class ModelUnavailableError(GitChatError):
    """Raised when the language model cannot produce a usable reply."""

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


class RepositoryError(GitChatError):
    """Raised by the repository collaborator."""


class NotARepositoryError(RepositoryError):
    """Raised when the working directory is not inside a git repository."""

    def __init__(self, path: str):
        super().__init__("Not in a git repository")
        self.path = path


class GitCommandError(RepositoryError):
    """Raised when a git command exits with a nonzero status."""

    def __init__(self, command: list[str], returncode: int, stderr: str):
        detail = stderr.strip() or f"exit status {returncode}"
        super().__init__(f"`{' '.join(command)}` failed: {detail}")
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
