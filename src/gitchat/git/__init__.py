"""
Repository-operations collaborator and supplementary diff analysis.
"""

from gitchat.git.code_review import CodeReviewer, FileReview, analyze_content
from gitchat.git.commit_message import CommitMessage, CommitMessageGenerator
from gitchat.git.diff_analyzer import DiffAnalyzer, DiffSummary, FileDiff
from gitchat.git.repository import (
    MUTATING_OPERATIONS,
    FileChange,
    GitRepository,
    RepositoryStatus,
)

__all__ = [
    "MUTATING_OPERATIONS",
    "CodeReviewer",
    "CommitMessage",
    "CommitMessageGenerator",
    "DiffAnalyzer",
    "DiffSummary",
    "FileChange",
    "FileDiff",
    "FileReview",
    "GitRepository",
    "RepositoryStatus",
    "analyze_content",
]
