"""Unit tests for the operation handlers.

Tests cover:
- The three execution modes per kind
- Zero repository calls in suggest mode
- Confirmation descriptors for mutating ask-mode requests
- The exception boundary
"""

from __future__ import annotations

import pytest

from gitchat.agent.handlers import (
    CONFIRM_ACTIONS,
    GIT_IDENTITY_HELP,
    HANDLERS,
    HandlerContext,
    format_status,
    general_chat_result,
    status_icon,
)
from gitchat.agent.models import (
    CONFIRMATION_MARKER,
    ExecutionMode,
    OperationKind,
    WorkflowType,
)
from gitchat.errors import GitCommandError, NotARepositoryError
from gitchat.git.repository import FileChange, RepositoryStatus
from tests.fixtures.mock_agent import MockModelClient, create_mock_repository, mutating_calls


def context(text, mode, repo, model=None):
    return HandlerContext(text=text, mode=mode, repository=repo, model=model)


async def run(kind, text, mode, repo, model=None):
    return await HANDLERS[kind](context(text, mode, repo, model))


# =============================================================================
# TABLE
# =============================================================================

class TestHandlerTable:
    """Tests for the dispatch table."""

    def test_every_kind_has_a_handler(self):
        """The table covers the whole catalog."""
        assert set(HANDLERS) == set(OperationKind)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", list(OperationKind))
    async def test_suggest_makes_no_repository_calls(self, kind, mock_repo):
        """Suggest mode only returns instructions."""
        result = await run(kind, "help me with this", ExecutionMode.SUGGEST, mock_repo)
        assert result.operation_kind is kind
        assert "Instructions" in result.response_text
        assert mock_repo.method_calls == []
        assert result.confirmation is None


# =============================================================================
# STATUS / DIFF / REVIEW
# =============================================================================

class TestReadOnlyHandlers:
    """Tests for status, diff and review."""

    @pytest.mark.asyncio
    async def test_status(self, mock_repo):
        """Status lists branch, changes and commits."""
        result = await run(OperationKind.STATUS, "git status", ExecutionMode.EXECUTE, mock_repo)
        assert "🌿 **Current Branch:** main" in result.response_text
        assert "✏️ src/app.py" in result.response_text
        assert "❓ notes.txt" in result.response_text
        assert result.suggested_actions == ["View changes", "Commit changes", "Create branch"]

    @pytest.mark.asyncio
    async def test_status_in_ask_mode_runs_directly(self, mock_repo):
        """Read-only kinds never need confirmation."""
        result = await run(OperationKind.STATUS, "status please", ExecutionMode.ASK, mock_repo)
        assert result.confirmation is None
        mock_repo.status.assert_called_once()

    def test_clean_status(self):
        """A clean tree says so."""
        status = RepositoryStatus(branch="main", working_directory="/w", changes=[])
        assert "Working directory is clean" in format_status(status)

    @pytest.mark.parametrize("code,icon", [
        ("A ", "🆕"), (" M", "✏️"), ("D ", "🗑️"), (" D", "🗑️"), ("??", "❓"), ("UU", "📄"),
    ])
    def test_status_icons(self, code, icon):
        """Porcelain codes map to icons."""
        assert status_icon(code) == icon

    @pytest.mark.asyncio
    async def test_diff(self, mock_repo):
        """Diff shows a summary and the raw diff."""
        result = await run(OperationKind.DIFF, "show me the diff", ExecutionMode.EXECUTE, mock_repo)
        assert result.response_text.startswith("📝 **Changes Found:**")
        assert "2 files changed" in result.response_text
        assert "```diff" in result.response_text
        mock_repo.diff.assert_called_once_with(None)

    @pytest.mark.asyncio
    async def test_diff_for_path(self, mock_repo):
        """A file named in the request narrows the diff."""
        await run(OperationKind.DIFF, "what changed in src/app.py", ExecutionMode.EXECUTE, mock_repo)
        mock_repo.diff.assert_called_once_with("src/app.py")

    @pytest.mark.asyncio
    async def test_diff_clean(self, mock_repo):
        """An empty diff reports no changes."""
        mock_repo.diff.return_value = ""
        result = await run(OperationKind.DIFF, "show me the diff", ExecutionMode.EXECUTE, mock_repo)
        assert result.response_text.startswith("✅ **No Changes:**")

    @pytest.mark.asyncio
    async def test_review(self, mock_repo):
        """Review reads the modified code files."""
        result = await run(OperationKind.REVIEW, "review my code", ExecutionMode.EXECUTE, mock_repo)
        assert "Code Review Report" in result.response_text
        mock_repo.read_file.assert_called_with("src/app.py")

    @pytest.mark.asyncio
    async def test_review_clean_tree(self):
        """No modified files means nothing to review."""
        repo = create_mock_repository(changes=[])
        result = await run(OperationKind.REVIEW, "review my code", ExecutionMode.EXECUTE, repo)
        assert result.response_text == "No modified files found. Working directory is clean."


# =============================================================================
# GATED HANDLERS
# =============================================================================

class TestAskMode:
    """Mutating requests in ask mode return a descriptor and do nothing."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind,text,name", [
        (OperationKind.COMMIT, "commit my work", "Smart Commit"),
        (OperationKind.BRANCH, "create branch feature-x", "Create Branch"),
        (OperationKind.BRANCH, "switch to develop", "Switch Branch"),
        (OperationKind.BRANCH, "delete my old-feature branch", "Delete Branch"),
        (OperationKind.BRANCH, "merge branch feature", "Merge Branch"),
        (OperationKind.REMOTE, "push to origin", "Git Push"),
        (OperationKind.REMOTE, "pull latest", "Git Pull"),
        (OperationKind.REMOTE, "fetch from origin", "Git Fetch"),
        (OperationKind.STASH, "stash my work", "Git Stash Save"),
        (OperationKind.STASH, "pop the stash", "Git Stash Pop"),
        (OperationKind.STASH, "drop stash@{0}", "Git Stash Drop"),
        (OperationKind.STASH, "clear all stashes", "Git Stash Clear"),
        (OperationKind.UNDO, "undo last commit", "Undo Last Commit"),
        (OperationKind.UNDO, "revert commit a1b2c3d", "Revert Commit"),
        (OperationKind.UNDO, "undo the merge", "Undo Merge"),
        (OperationKind.UNDO, "undo my push", "Undo Push"),
    ])
    async def test_descriptor(self, kind, text, name, mock_repo):
        """The descriptor names the operation and keeps the request."""
        result = await run(kind, text, ExecutionMode.ASK, mock_repo)
        assert result.is_gated
        assert result.confirmation.operation_name == name
        assert result.confirmation.original_request == text
        assert CONFIRMATION_MARKER in result.response_text
        assert result.suggested_actions == CONFIRM_ACTIONS
        assert mutating_calls(mock_repo) == []

    @pytest.mark.asyncio
    async def test_branch_target_in_description(self, mock_repo):
        """The branch name appears in the description."""
        result = await run(OperationKind.BRANCH, "delete my old-feature branch", ExecutionMode.ASK, mock_repo)
        assert '"old-feature"' in result.confirmation.description

    @pytest.mark.asyncio
    async def test_revert_target_in_description(self, mock_repo):
        """The commit hash appears in the description."""
        result = await run(OperationKind.UNDO, "revert commit a1b2c3d", ExecutionMode.ASK, mock_repo)
        assert "a1b2c3d" in result.confirmation.description

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind,text", [
        (OperationKind.BRANCH, "list branches"),
        (OperationKind.REMOTE, "remote info"),
        (OperationKind.STASH, "stashes"),
        (OperationKind.UNDO, "what can I undo"),
    ])
    async def test_read_only_actions_run_directly(self, kind, text, mock_repo):
        """Listing actions never wait for confirmation."""
        result = await run(kind, text, ExecutionMode.ASK, mock_repo)
        assert not result.is_gated
        assert mutating_calls(mock_repo) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind,text,operation", [
        (OperationKind.COMMIT, "commit my work", "Smart Commit"),
        (OperationKind.BRANCH, "create branch feature-x", "Create Branch"),
        (OperationKind.BRANCH, "merge branch feature", "Merge Branch"),
        (OperationKind.REMOTE, "push to origin", "Git Push"),
        (OperationKind.STASH, "drop stash@{1}", "Git Stash Drop"),
        (OperationKind.UNDO, "undo last commit", "Undo Last Commit"),
    ])
    async def test_inferred_read_only_never_mutates(self, kind, text, operation, mock_repo):
        """Without an explicit prefix, execute mode still gates mutating actions."""
        ctx = HandlerContext(text=text, mode=ExecutionMode.EXECUTE, repository=mock_repo, read_only=True)
        result = await HANDLERS[kind](ctx)
        assert result.confirmation.operation_name == operation
        assert mutating_calls(mock_repo) == []

    @pytest.mark.asyncio
    async def test_inferred_read_only_runs_listing(self, mock_repo):
        """Listing actions run even when the mode was inferred."""
        ctx = HandlerContext(
            text="list branches", mode=ExecutionMode.EXECUTE, repository=mock_repo, read_only=True
        )
        result = await HANDLERS[OperationKind.BRANCH](ctx)
        assert not result.is_gated
        mock_repo.list_branches.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_branch_without_name_prompts(self, mock_repo):
        """A mutating branch verb without a name asks for one."""
        result = await run(OperationKind.BRANCH, "create a branch", ExecutionMode.ASK, mock_repo)
        assert not result.is_gated
        assert result.response_text.startswith("Please name the branch to create")
        assert "old-feature" in result.response_text


# =============================================================================
# EXECUTE MODE
# =============================================================================

class TestExecuteMode:
    """Confirmed requests call the repository."""

    @pytest.mark.asyncio
    async def test_delete_branch(self, mock_repo):
        """Delete runs with the parsed target."""
        result = await run(OperationKind.BRANCH, "delete my old-feature branch", ExecutionMode.EXECUTE, mock_repo)
        assert result.response_text == "Deleted branch: old-feature"
        mock_repo.delete_branch.assert_called_once_with("old-feature")

    @pytest.mark.asyncio
    async def test_push(self, mock_repo):
        """Push calls the collaborator."""
        await run(OperationKind.REMOTE, "push to origin", ExecutionMode.EXECUTE, mock_repo)
        assert mutating_calls(mock_repo) == ["push"]

    @pytest.mark.asyncio
    async def test_stash_drop_with_ref(self, mock_repo):
        """Drop passes the stash reference through."""
        await run(OperationKind.STASH, "drop stash@{1}", ExecutionMode.EXECUTE, mock_repo)
        mock_repo.stash_drop.assert_called_once_with("stash@{1}")

    @pytest.mark.asyncio
    async def test_stash_clear(self, mock_repo):
        """Clear takes no argument."""
        await run(OperationKind.STASH, "clear all stashes", ExecutionMode.EXECUTE, mock_repo)
        mock_repo.stash_clear.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_revert_commit(self, mock_repo):
        """Revert uses the commit hash."""
        await run(OperationKind.UNDO, "revert commit a1b2c3d", ExecutionMode.EXECUTE, mock_repo)
        mock_repo.revert_commit.assert_called_once_with("a1b2c3d")

    @pytest.mark.asyncio
    async def test_undo_push(self, mock_repo):
        """Undoing a push reverts HEAD and advises pushing."""
        result = await run(OperationKind.UNDO, "undo my push", ExecutionMode.EXECUTE, mock_repo)
        mock_repo.revert_commit.assert_called_once_with("HEAD")
        assert "git push" in result.response_text

    @pytest.mark.asyncio
    async def test_smart_commit(self, mock_repo):
        """Commit stages, generates a message and commits."""
        model = MockModelClient(generate_reply="feat: add login form")
        result = await run(OperationKind.COMMIT, "commit my work", ExecutionMode.EXECUTE, mock_repo, model)
        mock_repo.stage_all.assert_called_once()
        mock_repo.commit.assert_called_once_with("feat: add login form")
        assert result.response_text.startswith("✅ Successfully committed changes!")
        assert 'Message: "feat: add login form"' in result.response_text

    @pytest.mark.asyncio
    async def test_smart_commit_offline_model(self, mock_repo, offline_model):
        """An unreachable model still produces a commit message."""
        await run(OperationKind.COMMIT, "commit my work", ExecutionMode.EXECUTE, mock_repo, offline_model)
        message = mock_repo.commit.call_args[0][0]
        assert message.strip()

    @pytest.mark.asyncio
    async def test_smart_commit_clean_tree(self):
        """Nothing to commit stops before staging."""
        repo = create_mock_repository(changes=[])
        result = await run(OperationKind.COMMIT, "commit", ExecutionMode.EXECUTE, repo)
        assert result.response_text == "No changes to commit. Your working tree is clean."
        repo.stage_all.assert_not_called()

    @pytest.mark.asyncio
    async def test_smart_commit_nothing_staged(self, mock_repo):
        """An empty staged diff stops before committing."""
        mock_repo.staged_diff.return_value = ""
        result = await run(OperationKind.COMMIT, "commit", ExecutionMode.EXECUTE, mock_repo)
        assert result.response_text == "No changes were staged for commit."
        mock_repo.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_smart_commit_missing_identity(self, mock_repo):
        """A missing git identity returns setup help."""
        mock_repo.commit.side_effect = GitCommandError(
            ["git", "commit"], 128, "*** Please tell me who you are."
        )
        result = await run(OperationKind.COMMIT, "commit", ExecutionMode.EXECUTE, mock_repo)
        assert result.response_text == GIT_IDENTITY_HELP


# =============================================================================
# ERRORS
# =============================================================================

class TestHandlerErrors:
    """Exceptions become textual results."""

    @pytest.mark.asyncio
    async def test_not_a_repository(self, mock_repo):
        """Status outside a repository reports the failure."""
        mock_repo.status.side_effect = NotARepositoryError("/tmp")
        result = await run(OperationKind.STATUS, "git status", ExecutionMode.EXECUTE, mock_repo)
        assert result.response_text == "Error during git status analysis: Not in a git repository"
        assert result.operation_kind is OperationKind.STATUS

    @pytest.mark.asyncio
    async def test_git_failure(self, mock_repo):
        """A failing git command is reported, not raised."""
        mock_repo.push.side_effect = GitCommandError(["git", "push"], 1, "rejected")
        result = await run(OperationKind.REMOTE, "push", ExecutionMode.EXECUTE, mock_repo)
        assert result.response_text.startswith("Error during remote workflow:")
        assert "rejected" in result.response_text


class TestGeneralChat:
    """Tests for the off-topic redirect."""

    def test_redirect_quotes_question(self):
        """The redirect echoes the question."""
        result = general_chat_result("what's the weather")
        assert '"what\'s the weather"' in result.response_text
        assert result.workflow_type is WorkflowType.GENERAL_CHAT
        assert result.operation_kind is None
