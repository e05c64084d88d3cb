"""Tests for ChatSession: history, explicit selector and slash commands."""

from __future__ import annotations

import pytest

from gitchat.agent.models import OperationKind, Role
from gitchat.agent.session import CANCELLED_TEXT, CONFIRM_LABEL, DECLINE_LABEL, ChatSession
from gitchat.agent.streaming import CancellationToken, ChatEngine
from gitchat.cli.commands import build_default_registry
from tests.fixtures.mock_agent import mutating_calls

DELETE_REQUEST = "delete my old-feature branch"


async def reply(stream) -> str:
    return "".join([chunk async for chunk in stream])


@pytest.fixture
def session(engine) -> ChatSession:
    return ChatSession(engine, registry=build_default_registry())


class TestSessionTurns:
    """Plain turns and history bookkeeping."""

    @pytest.mark.asyncio
    async def test_history_records_turn(self, session):
        """A turn appends the user message and the full reply."""
        text = await reply(session.send("git status"))
        assert [m.role for m in session.history] == [Role.USER, Role.ASSISTANT]
        assert session.history[0].content == "git status"
        assert session.history[1].content == text
        assert session.last_result.operation_kind is OperationKind.STATUS

    @pytest.mark.asyncio
    async def test_gated_request_sets_pending(self, session, mock_repo):
        """A mutating request leaves a descriptor pending."""
        await reply(session.send(DELETE_REQUEST))
        assert session.pending.operation_name == "Delete Branch"
        assert mutating_calls(mock_repo) == []

    @pytest.mark.asyncio
    async def test_turn_failure_keeps_session_usable(self, session, engine):
        """An engine failure becomes an error reply."""
        async def broken(history, gate, **kwargs):
            raise RuntimeError("disk full")
            yield  # pragma: no cover

        engine.stream_chat = broken
        text = await reply(session.send("git status"))
        assert text == "Error: disk full"
        assert session.history[-1].content == "Error: disk full"


class TestExplicitSelector:
    """Decisions made through the selector."""

    @pytest.mark.asyncio
    async def test_confirm(self, session, mock_repo):
        """Confirm executes the original request."""
        await reply(session.send(DELETE_REQUEST))
        text = await reply(session.confirm())
        assert text == "Deleted branch: old-feature"
        assert session.pending is None
        assert session.history[-2].content == CONFIRM_LABEL
        mock_repo.delete_branch.assert_called_once_with("old-feature")

    @pytest.mark.asyncio
    async def test_decline(self, session, mock_repo):
        """Decline shows instructions only."""
        await reply(session.send(DELETE_REQUEST))
        text = await reply(session.decline())
        assert "git branch -d old-feature" in text
        assert session.history[-2].content == DECLINE_LABEL
        assert mutating_calls(mock_repo) == []

    @pytest.mark.asyncio
    async def test_cancel(self, session, mock_repo):
        """Cancel drops the descriptor without a reply."""
        await reply(session.send(DELETE_REQUEST))
        session.cancel()
        assert session.pending is None
        assert len(session.history) == 2
        assert mutating_calls(mock_repo) == []


class TestTypedReplies:
    """Replies typed while a descriptor is pending."""

    @pytest.mark.asyncio
    async def test_typed_yes(self, session, mock_repo):
        """A typed yes confirms."""
        await reply(session.send(DELETE_REQUEST))
        await reply(session.send("yes"))
        mock_repo.delete_branch.assert_called_once_with("old-feature")
        assert session.history[-2].content == "yes"

    @pytest.mark.asyncio
    async def test_typed_no(self, session, mock_repo):
        """A typed no declines."""
        await reply(session.send(DELETE_REQUEST))
        text = await reply(session.send("n"))
        assert "Instructions" in text
        assert mutating_calls(mock_repo) == []

    @pytest.mark.asyncio
    async def test_other_text_cancels(self, session, mock_repo):
        """Anything else cancels the pending operation."""
        await reply(session.send(DELETE_REQUEST))
        text = await reply(session.send("actually, never mind"))
        assert text == CANCELLED_TEXT
        assert session.pending is None
        assert session.history[-1].content == CANCELLED_TEXT
        assert mutating_calls(mock_repo) == []


class TestSlashCommands:
    """Slash commands enter the same pipeline."""

    @pytest.mark.asyncio
    async def test_status_command(self, session, mock_repo):
        """/status runs the status handler."""
        text = await reply(session.send("/status"))
        assert "Git Repository Status" in text
        assert session.history[0].content == "Show me the current git status with analysis"

    @pytest.mark.asyncio
    async def test_commit_command_is_gated(self, session, mock_repo):
        """/commit asks before committing."""
        await reply(session.send("/commit"))
        assert session.pending.operation_name == "Smart Commit"
        mock_repo.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_help_is_local(self, session, mock_repo):
        """/help never reaches the pipeline."""
        text = await reply(session.send("/help"))
        assert text.startswith("Available commands:")
        assert session.history == []
        assert mock_repo.method_calls == []

    @pytest.mark.asyncio
    async def test_clear(self, session):
        """/clear empties the history."""
        await reply(session.send("git status"))
        text = await reply(session.send("/clear"))
        assert text == "Conversation cleared"
        assert session.history == []
        assert session.last_result is None

    @pytest.mark.asyncio
    async def test_command_while_pending_cancels(self, session, mock_repo):
        """A slash command is not a decision, so it cancels."""
        await reply(session.send(DELETE_REQUEST))
        assert await reply(session.send("/clear")) == CANCELLED_TEXT
        assert session.pending is None
        assert mutating_calls(mock_repo) == []

    @pytest.mark.asyncio
    async def test_clear_drops_pending(self, session):
        """Clearing the session also discards a pending descriptor."""
        await reply(session.send(DELETE_REQUEST))
        session.clear()
        assert session.pending is None
        assert session.history == []

    @pytest.mark.asyncio
    async def test_unknown_command(self, session, mock_repo):
        """Unknown commands report an error."""
        assert await reply(session.send("/frobnicate")) == "Unknown command: /frobnicate"
        assert mock_repo.method_calls == []

    @pytest.mark.asyncio
    async def test_without_registry_slash_is_text(self, engine):
        """With no registry the text is routed as-is."""
        session = ChatSession(engine)
        await reply(session.send("/status"))
        assert session.history[0].content == "/status"


class TestCancelledTurns:
    """A cut-off confirmation never stays answerable."""

    @pytest.mark.asyncio
    async def test_cancel_mid_descriptor_withdraws_it(self, session, mock_repo):
        """Cancelling after one chunk leaves nothing pending."""
        token = CancellationToken()
        chunks = []
        async for chunk in session.send(DELETE_REQUEST, token):
            chunks.append(chunk)
            token.cancel()

        assert len(chunks) == 1
        assert session.pending is None
        assert session.gate.history[-2:] == ["cancelled", "idle"]
        assert session.history[-1].content == CANCELLED_TEXT

        await reply(session.send("y"))
        assert mutating_calls(mock_repo) == []

    @pytest.mark.asyncio
    async def test_cancel_after_full_descriptor_keeps_it(self, session):
        """A descriptor delivered in full still waits for a decision."""
        token = CancellationToken()
        text = ""
        async for chunk in session.send(DELETE_REQUEST, token):
            text += chunk
            if text.endswith("or anything else to cancel."):
                token.cancel()

        assert session.pending.operation_name == "Delete Branch"
        assert session.history[-1].content == text
