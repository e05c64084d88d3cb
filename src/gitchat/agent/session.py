"""Conversation session: history ownership and turn submission.

The session is the caller side of the engine. It owns the append-only
history and the conversation's confirmation gate, interprets replies to a
pending confirmation, and resolves slash commands before routing.
"""

from __future__ import annotations

from typing import AsyncIterator, List, Optional

from gitchat.agent.confirmation import ConfirmationGate, SelectorAdapter
from gitchat.agent.models import (
    ConfirmationDecision,
    ConfirmationDescriptor,
    Message,
    WorkflowResult,
)
from gitchat.agent.patterns import parse_decision_reply
from gitchat.agent.streaming import CancellationToken, ChatEngine, RoutingCallback
from gitchat.cli.commands import CommandKind, CommandRegistry
from gitchat.utils.logging import (
    clear_execution_context,
    generate_execution_id,
    get_logger,
    set_execution_context,
)

logger = get_logger("agent.session")

CANCELLED_TEXT = "Operation cancelled."
CONFIRM_LABEL = "✅ Yes - Execute the operation"
DECLINE_LABEL = "📚 No - Show instructions"


class ChatSession:
    """One conversation with the engine.

    Example:
        >>> session = ChatSession(engine, registry=build_default_registry())
        >>> async for chunk in session.send("delete my old-feature branch"):
        ...     print(chunk, end="")
        >>> session.pending is not None
        True
        >>> async for chunk in session.confirm():
        ...     print(chunk, end="")
    """

    def __init__(
        self,
        engine: ChatEngine,
        registry: Optional[CommandRegistry] = None,
        gate: Optional[ConfirmationGate] = None,
    ):
        self.engine = engine
        self.registry = registry
        self.gate = gate or ConfirmationGate()
        self.session_id = self.gate.gate_id
        self.selector = SelectorAdapter(self.gate)
        self.history: List[Message] = []
        self.last_result: Optional[WorkflowResult] = None

    @property
    def pending(self) -> Optional[ConfirmationDescriptor]:
        """The descriptor awaiting a decision, if any."""
        return self.selector.pending

    async def send(
        self,
        text: str,
        token: Optional[CancellationToken] = None,
        on_routing: Optional[RoutingCallback] = None,
    ) -> AsyncIterator[str]:
        """Submit one user turn and stream the reply.

        With a confirmation pending, the text is a decision on it rather
        than a fresh request.
        """
        if self.selector.pending is not None:
            decision = parse_decision_reply(text)
            if decision is ConfirmationDecision.CANCELLED:
                self.selector.cancel()
                self.history.append(Message.user(text))
                self.history.append(Message.assistant(CANCELLED_TEXT))
                logger.info("session.cancelled")
                yield CANCELLED_TEXT
                return

            resubmission = self.selector.choose(decision)
            async for chunk in self._stream(text, resubmission, token, on_routing):
                yield chunk
            return

        if self.registry is not None and self.registry.is_command(text):
            async for chunk in self._run_command(text, token, on_routing):
                yield chunk
            return

        async for chunk in self._stream(text, text, token, on_routing):
            yield chunk

    async def confirm(
        self,
        token: Optional[CancellationToken] = None,
        on_routing: Optional[RoutingCallback] = None,
    ) -> AsyncIterator[str]:
        """Explicit selector: execute the pending operation."""
        resubmission = self.selector.confirm()
        async for chunk in self._stream(CONFIRM_LABEL, resubmission, token, on_routing):
            yield chunk

    async def decline(
        self,
        token: Optional[CancellationToken] = None,
        on_routing: Optional[RoutingCallback] = None,
    ) -> AsyncIterator[str]:
        """Explicit selector: show manual instructions instead."""
        resubmission = self.selector.decline()
        async for chunk in self._stream(DECLINE_LABEL, resubmission, token, on_routing):
            yield chunk

    def cancel(self) -> None:
        """Explicit selector: discard the pending operation."""
        self.selector.cancel()

    def clear(self) -> None:
        self.history.clear()
        if self.gate.awaiting_decision:
            self.selector.cancel()
        self.last_result = None

    async def _run_command(
        self,
        text: str,
        token: Optional[CancellationToken],
        on_routing: Optional[RoutingCallback],
    ) -> AsyncIterator[str]:
        result = self.registry.parse(text)
        logger.debug("session.command", kind=result.kind.value, command=result.command)

        if result.kind is CommandKind.REQUEST:
            async for chunk in self._stream(result.text, result.text, token, on_routing):
                yield chunk
            return

        if result.kind is CommandKind.LOCAL and result.command == "clear":
            self.clear()
        yield result.text

    async def _stream(
        self,
        display: str,
        routed: Optional[str],
        token: Optional[CancellationToken],
        on_routing: Optional[RoutingCallback],
    ) -> AsyncIterator[str]:
        self.history.append(Message.user(display))
        assistant = Message.assistant()
        self.history.append(assistant)

        if routed is None or routed == display:
            turn = self.history[:-1]
        else:
            turn = self.history[:-2] + [Message.user(routed)]

        self.last_result = None
        set_execution_context(execution_id=generate_execution_id(), session_id=self.session_id)
        try:
            async for chunk in self.engine.stream_chat(
                turn,
                self.gate,
                token=token,
                on_routing=on_routing,
                on_result=self._record_result,
            ):
                assistant.content += chunk
                yield chunk

            if token is not None and token.cancelled and self._cut_off(assistant):
                # A partial descriptor must not be answerable from the history
                assistant.content = CANCELLED_TEXT
        except Exception as exc:  # noqa: BLE001 - the conversation stays usable
            logger.error("session.turn_failed", error=str(exc))
            assistant.content = f"Error: {exc}"
            yield assistant.content
        finally:
            clear_execution_context()

    def _record_result(self, result: WorkflowResult) -> None:
        self.last_result = result

    def _cut_off(self, assistant: Message) -> bool:
        result = self.last_result
        return (
            result is not None
            and result.is_gated
            and not self.gate.awaiting_decision
            and assistant.content != result.response_text
        )
