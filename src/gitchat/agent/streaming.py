"""Streaming aggregation with cancellation and progress reporting.

Turns a completed workflow result (or a provider's native token stream) into
an incremental sequence of text chunks:
- Completed text is re-chunked into fixed-size pieces with a typing delay
- Native fragments pass through unchanged
- A cancellation token is checked before every yield
- Progress callbacks fire at most once per phase and never after a cancel
"""

from __future__ import annotations

import asyncio
import threading
from typing import AsyncIterator, Callable, List, Optional, Set, Tuple

from gitchat.agent.confirmation import ConfirmationGate
from gitchat.agent.models import (
    CONFIRMATION_MARKER,
    ConfirmationDecision,
    Message,
    Role,
    RoutingInfo,
    WorkflowResult,
    WorkflowType,
)
from gitchat.agent.router import WorkflowRouter
from gitchat.config.settings import Settings
from gitchat.git.repository import GitRepository
from gitchat.llm.providers import ModelClient
from gitchat.utils.logging import get_logger

logger = get_logger("agent.streaming")

RoutingCallback = Callable[[RoutingInfo], None]
ResultCallback = Callable[[WorkflowResult], None]


class CancellationToken:
    """Cooperative cancellation flag shared by a turn and its caller.

    Thread-safe, so a signal handler or UI thread may cancel while the
    event loop is streaming.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def _is_cancelled(token: Optional[CancellationToken]) -> bool:
    return token is not None and token.cancelled


async def stream_text(
    text: str,
    token: Optional[CancellationToken] = None,
    chunk_size: int = 8,
    delay: float = 0.025,
) -> AsyncIterator[str]:
    """Yield a completed string in fixed-size chunks.

    Args:
        text: Full response text
        token: Cancellation token checked before each yield
        chunk_size: Characters per chunk
        delay: Seconds to wait between chunks

    Yields:
        Consecutive slices of ``text``; their concatenation is always a
        prefix of it
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")

    for index in range(0, len(text), chunk_size):
        if index and delay > 0:
            await asyncio.sleep(delay)
        if _is_cancelled(token):
            return
        yield text[index:index + chunk_size]


async def stream_fragments(
    source: AsyncIterator[str],
    token: Optional[CancellationToken] = None,
) -> AsyncIterator[str]:
    """Pass native stream fragments through without re-chunking."""
    async for fragment in source:
        if _is_cancelled(token):
            return
        yield fragment


class ProgressReporter:
    """Fire-and-forget progress callback wrapper.

    Each (workflow_type, step) phase is reported at most once, nothing is
    reported after cancellation, and callback errors are logged rather
    than raised.
    """

    def __init__(
        self,
        callback: Optional[RoutingCallback] = None,
        token: Optional[CancellationToken] = None,
    ):
        self.callback = callback
        self.token = token
        self._seen: Set[Tuple[Optional[str], Optional[str]]] = set()
        self.events: List[RoutingInfo] = []

    def report(
        self,
        current_step: Optional[str] = None,
        workflow_type: Optional[WorkflowType] = None,
    ) -> bool:
        """Emit one progress signal.

        Returns:
            True if the signal was delivered to the callback
        """
        if _is_cancelled(self.token):
            return False

        key = (workflow_type.value if workflow_type else None, current_step)
        if key in self._seen:
            return False
        self._seen.add(key)

        info = RoutingInfo(workflow_type=workflow_type, current_step=current_step)
        self.events.append(info)
        if self.callback is None:
            return False
        try:
            self.callback(info)
        except Exception as exc:  # noqa: BLE001 - progress is best effort
            logger.warning("progress.callback_failed", step=current_step, error=str(exc))
            return False
        return True


class ChatEngine:
    """Route a conversation turn and stream the response.

    Example:
        >>> engine = ChatEngine(model, GitRepository("."))
        >>> async for chunk in engine.stream_chat(history, gate):
        ...     print(chunk, end="")
    """

    def __init__(
        self,
        model: ModelClient,
        repository: GitRepository,
        *,
        chunk_size: int = 8,
        chunk_delay: float = 0.025,
        use_workflows: bool = True,
        marker: str = CONFIRMATION_MARKER,
        review_max_files: int = 3,
    ):
        self.model = model
        self.repository = repository
        self.chunk_size = chunk_size
        self.chunk_delay = chunk_delay
        self.use_workflows = use_workflows
        self.router = WorkflowRouter(
            model,
            repository,
            marker=marker,
            review_max_files=review_max_files,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, model: ModelClient, repository: Optional[GitRepository] = None
    ) -> "ChatEngine":
        """Build an engine from loaded settings."""
        if repository is None:
            repository = GitRepository(
                settings.git.working_directory or None,
                timeout=settings.git.command_timeout_seconds,
            )
        return cls(
            model,
            repository,
            chunk_size=settings.streaming.chunk_size,
            chunk_delay=settings.streaming.chunk_delay_ms / 1000.0,
            use_workflows=settings.routing.use_workflows,
            marker=settings.routing.confirmation_marker,
            review_max_files=settings.git.review_max_files,
        )

    async def stream_chat(
        self,
        history: List[Message],
        gate: ConfirmationGate,
        token: Optional[CancellationToken] = None,
        on_routing: Optional[RoutingCallback] = None,
        on_result: Optional[ResultCallback] = None,
    ) -> AsyncIterator[str]:
        """Stream the assistant reply for the last user message.

        Args:
            history: Conversation ending with the user message to answer
            gate: Confirmation gate of the conversation
            token: Cancellation token
            on_routing: Progress callback
            on_result: Receives the WorkflowResult once routing completes

        Yields:
            Response text chunks. An unexpected failure yields a single
            ``Error: <message>`` chunk instead.
        """
        token = token or CancellationToken()
        reporter = ProgressReporter(on_routing, token)

        try:
            if not self.use_workflows or not history or history[-1].role is not Role.USER:
                async for fragment in self._stream_direct(history, token):
                    yield fragment
                return

            reporter.report(current_step="start")
            result = await self.router.route_and_execute(
                history[-1].content, history, gate, reporter
            )
            if token.cancelled:
                logger.debug("stream.cancelled", phase="routing")
                self._withdraw(result, gate)
                return
            if on_result is not None:
                on_result(result)

            delivered = 0
            async for chunk in stream_text(
                result.response_text, token, self.chunk_size, self.chunk_delay
            ):
                delivered += len(chunk)
                yield chunk

            if token.cancelled:
                logger.debug("stream.cancelled", phase="streaming")
                if delivered < len(result.response_text):
                    self._withdraw(result, gate)
                return
            reporter.report(current_step="completed", workflow_type=result.workflow_type)
        except Exception as exc:  # noqa: BLE001 - a failed turn must not end the conversation
            if token.cancelled:
                return
            logger.error("stream.failed", error=str(exc))
            yield f"Error: {exc}"

    @staticmethod
    def _withdraw(result: WorkflowResult, gate: ConfirmationGate) -> None:
        """Cancel a descriptor the user never saw in full."""
        if result.is_gated and gate.awaiting_decision and gate.descriptor == result.confirmation:
            gate.decide(ConfirmationDecision.CANCELLED)
            logger.info("stream.confirmation_withdrawn", operation=result.confirmation.operation_name)

    async def _stream_direct(
        self, history: List[Message], token: CancellationToken
    ) -> AsyncIterator[str]:
        messages = [m.to_dict() for m in history]
        async for fragment in stream_fragments(self.model.stream_generate(messages), token):
            yield fragment
