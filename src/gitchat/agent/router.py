"""Workflow router: classification, gating and dispatch.

One call to ``route_and_execute()`` runs the whole per-turn pipeline:
1. Inline confirmation replies found in the history
2. Execution mode from the ``EXECUTE:``/``SUGGEST:`` prefix or the
   read-only pattern
3. Intent classification (off-topic short-circuits to a redirect)
4. Operation resolution
5. Dispatch through the handler table
6. Opening the confirmation gate for gated results
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Optional, Sequence, Tuple

from gitchat.agent.classifier import IntentClassifier, OperationResolver
from gitchat.agent.confirmation import (
    MISSING_ORIGINAL_TEXT,
    ConfirmationGate,
    HistoryDetector,
)
from gitchat.agent.handlers import HANDLERS, Handler, HandlerContext, general_chat_result
from gitchat.agent.models import (
    CONFIRMATION_MARKER,
    ExecutionMode,
    Message,
    OperationKind,
    WorkflowResult,
    WorkflowType,
)
from gitchat.agent.patterns import is_read_only, parse_execution_mode
from gitchat.git.repository import GitRepository
from gitchat.llm.providers import ModelClient
from gitchat.utils.logging import get_logger, timed_operation

if TYPE_CHECKING:
    from gitchat.agent.streaming import ProgressReporter

logger = get_logger("agent.router")


def infer_mode(text: str) -> Tuple[ExecutionMode, str]:
    """Return (mode, actual_text) for a request.

    An explicit prefix wins. Otherwise read-only requests execute and
    everything else asks first.
    """
    mode, actual = parse_execution_mode(text)
    if mode is None:
        mode = ExecutionMode.EXECUTE if is_read_only(actual) else ExecutionMode.ASK
    return mode, actual


class WorkflowRouter:
    """Route one user turn to the matching operation handler.

    Example:
        >>> router = WorkflowRouter(model, GitRepository("."))
        >>> gate = ConfirmationGate()
        >>> result = await router.route_and_execute("git status", history, gate)
        >>> result.operation_kind
        <OperationKind.STATUS: 'status'>
    """

    def __init__(
        self,
        model: ModelClient,
        repository: GitRepository,
        *,
        handlers: Optional[Dict[OperationKind, Handler]] = None,
        marker: str = CONFIRMATION_MARKER,
        review_max_files: int = 3,
    ):
        self.model = model
        self.repository = repository
        self.handlers = handlers if handlers is not None else HANDLERS
        self.marker = marker
        self.review_max_files = review_max_files
        self.intent_classifier = IntentClassifier(model)
        self.operation_resolver = OperationResolver(model)

    async def route_and_execute(
        self,
        text: str,
        history: Sequence[Message],
        gate: ConfirmationGate,
        reporter: Optional["ProgressReporter"] = None,
    ) -> WorkflowResult:
        """Run the pipeline for one user message.

        Args:
            text: The latest user message
            history: Conversation so far, ending with that message
            gate: Confirmation gate of the conversation
            reporter: Optional progress reporter

        Returns:
            Exactly one WorkflowResult
        """
        outcome = HistoryDetector(gate, self.marker).resolve(text, history)
        if outcome is not None:
            if outcome.resubmission is None:
                return WorkflowResult(
                    response_text=MISSING_ORIGINAL_TEXT,
                    workflow_type=WorkflowType.GENERAL_CHAT,
                )
            logger.info(
                "router.history_decision",
                decision=outcome.decision.value,
                original=outcome.original_request,
            )
            mode, actual = parse_execution_mode(outcome.resubmission)
            # Resume on the original request; intent was settled the first time
            return await self._dispatch(mode, actual, gate, reporter)

        mode, actual = infer_mode(text)
        read_only = parse_execution_mode(text)[0] is None and mode is ExecutionMode.EXECUTE

        if reporter is not None:
            reporter.report(current_step="classifying")
        intent = await self.intent_classifier.classify(actual)
        if intent.value is WorkflowType.GENERAL_CHAT:
            logger.info("router.off_topic")
            return general_chat_result(actual)

        return await self._dispatch(mode, actual, gate, reporter, read_only=read_only)

    async def _dispatch(
        self,
        mode: ExecutionMode,
        text: str,
        gate: ConfirmationGate,
        reporter: Optional["ProgressReporter"],
        read_only: bool = False,
    ) -> WorkflowResult:
        if reporter is not None:
            reporter.report(
                current_step="executing", workflow_type=WorkflowType.GIT_ANALYSIS
            )

        kind = (await self.operation_resolver.resolve(text)).value
        logger.info("router.dispatch", operation=kind.value, mode=mode.value, read_only=read_only)

        ctx = HandlerContext(
            text=text,
            mode=mode,
            repository=self.repository,
            model=self.model,
            reporter=reporter,
            marker=self.marker,
            review_max_files=self.review_max_files,
            read_only=read_only,
        )
        with timed_operation("router.handler", logger=logger, operation=kind.value):
            result = await self.handlers[kind](ctx)

        if result.confirmation is not None:
            gate.open(result.confirmation)
        return result
