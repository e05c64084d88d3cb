"""Chat routing pipeline: classification, confirmation gate, dispatch and streaming."""

from gitchat.agent.classifier import IntentClassifier, OperationResolver
from gitchat.agent.confirmation import (
    ConfirmationGate,
    GateError,
    GateState,
    HistoryDetector,
    SelectorAdapter,
)
from gitchat.agent.handlers import HANDLERS, HandlerContext, general_chat_result
from gitchat.agent.models import (
    CONFIRMATION_MARKER,
    ConfirmationDecision,
    ConfirmationDescriptor,
    ExecutionMode,
    Message,
    OperationKind,
    Role,
    RoutingInfo,
    WorkflowResult,
    WorkflowType,
)
from gitchat.agent.patterns import is_read_only, parse_execution_mode
from gitchat.agent.router import WorkflowRouter
from gitchat.agent.session import ChatSession
from gitchat.agent.streaming import (
    CancellationToken,
    ChatEngine,
    ProgressReporter,
    stream_fragments,
    stream_text,
)
from gitchat.agent.sub_parsers import SUB_PARSERS, ParsedAction

__all__ = [
    "CONFIRMATION_MARKER",
    "CancellationToken",
    "ChatEngine",
    "ChatSession",
    "ConfirmationDecision",
    "ConfirmationDescriptor",
    "ConfirmationGate",
    "ExecutionMode",
    "GateError",
    "GateState",
    "HANDLERS",
    "HandlerContext",
    "HistoryDetector",
    "IntentClassifier",
    "Message",
    "OperationKind",
    "OperationResolver",
    "ParsedAction",
    "ProgressReporter",
    "Role",
    "RoutingInfo",
    "SUB_PARSERS",
    "SelectorAdapter",
    "WorkflowResult",
    "WorkflowRouter",
    "WorkflowType",
    "general_chat_result",
    "is_read_only",
    "parse_execution_mode",
    "stream_fragments",
    "stream_text",
]
