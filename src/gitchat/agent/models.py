"""Data model for the chat routing pipeline.

Defines the values that flow between the pipeline stages:
- Conversation messages and roles
- Operation kinds, execution modes and workflow types
- Confirmation descriptors and decisions
- Routing progress signals and workflow results
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

CONFIRMATION_MARKER = "Confirmation Required"


class Role(str, Enum):
    """Author of a conversation message."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass
class Message:
    """One entry of the conversation history."""
    role: Role
    content: str

    def to_dict(self) -> Dict[str, str]:
        """Convert to the chat-completions message shape."""
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: str = "") -> "Message":
        return cls(Role.ASSISTANT, content)


class OperationKind(str, Enum):
    """The fixed catalog of git intents."""
    STATUS = "status"
    DIFF = "diff"
    COMMIT = "commit"
    BRANCH = "branch"
    REMOTE = "remote"
    STASH = "stash"
    UNDO = "undo"
    REVIEW = "review"

    @classmethod
    def values(cls) -> List[str]:
        return [kind.value for kind in cls]


# Kinds that never change repository state
READ_ONLY_KINDS = frozenset({OperationKind.STATUS, OperationKind.DIFF, OperationKind.REVIEW})


class ExecutionMode(str, Enum):
    """How a handler should treat the request."""
    EXECUTE = "execute"
    SUGGEST = "suggest"
    ASK = "ask"


class WorkflowType(str, Enum):
    """Coarse intent category."""
    GIT_ANALYSIS = "git-analysis"
    GENERAL_CHAT = "general-chat"


class ConfirmationDecision(str, Enum):
    """User response to a confirmation descriptor."""
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ConfirmationDescriptor:
    """What a gated operation would do if confirmed."""
    operation_name: str
    description: str
    original_request: str

    def render(self, marker: str = CONFIRMATION_MARKER) -> str:
        """Render the descriptor as assistant-visible text."""
        return (
            f"⚠️ **{marker}**\n\n"
            f"**Operation:** {self.operation_name}\n"
            f"**Description:** {self.description}\n\n"
            "Reply **yes** to execute, **no** for manual instructions, "
            "or anything else to cancel."
        )

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary."""
        return {
            "operation_name": self.operation_name,
            "description": self.description,
            "original_request": self.original_request,
        }


@dataclass
class RoutingInfo:
    """Ephemeral progress signal for UI feedback."""
    workflow_type: Optional[WorkflowType] = None
    current_step: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "workflow_type": self.workflow_type.value if self.workflow_type else None,
            "current_step": self.current_step,
        }


@dataclass
class WorkflowResult:
    """Outcome of one routed turn."""
    response_text: str
    operation_kind: Optional[OperationKind] = None
    suggested_actions: List[str] = field(default_factory=list)
    workflow_type: WorkflowType = WorkflowType.GIT_ANALYSIS
    confirmation: Optional[ConfirmationDescriptor] = None

    @property
    def is_gated(self) -> bool:
        """Whether the result withholds execution pending a decision."""
        return self.confirmation is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "response_text": self.response_text,
            "operation_kind": self.operation_kind.value if self.operation_kind else None,
            "suggested_actions": self.suggested_actions,
            "workflow_type": self.workflow_type.value,
            "confirmation": self.confirmation.to_dict() if self.confirmation else None,
        }
