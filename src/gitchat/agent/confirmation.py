"""Confirmation gate for state-changing operations.

A single state machine withholds mutating execution until the user decides:

    idle -> pending -> {executed, suggested, cancelled} -> idle

Two adapters feed decisions into the same gate:
- SelectorAdapter: an explicit UI choice (yes / no / cancel)
- HistoryDetector: an inline ``y``/``yes``/``n``/``no`` reply found in the
  conversation history after an assistant message carrying the marker phrase

Both produce the same resubmission contract: ``EXECUTE: <original>`` for a
confirmation, ``SUGGEST: <original>`` for a decline, nothing for a cancel.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from transitions import Machine

from gitchat.agent.models import (
    CONFIRMATION_MARKER,
    ConfirmationDecision,
    ConfirmationDescriptor,
    ExecutionMode,
    Message,
    Role,
)
from gitchat.agent.patterns import build_resubmission, history_decision
from gitchat.errors import GitChatError
from gitchat.utils.logging import generate_execution_id, get_logger

MISSING_ORIGINAL_TEXT = "Could not find the original operation request."


class GateState(str, Enum):
    """Confirmation gate states."""

    IDLE = "idle"
    PENDING = "pending"
    EXECUTED = "executed"
    SUGGESTED = "suggested"
    CANCELLED = "cancelled"


TERMINAL_STATES = [GateState.EXECUTED.value, GateState.SUGGESTED.value, GateState.CANCELLED.value]

TRANSITIONS: List[Dict[str, Any]] = [
    {"trigger": "request", "source": GateState.IDLE.value, "dest": GateState.PENDING.value},
    {"trigger": "confirm", "source": GateState.PENDING.value, "dest": GateState.EXECUTED.value},
    {"trigger": "decline", "source": GateState.PENDING.value, "dest": GateState.SUGGESTED.value},
    {"trigger": "cancel", "source": GateState.PENDING.value, "dest": GateState.CANCELLED.value},
    {"trigger": "reset", "source": TERMINAL_STATES, "dest": GateState.IDLE.value},
]

_DECISION_TRIGGERS = {
    ConfirmationDecision.CONFIRMED: "confirm",
    ConfirmationDecision.DECLINED: "decline",
    ConfirmationDecision.CANCELLED: "cancel",
}


class GateError(GitChatError):
    """Raised when a decision arrives with no operation awaiting one."""


class ConfirmationGate:
    """Holds at most one pending confirmation descriptor.

    Example:
        >>> gate = ConfirmationGate()
        >>> gate.open(ConfirmationDescriptor("Delete Branch", "...", "delete old-feature"))
        >>> gate.awaiting_decision
        True
        >>> gate.decide(ConfirmationDecision.CONFIRMED)
        'EXECUTE: delete old-feature'
        >>> gate.state
        'idle'
    """

    def __init__(self, gate_id: Optional[str] = None):
        self.gate_id = gate_id or generate_execution_id()
        self.logger = get_logger("gate").bind(gate_id=self.gate_id)
        self.history: List[str] = []
        self.state: str = GateState.IDLE.value
        self.descriptor: Optional[ConfirmationDescriptor] = None

        self._machine = Machine(
            model=self,
            states=[state.value for state in GateState],
            transitions=TRANSITIONS,
            initial=GateState.IDLE.value,
            auto_transitions=False,
            ignore_invalid_triggers=True,
            after_state_change=self._record_transition,
            send_event=False,
        )

    def _record_transition(self) -> None:
        self.history.append(self.state)
        self.logger.debug("gate.transition", state=self.state)

    @property
    def awaiting_decision(self) -> bool:
        return self.state == GateState.PENDING.value

    def open(self, descriptor: ConfirmationDescriptor) -> None:
        """Store a descriptor and move idle -> pending.

        A descriptor that is still pending is cancelled first, so at most
        one is ever outstanding.
        """
        if self.awaiting_decision:
            self.logger.debug(
                "gate.replaced",
                previous=self.descriptor.operation_name if self.descriptor else None,
            )
            self.cancel()
            self.reset()

        self.descriptor = descriptor
        self.request()
        self.logger.debug("gate.opened", operation=descriptor.operation_name)

    def decide(self, decision: ConfirmationDecision) -> Optional[str]:
        """Apply a decision to the pending descriptor.

        Args:
            decision: confirmed, declined or cancelled

        Returns:
            The prefixed resubmission text, or None for a cancellation

        Raises:
            GateError: If no descriptor is pending
        """
        if not self.awaiting_decision or self.descriptor is None:
            raise GateError("No operation is awaiting confirmation")

        descriptor = self.descriptor
        getattr(self, _DECISION_TRIGGERS[decision])()

        resubmission: Optional[str] = None
        if decision is ConfirmationDecision.CONFIRMED:
            resubmission = build_resubmission(ExecutionMode.EXECUTE, descriptor.original_request)
        elif decision is ConfirmationDecision.DECLINED:
            resubmission = build_resubmission(ExecutionMode.SUGGEST, descriptor.original_request)

        self.logger.info(
            "gate.decided",
            operation=descriptor.operation_name,
            decision=decision.value,
        )
        self.descriptor = None
        self.reset()
        return resubmission


class SelectorAdapter:
    """Explicit UI selector feeding the gate.

    Every choice clears the descriptor atomically.
    """

    def __init__(self, gate: ConfirmationGate):
        self.gate = gate

    @property
    def pending(self) -> Optional[ConfirmationDescriptor]:
        return self.gate.descriptor if self.gate.awaiting_decision else None

    def choose(self, decision: ConfirmationDecision) -> Optional[str]:
        return self.gate.decide(decision)

    def confirm(self) -> Optional[str]:
        return self.choose(ConfirmationDecision.CONFIRMED)

    def decline(self) -> Optional[str]:
        return self.choose(ConfirmationDecision.DECLINED)

    def cancel(self) -> None:
        self.choose(ConfirmationDecision.CANCELLED)


@dataclass
class HistoryOutcome:
    """A decision recovered from the conversation history."""
    decision: ConfirmationDecision
    original_request: Optional[str]
    resubmission: Optional[str]

    @property
    def found_original(self) -> bool:
        return self.original_request is not None


class HistoryDetector:
    """Recognize an inline reply to a confirmation shown earlier.

    The reply counts as a decision when the last assistant message carries
    the marker phrase and the current user message is exactly y/yes/n/no.
    The original request is the second-to-last user message.
    """

    def __init__(self, gate: ConfirmationGate, marker: str = CONFIRMATION_MARKER):
        self.gate = gate
        self.marker = marker

    def detect(self, text: str, history: Sequence[Message]) -> Optional[ConfirmationDecision]:
        if len(history) < 2:
            return None
        decision = history_decision(text)
        if decision is None:
            return None

        last_assistant = next(
            (m for m in reversed(history) if m.role is Role.ASSISTANT), None
        )
        if last_assistant is None or self.marker not in last_assistant.content:
            return None
        return decision

    def resolve(self, text: str, history: Sequence[Message]) -> Optional[HistoryOutcome]:
        """Turn an inline reply into a gate decision.

        Returns:
            None when the text is not a reply to a confirmation, otherwise
            the outcome with the resubmission text (None when the original
            request cannot be found)
        """
        decision = self.detect(text, history)
        if decision is None:
            return None

        user_messages = [m for m in history if m.role is Role.USER]
        if len(user_messages) < 2:
            self.gate.logger.warning("gate.original_missing")
            if self.gate.awaiting_decision:
                self.gate.decide(ConfirmationDecision.CANCELLED)
            return HistoryOutcome(decision, None, None)

        original = user_messages[-2].content
        pending = self.gate.descriptor if self.gate.awaiting_decision else None
        if pending is None or pending.original_request != original:
            if pending is not None:
                self.gate.logger.warning(
                    "gate.history_mismatch",
                    pending=pending.original_request,
                    history=original,
                )
            self.gate.open(
                ConfirmationDescriptor(
                    operation_name="Pending operation",
                    description="Recovered from conversation history.",
                    original_request=original,
                )
            )

        return HistoryOutcome(decision, original, self.gate.decide(decision))
