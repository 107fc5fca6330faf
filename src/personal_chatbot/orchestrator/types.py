"""Core types for the orchestrator.

This module defines the data structures used by the orchestration loop:
- TurnState: State machine states
- TurnContext: Mutable state container passed through the turn's steps
- Error classes: everything a turn can fail with
"""

from dataclasses import dataclass, field
from enum import Enum

from personal_chatbot.conversation import (
    ConversationId,
    ConversationUpdate,
    IncompleteConversation,
    Message,
    RequestContext,
    ToolCalling,
    UserRole,
)


class TurnState(str, Enum):
    """State machine states for one conversation turn."""

    COMPOSING = "composing"
    INTERCEPTING = "intercepting"
    CALLING_MODEL = "calling_model"
    TOOL_CALLING = "tool_calling"
    FINISHED = "finished"


@dataclass
class TurnContext:
    """Mutable state container passed through the steps of a turn.

    Attributes:
        request: Request context supplied by the platform adapter.
        conversation_id: Stored conversation the turn builds on.
        new_messages: Inbound messages of this turn.
        user_role: Capabilities of the requesting user.
        state: Current state in the state machine.
        incomplete: Accumulator, available once the turn is composed.
        model_calls: Model calls made so far in this turn.
        pending_calls: Tool calls requested by the last model reply.
        update: The turn's result, set when the state reaches FINISHED.
    """

    request: RequestContext
    conversation_id: ConversationId
    new_messages: list[Message]
    user_role: UserRole
    state: TurnState = TurnState.COMPOSING
    incomplete: IncompleteConversation | None = None
    model_calls: int = 0
    pending_calls: list[ToolCalling] = field(default_factory=list)
    update: ConversationUpdate | None = None

    @property
    def trace_id(self) -> str:
        return self.request.trace_ctx.trace_id


# Error hierarchy


class OrchestrationError(Exception):
    """Base exception for every way a turn can fail."""

    pass


class MustEndWithUserMessageError(OrchestrationError):
    """Raised when the inbound messages are empty or do not end with a user message."""

    def __init__(self) -> None:
        super().__init__("new messages must end with a user message")


class ConversationNotFoundError(OrchestrationError):
    """Raised when the conversation to continue is not in storage."""

    def __init__(self, conversation_id: ConversationId) -> None:
        super().__init__(f"conversation {conversation_id} not found")
        self.conversation_id = conversation_id


class TooManyModelCallsError(OrchestrationError):
    """Raised when a turn needs more model calls than allowed."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"turn exceeded the limit of {limit} model calls")
        self.limit = limit


class ConversationAbortedError(OrchestrationError):
    """Raised when an interceptor vetoes the turn."""

    def __init__(self) -> None:
        super().__init__("conversation aborted")


class BackendError(OrchestrationError):
    """Raised when a collaborator fails; the original error is the cause.

    Attributes:
        source: Which collaborator failed: "model", "storage", "tool" or
            "interception".
    """

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source} backend error: {message}")
        self.source = source
