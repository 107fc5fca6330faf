"""Orchestration of conversation turns.

The orchestrator loads the stored conversation, runs the interception chain,
then alternates model calls and tool calls until the model answers.
"""

from personal_chatbot.orchestrator.executor import (
    DEFAULT_MAX_MODEL_CALLS,
    TurnExecutor,
    strip_sensitive_text,
)
from personal_chatbot.orchestrator.factory import build_orchestrator
from personal_chatbot.orchestrator.orchestrator import Orchestrator
from personal_chatbot.orchestrator.types import (
    BackendError,
    ConversationAbortedError,
    ConversationNotFoundError,
    MustEndWithUserMessageError,
    OrchestrationError,
    TooManyModelCallsError,
    TurnContext,
    TurnState,
)

__all__ = [
    "Orchestrator",
    "build_orchestrator",
    "TurnExecutor",
    "TurnContext",
    "TurnState",
    "DEFAULT_MAX_MODEL_CALLS",
    "strip_sensitive_text",
    # Errors
    "OrchestrationError",
    "MustEndWithUserMessageError",
    "ConversationNotFoundError",
    "TooManyModelCallsError",
    "ConversationAbortedError",
    "BackendError",
]
