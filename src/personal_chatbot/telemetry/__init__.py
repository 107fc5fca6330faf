"""Telemetry module for structured logging and trace correlation.

This module provides:
- TraceContext for request correlation
- Structured logging via structlog
- Semantic event constants
"""

from personal_chatbot.telemetry.events import (
    BACKEND_CREATED,
    BACKEND_INIT_FAILED,
    BANG_COMMAND_RECEIVED,
    CONVERSATION_CREATED,
    CONVERSATION_RESTORED,
    CONVERSATION_SAVED,
    INTERCEPTION_RESULT,
    INTERCEPTOR_REGISTERED,
    MODEL_CALL_COMPLETED,
    MODEL_CALL_ERROR,
    MODEL_CALL_LIMIT_REACHED,
    MODEL_CALL_RETRY,
    MODEL_CALL_STARTED,
    STATE_TRANSITION,
    STORAGE_INITIALIZED,
    TOOL_CALL_COMPLETED,
    TOOL_CALL_FAILED,
    TOOL_CALL_STARTED,
    TOOL_NOT_FOUND,
    TOOL_REGISTERED,
    TURN_COMPLETED,
    TURN_FAILED,
    TURN_STARTED,
    UNKNOWN_STATE,
)
from personal_chatbot.telemetry.logger import configure_logging, get_logger
from personal_chatbot.telemetry.trace import TraceContext

__all__ = [
    # Core exports
    "TraceContext",
    "get_logger",
    "configure_logging",
    # Event constants
    "TURN_STARTED",
    "TURN_COMPLETED",
    "TURN_FAILED",
    "STATE_TRANSITION",
    "UNKNOWN_STATE",
    "MODEL_CALL_LIMIT_REACHED",
    "INTERCEPTOR_REGISTERED",
    "INTERCEPTION_RESULT",
    "BANG_COMMAND_RECEIVED",
    "MODEL_CALL_STARTED",
    "MODEL_CALL_COMPLETED",
    "MODEL_CALL_ERROR",
    "MODEL_CALL_RETRY",
    "BACKEND_CREATED",
    "BACKEND_INIT_FAILED",
    "TOOL_REGISTERED",
    "TOOL_CALL_STARTED",
    "TOOL_CALL_COMPLETED",
    "TOOL_CALL_FAILED",
    "TOOL_NOT_FOUND",
    "CONVERSATION_CREATED",
    "CONVERSATION_RESTORED",
    "CONVERSATION_SAVED",
    "STORAGE_INITIALIZED",
]
