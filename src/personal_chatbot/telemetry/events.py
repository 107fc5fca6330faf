"""Semantic event constants for structured logging.

All log events should use these constants rather than magic strings so events
stay consistent and can be queried reliably.
"""

# Orchestrator events
TURN_STARTED = "turn_started"
TURN_COMPLETED = "turn_completed"
TURN_FAILED = "turn_failed"
STATE_TRANSITION = "state_transition"
UNKNOWN_STATE = "unknown_state"
MODEL_CALL_LIMIT_REACHED = "model_call_limit_reached"

# Interception events
INTERCEPTOR_REGISTERED = "interceptor_registered"
INTERCEPTION_RESULT = "interception_result"
BANG_COMMAND_RECEIVED = "bang_command_received"

# LLM backend events
MODEL_CALL_STARTED = "model_call_started"
MODEL_CALL_COMPLETED = "model_call_completed"
MODEL_CALL_ERROR = "model_call_error"
MODEL_CALL_RETRY = "model_call_retry"
BACKEND_CREATED = "backend_created"
BACKEND_INIT_FAILED = "backend_init_failed"

# Tool execution events
TOOL_REGISTERED = "tool_registered"
TOOL_CALL_STARTED = "tool_call_started"
TOOL_CALL_COMPLETED = "tool_call_completed"
TOOL_CALL_FAILED = "tool_call_failed"
TOOL_NOT_FOUND = "tool_not_found"

# Conversation lifecycle events
CONVERSATION_CREATED = "conversation_created"
CONVERSATION_RESTORED = "conversation_restored"
CONVERSATION_SAVED = "conversation_saved"
STORAGE_INITIALIZED = "storage_initialized"
