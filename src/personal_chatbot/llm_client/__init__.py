"""Model backends for the personal chatbot.

This module provides the backend interface, the chat completions backend,
and the cache that builds backends per configured model name.
"""

from personal_chatbot.llm_client.backend import ModelBackend
from personal_chatbot.llm_client.cache import BackendCache, BackendFactory
from personal_chatbot.llm_client.chat_completions import ChatCompletionsBackend
from personal_chatbot.llm_client.factory import create_backend
from personal_chatbot.llm_client.models import ModelConfig, ModelDefinition
from personal_chatbot.llm_client.types import (
    BackendInitializationError,
    BackendUpdate,
    Filtered,
    Finished,
    LengthCut,
    LLMClientError,
    LLMConfigurationError,
    LLMConnectionError,
    LLMInvalidResponse,
    LLMRateLimit,
    LLMServerError,
    LLMTimeout,
    ToolCallingRequested,
    UndefinedModelError,
)

__all__ = [
    # Backends
    "ModelBackend",
    "ChatCompletionsBackend",
    "BackendCache",
    "BackendFactory",
    "create_backend",
    # Configuration
    "ModelConfig",
    "ModelDefinition",
    # Updates
    "BackendUpdate",
    "Finished",
    "LengthCut",
    "ToolCallingRequested",
    "Filtered",
    # Errors
    "LLMClientError",
    "LLMTimeout",
    "LLMConnectionError",
    "LLMRateLimit",
    "LLMServerError",
    "LLMInvalidResponse",
    "LLMConfigurationError",
    "UndefinedModelError",
    "BackendInitializationError",
]
