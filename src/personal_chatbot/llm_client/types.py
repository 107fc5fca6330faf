"""Type definitions for the LLM client module.

This module defines:
- BackendUpdate: the outcome of one model call (Finished, LengthCut,
  ToolCallingRequested, Filtered)
- Error classes: hierarchy of LLM client errors
"""

from dataclasses import dataclass, field

from personal_chatbot.conversation import ToolCalling


@dataclass(frozen=True)
class Finished:
    """The model produced its final reply.

    Attributes:
        text: Reply text.
        language: Language tag, if the backend reports one.
        sensitive: Explicit sensitivity; None lets the orchestrator apply the
            configured marker.
    """

    text: str
    language: str | None = None
    sensitive: bool | None = None


@dataclass(frozen=True)
class LengthCut:
    """The reply was truncated by the token limit; more text will follow."""

    text: str
    language: str | None = None
    sensitive: bool | None = None


@dataclass(frozen=True)
class ToolCallingRequested:
    """The model asked for tool calls before answering."""

    calls: list[ToolCalling] = field(default_factory=list)


@dataclass(frozen=True)
class Filtered:
    """The backend's content filter withheld the reply."""


BackendUpdate = Finished | LengthCut | ToolCallingRequested | Filtered


# Error hierarchy


class LLMClientError(Exception):
    """Base exception for all LLM client errors."""

    pass


class LLMTimeout(LLMClientError):
    """Raised when an LLM request times out."""

    pass


class LLMConnectionError(LLMClientError):
    """Raised when connection to LLM server fails."""

    pass


class LLMRateLimit(LLMClientError):
    """Raised when LLM server returns rate limit error."""

    pass


class LLMServerError(LLMClientError):
    """Raised when LLM server returns an error (5xx)."""

    pass


class LLMInvalidResponse(LLMClientError):
    """Raised when LLM server returns invalid or unexpected response format."""

    pass


class LLMConfigurationError(LLMClientError):
    """Raised when a backend cannot be built from its model definition."""

    pass


class UndefinedModelError(LLMClientError):
    """Raised when a model name has no definition."""

    def __init__(self, model: str) -> None:
        super().__init__(f"model '{model}' is not defined")
        self.model = model


class BackendInitializationError(LLMClientError):
    """Raised when a model's backend failed to build during this process."""

    def __init__(self, model: str) -> None:
        super().__init__(f"backend for model '{model}' failed to initialize")
        self.model = model
