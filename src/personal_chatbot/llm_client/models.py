"""Pydantic models for model backend configuration.

This module defines the schema for config/models.yaml.
"""

from typing import Literal

from pydantic import BaseModel, Field, model_validator


class ModelDefinition(BaseModel):
    """Configuration for a single named model.

    Attributes:
        backend: Backend implementation used to talk to the model.
        id: Model identifier sent to the API (e.g., "gpt-4.1-mini").
        endpoint: Base URL of the OpenAI-compatible API.
        api_key_env: Environment variable holding the API key. None for
            servers that need no key (local llama.cpp, LM Studio, ...).
        max_tokens: Completion token limit per request.
        temperature: Sampling temperature (None uses backend default).
        default_timeout: Read timeout in seconds for one request.
        supports_function_calling: Whether tools are advertised to this model.
        structured_output: Ask for a JSON reply carrying text, language and
            sensitivity instead of free text.
    """

    backend: Literal["chat_completions"] = Field(
        "chat_completions", description="Backend implementation"
    )
    id: str = Field(..., description="Model identifier")
    endpoint: str = Field("https://api.openai.com/v1", description="API base URL")
    api_key_env: str | None = Field(None, description="Environment variable with the API key")
    max_tokens: int | None = Field(None, ge=1, description="Completion token limit")
    temperature: float | None = Field(
        default=None, ge=0.0, le=2.0, description="Default sampling temperature"
    )
    default_timeout: int = Field(60, ge=1, description="Default timeout in seconds")
    supports_function_calling: bool = Field(
        True, description="Whether model supports native function calling"
    )
    structured_output: bool = Field(False, description="Request structured JSON replies")


class ModelConfig(BaseModel):
    """Complete model configuration.

    Attributes:
        default: Name of the model used when a conversation has no override.
        models: Model definitions keyed by the name users select them with.
    """

    default: str = Field(..., description="Default model name")
    models: dict[str, ModelDefinition] = Field(..., description="Model definitions by name")

    @model_validator(mode="after")
    def _default_is_defined(self) -> "ModelConfig":
        if self.default not in self.models:
            raise ValueError(f"default model '{self.default}' is not defined in models")
        return self
