"""Construction of model backends from their definitions."""

import os

from personal_chatbot.llm_client.backend import ModelBackend
from personal_chatbot.llm_client.chat_completions import ChatCompletionsBackend
from personal_chatbot.llm_client.models import ModelDefinition
from personal_chatbot.llm_client.types import LLMConfigurationError


async def create_backend(
    name: str, definition: ModelDefinition, max_retries: int = 2
) -> ModelBackend:
    """Build the backend for a model definition.

    Args:
        name: Configured model name.
        definition: Model definition from models.yaml.
        max_retries: Retry attempts for transient HTTP failures.

    Returns:
        Ready-to-use backend.

    Raises:
        LLMConfigurationError: If the definition cannot be turned into a backend
            (e.g. its API key variable is unset).
    """
    api_key: str | None = None
    if definition.api_key_env:
        api_key = os.getenv(definition.api_key_env)
        if not api_key:
            raise LLMConfigurationError(
                f"model '{name}' needs environment variable {definition.api_key_env}"
            )

    if definition.backend == "chat_completions":
        return ChatCompletionsBackend(name, definition, api_key=api_key, max_retries=max_retries)

    raise LLMConfigurationError(f"model '{name}' uses unknown backend '{definition.backend}'")
