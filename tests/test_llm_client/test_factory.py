"""Tests for backend construction."""

import pytest

from personal_chatbot.llm_client import (
    ChatCompletionsBackend,
    LLMConfigurationError,
    ModelDefinition,
    create_backend,
)


class TestCreateBackend:
    """Test create_backend function."""

    @pytest.mark.asyncio
    async def test_reads_api_key_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that the key named by api_key_env is used."""
        monkeypatch.setenv("TEST_LLM_KEY", "sk-123")
        definition = ModelDefinition(id="gpt-test", api_key_env="TEST_LLM_KEY")

        backend = await create_backend("gpt", definition, max_retries=5)

        assert isinstance(backend, ChatCompletionsBackend)
        assert backend.api_key == "sk-123"
        assert backend.max_retries == 5

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that an unset key variable fails construction."""
        monkeypatch.delenv("TEST_LLM_KEY", raising=False)
        definition = ModelDefinition(id="gpt-test", api_key_env="TEST_LLM_KEY")

        with pytest.raises(LLMConfigurationError, match="TEST_LLM_KEY"):
            await create_backend("gpt", definition)

    @pytest.mark.asyncio
    async def test_no_key_needed(self) -> None:
        """Test local servers without authentication."""
        definition = ModelDefinition(id="local", endpoint="http://localhost:1234/v1")

        backend = await create_backend("local", definition)

        assert isinstance(backend, ChatCompletionsBackend)
        assert backend.api_key is None
        assert backend.endpoint == "http://localhost:1234/v1/chat/completions"
