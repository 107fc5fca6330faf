"""Model backend for OpenAI-compatible chat completions APIs.

Works with OpenAI itself and with local servers that expose the same
``/chat/completions`` endpoint (llama.cpp, LM Studio, Ollama, vLLM, ...).
"""

import asyncio
import time
from collections.abc import Iterable, Sequence
from typing import Any

import httpx

from personal_chatbot.conversation import Message
from personal_chatbot.llm_client.adapters import (
    adapt_chat_completions_response,
    build_chat_completions_request,
)
from personal_chatbot.llm_client.backend import ModelBackend
from personal_chatbot.llm_client.models import ModelDefinition
from personal_chatbot.llm_client.types import (
    BackendUpdate,
    LLMClientError,
    LLMConnectionError,
    LLMInvalidResponse,
    LLMRateLimit,
    LLMServerError,
    LLMTimeout,
)
from personal_chatbot.telemetry import get_logger
from personal_chatbot.telemetry.events import (
    MODEL_CALL_COMPLETED,
    MODEL_CALL_ERROR,
    MODEL_CALL_RETRY,
    MODEL_CALL_STARTED,
)
from personal_chatbot.telemetry.trace import TraceContext
from personal_chatbot.tools.types import ToolDescriptor

log = get_logger(__name__)


class ChatCompletionsBackend(ModelBackend):
    """Backend calling a chat completions endpoint over HTTP.

    Transient failures (timeouts, 429, 5xx) are retried with exponential
    backoff; everything else is raised as the matching ``LLMClientError``.

    Attributes:
        name: Configured model name, used in logs.
        definition: Model definition from models.yaml.
        api_key: Bearer token, if the server needs one.
        max_retries: Retry attempts for transient failures.
    """

    def __init__(
        self,
        name: str,
        definition: ModelDefinition,
        api_key: str | None = None,
        max_retries: int = 2,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            name: Configured model name.
            definition: Model definition.
            api_key: Bearer token, or None for servers without auth.
            max_retries: Retry attempts for transient failures.
            transport: Optional httpx transport (used by tests).
        """
        super().__init__()
        self.name = name
        self.definition = definition
        self.api_key = api_key
        self.max_retries = max_retries
        self._transport = transport

        base = definition.endpoint.rstrip("/")
        self.endpoint = f"{base}/chat/completions"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def send_conversation(
        self,
        messages: Iterable[Message],
        tools: Sequence[ToolDescriptor],
        trace_ctx: TraceContext | None = None,
    ) -> BackendUpdate:
        """Send the conversation and normalize the reply.

        Args:
            messages: Model-visible history.
            tools: Tools the model may call; dropped when the model does not
                support function calling.
            trace_ctx: Trace context for telemetry correlation.

        Returns:
            Normalized backend update.

        Raises:
            LLMTimeout: If request times out after all retries.
            LLMConnectionError: If connection fails.
            LLMRateLimit: If rate limited after all retries.
            LLMServerError: If server returns 5xx after all retries.
            LLMInvalidResponse: If response format is invalid.
            LLMClientError: For any other HTTP error.
        """
        definition = self.definition

        if tools and not definition.supports_function_calling:
            log.warning(
                "tools_filtered_no_function_calling",
                model=self.name,
                tools_count=len(tools),
            )
            tools = []

        payload = build_chat_completions_request(
            messages=messages,
            model=definition.id,
            tools=tools,
            max_tokens=definition.max_tokens,
            temperature=definition.temperature,
            structured_output=definition.structured_output,
        )

        if trace_ctx is None:
            trace_ctx = TraceContext.new_trace()
        _, span_id = trace_ctx.new_span()

        start_time = time.time()
        log.info(
            MODEL_CALL_STARTED,
            model=self.name,
            model_id=definition.id,
            endpoint=self.endpoint,
            message_count=len(payload["messages"]),
            tools_count=len(payload.get("tools", [])),
            trace_id=trace_ctx.trace_id,
            span_id=span_id,
        )

        try:
            response_data = await self._post_with_retries(payload, trace_ctx)
            update = adapt_chat_completions_response(
                response_data, structured_output=definition.structured_output
            )
        except LLMClientError as e:
            log.error(
                MODEL_CALL_ERROR,
                model=self.name,
                endpoint=self.endpoint,
                error_type=type(e).__name__,
                error=str(e),
                latency_ms=int((time.time() - start_time) * 1000),
                trace_id=trace_ctx.trace_id,
                span_id=span_id,
            )
            raise

        usage = response_data.get("usage") or {}
        log.info(
            MODEL_CALL_COMPLETED,
            model=self.name,
            update_type=type(update).__name__,
            latency_ms=int((time.time() - start_time) * 1000),
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            trace_id=trace_ctx.trace_id,
            span_id=span_id,
        )
        return update

    async def _post_with_retries(
        self, payload: dict[str, Any], trace_ctx: TraceContext
    ) -> dict[str, Any]:
        timeout_config = httpx.Timeout(
            connect=10.0,
            read=float(self.definition.default_timeout),  # model generation
            write=10.0,
            pool=10.0,
        )

        last_error: LLMClientError | None = None
        for attempt in range(self.max_retries + 1):
            try:
                async with httpx.AsyncClient(
                    timeout=timeout_config, transport=self._transport
                ) as client:
                    response = await client.post(
                        self.endpoint, json=payload, headers=self._headers()
                    )
                    response.raise_for_status()
                    response_data = response.json()
            except httpx.TimeoutException:
                last_error = LLMTimeout(
                    f"Request to {self.endpoint} timed out after {self.definition.default_timeout}s"
                )
            except httpx.ConnectError as e:
                # Server is likely down; retrying will not help
                raise LLMConnectionError(f"Failed to connect to {self.endpoint}: {e}") from e
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status == 429:
                    last_error = LLMRateLimit(f"Rate limit exceeded: {e}")
                elif status >= 500:
                    last_error = LLMServerError(f"Server error {status}: {e}")
                else:
                    raise LLMClientError(f"HTTP error {status}: {e.response.text}") from e
            except httpx.RequestError as e:
                raise LLMConnectionError(f"Request error: {e}") from e
            except ValueError as e:
                raise LLMInvalidResponse(f"Response is not valid JSON: {e}") from e
            else:
                if not isinstance(response_data, dict):
                    raise LLMInvalidResponse("Response body is not a JSON object")
                error_obj = response_data.get("error")
                if error_obj is not None:
                    message = (
                        error_obj.get("message", str(error_obj))
                        if isinstance(error_obj, dict)
                        else str(error_obj)
                    )
                    raise LLMClientError(f"API returned error: {message}")
                return response_data

            if attempt < self.max_retries:
                wait_time = 2**attempt
                log.warning(
                    MODEL_CALL_RETRY,
                    model=self.name,
                    attempt=attempt + 1,
                    wait_time=wait_time,
                    error_type=type(last_error).__name__,
                    trace_id=trace_ctx.trace_id,
                )
                await asyncio.sleep(wait_time)

        assert last_error is not None
        raise last_error
