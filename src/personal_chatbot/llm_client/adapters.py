"""Adapters between conversation messages and the chat completions API format.

This module converts the engine's message types into OpenAI-compatible
``/chat/completions`` request messages and normalizes responses into a
``BackendUpdate``.
"""

import json
from collections.abc import Iterable, Sequence
from typing import Any

from personal_chatbot.conversation import (
    AssistantMessage,
    FunctionCallsMessage,
    FunctionResponseMessage,
    ImageUrlContent,
    Message,
    SystemMessage,
    TextContent,
    ToolCalling,
    UserMessage,
)
from personal_chatbot.llm_client.types import (
    BackendUpdate,
    Filtered,
    Finished,
    LengthCut,
    LLMInvalidResponse,
    ToolCallingRequested,
)
from personal_chatbot.tools.types import ToolDescriptor

ASSISTANT_RESPONSE_FORMAT: dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {
        "name": "response",
        "description": "response from assistant",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {
                "text": {
                    "type": "string",
                    "description": "Main reply to the user, written in the assistant's persona.",
                },
                "language": {
                    "type": "string",
                    "description": "IETF BCP 47 language tag of the `text` field.",
                },
                "sensitive": {
                    "type": "boolean",
                    "description": "Whether the `text` field touches on sexual topics.",
                },
            },
            "required": ["text", "language", "sensitive"],
            "additionalProperties": False,
        },
    },
}


def transform_message(message: Message) -> dict[str, Any]:
    """Convert one conversation message to a chat completions message.

    Args:
        message: Conversation message.

    Returns:
        Chat completions message dict.

    Raises:
        LLMInvalidResponse: If tool arguments or results are not JSON-serializable.
    """
    if isinstance(message, SystemMessage):
        return {"role": "system", "content": message.text}

    if isinstance(message, UserMessage):
        parts: list[dict[str, Any]] = []
        for content in message.contents:
            if isinstance(content, TextContent):
                parts.append({"type": "text", "text": content.text})
            elif isinstance(content, ImageUrlContent):
                parts.append({"type": "image_url", "image_url": {"url": content.url}})
        user: dict[str, Any] = {"role": "user", "content": parts}
        if message.name:
            user["name"] = message.name
        return user

    if isinstance(message, AssistantMessage):
        return {"role": "assistant", "content": message.text}

    try:
        if isinstance(message, FunctionCallsMessage):
            return {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {
                            "name": call.name,
                            "arguments": json.dumps(call.arguments, ensure_ascii=False),
                        },
                    }
                    for call in message.calls
                ],
            }

        if isinstance(message, FunctionResponseMessage):
            return {
                "role": "tool",
                "tool_call_id": message.id,
                "content": json.dumps(message.result, ensure_ascii=False),
            }
    except (TypeError, ValueError) as e:
        raise LLMInvalidResponse(f"Message is not JSON-serializable: {e}") from e

    raise LLMInvalidResponse(f"Unsupported message type: {type(message).__name__}")


def build_chat_completions_request(
    messages: Iterable[Message],
    model: str,
    tools: Sequence[ToolDescriptor] | None = None,
    max_tokens: int | None = None,
    temperature: float | None = None,
    structured_output: bool = False,
) -> dict[str, Any]:
    """Build request payload for the chat completions API.

    Args:
        messages: Model-visible conversation history.
        model: Model identifier.
        tools: Tool descriptors to advertise (omitted when empty).
        max_tokens: Completion token limit.
        temperature: Sampling temperature.
        structured_output: Request the structured assistant response format.

    Returns:
        Request payload dict.
    """
    payload: dict[str, Any] = {
        "model": model,
        "messages": [transform_message(message) for message in messages],
    }

    if tools:
        payload["tools"] = [descriptor.to_openai_function() for descriptor in tools]
    if max_tokens is not None:
        payload["max_completion_tokens"] = max_tokens
    if temperature is not None:
        payload["temperature"] = temperature
    if structured_output:
        payload["response_format"] = ASSISTANT_RESPONSE_FORMAT

    return payload


def _parse_tool_calls(raw_tool_calls: list[dict[str, Any]]) -> list[ToolCalling]:
    calls = []
    for raw in raw_tool_calls:
        function = raw.get("function") or {}
        raw_arguments = function.get("arguments") or "{}"
        try:
            arguments = json.loads(raw_arguments)
        except json.JSONDecodeError as e:
            raise LLMInvalidResponse(f"Tool call arguments are not valid JSON: {e}") from e
        calls.append(
            ToolCalling(id=raw.get("id", ""), name=function.get("name", ""), arguments=arguments)
        )
    return calls


def _parse_content(content: str, structured_output: bool) -> tuple[str, str | None, bool | None]:
    if not structured_output:
        return content, None, None

    try:
        parsed = json.loads(content)
        return str(parsed["text"]), parsed.get("language"), bool(parsed["sensitive"])
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        raise LLMInvalidResponse(f"Structured response does not match schema: {e}") from e


def adapt_chat_completions_response(
    response_data: dict[str, Any], structured_output: bool = False
) -> BackendUpdate:
    """Adapt an OpenAI-style chat completions response to a BackendUpdate.

    Tool calls take precedence over the finish reason because some servers
    report ``stop`` alongside tool calls.

    Args:
        response_data: Raw response from the chat completions API.
        structured_output: Whether the content is the structured JSON reply.

    Returns:
        Normalized backend update.

    Raises:
        LLMInvalidResponse: If response format is invalid or unexpected.
    """
    choices = response_data.get("choices") or []
    if not choices:
        raise LLMInvalidResponse("Response has no choices")

    choice = choices[0]
    message = choice.get("message") or {}

    raw_tool_calls = message.get("tool_calls") or []
    if raw_tool_calls:
        return ToolCallingRequested(calls=_parse_tool_calls(raw_tool_calls))

    finish_reason = choice.get("finish_reason")
    if finish_reason in ("stop", "length"):
        content = message.get("content")
        if content is None:
            raise LLMInvalidResponse(
                f"Response with finish_reason '{finish_reason}' has no content"
            )
        if finish_reason == "length":
            # Truncated structured output is not valid JSON; keep the raw text
            return LengthCut(text=content)
        text, language, sensitive = _parse_content(content, structured_output)
        return Finished(text=text, language=language, sensitive=sensitive)

    if finish_reason == "tool_calls":
        return ToolCallingRequested(calls=[])

    if finish_reason == "content_filter":
        return Filtered()

    raise LLMInvalidResponse(f"Unexpected finish_reason: {finish_reason!r}")
