"""Tool generating and editing images through an OpenAI-compatible images API.

Generated images are not shown to the model; they are attached to the final
reply and the model only learns the (possibly revised) prompt.
"""

import time
from collections.abc import Callable
from datetime import datetime
from typing import Any, Literal

import httpx
from pydantic import BaseModel, Field, ValidationError

from personal_chatbot.conversation import (
    ImageAttachment,
    IncompleteConversation,
    RequestContext,
    ToolCalling,
    UserRole,
)
from personal_chatbot.telemetry import get_logger
from personal_chatbot.tools.base import ComplexTool
from personal_chatbot.tools.rate_limit import RateLimiter, RateLimitOutcome
from personal_chatbot.tools.types import ToolDescriptor, ToolError, ToolParameter, ToolResponse

log = get_logger(__name__)

IMAGE_GENERATOR_SCOPE = "image_generator"


class ImageGeneratorArguments(BaseModel):
    """Arguments the model passes to the image generator."""

    mode: Literal["generate", "edit"] = Field("generate", description="Generate or edit")
    prompt: str = Field("", description="Prompt for the image model")
    input_image_urls: list[str] = Field(default_factory=list, description="Images to edit")


image_generator_descriptor = ToolDescriptor(
    name="image_generator",
    description=(
        "Generates a new image, or edits images the user provided, from a prompt. "
        "The resulting image is attached directly to your reply; do not repeat its URL."
    ),
    parameters=[
        ToolParameter(
            name="mode",
            type="string",
            description="generate for a new image, edit to modify images the user provided.",
            enum=["generate", "edit"],
        ),
        ToolParameter(
            name="prompt",
            type="string",
            description="Prompt for the image generation model.",
        ),
        ToolParameter(
            name="input_image_urls",
            type="array",
            description="URLs of the images to edit. Empty in generate mode.",
            json_schema={
                "type": "array",
                "description": "URLs of the images to edit. Empty in generate mode.",
                "items": {"type": "string", "description": "URL of a provided image"},
            },
        ),
    ],
)


class _InputImageError(Exception):
    """An input image could not be used; reported to the model."""


def _error(message: str) -> ToolResponse:
    return ToolResponse(result={"error": message})


def _local_now() -> datetime:
    return datetime.now().astimezone()


class ImageGeneratorTool(ComplexTool):
    """Generates or edits images and attaches them to the reply.

    API rejections (content policy, bad prompt, quota) are returned to the
    model as ``{"error": ...}`` payloads so it can explain them. Transport
    failures and unreadable responses raise ``ToolError``.

    Attributes:
        endpoint: Base URL of the images API, e.g. ``https://api.openai.com/v1``.
        model: Image model id sent with every request.
        api_key: Bearer token, if the server needs one.
        rate_limiter: Optional per-user budget for generations.
        timeout: Read timeout in seconds; image generation is slow.
    """

    def __init__(
        self,
        endpoint: str,
        model: str,
        api_key: str | None = None,
        rate_limiter: RateLimiter | None = None,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        """Initialize the tool.

        Args:
            endpoint: Base URL of the images API.
            model: Image model id.
            api_key: Bearer token, or None for servers without auth.
            rate_limiter: Optional rate limiter keyed by requester identity.
            timeout: Read timeout in seconds.
            transport: Optional httpx transport (used by tests).
            clock: Source of the current time for rate limiting.
        """
        base = endpoint.rstrip("/")
        self.generation_endpoint = f"{base}/images/generations"
        self.edit_endpoint = f"{base}/images/edits"
        self.model = model
        self.api_key = api_key
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.clock = clock
        self._transport = transport

    def describe(self) -> ToolDescriptor:
        return image_generator_descriptor

    def _headers(self) -> dict[str, str]:
        if self.api_key:
            return {"Authorization": f"Bearer {self.api_key}"}
        return {}

    def _client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(connect=10.0, read=self.timeout, write=30.0, pool=10.0)
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def call(
        self,
        context: RequestContext,
        incomplete: IncompleteConversation,
        user_role: UserRole,
        tool_calling: ToolCalling,
    ) -> ToolResponse:
        try:
            arguments = ImageGeneratorArguments.model_validate(tool_calling.arguments or {})
        except ValidationError as e:
            return _error(f"invalid arguments: {e}")

        if not arguments.prompt.strip():
            return _error("prompt is empty")
        if arguments.mode == "edit" and not arguments.input_image_urls:
            return _error("edit mode needs at least one input image")

        if self.rate_limiter is not None:
            key = f"{IMAGE_GENERATOR_SCOPE}:{context.identity or 'anonymous'}"
            outcome = await self.rate_limiter.check(self.clock(), key)
            if outcome is RateLimitOutcome.FAILURE:
                return ToolResponse(
                    result={"status": "rate_limited", "reason": "too many images, try later"}
                )

        start_time = time.time()
        log.info(
            "image_generation_started",
            mode=arguments.mode,
            model=self.model,
            input_images=len(arguments.input_image_urls),
            trace_id=context.trace_ctx.trace_id,
        )
        async with self._client() as client:
            try:
                if arguments.mode == "edit":
                    response = await self._edit(client, arguments)
                else:
                    response = await client.post(
                        self.generation_endpoint,
                        json={"model": self.model, "prompt": arguments.prompt, "n": 1},
                        headers=self._headers(),
                    )
                response.raise_for_status()
                body = response.json()
            except _InputImageError as e:
                return _error(str(e))
            except httpx.HTTPStatusError as e:
                log.warning(
                    "image_generation_rejected",
                    status=e.response.status_code,
                    trace_id=context.trace_ctx.trace_id,
                )
                return _error(_api_error_message(e.response))
            except httpx.RequestError as e:
                raise ToolError(f"Image API request failed: {e}") from e
            except ValueError as e:
                raise ToolError(f"Image API response is not valid JSON: {e}") from e

        attachment = _first_image(body, arguments.prompt)
        if attachment is None:
            return _error("no image was generated")

        log.info(
            "image_generation_completed",
            latency_ms=int((time.time() - start_time) * 1000),
            trace_id=context.trace_ctx.trace_id,
        )
        return ToolResponse(
            result={"status": "generation_completed", "revised_prompt": attachment.description},
            attachments=[attachment],
        )

    async def _edit(
        self, client: httpx.AsyncClient, arguments: ImageGeneratorArguments
    ) -> httpx.Response:
        files = []
        for index, url in enumerate(arguments.input_image_urls):
            try:
                downloaded = await client.get(url)
                downloaded.raise_for_status()
            except httpx.HTTPError as e:
                raise _InputImageError(f"failed to download {url}: {e}") from e

            content_type = downloaded.headers.get("content-type", "").split(";")[0].strip()
            if not content_type.startswith("image/"):
                raise _InputImageError(f"{url} is not an image")
            extension = content_type.removeprefix("image/")
            filename = f"input_{index}.{extension}"
            files.append(("image[]", (filename, downloaded.content, content_type)))

        return await client.post(
            self.edit_endpoint,
            data={"model": self.model, "prompt": arguments.prompt},
            files=files,
            headers=self._headers(),
        )


def _api_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"image API returned {response.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return f"image API returned {response.status_code}"


def _first_image(body: Any, prompt: str) -> ImageAttachment | None:
    data = body.get("data") if isinstance(body, dict) else None
    if not data or not isinstance(data[0], dict):
        return None

    image = data[0]
    description = image.get("revised_prompt") or prompt
    if image.get("url"):
        return ImageAttachment(url=image["url"], description=description)
    if image.get("b64_json"):
        return ImageAttachment(
            url=f"data:image/png;base64,{image['b64_json']}", description=description
        )
    return None
