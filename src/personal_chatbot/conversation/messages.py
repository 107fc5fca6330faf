"""Message types that make up a conversation history.

Messages are pydantic models tagged by ``kind`` so a whole conversation can be
stored as JSON and read back into the right classes.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


class TextContent(BaseModel):
    """Plain text part of a user message."""

    type: Literal["text"] = "text"
    text: str


class ImageUrlContent(BaseModel):
    """Image part of a user message, referenced by URL (http or data URL)."""

    type: Literal["image_url"] = "image_url"
    url: str


UserContent = Annotated[TextContent | ImageUrlContent, Field(discriminator="type")]


class ToolCalling(BaseModel):
    """A single tool invocation requested by the model.

    Attributes:
        id: Backend-assigned call id, echoed back in the function response.
        name: Registered tool name.
        arguments: Parsed JSON arguments.
    """

    id: str
    name: str
    arguments: Any = Field(default_factory=dict)


class SystemMessage(BaseModel):
    """System instruction, normally the first message of a conversation."""

    kind: Literal["system"] = "system"
    text: str


class UserMessage(BaseModel):
    """Inbound message from a user."""

    kind: Literal["user"] = "user"
    contents: list[UserContent] = Field(default_factory=list)
    name: str | None = Field(None, description="Display name of the speaker")
    language: str | None = Field(None, description="Language tag, if known")
    skip_llm: bool = Field(False, description="Keep in history but never send to the model")

    @classmethod
    def from_text(cls, text: str, name: str | None = None) -> "UserMessage":
        """Build a single-text user message."""
        return cls(contents=[TextContent(text=text)], name=name)

    def first_text(self) -> str | None:
        """Return the first text part, if there is one."""
        for content in self.contents:
            if isinstance(content, TextContent):
                return content.text
        return None


class FunctionCallsMessage(BaseModel):
    """Record of the tool calls the model asked for."""

    kind: Literal["function_calls"] = "function_calls"
    calls: list[ToolCalling] = Field(default_factory=list)


class FunctionResponseMessage(BaseModel):
    """Result of one tool call, paired to its request by ``id``."""

    kind: Literal["function_response"] = "function_response"
    id: str
    name: str
    result: Any = None


class AssistantMessage(BaseModel):
    """Reply produced by the assistant."""

    kind: Literal["assistant"] = "assistant"
    text: str = ""
    is_sensitive: bool = False
    language: str | None = None
    skip_llm: bool = False


Message = Annotated[
    SystemMessage | UserMessage | FunctionCallsMessage | FunctionResponseMessage | AssistantMessage,
    Field(discriminator="kind"),
]


def is_sent_to_model(message: BaseModel) -> bool:
    """Whether a message is part of what the model sees.

    Only user and assistant messages carry a ``skip_llm`` flag; everything
    else is always sent.
    """
    return not getattr(message, "skip_llm", False)
