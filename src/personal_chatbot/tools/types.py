"""Type definitions for the tool layer.

This module defines the Pydantic models for tool descriptors, parameters, and
responses, plus the tool error type.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from personal_chatbot.conversation import ConversationAttachment


class ToolError(Exception):
    """Raised by a tool when a call fails.

    Expected outcomes that the model should narrate (invalid arguments, rate
    limits) are returned as result payloads instead.
    """

    pass


class ToolParameter(BaseModel):
    """Parameter definition for a tool."""

    name: str = Field(..., description="Parameter name")
    type: Literal["string", "integer", "number", "boolean", "object", "array"] = Field(
        ..., description="Parameter type"
    )
    description: str = Field(..., description="Parameter description for LLM")
    required: bool = Field(True, description="Whether parameter is required")
    nullable: bool = Field(False, description="Whether null is an accepted value")
    enum: list[str] | None = Field(None, description="Allowed values for string parameters")
    # Full JSON Schema for complex types (array items, object properties, etc.)
    json_schema: dict[str, Any] | None = Field(
        None, description="Full JSON Schema for complex nested types"
    )

    def to_json_schema(self) -> dict[str, Any]:
        """JSON Schema for this parameter."""
        if self.json_schema is not None:
            return self.json_schema

        schema: dict[str, Any] = {
            "type": [self.type, "null"] if self.nullable else self.type,
            "description": self.description,
        }
        if self.enum is not None:
            schema["enum"] = self.enum
        return schema


class ToolDescriptor(BaseModel):
    """Tool schema advertised to the model backend."""

    name: str = Field(..., description="Tool name (e.g., 'local_info')")
    description: str = Field(..., description="Clear description for LLM")
    parameters: list[ToolParameter] = Field(default_factory=list, description="Tool parameters")

    def to_json_schema(self) -> dict[str, Any]:
        """JSON Schema object describing the tool arguments."""
        return {
            "type": "object",
            "properties": {param.name: param.to_json_schema() for param in self.parameters},
            "required": [param.name for param in self.parameters if param.required],
            "additionalProperties": False,
        }

    def to_openai_function(self) -> dict[str, Any]:
        """Tool definition in OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.to_json_schema(),
            },
        }


class ToolResponse(BaseModel):
    """Result of a tool call.

    Attributes:
        result: JSON-serializable payload shown to the model.
        attachments: Attachments to deliver alongside the final reply.
    """

    result: Any = Field(None, description="Tool-specific JSON payload")
    attachments: list[ConversationAttachment] = Field(
        default_factory=list, description="Attachments produced by the call"
    )
