"""Tests for tool registry and dispatch."""

from typing import Any

import pytest

from personal_chatbot.conversation import (
    Conversation,
    IncompleteConversation,
    RequestContext,
    ToolCalling,
    UserMessage,
    UserRole,
)
from personal_chatbot.tools import (
    ComplexTool,
    SimpleTool,
    ToolDescriptor,
    ToolParameter,
    ToolRegistry,
    ToolResponse,
)


class EchoTool(SimpleTool):
    """Simple tool returning its arguments."""

    def describe(self) -> ToolDescriptor:
        return ToolDescriptor(
            name="echo",
            description="Echo the arguments",
            parameters=[ToolParameter(name="text", type="string", description="Text")],
        )

    async def call(self, id: str, arguments: Any) -> ToolResponse:
        return ToolResponse(result={"id": id, "arguments": arguments})


class WhoAmITool(ComplexTool):
    """Complex tool reporting what it was called with."""

    def describe(self) -> ToolDescriptor:
        return ToolDescriptor(name="whoami", description="Report the caller")

    async def call(
        self,
        context: RequestContext,
        incomplete: IncompleteConversation,
        user_role: UserRole,
        tool_calling: ToolCalling,
    ) -> ToolResponse:
        return ToolResponse(
            result={
                "identity": context.identity,
                "role": user_role.kind.value,
                "pushed": len(incomplete.pushed_messages),
            }
        )


@pytest.fixture
def incomplete() -> IncompleteConversation:
    """Accumulator with one user message."""
    return IncompleteConversation.start(Conversation.new_now(), [UserMessage.from_text("hi")])


class TestToolRegistry:
    """Test ToolRegistry class."""

    def test_register_returns_descriptor(self) -> None:
        """Test that registration returns the tool's descriptor."""
        registry = ToolRegistry()
        descriptor = registry.register_simple(EchoTool())

        assert descriptor.name == "echo"
        assert registry.list_tool_names() == ["echo"]

    def test_duplicate_name_rejected(self) -> None:
        """Test that a name cannot be registered twice, across kinds."""
        registry = ToolRegistry()
        registry.register_simple(EchoTool())

        with pytest.raises(ValueError, match="already registered"):
            registry.register_simple(EchoTool())

    def test_descriptors_list_simple_tools_first(self) -> None:
        """Test that simple tools come before complex ones."""
        registry = ToolRegistry()
        registry.register_complex(WhoAmITool())
        registry.register_simple(EchoTool())

        assert [d.name for d in registry.descriptors()] == ["echo", "whoami"]

    def test_definitions_for_llm(self) -> None:
        """Test OpenAI function calling format."""
        registry = ToolRegistry()
        registry.register_simple(EchoTool())

        (definition,) = registry.get_tool_definitions_for_llm()

        assert definition["type"] == "function"
        assert definition["function"]["name"] == "echo"
        assert definition["function"]["parameters"] == {
            "type": "object",
            "properties": {"text": {"type": "string", "description": "Text"}},
            "required": ["text"],
            "additionalProperties": False,
        }

    @pytest.mark.asyncio
    async def test_dispatch_simple(self, incomplete: IncompleteConversation) -> None:
        """Test that simple tools get the call id and arguments."""
        registry = ToolRegistry()
        registry.register_simple(EchoTool())

        response = await registry.dispatch(
            ToolCalling(id="call_1", name="echo", arguments={"text": "hi"}),
            RequestContext(),
            incomplete,
            UserRole.normal(),
        )

        assert response is not None
        assert response.result == {"id": "call_1", "arguments": {"text": "hi"}}

    @pytest.mark.asyncio
    async def test_dispatch_complex(self, incomplete: IncompleteConversation) -> None:
        """Test that complex tools get the context, accumulator and role."""
        registry = ToolRegistry()
        registry.register_complex(WhoAmITool())

        response = await registry.dispatch(
            ToolCalling(id="call_1", name="whoami"),
            RequestContext(identity="alice"),
            incomplete,
            UserRole.privileged(),
        )

        assert response is not None
        assert response.result == {"identity": "alice", "role": "privileged", "pushed": 1}

    @pytest.mark.asyncio
    async def test_dispatch_unknown_returns_none(self, incomplete: IncompleteConversation) -> None:
        """Test that an unknown tool name is not an error."""
        registry = ToolRegistry()

        response = await registry.dispatch(
            ToolCalling(id="call_1", name="missing"),
            RequestContext(),
            incomplete,
            UserRole.normal(),
        )

        assert response is None


class TestToolParameter:
    """Test parameter schemas."""

    def test_nullable_enum(self) -> None:
        """Test nullable parameters accept null and keep their enum."""
        parameter = ToolParameter(
            name="unit",
            type="string",
            description="Unit",
            nullable=True,
            enum=["c", "f"],
        )
        assert parameter.to_json_schema() == {
            "type": ["string", "null"],
            "description": "Unit",
            "enum": ["c", "f"],
        }

    def test_json_schema_override(self) -> None:
        """Test that a full JSON schema replaces the generated one."""
        schema = {"type": "array", "items": {"type": "string"}}
        parameter = ToolParameter(name="tags", type="array", description="Tags", json_schema=schema)
        assert parameter.to_json_schema() == schema
