"""Tool registry for tool discovery and dispatch.

This module provides the ToolRegistry class that maps tool names to simple and
complex tool implementations and exports their schemas for the model.
"""

from typing import Any

from personal_chatbot.conversation import (
    IncompleteConversation,
    RequestContext,
    ToolCalling,
    UserRole,
)
from personal_chatbot.telemetry import TOOL_REGISTERED, get_logger
from personal_chatbot.tools.base import ComplexTool, SimpleTool
from personal_chatbot.tools.types import ToolDescriptor, ToolResponse

log = get_logger(__name__)


class ToolRegistry:
    """Central registry of available tools.

    Registration happens at startup; afterwards the registry is only read, so
    concurrent turns can share it.
    """

    def __init__(self) -> None:
        """Initialize empty tool registry."""
        self._simple: dict[str, tuple[ToolDescriptor, SimpleTool]] = {}
        self._complex: dict[str, tuple[ToolDescriptor, ComplexTool]] = {}
        log.debug("tool_registry_initialized")

    def _ensure_unregistered(self, name: str) -> None:
        if name in self._simple or name in self._complex:
            raise ValueError(f"Tool '{name}' is already registered")

    def register_simple(self, tool: SimpleTool) -> ToolDescriptor:
        """Register a context-free tool.

        Args:
            tool: Tool implementation.

        Returns:
            The tool's descriptor.

        Raises:
            ValueError: If tool name already registered.
        """
        descriptor = tool.describe()
        self._ensure_unregistered(descriptor.name)
        self._simple[descriptor.name] = (descriptor, tool)
        log.debug(TOOL_REGISTERED, tool_name=descriptor.name, tool_kind="simple")
        return descriptor

    def register_complex(self, tool: ComplexTool) -> ToolDescriptor:
        """Register a context-aware tool.

        Args:
            tool: Tool implementation.

        Returns:
            The tool's descriptor.

        Raises:
            ValueError: If tool name already registered.
        """
        descriptor = tool.describe()
        self._ensure_unregistered(descriptor.name)
        self._complex[descriptor.name] = (descriptor, tool)
        log.debug(TOOL_REGISTERED, tool_name=descriptor.name, tool_kind="complex")
        return descriptor

    def descriptors(self) -> list[ToolDescriptor]:
        """List schemas of every registered tool, simple tools first."""
        return [descriptor for descriptor, _ in self._simple.values()] + [
            descriptor for descriptor, _ in self._complex.values()
        ]

    def list_tool_names(self) -> list[str]:
        """List names of all registered tools."""
        return list(self._simple) + list(self._complex)

    def get_tool_definitions_for_llm(self) -> list[dict[str, Any]]:
        """Get tool definitions in OpenAI function calling format."""
        return [descriptor.to_openai_function() for descriptor in self.descriptors()]

    async def dispatch(
        self,
        tool_calling: ToolCalling,
        context: RequestContext,
        incomplete: IncompleteConversation,
        user_role: UserRole,
    ) -> ToolResponse | None:
        """Run the tool named by ``tool_calling``.

        Args:
            tool_calling: The call requested by the model.
            context: Request context of the current turn.
            incomplete: Accumulator of the current turn.
            user_role: Capabilities of the requesting user.

        Returns:
            The tool response, or None if no tool has that name.

        Raises:
            ToolError: If the tool fails.
        """
        simple = self._simple.get(tool_calling.name)
        if simple is not None:
            return await simple[1].call(tool_calling.id, tool_calling.arguments)

        complex_ = self._complex.get(tool_calling.name)
        if complex_ is not None:
            return await complex_[1].call(context, incomplete, user_role, tool_calling)

        return None
