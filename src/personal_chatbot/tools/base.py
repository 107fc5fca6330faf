"""Tool interfaces.

Simple tools only see their arguments. Complex tools also see the request
context, the turn accumulator and the caller's role, so they can authorize and
reach platform-specific collaborators.
"""

from abc import ABC, abstractmethod
from typing import Any

from personal_chatbot.conversation import (
    IncompleteConversation,
    RequestContext,
    ToolCalling,
    UserRole,
)
from personal_chatbot.tools.types import ToolDescriptor, ToolResponse


class SimpleTool(ABC):
    """Tool that is independent of the conversation."""

    @abstractmethod
    def describe(self) -> ToolDescriptor:
        """Return the schema advertised to the model."""

    @abstractmethod
    async def call(self, id: str, arguments: Any) -> ToolResponse:
        """Execute the tool.

        Args:
            id: Tool call id assigned by the backend.
            arguments: Parsed JSON arguments.

        Returns:
            The tool response.

        Raises:
            ToolError: If the call fails.
        """


class ComplexTool(ABC):
    """Tool that needs the request context or the conversation state."""

    @abstractmethod
    def describe(self) -> ToolDescriptor:
        """Return the schema advertised to the model."""

    @abstractmethod
    async def call(
        self,
        context: RequestContext,
        incomplete: IncompleteConversation,
        user_role: UserRole,
        tool_calling: ToolCalling,
    ) -> ToolResponse:
        """Execute the tool.

        Implementations must treat ``incomplete`` as read-only.

        Args:
            context: Request context of the current turn.
            incomplete: Accumulator of the current turn.
            user_role: Capabilities of the requesting user.
            tool_calling: The call requested by the model.

        Returns:
            The tool response.

        Raises:
            ToolError: If the call fails.
        """
