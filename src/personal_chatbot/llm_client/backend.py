"""Model backend interface."""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

from personal_chatbot.conversation import Message
from personal_chatbot.llm_client.types import BackendUpdate
from personal_chatbot.telemetry.trace import TraceContext
from personal_chatbot.tools.types import ToolDescriptor


class ModelBackend(ABC):
    """One concrete model/API integration.

    The orchestrator sends the model-visible history plus the tool
    descriptors and gets back a ``BackendUpdate``.
    """

    def __init__(self) -> None:
        self.announced_tools: dict[str, ToolDescriptor] = {}

    def register_tool(self, descriptor: ToolDescriptor) -> None:
        """Announce a tool before it is first offered to the model."""
        self.announced_tools[descriptor.name] = descriptor

    @abstractmethod
    async def send_conversation(
        self,
        messages: Iterable[Message],
        tools: Sequence[ToolDescriptor],
        trace_ctx: TraceContext | None = None,
    ) -> BackendUpdate:
        """Send the conversation to the model.

        Args:
            messages: Model-visible history, oldest first.
            tools: Tools the model may call.
            trace_ctx: Trace of the turn, for log correlation.

        Returns:
            Outcome of the call.

        Raises:
            LLMClientError: If the call fails.
        """
