"""Tool reporting facts about the bot itself."""

import platform
from typing import Any

from personal_chatbot import __version__
from personal_chatbot.tools.base import SimpleTool
from personal_chatbot.tools.types import ToolDescriptor, ToolResponse

self_info_descriptor = ToolDescriptor(
    name="self_info",
    description="Provides information about this bot itself: its name, version and runtime.",
    parameters=[],
)


class SelfInfoTool(SimpleTool):
    """Reports the bot's name and version."""

    def __init__(self, name: str = "personal-chatbot", version: str = __version__) -> None:
        self.name = name
        self.version = version

    def describe(self) -> ToolDescriptor:
        return self_info_descriptor

    async def call(self, id: str, arguments: Any) -> ToolResponse:
        return ToolResponse(
            result={
                "bot_name": self.name,
                "bot_version": self.version,
                "runtime": f"Python {platform.python_version()}",
            }
        )
