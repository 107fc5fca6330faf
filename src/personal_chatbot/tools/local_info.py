"""Tool reporting facts about the environment the bot runs in."""

from datetime import datetime
from typing import Any

from personal_chatbot.tools.base import SimpleTool
from personal_chatbot.tools.types import ToolDescriptor, ToolResponse

local_info_descriptor = ToolDescriptor(
    name="local_info",
    description=(
        "Provides information about the environment this bot runs in: "
        "the current local time and when the bot was started. "
        "Use it whenever the current date or time is needed."
    ),
    parameters=[],
)


class LocalInfoTool(SimpleTool):
    """Reports the current local time and the bot start time."""

    def __init__(self, started_at: datetime | None = None) -> None:
        self.started_at = started_at or datetime.now().astimezone()

    def describe(self) -> ToolDescriptor:
        return local_info_descriptor

    async def call(self, id: str, arguments: Any) -> ToolResponse:
        now = datetime.now().astimezone()
        return ToolResponse(
            result={
                "time_now": now.isoformat(timespec="seconds"),
                "bot_started_at": self.started_at.isoformat(timespec="seconds"),
            }
        )
