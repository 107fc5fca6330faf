"""Tool layer for the personal chatbot.

This module provides the tool interfaces, the registry that dispatches model
tool calls, and the built-in tools.
"""

from personal_chatbot.tools.base import ComplexTool, SimpleTool
from personal_chatbot.tools.exchange_rate import ExchangeRateTool
from personal_chatbot.tools.image_generator import ImageGeneratorTool
from personal_chatbot.tools.local_info import LocalInfoTool
from personal_chatbot.tools.rate_limit import RateLimiter, RateLimitOutcome
from personal_chatbot.tools.registry import ToolRegistry
from personal_chatbot.tools.reminder import Remind, Reminder, ReminderError, ReminderTool
from personal_chatbot.tools.self_info import SelfInfoTool
from personal_chatbot.tools.types import ToolDescriptor, ToolError, ToolParameter, ToolResponse

__all__ = [
    # Types
    "ToolDescriptor",
    "ToolParameter",
    "ToolResponse",
    "ToolError",
    # Interfaces
    "SimpleTool",
    "ComplexTool",
    "RateLimiter",
    "RateLimitOutcome",
    "Reminder",
    "Remind",
    "ReminderError",
    # Registry
    "ToolRegistry",
    # Built-in tools
    "LocalInfoTool",
    "SelfInfoTool",
    "ReminderTool",
    "ImageGeneratorTool",
    "ExchangeRateTool",
]
