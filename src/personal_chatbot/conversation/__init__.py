"""Conversation state: messages, history, and the per-turn accumulator."""

from personal_chatbot.conversation.context import Remindable, RequestContext
from personal_chatbot.conversation.conversation import (
    Conversation,
    ConversationAttachment,
    ConversationId,
    ConversationUpdate,
    ImageAttachment,
    IncompleteConversation,
    merge_assistant_messages,
    new_conversation_id,
)
from personal_chatbot.conversation.messages import (
    AssistantMessage,
    FunctionCallsMessage,
    FunctionResponseMessage,
    ImageUrlContent,
    Message,
    SystemMessage,
    TextContent,
    ToolCalling,
    UserContent,
    UserMessage,
    is_sent_to_model,
)
from personal_chatbot.conversation.user_role import UserRole, UserRoleKind

__all__ = [
    # Messages
    "Message",
    "SystemMessage",
    "UserMessage",
    "UserContent",
    "TextContent",
    "ImageUrlContent",
    "FunctionCallsMessage",
    "FunctionResponseMessage",
    "AssistantMessage",
    "ToolCalling",
    "is_sent_to_model",
    # Conversation state
    "Conversation",
    "ConversationId",
    "ConversationUpdate",
    "ConversationAttachment",
    "ImageAttachment",
    "IncompleteConversation",
    "merge_assistant_messages",
    "new_conversation_id",
    # Request context
    "RequestContext",
    "Remindable",
    "UserRole",
    "UserRoleKind",
]
