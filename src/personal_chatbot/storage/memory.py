"""In-process conversation storage."""

import asyncio

from personal_chatbot.conversation import Conversation, ConversationId
from personal_chatbot.storage.base import ConversationStorage


class MemoryConversationStorage(ConversationStorage):
    """Keeps conversations in dictionaries; contents are lost on exit.

    Context keys and conversation ids are kept in a one-to-one mapping in both
    directions.
    """

    def __init__(self) -> None:
        self._conversations: dict[ConversationId, Conversation] = {}
        self._id_by_key: dict[str, ConversationId] = {}
        self._key_by_id: dict[ConversationId, str] = {}
        self._lock = asyncio.Lock()

    def description(self) -> str:
        return "memory"

    async def fetch_content_by_id(self, id: ConversationId) -> Conversation | None:
        return self._conversations.get(id)

    async def fetch_content_by_context_key(self, context_key: str) -> Conversation | None:
        id = self._id_by_key.get(context_key)
        if id is None:
            return None
        return self._conversations.get(id)

    async def fetch_id_by_context_key(self, context_key: str) -> ConversationId | None:
        return self._id_by_key.get(context_key)

    async def upsert(self, conversation: Conversation, context_key: str | None = None) -> None:
        async with self._lock:
            self._conversations[conversation.id] = conversation
            if context_key is not None:
                self._bind(context_key, conversation.id)

    def _bind(self, context_key: str, id: ConversationId) -> None:
        previous_id = self._id_by_key.pop(context_key, None)
        if previous_id is not None:
            self._key_by_id.pop(previous_id, None)
        previous_key = self._key_by_id.pop(id, None)
        if previous_key is not None:
            self._id_by_key.pop(previous_key, None)

        self._id_by_key[context_key] = id
        self._key_by_id[id] = context_key
