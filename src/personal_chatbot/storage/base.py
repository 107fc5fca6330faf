"""Conversation storage interface."""

from abc import ABC, abstractmethod

from personal_chatbot.conversation import Conversation, ConversationId


class StorageError(Exception):
    """Raised when the storage backend fails."""

    pass


class ConversationStorage(ABC):
    """Persistence for conversations.

    A conversation may be bound to one platform context key (a channel, a
    thread, ...) so the platform can find it again. Binding a key to a
    conversation releases any conversation it was bound to before.

    Lookups return None for unknown ids or keys; only backend failures raise.
    """

    @abstractmethod
    def description(self) -> str:
        """Human-readable description of the backend (for logs and CLI)."""

    @abstractmethod
    async def fetch_content_by_id(self, id: ConversationId) -> Conversation | None:
        """Fetch a conversation by id.

        Raises:
            StorageError: If the backend fails.
        """

    @abstractmethod
    async def fetch_content_by_context_key(self, context_key: str) -> Conversation | None:
        """Fetch the conversation bound to a context key.

        Raises:
            StorageError: If the backend fails.
        """

    @abstractmethod
    async def fetch_id_by_context_key(self, context_key: str) -> ConversationId | None:
        """Fetch the id of the conversation bound to a context key.

        Raises:
            StorageError: If the backend fails.
        """

    @abstractmethod
    async def upsert(self, conversation: Conversation, context_key: str | None = None) -> None:
        """Insert or replace a conversation, optionally binding a context key.

        Without a context key, an existing binding of the conversation is kept.

        Raises:
            StorageError: If the backend fails.
        """

    async def close(self) -> None:
        """Release backend resources."""
