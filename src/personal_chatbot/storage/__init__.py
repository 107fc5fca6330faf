"""Conversation storage backends."""

from personal_chatbot.config.settings import AppConfig
from personal_chatbot.storage.base import ConversationStorage, StorageError
from personal_chatbot.storage.memory import MemoryConversationStorage
from personal_chatbot.storage.sqlite import SqliteConversationStorage


async def create_storage(settings: AppConfig) -> ConversationStorage:
    """Create and initialize the storage backend selected in settings.

    Args:
        settings: Application settings.

    Returns:
        Ready-to-use storage.

    Raises:
        StorageError: If the backend cannot be initialized.
    """
    if settings.storage_backend == "sqlite":
        storage = SqliteConversationStorage.from_path(settings.storage_sqlite_path)
        await storage.initialize()
        return storage
    return MemoryConversationStorage()


__all__ = [
    "ConversationStorage",
    "StorageError",
    "MemoryConversationStorage",
    "SqliteConversationStorage",
    "create_storage",
]
