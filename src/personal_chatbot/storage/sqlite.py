"""SQLite conversation storage on SQLAlchemy async (aiosqlite driver)."""

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from sqlalchemy import Column, DateTime, Select, String, Text, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from personal_chatbot.conversation import Conversation, ConversationId
from personal_chatbot.storage.base import ConversationStorage, StorageError
from personal_chatbot.telemetry import STORAGE_INITIALIZED, get_logger

log = get_logger(__name__)

Base = declarative_base()


class ConversationRecord(Base):  # type: ignore[misc, valid-type]
    """One conversation, stored as its JSON document."""

    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True)
    context_key = Column(String, nullable=True, index=True)
    content = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )


class SqliteConversationStorage(ConversationStorage):
    """Stores conversations in a single SQLite table.

    Call ``initialize()`` once before use to create the table.
    """

    def __init__(self, database_url: str, echo: bool = False) -> None:
        """Initialize the storage.

        Args:
            database_url: SQLAlchemy URL using the aiosqlite driver.
            echo: Echo SQL statements (for debugging).
        """
        self.database_url = database_url
        self._engine = create_async_engine(database_url, echo=echo)
        self._sessionmaker = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )

    @classmethod
    def from_path(cls, path: Path, echo: bool = False) -> "SqliteConversationStorage":
        """Create storage backed by a database file, creating its directory."""
        path.parent.mkdir(parents=True, exist_ok=True)
        return cls(f"sqlite+aiosqlite:///{path}", echo=echo)

    def description(self) -> str:
        return f"sqlite ({self._engine.url.database})"

    async def initialize(self) -> None:
        """Create the conversations table if needed.

        Raises:
            StorageError: If the schema cannot be created.
        """
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to initialize {self.description()}: {e}") from e
        log.info(STORAGE_INITIALIZED, storage=self.description())

    async def close(self) -> None:
        await self._engine.dispose()

    async def fetch_content_by_id(self, id: ConversationId) -> Conversation | None:
        statement = select(ConversationRecord.content).where(ConversationRecord.id == str(id))
        return self._decode(await self._scalar(statement))

    async def fetch_content_by_context_key(self, context_key: str) -> Conversation | None:
        statement = select(ConversationRecord.content).where(
            ConversationRecord.context_key == context_key
        )
        return self._decode(await self._scalar(statement))

    async def fetch_id_by_context_key(self, context_key: str) -> ConversationId | None:
        statement = select(ConversationRecord.id).where(
            ConversationRecord.context_key == context_key
        )
        value = await self._scalar(statement)
        if value is None:
            return None
        return uuid.UUID(value)

    async def upsert(self, conversation: Conversation, context_key: str | None = None) -> None:
        id = str(conversation.id)
        now = datetime.now(timezone.utc)

        insert = sqlite_insert(ConversationRecord).values(
            id=id,
            context_key=context_key,
            content=conversation.model_dump_json(),
            updated_at=now,
        )
        changes = {"content": insert.excluded.content, "updated_at": insert.excluded.updated_at}
        if context_key is not None:
            changes["context_key"] = insert.excluded.context_key
        insert = insert.on_conflict_do_update(index_elements=[ConversationRecord.id], set_=changes)

        try:
            async with self._sessionmaker() as session, session.begin():
                if context_key is not None:
                    # A context key belongs to one conversation at a time
                    await session.execute(
                        update(ConversationRecord)
                        .where(
                            ConversationRecord.context_key == context_key,
                            ConversationRecord.id != id,
                        )
                        .values(context_key=None)
                    )
                await session.execute(insert)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to upsert conversation {id}: {e}") from e

    async def _scalar(self, statement: Select[Any]) -> str | None:
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(statement)
                return result.scalars().first()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to query {self.description()}: {e}") from e

    def _decode(self, content: str | None) -> Conversation | None:
        if content is None:
            return None
        try:
            return Conversation.model_validate_json(content)
        except ValidationError as e:
            raise StorageError(f"Stored conversation is corrupt: {e}") from e
