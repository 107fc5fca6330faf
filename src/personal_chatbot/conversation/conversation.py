"""Conversation history and the per-turn accumulator.

A ``Conversation`` is an immutable history. Each turn builds an
``IncompleteConversation`` on top of it, mutates that while the model and
tools run, and finally turns it into a ``ConversationUpdate``: the delta the
caller persists.
"""

import os
import time
import uuid
from collections.abc import Iterable, Iterator, Sequence
from typing import Literal

from pydantic import BaseModel, ConfigDict

from personal_chatbot.conversation.messages import (
    AssistantMessage,
    Message,
    SystemMessage,
    UserMessage,
    is_sent_to_model,
)

ConversationId = uuid.UUID


def new_conversation_id() -> ConversationId:
    """Generate a time-sortable conversation id (UUIDv7 layout).

    The top 48 bits hold the Unix time in milliseconds, so ids created later
    compare greater as UUIDs and as strings.
    """
    timestamp_ms = time.time_ns() // 1_000_000
    rand = int.from_bytes(os.urandom(10), "big")
    value = (timestamp_ms & 0xFFFF_FFFF_FFFF) << 80
    value |= 0x7 << 76  # version
    value |= ((rand >> 62) & 0xFFF) << 64  # rand_a
    value |= 0b10 << 62  # variant
    value |= rand & 0x3FFF_FFFF_FFFF_FFFF  # rand_b
    return uuid.UUID(int=value)


class ImageAttachment(BaseModel):
    """Image produced during a turn, delivered alongside the reply."""

    kind: Literal["image"] = "image"
    url: str
    description: str | None = None


ConversationAttachment = ImageAttachment


class Conversation(BaseModel):
    """Immutable conversation history.

    Attributes:
        id: Time-sortable conversation id.
        messages: Full history, including messages hidden from the model.
        model: Model selected for this conversation, None for the default.
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    id: ConversationId
    messages: tuple[Message, ...] = ()
    model: str | None = None

    @classmethod
    def new_now(cls, system_role: str | None = None) -> "Conversation":
        """Create a new conversation, optionally opened by a system message."""
        messages: tuple[Message, ...] = ()
        if system_role:
            messages = (SystemMessage(text=system_role),)
        return cls(id=new_conversation_id(), messages=messages)

    def push_messages(self, messages: Iterable[Message]) -> "Conversation":
        """Return a copy with ``messages`` appended."""
        return self.model_copy(update={"messages": self.messages + tuple(messages)})


class ConversationUpdate(BaseModel):
    """Result of one completed turn.

    Attributes:
        base_conversation_id: Conversation the turn was processed against.
        intermediate_messages: Messages pushed during the turn, before the reply.
        assistant_response: The single final assistant message.
        attachments: Attachments collected from tools, in call order.
        model: Model selection after the turn (None for the default).
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    base_conversation_id: ConversationId
    intermediate_messages: tuple[Message, ...] = ()
    assistant_response: AssistantMessage
    attachments: tuple[ConversationAttachment, ...] = ()
    model: str | None = None

    def into_completing_messages(self) -> list[Message]:
        """Messages to append to history: intermediates, then the reply."""
        return [*self.intermediate_messages, self.assistant_response]

    def complete_conversation_with(self, conversation: Conversation) -> Conversation:
        """Apply this update to the conversation it was produced from.

        Raises:
            ValueError: If ``conversation`` is not the base of this update.
        """
        if conversation.id != self.base_conversation_id:
            raise ValueError(
                f"update for {self.base_conversation_id} applied to {conversation.id}"
            )
        completed = conversation.push_messages(self.into_completing_messages())
        return completed.model_copy(update={"model": self.model})


def merge_assistant_messages(
    current: AssistantMessage, incoming: AssistantMessage
) -> AssistantMessage:
    """Merge a continuation into an assistant message.

    Text is concatenated, sensitivity is sticky (OR), skipping needs every part
    to agree (AND), and language is only replaced when the continuation has one.
    """
    return AssistantMessage(
        text=current.text + incoming.text,
        is_sensitive=current.is_sensitive or incoming.is_sensitive,
        language=incoming.language if incoming.language is not None else current.language,
        skip_llm=current.skip_llm and incoming.skip_llm,
    )


class IncompleteConversation:
    """Mutable accumulator for a single turn.

    Created from the stored conversation plus the inbound messages, mutated by
    interceptors and the orchestration loop, and consumed exactly once by
    ``finish``. Pushed messages always continue the base history in order.
    """

    def __init__(
        self,
        base: Conversation,
        pushed_messages: Sequence[Message],
    ) -> None:
        """Initialize the accumulator.

        Args:
            base: Stored conversation the turn builds on.
            pushed_messages: Inbound messages of this turn.
        """
        self._base = base
        # Copied so interceptors marking skip_llm never touch the caller's objects
        self._pushed: list[Message] = [message.model_copy() for message in pushed_messages]
        self._attachments: list[ImageAttachment] = []
        self._model: str | None = base.model
        self._finished = False

    @classmethod
    def start(
        cls, conversation: Conversation, inbound_messages: Sequence[Message]
    ) -> "IncompleteConversation":
        """Start a turn. The caller has already checked the inbound messages."""
        return cls(conversation, inbound_messages)

    @property
    def base(self) -> Conversation:
        """Stored conversation the turn builds on."""
        return self._base

    @property
    def pushed_messages(self) -> tuple[Message, ...]:
        """Messages added during this turn."""
        return tuple(self._pushed)

    @property
    def attachments(self) -> tuple[ImageAttachment, ...]:
        """Attachments collected so far."""
        return tuple(self._attachments)

    @property
    def model(self) -> str | None:
        """Model selected for this turn, None for the configured default."""
        return self._model

    @property
    def finished(self) -> bool:
        """Whether ``finish`` has been called."""
        return self._finished

    def set_model_override(self, model: str | None) -> None:
        """Select the model for this turn and the rest of the conversation."""
        self._model = model

    def messages_for_model(self) -> Iterator[Message]:
        """Iterate over the history the model should see.

        Each call returns a fresh iterator over base messages then pushed
        messages, skipping those marked ``skip_llm``.
        """
        for message in self._base.messages:
            if is_sent_to_model(message):
                yield message
        for message in self._pushed:
            if is_sent_to_model(message):
                yield message

    def last_user_message(self) -> UserMessage | None:
        """Return the most recently pushed user message."""
        for message in reversed(self._pushed):
            if isinstance(message, UserMessage):
                return message
        return None

    def append_messages(self, messages: Iterable[Message]) -> None:
        """Append messages in order."""
        self._pushed.extend(messages)

    def append_attachments(self, attachments: Iterable[ImageAttachment]) -> None:
        """Append attachments in order."""
        self._attachments.extend(attachments)

    def merge_assistant_text(self, incoming: AssistantMessage) -> None:
        """Merge a partial reply into the last pushed assistant message.

        If the last pushed message is not an assistant message, ``incoming``
        is pushed as a new one.
        """
        if self._pushed and isinstance(self._pushed[-1], AssistantMessage):
            self._pushed[-1] = merge_assistant_messages(self._pushed[-1], incoming)
        else:
            self._pushed.append(incoming)

    def finish(self, final: AssistantMessage) -> ConversationUpdate:
        """Close the turn with its final assistant message.

        A trailing assistant message left by length-cut continuations is merged
        with ``final`` into the single reply.

        Raises:
            RuntimeError: If the accumulator was already finished.
        """
        if self._finished:
            raise RuntimeError("IncompleteConversation.finish() called twice")
        self._finished = True

        intermediate = list(self._pushed)
        response = final
        if intermediate and isinstance(intermediate[-1], AssistantMessage):
            response = merge_assistant_messages(intermediate.pop(), final)

        return ConversationUpdate(
            base_conversation_id=self._base.id,
            intermediate_messages=tuple(intermediate),
            assistant_response=response,
            attachments=tuple(self._attachments),
            model=self._model,
        )
