"""Entry point platform adapters talk to."""

from collections.abc import Sequence

from personal_chatbot.conversation import (
    Conversation,
    ConversationId,
    ConversationUpdate,
    Message,
    RequestContext,
    UserRole,
)
from personal_chatbot.interception import InterceptionChain, Interceptor
from personal_chatbot.llm_client import BackendCache
from personal_chatbot.orchestrator.executor import DEFAULT_MAX_MODEL_CALLS, TurnExecutor
from personal_chatbot.orchestrator.types import (
    BackendError,
    ConversationNotFoundError,
    TurnContext,
)
from personal_chatbot.storage import ConversationStorage, StorageError
from personal_chatbot.telemetry import (
    CONVERSATION_CREATED,
    CONVERSATION_RESTORED,
    CONVERSATION_SAVED,
    get_logger,
)
from personal_chatbot.tools import ComplexTool, SimpleTool, ToolDescriptor, ToolRegistry

log = get_logger(__name__)


class Orchestrator:
    """Owns the collaborators of the chatbot and runs conversation turns.

    Turns are stateless with respect to the orchestrator: every call reads the
    base conversation from storage, and the caller decides whether to persist
    the resulting update with ``save_conversation``.
    """

    def __init__(
        self,
        storage: ConversationStorage,
        cache: BackendCache,
        system_role: str | None = None,
        sensitive_marker: str = "",
        max_model_calls: int = DEFAULT_MAX_MODEL_CALLS,
        registry: ToolRegistry | None = None,
        chain: InterceptionChain | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            storage: Conversation persistence.
            cache: Backends per model name.
            system_role: System prompt of new conversations.
            sensitive_marker: Reply prefix flagging sensitive text; empty to disable.
            max_model_calls: Model calls allowed per turn.
            registry: Tool registry; a new empty one if omitted.
            chain: Interception chain; a new empty one if omitted.
        """
        self.storage = storage
        self.cache = cache
        self.system_role = system_role
        self.registry = registry if registry is not None else ToolRegistry()
        self.chain = chain if chain is not None else InterceptionChain()
        self.executor = TurnExecutor(
            storage=storage,
            cache=cache,
            registry=self.registry,
            chain=self.chain,
            sensitive_marker=sensitive_marker,
            max_model_calls=max_model_calls,
        )

    def add_simple_tool(self, tool: SimpleTool) -> ToolDescriptor:
        """Register a simple tool and announce it to every backend."""
        descriptor = self.registry.register_simple(tool)
        self.cache.announce_tool(descriptor)
        return descriptor

    def add_complex_tool(self, tool: ComplexTool) -> ToolDescriptor:
        """Register a complex tool and announce it to every backend."""
        descriptor = self.registry.register_complex(tool)
        self.cache.announce_tool(descriptor)
        return descriptor

    def add_interceptor(self, interceptor: Interceptor) -> None:
        """Register an interceptor; later registrations run first."""
        self.chain.register(interceptor)

    async def process_conversation(
        self,
        context: RequestContext,
        conversation_id: ConversationId,
        new_messages: Sequence[Message],
        user_role: UserRole,
    ) -> ConversationUpdate:
        """Run one turn on top of a stored conversation.

        Args:
            context: Request context supplied by the platform adapter.
            conversation_id: Conversation the turn continues.
            new_messages: Inbound messages; the last one must be a user message.
            user_role: Capabilities of the requesting user.

        Returns:
            The turn's update. Nothing is persisted.

        Raises:
            MustEndWithUserMessageError: If the inbound messages are empty or
                do not end with a user message.
            ConversationNotFoundError: If the conversation is not stored.
            TooManyModelCallsError: If the model keeps asking for more calls.
            ConversationAbortedError: If an interceptor vetoes the turn.
            BackendError: If storage, a backend, a tool or an interceptor fails.
        """
        ctx = TurnContext(
            request=context,
            conversation_id=conversation_id,
            new_messages=list(new_messages),
            user_role=user_role,
        )
        await self.executor.execute_turn(ctx)
        if ctx.update is None:
            raise RuntimeError("Turn finished without an update")
        return ctx.update

    async def new_conversation(self) -> ConversationId:
        """Create and store an empty conversation with the configured system role.

        Raises:
            BackendError: If storage fails.
        """
        conversation = Conversation.new_now(self.system_role)
        try:
            await self.storage.upsert(conversation)
        except StorageError as e:
            raise BackendError("storage", str(e)) from e

        log.info(CONVERSATION_CREATED, conversation_id=str(conversation.id))
        return conversation.id

    async def restore_conversation(self, context_key: str) -> ConversationId | None:
        """Find the conversation bound to a context key.

        Returns:
            Its id, or None if the key is not bound.

        Raises:
            BackendError: If storage fails.
        """
        try:
            conversation_id = await self.storage.fetch_id_by_context_key(context_key)
        except StorageError as e:
            raise BackendError("storage", str(e)) from e

        log.debug(
            CONVERSATION_RESTORED,
            context_key=context_key,
            conversation_id=str(conversation_id) if conversation_id else None,
        )
        return conversation_id

    async def save_conversation(self, update: ConversationUpdate, context_key: str) -> None:
        """Apply a turn's update to its base conversation and store the result.

        Args:
            update: Result of ``process_conversation``.
            context_key: Platform key to bind the conversation to.

        Raises:
            ConversationNotFoundError: If the base conversation is gone.
            BackendError: If storage fails.
        """
        try:
            base = await self.storage.fetch_content_by_id(update.base_conversation_id)
            if base is None:
                raise ConversationNotFoundError(update.base_conversation_id)
            conversation = update.complete_conversation_with(base)
            await self.storage.upsert(conversation, context_key)
        except StorageError as e:
            raise BackendError("storage", str(e)) from e

        log.info(
            CONVERSATION_SAVED,
            conversation_id=str(conversation.id),
            context_key=context_key,
            messages=len(conversation.messages),
        )
