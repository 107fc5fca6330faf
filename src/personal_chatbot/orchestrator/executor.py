"""State machine driving one conversation turn.

A turn moves through COMPOSING, INTERCEPTING, then alternates between
CALLING_MODEL and TOOL_CALLING until the model produces a final reply.
Each state has a step function that updates the ``TurnContext`` and returns
the next state.
"""

import time
from collections.abc import Awaitable, Callable

from personal_chatbot.conversation import (
    AssistantMessage,
    FunctionCallsMessage,
    FunctionResponseMessage,
    IncompleteConversation,
    UserMessage,
)
from personal_chatbot.interception import (
    InterceptionAction,
    InterceptionChain,
    InterceptionError,
)
from personal_chatbot.llm_client import (
    BackendCache,
    Filtered,
    Finished,
    LengthCut,
    LLMClientError,
    ToolCallingRequested,
)
from personal_chatbot.orchestrator.types import (
    BackendError,
    ConversationAbortedError,
    ConversationNotFoundError,
    MustEndWithUserMessageError,
    TooManyModelCallsError,
    TurnContext,
    TurnState,
)
from personal_chatbot.storage import ConversationStorage, StorageError
from personal_chatbot.telemetry import (
    MODEL_CALL_LIMIT_REACHED,
    STATE_TRANSITION,
    TOOL_CALL_COMPLETED,
    TOOL_CALL_FAILED,
    TOOL_CALL_STARTED,
    TOOL_NOT_FOUND,
    TURN_COMPLETED,
    TURN_FAILED,
    TURN_STARTED,
    UNKNOWN_STATE,
    get_logger,
)
from personal_chatbot.tools import ToolError, ToolRegistry

log = get_logger(__name__)

DEFAULT_MAX_MODEL_CALLS = 8
FILTERED_REPLY_TEXT = "(filtered)"


def strip_sensitive_text(text: str, sensitive: bool | None, marker: str) -> tuple[str, bool]:
    """Decide whether a reply is sensitive, removing the marker if present.

    Args:
        text: Reply text from the model.
        sensitive: Sensitivity reported by the backend; None if it did not say.
        marker: Prefix the model uses to flag sensitive replies; empty to disable.

    Returns:
        Tuple of (text, is_sensitive).

    Example:
        >>> strip_sensitive_text("⚠secret", None, "⚠")
        ('secret', True)
    """
    if sensitive is not None:
        return text, sensitive
    if marker and text.startswith(marker):
        return text[len(marker) :], True
    return text, False


StepFunction = Callable[[TurnContext], Awaitable[TurnState]]


class TurnExecutor:
    """Runs turns against a fixed set of collaborators."""

    def __init__(
        self,
        storage: ConversationStorage,
        cache: BackendCache,
        registry: ToolRegistry,
        chain: InterceptionChain,
        sensitive_marker: str = "",
        max_model_calls: int = DEFAULT_MAX_MODEL_CALLS,
    ) -> None:
        """Initialize the executor.

        Args:
            storage: Where base conversations are loaded from.
            cache: Backends per model name.
            registry: Tools the model may call.
            chain: Interceptors run before the first model call.
            sensitive_marker: Reply prefix flagging sensitive text.
            max_model_calls: Model calls allowed per turn.
        """
        self.storage = storage
        self.cache = cache
        self.registry = registry
        self.chain = chain
        self.sensitive_marker = sensitive_marker
        self.max_model_calls = max_model_calls

        self._steps: dict[TurnState, StepFunction] = {
            TurnState.COMPOSING: self.step_composing,
            TurnState.INTERCEPTING: self.step_intercepting,
            TurnState.CALLING_MODEL: self.step_calling_model,
            TurnState.TOOL_CALLING: self.step_tool_calling,
        }

    async def execute_turn(self, ctx: TurnContext) -> TurnContext:
        """Main execution loop: iterate states until FINISHED.

        Args:
            ctx: Context of the turn; updated in place.

        Returns:
            The same context, with ``update`` set.

        Raises:
            OrchestrationError: If the turn fails.
        """
        start = time.monotonic()
        state = ctx.state

        log.info(
            TURN_STARTED,
            trace_id=ctx.trace_id,
            conversation_id=str(ctx.conversation_id),
            new_messages=len(ctx.new_messages),
        )

        try:
            while state is not TurnState.FINISHED:
                log.debug(STATE_TRANSITION, trace_id=ctx.trace_id, from_state=state.value)
                ctx.state = state

                step_func = self._steps.get(state)
                if step_func is None:
                    log.error(UNKNOWN_STATE, trace_id=ctx.trace_id, state=state.value)
                    raise RuntimeError(f"Unknown state: {state}")

                state = await step_func(ctx)
        except Exception as e:
            log.warning(
                TURN_FAILED,
                trace_id=ctx.trace_id,
                conversation_id=str(ctx.conversation_id),
                state=ctx.state.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        ctx.state = state
        log.info(
            TURN_COMPLETED,
            trace_id=ctx.trace_id,
            conversation_id=str(ctx.conversation_id),
            model_calls=ctx.model_calls,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return ctx

    async def step_composing(self, ctx: TurnContext) -> TurnState:
        """Load the base conversation and build the accumulator."""
        if not ctx.new_messages or not isinstance(ctx.new_messages[-1], UserMessage):
            raise MustEndWithUserMessageError()

        try:
            base = await self.storage.fetch_content_by_id(ctx.conversation_id)
        except StorageError as e:
            raise BackendError("storage", str(e)) from e
        if base is None:
            raise ConversationNotFoundError(ctx.conversation_id)

        ctx.incomplete = IncompleteConversation.start(base, ctx.new_messages)
        return TurnState.INTERCEPTING

    async def step_intercepting(self, ctx: TurnContext) -> TurnState:
        """Run the interception chain and honor its short-circuits."""
        incomplete = self._incomplete(ctx)
        try:
            status = await self.chain.run(ctx.request, incomplete, ctx.user_role)
        except InterceptionError as e:
            raise BackendError("interception", str(e)) from e

        if status.action is InterceptionAction.ABORT:
            raise ConversationAbortedError()
        if status.action is InterceptionAction.COMPLETE:
            final = status.message if status.message is not None else AssistantMessage()
            ctx.update = incomplete.finish(final)
            return TurnState.FINISHED
        return TurnState.CALLING_MODEL

    async def step_calling_model(self, ctx: TurnContext) -> TurnState:
        """Make one model call and interpret its outcome."""
        incomplete = self._incomplete(ctx)

        if ctx.model_calls >= self.max_model_calls:
            log.warning(
                MODEL_CALL_LIMIT_REACHED,
                trace_id=ctx.trace_id,
                limit=self.max_model_calls,
            )
            raise TooManyModelCallsError(self.max_model_calls)
        ctx.model_calls += 1

        try:
            backend = await self.cache.get(incomplete.model)
            update = await backend.send_conversation(
                incomplete.messages_for_model(),
                self.registry.descriptors(),
                ctx.request.trace_ctx,
            )
        except LLMClientError as e:
            raise BackendError("model", str(e)) from e

        if isinstance(update, Finished):
            ctx.update = incomplete.finish(self._assistant_message(update))
            return TurnState.FINISHED

        if isinstance(update, LengthCut):
            incomplete.merge_assistant_text(self._assistant_message(update))
            return TurnState.CALLING_MODEL

        if isinstance(update, ToolCallingRequested):
            ctx.pending_calls = list(update.calls)
            return TurnState.TOOL_CALLING

        if isinstance(update, Filtered):
            ctx.update = incomplete.finish(
                AssistantMessage(text=FILTERED_REPLY_TEXT, is_sensitive=True)
            )
            return TurnState.FINISHED

        raise BackendError("model", f"unexpected backend update: {update!r}")

    async def step_tool_calling(self, ctx: TurnContext) -> TurnState:
        """Run the requested tool calls one by one, in order.

        Calls naming an unregistered tool are logged and skipped; the rest of
        the batch still runs.
        """
        incomplete = self._incomplete(ctx)
        calls, ctx.pending_calls = ctx.pending_calls, []

        incomplete.append_messages([FunctionCallsMessage(calls=calls)])

        responses: list[FunctionResponseMessage] = []
        attachments = []
        for call in calls:
            _, span_id = ctx.request.trace_ctx.new_span()
            log.info(
                TOOL_CALL_STARTED,
                trace_id=ctx.trace_id,
                span_id=span_id,
                tool_name=call.name,
                call_id=call.id,
            )
            try:
                response = await self.registry.dispatch(
                    call, ctx.request, incomplete, ctx.user_role
                )
            except Exception as e:
                log.error(
                    TOOL_CALL_FAILED,
                    trace_id=ctx.trace_id,
                    span_id=span_id,
                    tool_name=call.name,
                    call_id=call.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                # Tool bugs surface as backend failures like expected tool errors
                message = str(e) if isinstance(e, ToolError) else f"{type(e).__name__}: {e}"
                raise BackendError("tool", message) from e

            if response is None:
                log.warning(TOOL_NOT_FOUND, trace_id=ctx.trace_id, tool_name=call.name)
                continue

            log.info(
                TOOL_CALL_COMPLETED, trace_id=ctx.trace_id, span_id=span_id, tool_name=call.name
            )
            responses.append(
                FunctionResponseMessage(id=call.id, name=call.name, result=response.result)
            )
            attachments.extend(response.attachments)

        incomplete.append_messages(responses)
        incomplete.append_attachments(attachments)
        return TurnState.CALLING_MODEL

    def _assistant_message(self, update: Finished | LengthCut) -> AssistantMessage:
        text, is_sensitive = strip_sensitive_text(
            update.text, update.sensitive, self.sensitive_marker
        )
        return AssistantMessage(text=text, is_sensitive=is_sensitive, language=update.language)

    @staticmethod
    def _incomplete(ctx: TurnContext) -> IncompleteConversation:
        if ctx.incomplete is None:
            raise RuntimeError(f"Turn has no accumulator in state {ctx.state.value}")
        return ctx.incomplete
