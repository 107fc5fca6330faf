"""Tests for the turn state machine."""

from collections.abc import Iterable, Sequence
from typing import Any

import pytest

from personal_chatbot.conversation import (
    AssistantMessage,
    Conversation,
    FunctionCallsMessage,
    FunctionResponseMessage,
    ImageAttachment,
    IncompleteConversation,
    Message,
    RequestContext,
    ToolCalling,
    UserMessage,
    UserRole,
)
from personal_chatbot.interception import (
    InterceptionChain,
    InterceptionError,
    InterceptionStatus,
    Interceptor,
)
from personal_chatbot.llm_client import (
    BackendCache,
    BackendUpdate,
    Filtered,
    Finished,
    LengthCut,
    LLMServerError,
    ModelBackend,
    ModelConfig,
    ModelDefinition,
    ToolCallingRequested,
)
from personal_chatbot.orchestrator import (
    BackendError,
    ConversationAbortedError,
    ConversationNotFoundError,
    MustEndWithUserMessageError,
    TooManyModelCallsError,
    TurnContext,
    TurnExecutor,
    TurnState,
    strip_sensitive_text,
)
from personal_chatbot.storage import MemoryConversationStorage
from personal_chatbot.telemetry.trace import TraceContext
from personal_chatbot.tools import (
    SimpleTool,
    ToolDescriptor,
    ToolError,
    ToolRegistry,
    ToolResponse,
)


class ScriptedBackend(ModelBackend):
    """Backend replaying queued updates and recording what it was sent."""

    def __init__(self, updates: list[BackendUpdate] | None = None) -> None:
        super().__init__()
        self.updates = list(updates or [])
        self.sent: list[list[Message]] = []
        self.sent_tools: list[list[str]] = []

    async def send_conversation(
        self,
        messages: Iterable[Message],
        tools: Sequence[ToolDescriptor],
        trace_ctx: TraceContext | None = None,
    ) -> BackendUpdate:
        self.sent.append(list(messages))
        self.sent_tools.append([tool.name for tool in tools])
        if len(self.updates) == 1:
            return self.updates[0]
        return self.updates.pop(0)


class FixedTool(SimpleTool):
    """Tool answering with a fixed result."""

    def __init__(
        self, name: str, result: Any, attachments: list[ImageAttachment] | None = None
    ) -> None:
        self.name = name
        self.result = result
        self.attachments = attachments or []
        self.calls: list[str] = []

    def describe(self) -> ToolDescriptor:
        return ToolDescriptor(name=self.name, description=f"Returns {self.result!r}")

    async def call(self, id: str, arguments: Any) -> ToolResponse:
        self.calls.append(id)
        return ToolResponse(result=self.result, attachments=self.attachments)


class FailingTool(SimpleTool):
    """Tool that always fails."""

    def describe(self) -> ToolDescriptor:
        return ToolDescriptor(name="broken", description="Always fails")

    async def call(self, id: str, arguments: Any) -> ToolResponse:
        raise ToolError("tool exploded")


class CrashingTool(SimpleTool):
    """Tool with a bug that raises something other than ToolError."""

    def describe(self) -> ToolDescriptor:
        return ToolDescriptor(name="buggy", description="Raises an unexpected error")

    async def call(self, id: str, arguments: Any) -> ToolResponse:
        raise OverflowError("date value out of range")


class StatusInterceptor(Interceptor):
    """Interceptor returning a fixed status."""

    def __init__(self, status: InterceptionStatus) -> None:
        self.status = status

    async def before_model(
        self,
        context: RequestContext,
        incomplete: IncompleteConversation,
        user_role: UserRole,
    ) -> InterceptionStatus:
        return self.status


class FailingInterceptor(Interceptor):
    """Interceptor that fails."""

    async def before_model(
        self,
        context: RequestContext,
        incomplete: IncompleteConversation,
        user_role: UserRole,
    ) -> InterceptionStatus:
        raise InterceptionError("interceptor exploded")


class Harness:
    """Executor wired to in-memory collaborators and one scripted backend."""

    def __init__(self, marker: str = "", max_model_calls: int = 8) -> None:
        self.storage = MemoryConversationStorage()
        self.backend = ScriptedBackend()
        self.registry = ToolRegistry()
        self.chain = InterceptionChain()

        async def factory(name: str, definition: ModelDefinition) -> ModelBackend:
            return self.backend

        self.cache = BackendCache(
            ModelConfig(default="stub", models={"stub": ModelDefinition(id="stub")}),
            factory=factory,
        )
        self.executor = TurnExecutor(
            storage=self.storage,
            cache=self.cache,
            registry=self.registry,
            chain=self.chain,
            sensitive_marker=marker,
            max_model_calls=max_model_calls,
        )
        self.conversation = Conversation.new_now("system")

    async def run(self, *messages: Message, role: UserRole | None = None) -> TurnContext:
        await self.storage.upsert(self.conversation)
        ctx = TurnContext(
            request=RequestContext(),
            conversation_id=self.conversation.id,
            new_messages=list(messages) or [UserMessage.from_text("hello")],
            user_role=role or UserRole.normal(),
        )
        return await self.executor.execute_turn(ctx)


class TestStripSensitiveText:
    """Test strip_sensitive_text function."""

    @pytest.mark.parametrize(
        "text,sensitive,marker,expected",
        [
            ("⚠secret", None, "⚠", ("secret", True)),
            ("plain", None, "⚠", ("plain", False)),
            ("⚠secret", None, "", ("⚠secret", False)),
            ("⚠secret", False, "⚠", ("⚠secret", False)),
            ("plain", True, "⚠", ("plain", True)),
            ("x⚠", None, "⚠", ("x⚠", False)),
        ],
    )
    def test_rule(
        self, text: str, sensitive: bool | None, marker: str, expected: tuple[str, bool]
    ) -> None:
        """Test that explicit values win and the marker is only a prefix."""
        assert strip_sensitive_text(text, sensitive, marker) == expected


class TestTurnExecutor:
    """Test TurnExecutor class."""

    @pytest.mark.asyncio
    async def test_finished(self) -> None:
        """Test the shortest turn: one model call."""
        harness = Harness()
        harness.backend.updates = [Finished(text="Hi", language="en")]

        ctx = await harness.run()

        assert ctx.state is TurnState.FINISHED
        assert ctx.model_calls == 1
        assert ctx.update is not None
        assert ctx.update.assistant_response == AssistantMessage(text="Hi", language="en")

    @pytest.mark.asyncio
    async def test_exactly_max_model_calls_then_error(self) -> None:
        """Test that a looping model gets exactly the allowed calls."""
        harness = Harness()
        harness.backend.updates = [ToolCallingRequested(calls=[])]

        with pytest.raises(TooManyModelCallsError) as exc_info:
            await harness.run()

        assert exc_info.value.limit == 8
        assert len(harness.backend.sent) == 8

    @pytest.mark.asyncio
    async def test_custom_model_call_limit(self) -> None:
        """Test that the limit is configurable."""
        harness = Harness(max_model_calls=2)
        harness.backend.updates = [LengthCut(text="a")]

        with pytest.raises(TooManyModelCallsError):
            await harness.run()

        assert len(harness.backend.sent) == 2

    @pytest.mark.asyncio
    async def test_length_cut_continues_and_merges(self) -> None:
        """Test that partial replies are merged and shown to the next call."""
        harness = Harness(marker="⚠")
        harness.backend.updates = [
            LengthCut(text="⚠Once upon "),
            LengthCut(text="a time, "),
            Finished(text="the end.", language="en"),
        ]

        ctx = await harness.run()

        assert ctx.update is not None
        assert ctx.update.assistant_response == AssistantMessage(
            text="Once upon a time, the end.", is_sensitive=True, language="en"
        )
        assert ctx.update.intermediate_messages == (UserMessage.from_text("hello"),)
        assert harness.backend.sent[1][-1] == AssistantMessage(
            text="Once upon ", is_sensitive=True
        )
        assert harness.backend.sent[2][-1] == AssistantMessage(
            text="Once upon a time, ", is_sensitive=True
        )

    @pytest.mark.asyncio
    async def test_filtered(self) -> None:
        """Test that a filtered reply finishes with a sensitive placeholder."""
        harness = Harness()
        harness.backend.updates = [Filtered()]

        ctx = await harness.run()

        assert ctx.update is not None
        assert ctx.update.assistant_response == AssistantMessage(
            text="(filtered)", is_sensitive=True
        )

    @pytest.mark.asyncio
    async def test_unknown_tool_in_batch_is_skipped(self) -> None:
        """Test that the first and third calls run when the second is unknown."""
        harness = Harness()
        first = FixedTool("first", {"n": 1}, [ImageAttachment(url="https://example.com/1.png")])
        third = FixedTool("third", {"n": 3}, [ImageAttachment(url="https://example.com/3.png")])
        harness.registry.register_simple(first)
        harness.registry.register_simple(third)
        calls = [
            ToolCalling(id="c1", name="first"),
            ToolCalling(id="c2", name="missing"),
            ToolCalling(id="c3", name="third"),
        ]
        harness.backend.updates = [ToolCallingRequested(calls=calls), Finished(text="done")]

        ctx = await harness.run()

        assert ctx.update is not None
        assert ctx.update.intermediate_messages[1:] == (
            FunctionCallsMessage(calls=calls),
            FunctionResponseMessage(id="c1", name="first", result={"n": 1}),
            FunctionResponseMessage(id="c3", name="third", result={"n": 3}),
        )
        assert [a.url for a in ctx.update.attachments] == [
            "https://example.com/1.png",
            "https://example.com/3.png",
        ]
        assert first.calls == ["c1"]
        assert third.calls == ["c3"]
        assert harness.backend.sent_tools[0] == ["first", "third"]

    @pytest.mark.asyncio
    async def test_tool_error_is_backend_error(self) -> None:
        """Test that tool failures fail the turn with the tool as source."""
        harness = Harness()
        harness.registry.register_simple(FailingTool())
        harness.backend.updates = [
            ToolCallingRequested(calls=[ToolCalling(id="c1", name="broken")])
        ]

        with pytest.raises(BackendError) as exc_info:
            await harness.run()

        assert exc_info.value.source == "tool"
        assert isinstance(exc_info.value.__cause__, ToolError)

    @pytest.mark.asyncio
    async def test_unexpected_tool_exception_is_backend_error(self) -> None:
        """Test that any exception a tool raises is wrapped with the tool as source."""
        harness = Harness()
        harness.registry.register_simple(CrashingTool())
        harness.backend.updates = [
            ToolCallingRequested(calls=[ToolCalling(id="c1", name="buggy")])
        ]

        with pytest.raises(BackendError) as exc_info:
            await harness.run()

        assert exc_info.value.source == "tool"
        assert "OverflowError" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, OverflowError)

    @pytest.mark.asyncio
    async def test_model_error_is_backend_error(self) -> None:
        """Test that backend failures fail the turn with the model as source."""
        harness = Harness()

        async def send_conversation(*args: Any, **kwargs: Any) -> BackendUpdate:
            raise LLMServerError("server error 500")

        harness.backend.send_conversation = send_conversation  # type: ignore[method-assign]

        with pytest.raises(BackendError) as exc_info:
            await harness.run()

        assert exc_info.value.source == "model"
        assert isinstance(exc_info.value.__cause__, LLMServerError)

    @pytest.mark.asyncio
    async def test_undefined_model_override_is_backend_error(self) -> None:
        """Test that a stored override naming a removed model fails cleanly."""
        harness = Harness()
        harness.conversation = harness.conversation.model_copy(update={"model": "removed"})

        with pytest.raises(BackendError) as exc_info:
            await harness.run()

        assert exc_info.value.source == "model"

    @pytest.mark.asyncio
    async def test_interceptor_complete_skips_model(self) -> None:
        """Test that a completing interceptor answers without a model call."""
        harness = Harness()
        reply = AssistantMessage(text="intercepted", skip_llm=True)
        harness.chain.register(StatusInterceptor(InterceptionStatus.complete(reply)))

        ctx = await harness.run()

        assert ctx.update is not None
        assert ctx.update.assistant_response == reply
        assert ctx.model_calls == 0
        assert harness.backend.sent == []

    @pytest.mark.asyncio
    async def test_interceptor_bypass_calls_model(self) -> None:
        """Test that BYPASS skips later interceptors but still calls the model."""
        harness = Harness()
        harness.backend.updates = [Finished(text="model reply")]
        harness.chain.register(StatusInterceptor(InterceptionStatus.abort()))
        harness.chain.register(StatusInterceptor(InterceptionStatus.bypass()))

        ctx = await harness.run()

        assert ctx.update is not None
        assert ctx.update.assistant_response.text == "model reply"

    @pytest.mark.asyncio
    async def test_interceptor_abort(self) -> None:
        """Test that ABORT fails the turn as aborted."""
        harness = Harness()
        harness.chain.register(StatusInterceptor(InterceptionStatus.abort()))

        with pytest.raises(ConversationAbortedError):
            await harness.run()
        assert harness.backend.sent == []

    @pytest.mark.asyncio
    async def test_interceptor_error_is_backend_error(self) -> None:
        """Test that interceptor failures name the interception source."""
        harness = Harness()
        harness.chain.register(FailingInterceptor())

        with pytest.raises(BackendError) as exc_info:
            await harness.run()

        assert exc_info.value.source == "interception"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "messages",
        [[], [UserMessage.from_text("hi"), AssistantMessage(text="not last")]],
    )
    async def test_must_end_with_user_message(self, messages: list[Message]) -> None:
        """Test that input without a trailing user message is rejected."""
        harness = Harness()
        ctx = TurnContext(
            request=RequestContext(),
            conversation_id=harness.conversation.id,
            new_messages=messages,
            user_role=UserRole.normal(),
        )

        with pytest.raises(MustEndWithUserMessageError):
            await harness.executor.execute_turn(ctx)

    @pytest.mark.asyncio
    async def test_conversation_not_found(self) -> None:
        """Test that an unknown conversation id is reported."""
        harness = Harness()
        ctx = TurnContext(
            request=RequestContext(),
            conversation_id=harness.conversation.id,
            new_messages=[UserMessage.from_text("hi")],
            user_role=UserRole.normal(),
        )

        with pytest.raises(ConversationNotFoundError) as exc_info:
            await harness.executor.execute_turn(ctx)

        assert exc_info.value.conversation_id == harness.conversation.id
