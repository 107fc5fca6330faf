"""Tests for the interception chain."""

import pytest

from personal_chatbot.conversation import (
    AssistantMessage,
    Conversation,
    IncompleteConversation,
    RequestContext,
    UserMessage,
    UserRole,
)
from personal_chatbot.interception import (
    InterceptionAction,
    InterceptionChain,
    InterceptionStatus,
    Interceptor,
)


class RecordingInterceptor(Interceptor):
    """Interceptor that records its name and returns a fixed status."""

    def __init__(self, name: str, calls: list[str], status: InterceptionStatus) -> None:
        self.name = name
        self.calls = calls
        self.status = status

    async def before_model(
        self,
        context: RequestContext,
        incomplete: IncompleteConversation,
        user_role: UserRole,
    ) -> InterceptionStatus:
        self.calls.append(self.name)
        return self.status


@pytest.fixture
def incomplete() -> IncompleteConversation:
    """Accumulator with one user message."""
    return IncompleteConversation.start(Conversation.new_now(), [UserMessage.from_text("hi")])


class TestInterceptionChain:
    """Test InterceptionChain class."""

    @pytest.mark.asyncio
    async def test_empty_chain_proceeds(self, incomplete: IncompleteConversation) -> None:
        """Test that no interceptors means the model is called."""
        status = await InterceptionChain().run(RequestContext(), incomplete, UserRole.normal())
        assert status.action is InterceptionAction.CONTINUE

    @pytest.mark.asyncio
    async def test_runs_in_reverse_registration_order(
        self, incomplete: IncompleteConversation
    ) -> None:
        """Test that the last registered interceptor runs first."""
        calls: list[str] = []
        chain = InterceptionChain()
        for name in ("A", "B", "C"):
            chain.register(RecordingInterceptor(name, calls, InterceptionStatus.proceed()))

        status = await chain.run(RequestContext(), incomplete, UserRole.normal())

        assert calls == ["C", "B", "A"]
        assert status.action is InterceptionAction.CONTINUE
        assert len(chain) == 3

    @pytest.mark.asyncio
    async def test_complete_short_circuits(self, incomplete: IncompleteConversation) -> None:
        """Test that B completing stops the chain before A runs."""
        calls: list[str] = []
        reply = AssistantMessage(text="handled by B")
        chain = InterceptionChain()
        chain.register(RecordingInterceptor("A", calls, InterceptionStatus.proceed()))
        chain.register(RecordingInterceptor("B", calls, InterceptionStatus.complete(reply)))
        chain.register(RecordingInterceptor("C", calls, InterceptionStatus.proceed()))

        status = await chain.run(RequestContext(), incomplete, UserRole.normal())

        assert calls == ["C", "B"]
        assert status.action is InterceptionAction.COMPLETE
        assert status.message == reply

    @pytest.mark.asyncio
    async def test_bypass_skips_remaining(self, incomplete: IncompleteConversation) -> None:
        """Test that BYPASS stops the chain and is reported to the caller."""
        calls: list[str] = []
        chain = InterceptionChain()
        chain.register(RecordingInterceptor("A", calls, InterceptionStatus.abort()))
        chain.register(RecordingInterceptor("B", calls, InterceptionStatus.bypass()))

        status = await chain.run(RequestContext(), incomplete, UserRole.normal())

        assert calls == ["B"]
        assert status.action is InterceptionAction.BYPASS

    @pytest.mark.asyncio
    async def test_abort(self, incomplete: IncompleteConversation) -> None:
        """Test that ABORT is returned as is."""
        chain = InterceptionChain()
        chain.register(RecordingInterceptor("A", [], InterceptionStatus.abort()))

        status = await chain.run(RequestContext(), incomplete, UserRole.normal())

        assert status.action is InterceptionAction.ABORT
        assert status.message is None
