"""Tests for bang commands."""

import pytest

from personal_chatbot.conversation import (
    AssistantMessage,
    Conversation,
    ImageUrlContent,
    IncompleteConversation,
    RequestContext,
    UserMessage,
    UserRole,
)
from personal_chatbot.interception import (
    BangCommandInterceptor,
    BangCommandResponse,
    InterceptionAction,
    InterceptionStatus,
    create_default_bang_commands,
)
from personal_chatbot.interception.bang_command import command_reply, parse_bang_command


def _incomplete(text: str) -> IncompleteConversation:
    return IncompleteConversation.start(Conversation.new_now(), [UserMessage.from_text(text)])


class TestParseBangCommand:
    """Test parse_bang_command function."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("!ping", ("ping", "")),
            ("  !change   local  ", ("change", "local")),
            ("!change some model", ("change", "some model")),
            ("!", ("", "")),
            ("hello", None),
            ("say !ping", None),
        ],
    )
    def test_parse(self, text: str, expected: tuple[str, str] | None) -> None:
        """Test splitting command name and rest."""
        assert parse_bang_command(text) == expected


class TestBangCommandInterceptor:
    """Test the default bang commands."""

    @pytest.fixture
    def interceptor(self) -> BangCommandInterceptor:
        """Interceptor knowing the models gpt and local."""
        return create_default_bang_commands(["gpt", "local"])

    @pytest.mark.asyncio
    async def test_plain_message_proceeds(self, interceptor: BangCommandInterceptor) -> None:
        """Test that ordinary messages go to the model untouched."""
        incomplete = _incomplete("hello")

        status = await interceptor.before_model(RequestContext(), incomplete, UserRole.normal())

        assert status.action is InterceptionAction.CONTINUE
        assert incomplete.last_user_message().skip_llm is False

    @pytest.mark.asyncio
    async def test_image_only_message_proceeds(self, interceptor: BangCommandInterceptor) -> None:
        """Test that a message without text is not a command."""
        incomplete = IncompleteConversation.start(
            Conversation.new_now(),
            [UserMessage(contents=[ImageUrlContent(url="https://example.com/a.png")])],
        )

        status = await interceptor.before_model(RequestContext(), incomplete, UserRole.normal())

        assert status.action is InterceptionAction.CONTINUE

    @pytest.mark.asyncio
    async def test_ping(self, interceptor: BangCommandInterceptor) -> None:
        """Test that !ping answers pong and hides both messages from the model."""
        incomplete = _incomplete("!ping")

        status = await interceptor.before_model(RequestContext(), incomplete, UserRole.normal())

        assert status.action is InterceptionAction.COMPLETE
        assert status.message == AssistantMessage(text="pong", skip_llm=True)
        assert incomplete.last_user_message().skip_llm is True

    @pytest.mark.asyncio
    async def test_caller_message_is_not_mutated(
        self, interceptor: BangCommandInterceptor
    ) -> None:
        """Test that marking the command skip_llm leaves the inbound object untouched."""
        inbound = UserMessage.from_text("!ping")
        incomplete = IncompleteConversation.start(Conversation.new_now(), [inbound])

        await interceptor.before_model(RequestContext(), incomplete, UserRole.normal())

        assert incomplete.pushed_messages[0].skip_llm is True
        assert inbound.skip_llm is False

    @pytest.mark.asyncio
    async def test_unknown_command(self, interceptor: BangCommandInterceptor) -> None:
        """Test that unknown commands are answered, not sent to the model."""
        incomplete = _incomplete("!dance now")

        status = await interceptor.before_model(RequestContext(), incomplete, UserRole.normal())

        assert status.message is not None
        assert status.message.text == "unknown command: dance"
        assert incomplete.last_user_message().skip_llm is True

    @pytest.mark.asyncio
    async def test_change_model(self, interceptor: BangCommandInterceptor) -> None:
        """Test that !change selects a configured model."""
        incomplete = _incomplete("!change local")

        status = await interceptor.before_model(
            RequestContext(), incomplete, UserRole.scoped("change_model")
        )

        assert status.message is not None
        assert status.message.text == "model changed to local"
        assert incomplete.model == "local"

    @pytest.mark.asyncio
    async def test_change_model_default(self, interceptor: BangCommandInterceptor) -> None:
        """Test that !change default clears the override."""
        base = Conversation.new_now().model_copy(update={"model": "local"})
        incomplete = IncompleteConversation.start(base, [UserMessage.from_text("!change default")])

        status = await interceptor.before_model(
            RequestContext(), incomplete, UserRole.privileged()
        )

        assert status.message is not None
        assert status.message.text == "model restored to default"
        assert incomplete.model is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "text,role,reply",
        [
            ("!change local", UserRole.normal(), "permission denied"),
            ("!change", UserRole.privileged(), "usage: !change <model|default>"),
            ("!change claude", UserRole.privileged(), "unknown model: claude"),
        ],
    )
    async def test_change_model_refused(
        self, interceptor: BangCommandInterceptor, text: str, role: UserRole, reply: str
    ) -> None:
        """Test that refused changes leave the model untouched."""
        incomplete = _incomplete(text)

        status = await interceptor.before_model(RequestContext(), incomplete, role)

        assert status.message is not None
        assert status.message.text == reply
        assert incomplete.model is None

    @pytest.mark.asyncio
    async def test_async_command(self) -> None:
        """Test that commands may be coroutines."""

        async def whoami(
            context: RequestContext, rest: str, user_role: UserRole
        ) -> BangCommandResponse:
            return BangCommandResponse(command_reply(f"you are {context.identity}"))

        interceptor = BangCommandInterceptor()
        interceptor.register_command("whoami", whoami)

        status = await interceptor.before_model(
            RequestContext(identity="alice"), _incomplete("!whoami"), UserRole.normal()
        )

        assert status == InterceptionStatus.complete(
            AssistantMessage(text="you are alice", skip_llm=True)
        )
        assert interceptor.command_names == ["whoami"]
