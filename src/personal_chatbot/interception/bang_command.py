"""Interceptor that answers ``!command`` messages without calling the model.

A user message whose first text part starts with ``!`` is treated as a
command: it stays in history but is hidden from the model, and the command's
reply becomes the turn's final message.
"""

import inspect
from collections.abc import Awaitable, Callable, Collection
from dataclasses import dataclass

from personal_chatbot.conversation import (
    AssistantMessage,
    IncompleteConversation,
    RequestContext,
    UserRole,
)
from personal_chatbot.interception.types import InterceptionStatus, Interceptor
from personal_chatbot.telemetry import BANG_COMMAND_RECEIVED, get_logger

log = get_logger(__name__)

CHANGE_MODEL_SCOPE = "change_model"


@dataclass(frozen=True)
class ModelOverride:
    """Model selection requested by a command; ``model=None`` means the default."""

    model: str | None


@dataclass(frozen=True)
class BangCommandResponse:
    """What a command wants done with the turn.

    Attributes:
        status: Interception status to return.
        model_override: Model selection to apply to the conversation, if any.
    """

    status: InterceptionStatus
    model_override: ModelOverride | None = None


BangCommand = Callable[
    [RequestContext, str, UserRole], BangCommandResponse | Awaitable[BangCommandResponse]
]


def command_reply(text: str) -> InterceptionStatus:
    """Complete the turn with a command reply hidden from later model calls."""
    return InterceptionStatus.complete(AssistantMessage(text=text, skip_llm=True))


def ping_command(context: RequestContext, rest: str, user_role: UserRole) -> BangCommandResponse:
    """``!ping``: liveness check."""
    return BangCommandResponse(command_reply("pong"))


class ChangeModelCommand:
    """``!change <model>`` / ``!change default``: select the conversation model."""

    def __init__(self, model_names: Collection[str]) -> None:
        self.model_names = model_names

    def __call__(
        self, context: RequestContext, rest: str, user_role: UserRole
    ) -> BangCommandResponse:
        if not user_role.accepts(CHANGE_MODEL_SCOPE):
            return BangCommandResponse(command_reply("permission denied"))

        name = rest.strip()
        if not name:
            return BangCommandResponse(command_reply("usage: !change <model|default>"))
        if name == "default":
            return BangCommandResponse(
                command_reply("model restored to default"), ModelOverride(None)
            )
        if name not in self.model_names:
            return BangCommandResponse(command_reply(f"unknown model: {name}"))
        return BangCommandResponse(command_reply(f"model changed to {name}"), ModelOverride(name))


def parse_bang_command(text: str) -> tuple[str, str] | None:
    """Split ``!name rest`` into ``(name, rest)``; None if not a command."""
    text = text.strip()
    if not text.startswith("!"):
        return None
    parts = text[1:].split(maxsplit=1)
    if not parts:
        return "", ""
    return parts[0], parts[1] if len(parts) > 1 else ""


class BangCommandInterceptor(Interceptor):
    """Dispatches ``!name`` messages to registered commands."""

    def __init__(self) -> None:
        self._commands: dict[str, BangCommand] = {}

    def register_command(self, name: str, command: BangCommand) -> None:
        """Register (or replace) the command answering ``!name``."""
        self._commands[name] = command

    @property
    def command_names(self) -> list[str]:
        return sorted(self._commands)

    async def before_model(
        self,
        context: RequestContext,
        incomplete: IncompleteConversation,
        user_role: UserRole,
    ) -> InterceptionStatus:
        user_message = incomplete.last_user_message()
        if user_message is None:
            return InterceptionStatus.proceed()

        text = user_message.first_text()
        if text is None:
            return InterceptionStatus.proceed()

        parsed = parse_bang_command(text)
        if parsed is None:
            return InterceptionStatus.proceed()
        name, rest = parsed

        log.info(BANG_COMMAND_RECEIVED, command=name, trace_id=context.trace_ctx.trace_id)
        user_message.skip_llm = True

        command = self._commands.get(name)
        if command is None:
            return command_reply(f"unknown command: {name}")

        response = command(context, rest, user_role)
        if inspect.isawaitable(response):
            response = await response

        if response.model_override is not None:
            incomplete.set_model_override(response.model_override.model)
        return response.status


def create_default_bang_commands(model_names: Collection[str]) -> BangCommandInterceptor:
    """Build the interceptor with ``!ping`` and ``!change``."""
    interceptor = BangCommandInterceptor()
    interceptor.register_command("ping", ping_command)
    interceptor.register_command("change", ChangeModelCommand(model_names))
    return interceptor
