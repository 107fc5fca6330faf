"""Type definitions for the interception chain."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from personal_chatbot.conversation import (
    AssistantMessage,
    IncompleteConversation,
    RequestContext,
    UserRole,
)


class InterceptionError(Exception):
    """Raised by an interceptor that fails while inspecting a turn."""

    pass


class InterceptionAction(str, Enum):
    """What the orchestrator should do after an interceptor ran."""

    CONTINUE = "continue"  # run the next interceptor, then the model
    BYPASS = "bypass"  # skip remaining interceptors, still call the model
    COMPLETE = "complete"  # finish the turn with the given message
    ABORT = "abort"  # fail the turn


@dataclass(frozen=True)
class InterceptionStatus:
    """Outcome of one interceptor.

    Attributes:
        action: Requested follow-up.
        message: Final assistant message; set only for COMPLETE.
    """

    action: InterceptionAction
    message: AssistantMessage | None = None

    @classmethod
    def proceed(cls) -> "InterceptionStatus":
        return cls(InterceptionAction.CONTINUE)

    @classmethod
    def bypass(cls) -> "InterceptionStatus":
        return cls(InterceptionAction.BYPASS)

    @classmethod
    def complete(cls, message: AssistantMessage) -> "InterceptionStatus":
        return cls(InterceptionAction.COMPLETE, message)

    @classmethod
    def abort(cls) -> "InterceptionStatus":
        return cls(InterceptionAction.ABORT)


class Interceptor(ABC):
    """Middleware that runs before the model is called.

    Interceptors may mutate the accumulator (mark messages ``skip_llm``,
    change the target model) and may end the turn early.
    """

    @abstractmethod
    async def before_model(
        self,
        context: RequestContext,
        incomplete: IncompleteConversation,
        user_role: UserRole,
    ) -> InterceptionStatus:
        """Inspect the turn before the first model call.

        Raises:
            InterceptionError: If the interceptor itself fails.
        """
