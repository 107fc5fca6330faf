"""Ordered chain of pre-model interceptors."""

from personal_chatbot.conversation import IncompleteConversation, RequestContext, UserRole
from personal_chatbot.interception.types import (
    InterceptionAction,
    InterceptionStatus,
    Interceptor,
)
from personal_chatbot.telemetry import INTERCEPTION_RESULT, INTERCEPTOR_REGISTERED, get_logger

log = get_logger(__name__)


class InterceptionChain:
    """Interceptors applied to every turn.

    Interceptors run in reverse registration order: the one registered last
    wraps the ones registered before it, so it sees the turn first.
    """

    def __init__(self) -> None:
        self._interceptors: list[Interceptor] = []

    def __len__(self) -> int:
        return len(self._interceptors)

    def register(self, interceptor: Interceptor) -> None:
        """Add an interceptor; it will run before every one registered earlier."""
        self._interceptors.append(interceptor)
        log.debug(INTERCEPTOR_REGISTERED, interceptor=type(interceptor).__name__)

    async def run(
        self,
        context: RequestContext,
        incomplete: IncompleteConversation,
        user_role: UserRole,
    ) -> InterceptionStatus:
        """Run interceptors until one returns something other than CONTINUE.

        Args:
            context: Request context of the turn.
            incomplete: Accumulator of the turn, shared with every interceptor.
            user_role: Capabilities of the requesting user.

        Returns:
            The first non-CONTINUE status, or CONTINUE if every interceptor
            let the turn through.
        """
        for interceptor in reversed(self._interceptors):
            status = await interceptor.before_model(context, incomplete, user_role)
            if status.action is InterceptionAction.CONTINUE:
                continue

            log.info(
                INTERCEPTION_RESULT,
                interceptor=type(interceptor).__name__,
                action=status.action.value,
                trace_id=context.trace_ctx.trace_id,
            )
            return status

        return InterceptionStatus.proceed()
