"""Request-scoped context handed to interceptors and complex tools.

Every field a collaborator may read is declared here, so platform adapters know
exactly what they have to supply.
"""

from dataclasses import dataclass, field
from typing import Any

from personal_chatbot.telemetry.trace import TraceContext


@dataclass(frozen=True)
class Remindable:
    """Where a reminder should be delivered back to.

    Attributes:
        context: Platform-specific delivery target (channel id, chat id, ...).
        requester: Identity of the user who asked, for the reminder text.
    """

    context: str
    requester: str


@dataclass(frozen=True)
class RequestContext:
    """Context of one request entering the orchestrator.

    Attributes:
        identity: Platform identity of the sender, None for system requests.
        context_key: Platform key the conversation is stored under, if any.
        remindable: Reminder delivery target; None where the platform cannot
            deliver reminders.
        trace_ctx: Trace used to correlate log events of this request.
        platform_data: Adapter-owned values, keyed by adapter name. The core
            never reads it.
    """

    identity: str | None = None
    context_key: str | None = None
    remindable: Remindable | None = None
    trace_ctx: TraceContext = field(default_factory=TraceContext.new_trace)
    platform_data: dict[str, Any] = field(default_factory=dict)

