"""Reminder tool and the reminder queue interface it schedules into.

The queue itself (persistence, delivery at the due time) lives outside the
engine; the tool only validates the request and registers or cancels jobs.
"""

import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from personal_chatbot.conversation import (
    IncompleteConversation,
    RequestContext,
    ToolCalling,
    UserRole,
)
from personal_chatbot.telemetry import get_logger
from personal_chatbot.tools.base import ComplexTool
from personal_chatbot.tools.rate_limit import RateLimiter, RateLimitOutcome
from personal_chatbot.tools.types import ToolDescriptor, ToolError, ToolParameter, ToolResponse

log = get_logger(__name__)

REMINDER_SCOPE = "reminder"

# Time used when the model only supplies a date
DEFAULT_REMIND_TIME = time(9, 0)


class ReminderError(ToolError):
    """Raised when the reminder queue rejects an operation."""

    pass


@dataclass(frozen=True)
class Remind:
    """Payload delivered when a reminder fires."""

    requester: str
    content: str


class Reminder(ABC):
    """Delayed-delivery queue for reminders."""

    @abstractmethod
    async def register(self, context: str, remind: Remind, remind_at: datetime) -> uuid.UUID:
        """Schedule ``remind`` for delivery to ``context`` at ``remind_at``.

        Returns:
            Id that can later be passed to ``remove``.

        Raises:
            ReminderError: If the job cannot be scheduled.
        """

    @abstractmethod
    async def remove(self, id: uuid.UUID) -> None:
        """Cancel a scheduled reminder.

        Raises:
            ReminderError: If the job cannot be removed.
        """


class ReminderArguments(BaseModel):
    """Arguments the model passes to the reminder tool."""

    remind_at: str | None = Field(None, description="Absolute time (RFC3339) or date")
    remind_in: int | None = Field(None, description="Seconds from now")
    cancel: str | None = Field(None, description="Id of a reminder to cancel")
    content: str = Field("", description="What to remind about")


reminder_descriptor = ToolDescriptor(
    name="reminder",
    description=(
        "Registers or cancels reminders for the user. "
        "Use remind_in with a number of seconds only when the delay is exact "
        "(e.g. 'in 2 hours'); otherwise give remind_at as an absolute time. "
        "Call local_info first if the current time is needed, and keep its timezone. "
        "To cancel a reminder, pass the id returned when it was registered as cancel."
    ),
    parameters=[
        ToolParameter(
            name="remind_at",
            type="string",
            description=(
                "Absolute time to remind at, in RFC3339 format. "
                "Give only the date if the user did not name a time. Null for relative delays."
            ),
            nullable=True,
        ),
        ToolParameter(
            name="remind_in",
            type="integer",
            description="Seconds until the reminder. Null for absolute times.",
            nullable=True,
        ),
        ToolParameter(
            name="cancel",
            type="string",
            description="Id of the reminder the user asked to cancel. Null when registering.",
            nullable=True,
        ),
        ToolParameter(
            name="content",
            type="string",
            description=(
                "What the user wants to be reminded of, as close to their wording as possible. "
                "Empty when cancelling."
            ),
        ),
    ],
)


def _local_now() -> datetime:
    return datetime.now().astimezone()


def parse_remind_at(value: str, now: datetime) -> datetime:
    """Parse an absolute reminder time.

    Accepts RFC3339 timestamps and plain ``YYYY-MM-DD`` dates (meaning
    09:00 that day). Values without an offset use the timezone of ``now``.

    Raises:
        ValueError: If the value is neither form.
    """
    value = value.strip()
    if len(value) == 10:
        parsed = datetime.combine(date.fromisoformat(value), DEFAULT_REMIND_TIME)
    else:
        parsed = datetime.fromisoformat(value)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=now.tzinfo)
    return parsed


def _status(status: str, **fields: Any) -> ToolResponse:
    return ToolResponse(result={"status": status, **fields})


class ReminderTool(ComplexTool):
    """Registers and cancels reminders on behalf of the user.

    Requires the ``reminder`` capability and a ``Remindable`` in the request
    context. Problems the model can explain to the user are returned as
    ``status`` payloads; queue failures raise ``ReminderError``.
    """

    def __init__(
        self,
        reminder: Reminder,
        max_seconds: int,
        rate_limiter: RateLimiter | None = None,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self.reminder = reminder
        self.max_seconds = max_seconds
        self.rate_limiter = rate_limiter
        self.clock = clock

    def describe(self) -> ToolDescriptor:
        return reminder_descriptor

    async def call(
        self,
        context: RequestContext,
        incomplete: IncompleteConversation,
        user_role: UserRole,
        tool_calling: ToolCalling,
    ) -> ToolResponse:
        if not user_role.accepts(REMINDER_SCOPE):
            return _status("forbidden", reason="the user is not allowed to use reminders")

        remindable = context.remindable
        if remindable is None:
            return _status("unavailable", reason="reminders cannot be delivered here")

        try:
            arguments = ReminderArguments.model_validate(tool_calling.arguments or {})
        except ValidationError as e:
            return _status("invalid_request", reason=str(e))

        if arguments.cancel is not None:
            return await self._cancel(arguments.cancel, context)

        return await self._register(arguments, remindable.context, remindable.requester, context)

    async def _cancel(self, raw_id: str, context: RequestContext) -> ToolResponse:
        try:
            reminder_id = uuid.UUID(raw_id)
        except ValueError:
            return _status("invalid_request", reason=f"invalid reminder id: {raw_id}")

        await self.reminder.remove(reminder_id)
        log.info(
            "reminder_cancelled", reminder_id=str(reminder_id), trace_id=context.trace_ctx.trace_id
        )
        return _status("cancelled", id=str(reminder_id))

    async def _register(
        self,
        arguments: ReminderArguments,
        target: str,
        requester: str,
        context: RequestContext,
    ) -> ToolResponse:
        if not arguments.content.strip():
            return _status("invalid_request", reason="content is empty")

        now = self.clock()
        if arguments.remind_in is not None:
            # Bounded before building the timedelta, which overflows on huge values
            if arguments.remind_in <= 0:
                return _status("invalid_request", reason="remind_in must be positive")
            if arguments.remind_in > self.max_seconds:
                return _status("due_limit_exceeded", max_seconds=self.max_seconds)
            remind_at = now + timedelta(seconds=arguments.remind_in)
            delay = float(arguments.remind_in)
        elif arguments.remind_at is not None:
            try:
                remind_at = parse_remind_at(arguments.remind_at, now)
                delay = (remind_at - now).total_seconds()
            except (ValueError, OverflowError):
                return _status(
                    "invalid_request", reason=f"invalid remind_at: {arguments.remind_at}"
                )
        else:
            return _status("invalid_request", reason="either remind_at or remind_in is required")

        if delay <= 0:
            return _status("invalid_request", reason="remind_at is in the past")
        if delay > self.max_seconds:
            return _status("due_limit_exceeded", max_seconds=self.max_seconds)

        if self.rate_limiter is not None:
            outcome = await self.rate_limiter.check(now, f"{REMINDER_SCOPE}:{requester}")
            if outcome is RateLimitOutcome.FAILURE:
                return _status("rate_limited", reason="too many reminders, try again later")

        reminder_id = await self.reminder.register(
            target, Remind(requester=requester, content=arguments.content), remind_at
        )
        log.info(
            "reminder_registered",
            reminder_id=str(reminder_id),
            remind_at=remind_at.isoformat(),
            trace_id=context.trace_ctx.trace_id,
        )
        return _status("registered", id=str(reminder_id), remind_at=remind_at.isoformat())
