"""Rate limiter interface consulted by side-effecting tools."""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum


class RateLimitOutcome(str, Enum):
    """Result of a rate limit check."""

    SUCCESS = "success"
    FAILURE = "failure"


class RateLimiter(ABC):
    """Decides whether an action keyed by ``key`` may run at ``now``.

    A successful check counts as one use of the budget.
    """

    @abstractmethod
    async def check(self, now: datetime, key: str) -> RateLimitOutcome:
        """Record an attempt and report whether it is within the limit."""
