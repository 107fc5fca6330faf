"""Trace context for correlating the log events of one conversation turn."""

import uuid
from dataclasses import dataclass


@dataclass(frozen=True)
class TraceContext:
    """Correlation identifiers for one request.

    A turn gets one trace; each model call and tool call opens a child span so
    their start/complete events can be paired in the logs.

    Attributes:
        trace_id: Identifier shared by every event of the request.
        parent_span_id: Span that the next child span hangs off, if any.
    """

    trace_id: str
    parent_span_id: str | None = None

    @classmethod
    def new_trace(cls) -> "TraceContext":
        """Start a new trace with no parent span."""
        return cls(trace_id=str(uuid.uuid4()))

    def new_span(self) -> tuple["TraceContext", str]:
        """Open a child span within this trace.

        Returns:
            Tuple of (context whose parent is the new span, new span id).
        """
        span_id = uuid.uuid4().hex[:16]
        return TraceContext(trace_id=self.trace_id, parent_span_id=span_id), span_id
