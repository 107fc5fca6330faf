"""Tests for trace context."""

from personal_chatbot.telemetry import TraceContext


class TestTraceContext:
    """Test TraceContext."""

    def test_new_trace(self) -> None:
        """Test that new traces are distinct and have no parent."""
        first = TraceContext.new_trace()
        second = TraceContext.new_trace()

        assert first.trace_id != second.trace_id
        assert first.parent_span_id is None

    def test_new_span(self) -> None:
        """Test that a span keeps the trace id and becomes the parent."""
        trace = TraceContext.new_trace()

        child, span_id = trace.new_span()

        assert child.trace_id == trace.trace_id
        assert child.parent_span_id == span_id
        assert len(span_id) == 16
        assert trace.parent_span_id is None
