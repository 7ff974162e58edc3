"""Spans for tool calls observed in an agent's event stream.

``ToolCallSpanCorrelator`` pairs each ``ToolCallEvent`` with the final
``ToolResultEvent`` carrying the same call id, however the two are interleaved
with other calls, and records one span per call. ``AgentRunSpan`` wraps a whole
run and parents those spans.

Typical use::

    with AgentRunSpan(tracer, prompt) as run:
        async for event in agent.stream(prompt):
            run.handle(event)
    print(run.summary())
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .events import (
    AgentRunError,
    ErrorEvent,
    FinishEvent,
    StreamEvent,
    TextDeltaEvent,
    ToolCallEvent,
    ToolResultEvent,
)
from .telemetry import to_json

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def monotonic_ms() -> float:
    return time.perf_counter() * 1000


@dataclass
class PendingToolCall:
    """A tool call seen in the stream. Open until its final result arrives."""

    tool_call_id: str
    tool_name: str
    input: Any
    start_ms: float
    span: trace.Span
    end_ms: Optional[float] = None
    output: Any = None

    @property
    def is_open(self) -> bool:
        return self.end_ms is None

    @property
    def duration_ms(self) -> Optional[float]:
        if self.end_ms is None:
            return None
        return self.end_ms - self.start_ms


@dataclass(frozen=True)
class ParallelismSummary:
    """How much wall-clock time concurrent tool execution saved.

    ``speedup_pct`` compares against the observed wall clock (1700ms saved over
    1000ms is 170%); ``reduction_pct`` compares against the sequential sum
    (the same run is 63% faster). Both are 0 when nothing was saved.
    """

    tool_calls: int
    sequential_ms: float
    actual_ms: float

    @property
    def has_savings(self) -> bool:
        return self.sequential_ms > self.actual_ms

    @property
    def saved_ms(self) -> float:
        return max(0.0, self.sequential_ms - self.actual_ms)

    @property
    def speedup_pct(self) -> float:
        if not self.has_savings or self.actual_ms <= 0:
            return 0.0
        return self.sequential_ms / self.actual_ms * 100 - 100

    @property
    def reduction_pct(self) -> float:
        if not self.has_savings:
            return 0.0
        return (1 - self.actual_ms / self.sequential_ms) * 100


def summarize(calls: Iterable[PendingToolCall], actual_ms: float) -> ParallelismSummary:
    """Sum completed call durations and compare with the observed run time."""
    calls = list(calls)
    sequential = sum(c.duration_ms for c in calls if c.duration_ms is not None)
    return ParallelismSummary(tool_calls=len(calls), sequential_ms=sequential, actual_ms=actual_ms)


class ToolCallSpanCorrelator:
    """Open a span per tool call and close it when the matching result arrives.

    Not thread-safe: feed it from the single coroutine consuming the stream.

    Args:
        tracer: Tracer used for the tool spans.
        parent: Span the tool spans are parented to. Defaults to the current span.
        clock: Milliseconds source used for durations.
    """

    def __init__(
        self,
        tracer: trace.Tracer,
        parent: Optional[trace.Span] = None,
        clock: Clock = monotonic_ms,
    ) -> None:
        self._tracer = tracer
        self._parent = parent
        self._clock = clock
        self._calls: Dict[str, PendingToolCall] = {}
        self.finish: Optional[FinishEvent] = None

    @property
    def calls(self) -> List[PendingToolCall]:
        """All calls in the order they were started."""
        return list(self._calls.values())

    @property
    def open_calls(self) -> List[PendingToolCall]:
        return [c for c in self._calls.values() if c.is_open]

    def get(self, tool_call_id: str) -> Optional[PendingToolCall]:
        return self._calls.get(tool_call_id)

    def handle(self, event: StreamEvent) -> Optional[PendingToolCall]:
        """Apply one stream event.

        Returns the affected call for tool events, else ``None``.

        Raises:
            AgentRunError: for an ``ErrorEvent``.
            TypeError: for an object that is not a known stream event.
        """
        if isinstance(event, ToolCallEvent):
            return self.on_tool_call(event)
        if isinstance(event, ToolResultEvent):
            return self.on_tool_result(event)
        if isinstance(event, TextDeltaEvent):
            return None
        if isinstance(event, FinishEvent):
            self.on_finish(event)
            return None
        if isinstance(event, ErrorEvent):
            if isinstance(event.error, AgentRunError):
                raise event.error
            raise AgentRunError(event.message, event.error) from event.error
        raise TypeError(f"Unhandled stream event: {event!r}")

    def on_tool_call(self, event: ToolCallEvent) -> PendingToolCall:
        if event.tool_call_id in self._calls:
            raise ValueError(f"Tool call id {event.tool_call_id!r} was already started")

        context = trace.set_span_in_context(self._parent) if self._parent is not None else None
        span = self._tracer.start_span(
            f"tool.{event.tool_name}",
            context=context,
            attributes={
                "tool.name": event.tool_name,
                "tool.call_id": event.tool_call_id,
                "tool.input": to_json(event.input),
            },
        )
        call = PendingToolCall(
            tool_call_id=event.tool_call_id,
            tool_name=event.tool_name,
            input=event.input,
            start_ms=self._clock(),
            span=span,
        )
        self._calls[event.tool_call_id] = call
        return call

    def on_tool_result(self, event: ToolResultEvent) -> Optional[PendingToolCall]:
        call = self._calls.get(event.tool_call_id)
        if call is None:
            logger.warning(
                "Ignoring result for unknown tool call %s (%s)", event.tool_call_id, event.tool_name
            )
            return None
        if not call.is_open:
            logger.warning("Ignoring result for already completed tool call %s", event.tool_call_id)
            return None

        if event.preliminary:
            call.span.add_event("tool.progress", attributes={"tool.output": to_json(event.output)})
            return call

        call.end_ms = self._clock()
        call.output = event.output
        call.span.set_attribute("tool.output", to_json(event.output))
        call.span.set_attribute("tool.duration_ms", call.duration_ms)
        call.span.end()
        return call

    def on_finish(self, event: FinishEvent) -> None:
        self.finish = event
        if self._parent is not None and self._parent.is_recording():
            self._parent.set_attribute("agent.usage.input_tokens", event.usage.input_tokens)
            self._parent.set_attribute("agent.usage.output_tokens", event.usage.output_tokens)
            self._parent.set_attribute("agent.usage.total_tokens", event.usage.total_tokens)
            self._parent.set_attribute("agent.finish_reason", event.finish_reason)

    def close_open(self, error: Optional[BaseException] = None) -> int:
        """End every still-open tool span. Returns how many were closed."""
        closed = 0
        for call in self.open_calls:
            call.end_ms = self._clock()
            if error is not None:
                call.span.set_status(Status(StatusCode.ERROR, f"Run ended: {error}"))
            call.span.set_attribute("tool.duration_ms", call.duration_ms)
            call.span.set_attribute("tool.completed", False)
            call.span.end()
            closed += 1
        if closed:
            logger.info("Closed %d tool spans left open at end of run", closed)
        return closed

    def summary(self, actual_ms: float) -> ParallelismSummary:
        return summarize(self._calls.values(), actual_ms)


class AgentRunSpan:
    """Context manager for the span covering one prompt execution.

    The span is current inside the ``with`` block and ends exactly once on
    exit. An exception escaping the block is recorded, sets ``ERROR`` status,
    closes any open tool spans, and propagates.

    Args:
        tracer: Tracer used for the run span and its tool spans.
        prompt: Stamped as ``agent.prompt``.
        name: Span name.
        attributes: Extra attributes for the run span.
        clock: Milliseconds source for durations.
    """

    def __init__(
        self,
        tracer: trace.Tracer,
        prompt: str,
        *,
        name: str = "agent.run",
        attributes: Optional[Dict[str, Any]] = None,
        clock: Clock = monotonic_ms,
    ) -> None:
        self._tracer = tracer
        self._prompt = prompt
        self._name = name
        self._attributes = dict(attributes or {})
        self._clock = clock
        self._use_span: Any = None
        self._start_ms: Optional[float] = None
        self._end_ms: Optional[float] = None
        self.span: trace.Span = trace.INVALID_SPAN
        self.correlator: Optional[ToolCallSpanCorrelator] = None

    def __enter__(self) -> "AgentRunSpan":
        self.span = self._tracer.start_span(
            self._name,
            attributes={"agent.prompt": self._prompt, **self._attributes},
        )
        self._use_span = trace.use_span(self.span, end_on_exit=False)
        self._use_span.__enter__()
        self.correlator = ToolCallSpanCorrelator(self._tracer, parent=self.span, clock=self._clock)
        self._start_ms = self._clock()
        return self

    def __exit__(self, exc_type: Any, exc: Optional[BaseException], tb: Any) -> bool:
        assert self.correlator is not None
        try:
            self._end_ms = self._clock()
            if exc is not None:
                self.span.record_exception(exc)
                self.span.set_status(Status(StatusCode.ERROR, str(exc)))
            self.correlator.close_open(exc)
            self.span.set_attribute("agent.duration_ms", self.elapsed_ms)
            self.span.set_attribute("agent.tool_calls_count", len(self.correlator.calls))
        finally:
            self._use_span.__exit__(None, None, None)
            self.span.end()
        return False

    def handle(self, event: StreamEvent) -> Optional[PendingToolCall]:
        if self.correlator is None:
            raise RuntimeError("AgentRunSpan must be entered before handling events")
        return self.correlator.handle(event)

    @property
    def elapsed_ms(self) -> float:
        if self._start_ms is None:
            return 0.0
        end = self._end_ms if self._end_ms is not None else self._clock()
        return end - self._start_ms

    @property
    def calls(self) -> List[PendingToolCall]:
        return self.correlator.calls if self.correlator is not None else []

    @property
    def finish(self) -> Optional[FinishEvent]:
        """The run's finish event (usage, output), once seen."""
        return self.correlator.finish if self.correlator is not None else None

    def summary(self) -> ParallelismSummary:
        if self.correlator is None:
            return ParallelismSummary(tool_calls=0, sequential_ms=0.0, actual_ms=0.0)
        return self.correlator.summary(self.elapsed_ms)


async def trace_agent_run(
    agent: Any,
    prompt: str,
    tracer: trace.Tracer,
    *,
    on_event: Optional[Callable[[StreamEvent, Optional[PendingToolCall]], None]] = None,
    options: Any = None,
    attributes: Optional[Dict[str, Any]] = None,
    clock: Clock = monotonic_ms,
) -> AgentRunSpan:
    """Stream ``agent`` on ``prompt`` inside an ``AgentRunSpan``.

    ``on_event`` sees every event together with the tool call it touched.
    Raises ``AgentRunError`` if the run ends with an error event.
    """
    with AgentRunSpan(tracer, prompt, attributes=attributes, clock=clock) as run:
        async for event in agent.stream(prompt, options=options):
            # An error event raises in handle(), so show it first
            if isinstance(event, ErrorEvent) and on_event is not None:
                on_event(event, None)
            call = run.handle(event)
            if on_event is not None:
                on_event(event, call)
    return run
