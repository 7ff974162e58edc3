"""OpenTelemetry instrumentation emitted by the agent engine itself.

Attribute names follow the ``ai.*`` namespace that tracing UIs use to group
agent runs by ``ai.telemetry.functionId``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .provider import Usage

TRACER_NAME = "traced-agents.engine"


@dataclass(frozen=True)
class TelemetrySettings:
    """Per-agent telemetry switch.

    Args:
        is_enabled: Emit ``ai.*`` spans for every run.
        function_id: Identifier grouping this agent's runs in the backend.
        tracer_provider: Provider to emit into. Defaults to the global one.
        metadata: Extra string attributes stamped on the run span.
    """

    is_enabled: bool = False
    function_id: Optional[str] = None
    tracer_provider: Optional[trace.TracerProvider] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    def get_tracer(self) -> trace.Tracer:
        if not self.is_enabled:
            return trace.NoOpTracer()
        return trace.get_tracer(TRACER_NAME, tracer_provider=self.tracer_provider)


def to_json(value: Any) -> str:
    """Serialize a tool input/output for a span attribute."""
    if hasattr(value, "model_dump"):
        value = value.model_dump(mode="json")
    return json.dumps(value, default=str)


def start_stream_span(
    settings: TelemetrySettings,
    provider_name: str,
    model: str,
    prompt: str,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> trace.Span:
    """Open the root span of one engine run.

    The span is not made current; callers parent children explicitly and must
    end it themselves.
    """
    span = settings.get_tracer().start_span("ai.streamText")
    if not span.is_recording():
        return span
    span.set_attribute("ai.model.provider", provider_name)
    span.set_attribute("ai.model.id", model)
    span.set_attribute("ai.prompt", prompt)
    if settings.function_id:
        span.set_attribute("ai.telemetry.functionId", settings.function_id)
        span.set_attribute("resource.name", settings.function_id)
    for key, value in settings.metadata.items():
        span.set_attribute(f"ai.telemetry.metadata.{key}", value)
    if temperature is not None:
        span.set_attribute("ai.settings.temperature", temperature)
    if max_tokens is not None:
        span.set_attribute("ai.settings.maxOutputTokens", max_tokens)
    return span


def start_tool_call_span(
    settings: TelemetrySettings,
    parent: trace.Span,
    tool_call_id: str,
    tool_name: str,
    tool_input: Any,
) -> trace.Span:
    ctx = trace.set_span_in_context(parent)
    span = settings.get_tracer().start_span("ai.toolCall", context=ctx)
    if span.is_recording():
        span.set_attribute("ai.toolCall.id", tool_call_id)
        span.set_attribute("ai.toolCall.name", tool_name)
        span.set_attribute("ai.toolCall.args", to_json(tool_input))
    return span


def end_tool_call_span(span: trace.Span, output: Any) -> None:
    if span.is_recording():
        span.set_attribute("ai.toolCall.result", to_json(output))
    span.end()


def record_usage(span: trace.Span, usage: Usage) -> None:
    """Record token usage on the span."""
    if span.is_recording():
        span.set_attribute("ai.usage.promptTokens", usage.input_tokens)
        span.set_attribute("ai.usage.completionTokens", usage.output_tokens)
        span.set_attribute("ai.usage.totalTokens", usage.total_tokens)


def record_response(span: trace.Span, text: str, finish_reason: str) -> None:
    if span.is_recording():
        span.set_attribute("ai.response.text", text)
        span.set_attribute("ai.response.finishReason", finish_reason)


def record_error(span: trace.Span, error: BaseException) -> None:
    span.record_exception(error)
    span.set_status(Status(StatusCode.ERROR, str(error)))
