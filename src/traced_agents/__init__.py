"""traced-agents: tool-loop LLM agents with OpenTelemetry span bookkeeping."""

from .agent import AgentSettings, RunResult, ToolLoopAgent
from .correlator import AgentRunSpan, ParallelismSummary, ToolCallSpanCorrelator, trace_agent_run
from .events import (
    AgentRunError,
    ErrorEvent,
    FinishEvent,
    TextDeltaEvent,
    ToolCallEvent,
    ToolResultEvent,
)
from .factory import TracedAgentFactory
from .tools import tool
from .tracing import OpenLumixTracing, PhoenixTracing, TracingReady, TracingUnavailable

__all__ = [
    "AgentRunError",
    "AgentRunSpan",
    "AgentSettings",
    "ErrorEvent",
    "FinishEvent",
    "OpenLumixTracing",
    "ParallelismSummary",
    "PhoenixTracing",
    "RunResult",
    "TextDeltaEvent",
    "ToolCallEvent",
    "ToolCallSpanCorrelator",
    "ToolLoopAgent",
    "ToolResultEvent",
    "TracedAgentFactory",
    "TracingReady",
    "TracingUnavailable",
    "tool",
    "trace_agent_run",
]
