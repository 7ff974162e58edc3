"""Run the same prompt against several models and compare them.

Each model gets its own traced agent (function id ``benchmark-<model>``), so
the runs can also be read back from Phoenix and compared by span latency.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import httpx

from .config import TracingSettings
from .correlator import Clock, ParallelismSummary, PendingToolCall, monotonic_ms, trace_agent_run
from .events import StreamEvent
from .factory import TracedAgentFactory

logger = logging.getLogger(__name__)

BENCHMARK_PREFIX = "benchmark-"

PHOENIX_SPANS_QUERY = """
{
  projects {
    edges {
      node {
        name
        traceCount
        recordCount
        spans(first: 50, sort: { col: startTime, dir: desc }) {
          edges {
            node {
              name
              spanKind
              startTime
              latencyMs
              statusCode
              attributes
              context {
                spanId
                traceId
              }
            }
          }
        }
      }
    }
  }
}
"""


@dataclass(frozen=True)
class TokenUsage:
    input: int
    output: int
    total: int


@dataclass
class BenchmarkResult:
    model_id: str
    execution_time_ms: float
    token_usage: Optional[TokenUsage] = None
    parallelism: Optional[ParallelismSummary] = None
    trace_id: Optional[str] = None
    success: bool = True
    error: Optional[str] = None


@dataclass(frozen=True)
class Comparison:
    fastest: BenchmarkResult
    slowest: BenchmarkResult

    @property
    def speed_difference_pct(self) -> float:
        """How much less time the fastest model took, relative to the slowest."""
        slow = self.slowest.execution_time_ms
        if slow <= 0:
            return 0.0
        return (slow - self.fastest.execution_time_ms) / slow * 100


@dataclass(frozen=True)
class ModelMetrics:
    """Latency and token figures read back from traced LLM spans."""

    span_count: int
    avg_latency_ms: float
    min_latency_ms: float
    max_latency_ms: float
    total_tokens: int


async def benchmark_model(
    factory: TracedAgentFactory,
    caller: str,
    model_id: str,
    prompt: str,
    *,
    tools: Sequence[Callable[..., Any]] = (),
    instructions: str = "You are a helpful assistant.",
    provider: str = "openai",
    on_event: Optional[Callable[[StreamEvent, Optional[PendingToolCall]], None]] = None,
    clock: Clock = monotonic_ms,
) -> BenchmarkResult:
    """Run ``prompt`` once on ``model_id``. Failures become an unsuccessful result."""
    start = clock()
    try:
        agent = factory.create(
            caller,
            agent_id=f"{BENCHMARK_PREFIX}{model_id}",
            provider=provider,
            model=model_id,
            instructions=instructions,
            tools=list(tools),
        )
        run = await trace_agent_run(
            agent,
            prompt,
            factory.tracing.get_tracer(),
            on_event=on_event,
            attributes={"benchmark.model_id": model_id},
            clock=clock,
        )
    except Exception as exc:
        logger.warning("Benchmark run for %s failed: %s", model_id, exc)
        return BenchmarkResult(
            model_id=model_id,
            execution_time_ms=clock() - start,
            success=False,
            error=str(exc),
        )

    token_usage = None
    if run.finish is not None:
        usage = run.finish.usage
        token_usage = TokenUsage(
            input=usage.input_tokens,
            output=usage.output_tokens,
            total=usage.total_tokens,
        )

    trace_id = None
    span_context = run.span.get_span_context()
    if span_context.is_valid:
        trace_id = format(span_context.trace_id, "032x")

    return BenchmarkResult(
        model_id=model_id,
        execution_time_ms=clock() - start,
        token_usage=token_usage,
        parallelism=run.summary(),
        trace_id=trace_id,
    )


def compare_results(results: Sequence[BenchmarkResult]) -> Optional[Comparison]:
    """Fastest and slowest successful runs, when there are at least two."""
    successes = [r for r in results if r.success]
    if len(successes) < 2:
        return None
    return Comparison(
        fastest=min(successes, key=lambda r: r.execution_time_ms),
        slowest=max(successes, key=lambda r: r.execution_time_ms),
    )


def format_results_table(results: Sequence[BenchmarkResult]) -> List[str]:
    lines = [
        "┌─────────────────┬──────────────┬─────────────┬──────────────┐",
        "│ Model           │ Time (ms)    │ Tokens      │ Status       │",
        "├─────────────────┼──────────────┼─────────────┼──────────────┤",
    ]
    for r in results:
        tokens = str(r.token_usage.total) if r.token_usage else "N/A"
        status = "✓ Success" if r.success else "✗ Failed"
        lines.append(
            f"│ {r.model_id:<15} │ {r.execution_time_ms:>12.0f} │ {tokens:>11} │ {status:<12} │"
        )
    lines.append("└─────────────────┴──────────────┴─────────────┴──────────────┘")
    return lines


async def fetch_phoenix_metrics(
    settings: TracingSettings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    timeout: float = 30.0,
) -> Optional[Dict[str, Any]]:
    """Query Phoenix's GraphQL API for recent spans. Returns ``None`` on failure."""
    try:
        async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:
            response = await client.post(
                settings.phoenix_graphql_url,
                json={"query": PHOENIX_SPANS_QUERY},
            )
            response.raise_for_status()
            return response.json()
    except httpx.HTTPError as exc:
        logger.warning("Failed to fetch Phoenix metrics: %s", exc)
    except ValueError as exc:
        logger.warning("Phoenix returned invalid JSON: %s", exc)
    return None


def _parse_attributes(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def _lookup(attributes: Mapping[str, Any], dotted: str) -> Any:
    """Read an attribute stored either flat (``"ai.model.id"``) or nested."""
    if dotted in attributes:
        return attributes[dotted]
    node: Any = attributes
    for part in dotted.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node


def analyze_phoenix_data(data: Optional[Mapping[str, Any]]) -> Optional[Dict[str, ModelMetrics]]:
    """Per-model metrics from benchmark LLM spans in a Phoenix GraphQL response.

    Spans are grouped by their ``ai.telemetry.functionId`` (falling back to the
    project name) and only those starting with ``benchmark-`` are kept.
    """
    projects = (((data or {}).get("data") or {}).get("projects") or {}).get("edges")
    if not projects:
        return None

    latencies: Dict[str, List[float]] = {}
    tokens: Dict[str, int] = {}
    for project in projects:
        project_node = project.get("node") or {}
        project_name = project_node.get("name") or ""
        for edge in (project_node.get("spans") or {}).get("edges") or []:
            span = edge.get("node") or {}
            attributes = _parse_attributes(span.get("attributes"))
            if not _lookup(attributes, "ai.model.id"):
                continue
            group = _lookup(attributes, "ai.telemetry.functionId") or project_name
            if not isinstance(group, str) or not group.startswith(BENCHMARK_PREFIX):
                continue
            model_id = group[len(BENCHMARK_PREFIX):]
            latency = span.get("latencyMs")
            if latency is None:
                continue
            latencies.setdefault(model_id, []).append(float(latency))
            total = _lookup(attributes, "ai.usage.totalTokens") or 0
            tokens[model_id] = tokens.get(model_id, 0) + int(total)

    return {
        model_id: ModelMetrics(
            span_count=len(values),
            avg_latency_ms=sum(values) / len(values),
            min_latency_ms=min(values),
            max_latency_ms=max(values),
            total_tokens=tokens.get(model_id, 0),
        )
        for model_id, values in latencies.items()
    }
