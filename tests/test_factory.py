"""Tests for the traced agent factory."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from opentelemetry import trace

from traced_agents.config import TracingSettings
from traced_agents.factory import DEFAULT_MODEL, TracedAgentFactory, derive_agent_id
from traced_agents.provider import ProviderResponse, Usage
from traced_agents.tracing import PhoenixTracing

from conftest import InMemorySpanExporter


@pytest.mark.parametrize(
    "caller, expected",
    [
        ("/home/me/examples/agent_parallel_tools.py", "agent_parallel_tools"),
        ("file:///home/me/examples/agent_typed.py", "agent_typed"),
        ("examples.agent_streaming_tool", "agent_streaming_tool"),
        ("benchmark_models.py", "benchmark_models"),
        ("C:\\work\\agent_manual_spans.py", "agent_manual_spans"),
    ],
)
def test_derive_agent_id(caller, expected):
    assert derive_agent_id(caller) == expected


def _chat_provider():
    provider = MagicMock()
    provider.provider_name = "openai"
    provider.model_name = "gpt-5-nano"
    provider.chat = AsyncMock(
        return_value=ProviderResponse(text="Hi!", usage=Usage(input_tokens=3, output_tokens=2))
    )
    return provider


def _factory(exporter=None):
    tracing = PhoenixTracing(
        TracingSettings(), exporter=exporter or InMemorySpanExporter(), register_global=False
    )
    return TracedAgentFactory(tracing)


def test_create_enables_telemetry_with_agent_id():
    factory = _factory()
    agent = factory.create("/x/agent_parallel_tools.py", instructions="Hi")

    telemetry = agent.settings.telemetry
    assert telemetry.is_enabled
    assert telemetry.function_id == "agent_parallel_tools"
    assert telemetry.tracer_provider is factory.tracing.provider
    assert agent.settings.instructions == "Hi"
    factory.tracing.shutdown()


def test_create_defaults_model():
    agent = _factory().create("a.py")
    assert agent.settings.model == DEFAULT_MODEL
    assert agent.settings.provider == "openai"


def test_create_keeps_explicit_provider_without_model():
    agent = _factory().create("a.py", provider="anthropic")
    assert agent.settings.provider == "anthropic"
    # Resolved to the provider's own default when the agent runs
    assert agent.settings.model is None


def test_create_keeps_explicit_model():
    agent = _factory().create("a.py", provider="anthropic", model="claude-haiku-4-5-20251001")
    assert agent.settings.provider == "anthropic"
    assert agent.settings.model == "claude-haiku-4-5-20251001"


def test_explicit_agent_id_overrides_caller():
    agent = _factory().create("a.py", agent_id="benchmark-gpt-5-nano")
    assert agent.settings.telemetry.function_id == "benchmark-gpt-5-nano"


def test_caller_telemetry_is_replaced():
    from traced_agents.telemetry import TelemetrySettings

    agent = _factory().create("a.py", telemetry=TelemetrySettings(is_enabled=False))
    assert agent.settings.telemetry.is_enabled


def test_agents_share_first_initialization():
    factory = _factory()
    first = factory.create("first.py")
    second = factory.create("second.py")

    assert first.settings.telemetry.tracer_provider is second.settings.telemetry.tracer_provider
    resource = factory.tracing.provider.resource
    assert resource.attributes["service.name"] == "first"
    # Each agent is still attributed separately
    assert second.settings.telemetry.function_id == "second"


def test_tracing_unavailable_still_returns_agent(monkeypatch):
    tracing = PhoenixTracing(TracingSettings(), register_global=False)
    monkeypatch.setattr(tracing, "create_exporter", MagicMock(side_effect=OSError("refused")))

    agent = TracedAgentFactory(tracing).create("a.py")

    assert agent.settings.telemetry.function_id == "a"
    assert isinstance(agent.settings.telemetry.tracer_provider, trace.NoOpTracerProvider)


@pytest.mark.asyncio
@patch("traced_agents.agent.get_provider")
async def test_unavailable_tracing_does_not_use_global_provider(
    mock_get_provider, monkeypatch, tracer_provider, exporter
):
    monkeypatch.setattr(trace, "get_tracer_provider", lambda: tracer_provider)
    mock_get_provider.return_value = _chat_provider()
    tracing = PhoenixTracing(TracingSettings(), register_global=False)
    monkeypatch.setattr(tracing, "create_exporter", MagicMock(side_effect=OSError("refused")))

    await TracedAgentFactory(tracing).create("a.py").generate("Hello")

    assert exporter.get_finished_spans() == []


@pytest.mark.asyncio
@patch("traced_agents.agent.get_provider")
async def test_runs_are_exported_under_agent_id(mock_get_provider):
    mock_get_provider.return_value = _chat_provider()
    exporter = InMemorySpanExporter()
    factory = _factory(exporter)

    await factory.create("/x/agent_typed.py").generate("Hello")
    factory.tracing.shutdown()

    (span,) = exporter.by_name("ai.streamText")
    assert span.attributes["ai.telemetry.functionId"] == "agent_typed"
    assert span.resource.attributes["service.name"] == "agent_typed"
