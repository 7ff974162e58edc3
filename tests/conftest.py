"""Shared fixtures: in-memory span export and a controllable clock."""

import threading
from typing import List, Sequence

import pytest
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor, SpanExporter, SpanExportResult

from traced_agents.config import TracingSettings


class InMemorySpanExporter(SpanExporter):
    """Simple in-memory span exporter for testing."""

    def __init__(self) -> None:
        self._spans: List[ReadableSpan] = []
        self._lock = threading.Lock()
        self.shutdown_called = False

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        with self._lock:
            self._spans.extend(spans)
        return SpanExportResult.SUCCESS

    def get_finished_spans(self) -> List[ReadableSpan]:
        with self._lock:
            return list(self._spans)

    def by_name(self, name: str) -> List[ReadableSpan]:
        return [s for s in self.get_finished_spans() if s.name == name]

    def clear(self) -> None:
        with self._lock:
            self._spans.clear()

    def shutdown(self) -> None:
        self.shutdown_called = True


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def set(self, value: float) -> None:
        self.now = value


@pytest.fixture
def exporter():
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(exporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    yield provider
    provider.shutdown()


@pytest.fixture
def tracer(tracer_provider):
    return tracer_provider.get_tracer("test")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return TracingSettings(
        openlumix_url="http://collector.test/v1/traces",
        openlumix_project_id="proj-1",
        phoenix_port=7007,
    )
