"""OpenTelemetry tracer providers for the OpenLumix and Phoenix backends."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Union

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
)

from .config import TracingSettings
from .exporters import OTLPJsonSpanExporter

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_NAME = "ai-agent-playground"
TRACER_NAME = "traced-agents"


@dataclass(frozen=True)
class TracingReady:
    """Tracing is live and spans go to ``provider``."""

    provider: TracerProvider

    @property
    def available(self) -> bool:
        return True


@dataclass(frozen=True)
class TracingUnavailable:
    """Tracing could not be set up; spans are dropped."""

    reason: str

    @property
    def available(self) -> bool:
        return False


TracingState = Union[TracingReady, TracingUnavailable]


class TracingBackend(ABC):
    """Lazily builds one exporter/processor/provider triple.

    ``init`` is idempotent: once a provider exists, later calls return it
    unchanged and their label is ignored. ``shutdown`` drains and releases the
    provider, after which ``init`` builds a fresh one.

    Args:
        settings: Endpoints and ports. Defaults to ``TracingSettings.from_env()``.
        exporter: Override the backend's exporter (e.g. an in-memory one).
        register_global: Install the provider as the global OpenTelemetry
            tracer provider.
    """

    display_name = "Tracing"

    def __init__(
        self,
        settings: Optional[TracingSettings] = None,
        *,
        exporter: Optional[SpanExporter] = None,
        register_global: bool = True,
    ) -> None:
        self.settings = settings or TracingSettings.from_env()
        self._exporter_override = exporter
        self._register_global = register_global
        self._provider: Optional[TracerProvider] = None
        self._processor: Optional[SpanProcessor] = None

    @abstractmethod
    def create_exporter(self) -> SpanExporter:
        """Build the transport for this backend."""

    @abstractmethod
    def create_processor(self, exporter: SpanExporter) -> SpanProcessor:
        """Wrap ``exporter`` in the processor this backend exports through."""

    def describe(self) -> List[str]:
        """Human-readable lines logged after a successful init."""
        return []

    @property
    def provider(self) -> Optional[TracerProvider]:
        return self._provider

    def init(self, label: str = DEFAULT_PROJECT_NAME) -> TracingState:
        """Initialize tracing for ``label`` unless already initialized.

        Args:
            label: Project/service name stamped on the resource.

        Returns:
            ``TracingReady`` with the (possibly pre-existing) provider, or
            ``TracingUnavailable`` if the transport could not be built.
        """
        if self._provider is not None:
            logger.info("[%s] Already initialized", self.display_name)
            return TracingReady(self._provider)

        try:
            exporter = self._exporter_override or self.create_exporter()
            processor = self.create_processor(exporter)
            resource = Resource.create({
                "service.name": label,
                "openinference.project.name": label,
            })
            provider = TracerProvider(resource=resource)
            provider.add_span_processor(processor)
        except Exception as exc:
            logger.exception("[%s] Failed to initialize tracing", self.display_name)
            return TracingUnavailable(f"{type(exc).__name__}: {exc}")

        if self._register_global:
            trace.set_tracer_provider(provider)

        self._provider = provider
        self._processor = processor

        logger.info("[%s] Tracing initialized for project: %s", self.display_name, label)
        for line in self.describe():
            logger.info("[%s] %s", self.display_name, line)
        return TracingReady(provider)

    def shutdown(self) -> None:
        """Flush pending spans and release the provider. No-op before ``init``."""
        if self._provider is None or self._processor is None:
            return
        self._processor.force_flush()
        self._provider.shutdown()
        self._provider = None
        self._processor = None
        logger.info("[%s] Tracing shutdown complete", self.display_name)

    def get_tracer(self, name: str = TRACER_NAME) -> trace.Tracer:
        """Tracer bound to this backend's provider, or a no-op tracer."""
        if self._provider is None:
            return trace.NoOpTracer()
        return self._provider.get_tracer(name)


class OpenLumixTracing(TracingBackend):
    """OTLP/HTTP+JSON to an OpenLumix collector, exported in batches."""

    display_name = "OpenLumix"

    def create_exporter(self) -> SpanExporter:
        return OTLPJsonSpanExporter(
            self.settings.openlumix_url,
            headers={"x-openlumix-project-id": self.settings.openlumix_project_id},
        )

    def create_processor(self, exporter: SpanExporter) -> SpanProcessor:
        return BatchSpanProcessor(exporter)

    def describe(self) -> List[str]:
        return [
            f"Collector: {self.settings.openlumix_url}",
            f"Project ID: {self.settings.openlumix_project_id}",
            f"View traces at: {self.settings.openlumix_ui_url}",
            "Using HTTP+JSON with BatchSpanProcessor",
        ]


class PhoenixTracing(TracingBackend):
    """OTLP/HTTP+protobuf to Phoenix, exported span by span."""

    display_name = "Phoenix"

    def create_exporter(self) -> SpanExporter:
        return OTLPSpanExporter(endpoint=self.settings.phoenix_collector_endpoint)

    def create_processor(self, exporter: SpanExporter) -> SpanProcessor:
        return SimpleSpanProcessor(exporter)

    def describe(self) -> List[str]:
        return [
            f"Collector: {self.settings.phoenix_collector_endpoint}",
            f"View traces at: {self.settings.phoenix_ui_url}",
            "Using protobuf over HTTP with SimpleSpanProcessor",
        ]
