"""Build agents whose every run is attributed to a tracing backend."""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Any, Optional

from opentelemetry import trace

from .agent import ToolLoopAgent
from .provider import DEFAULT_MODELS
from .telemetry import TelemetrySettings
from .tracing import TracingBackend, TracingReady

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "openai"
DEFAULT_MODEL = DEFAULT_MODELS[DEFAULT_PROVIDER]


def derive_agent_id(caller: str) -> str:
    """Stable identifier for the calling script: its file name without suffix.

    Accepts a path (``__file__``), a ``file://`` URL, or a dotted module name.
    """
    if caller.startswith("file://"):
        caller = caller[len("file://"):]
    caller = caller.replace("\\", "/")
    if "/" not in caller and not caller.endswith(".py"):
        return caller.rsplit(".", 1)[-1]
    return PurePosixPath(caller).stem


class TracedAgentFactory:
    """Creates ``ToolLoopAgent`` instances with telemetry switched on.

    Every agent made by one factory shares the factory's tracing backend; the
    backend is initialized on first use, tagged with that agent's identifier.

    Args:
        tracing: Backend receiving the agents' spans.
    """

    def __init__(self, tracing: TracingBackend) -> None:
        self.tracing = tracing

    def create(
        self,
        caller: str,
        *,
        agent_id: Optional[str] = None,
        **config: Any,
    ) -> ToolLoopAgent:
        """Create a traced agent.

        Args:
            caller: Identity of the calling unit, usually ``__file__``.
            agent_id: Explicit identifier; overrides the one derived from ``caller``.
            **config: ``AgentSettings`` fields. ``telemetry`` is always replaced.
                Without a ``provider``, the default provider and model are used;
                a ``provider`` without a ``model`` gets that provider's default.

        Returns:
            An agent whose runs carry ``ai.telemetry.functionId=<agent id>``.
        """
        resolved_id = agent_id or derive_agent_id(caller)

        state = self.tracing.init(resolved_id)
        if isinstance(state, TracingReady):
            provider: trace.TracerProvider = state.provider
        else:
            logger.warning("Tracing unavailable for %s: %s", resolved_id, state.reason)
            # Never fall back to whatever provider is registered globally
            provider = trace.NoOpTracerProvider()

        if config.get("provider") is None:
            config["provider"] = DEFAULT_PROVIDER
        if config.get("model") is None and config["provider"] == DEFAULT_PROVIDER:
            config["model"] = DEFAULT_MODEL
        config["telemetry"] = TelemetrySettings(
            is_enabled=True,
            function_id=resolved_id,
            tracer_provider=provider,
        )
        return ToolLoopAgent(**config)
