"""Environment-driven settings for the tracing backends."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class TracingSettings:
    """Where spans are sent and where their UIs live.

    Args:
        openlumix_url: OTLP/HTTP+JSON traces endpoint of the OpenLumix collector.
        openlumix_project_id: Tenant sent in the ``x-openlumix-project-id`` header.
        openlumix_ui_url: OpenLumix web UI, only used for log messages.
        phoenix_port: Port serving both the Phoenix UI and its OTLP endpoint.
    """

    openlumix_url: str = "http://localhost:4000/v1/traces"
    openlumix_project_id: str = "default"
    openlumix_ui_url: str = "http://localhost:3000"
    phoenix_port: int = 6006

    @property
    def phoenix_collector_endpoint(self) -> str:
        return f"http://localhost:{self.phoenix_port}/v1/traces"

    @property
    def phoenix_graphql_url(self) -> str:
        return f"http://localhost:{self.phoenix_port}/graphql"

    @property
    def phoenix_ui_url(self) -> str:
        return f"http://localhost:{self.phoenix_port}/projects"

    @classmethod
    def from_env(cls) -> "TracingSettings":
        """Build settings from the process environment (and ``.env`` if present)."""
        load_dotenv()
        defaults = cls()
        return cls(
            openlumix_url=os.environ.get("OPENLUMIX_URL") or defaults.openlumix_url,
            openlumix_project_id=(
                os.environ.get("OPENLUMIX_PROJECT_ID") or defaults.openlumix_project_id
            ),
            openlumix_ui_url=os.environ.get("OPENLUMIX_UI_URL") or defaults.openlumix_ui_url,
            phoenix_port=int(os.environ.get("PHOENIX_UI_PORT") or defaults.phoenix_port),
        )
