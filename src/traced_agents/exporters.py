"""OTLP/HTTP span exporter using the JSON encoding.

The OpenTelemetry Python distribution only ships protobuf over HTTP, while the
OpenLumix collector ingests the JSON flavour of OTLP. Spans are encoded with the
shared OTLP encoder and rendered through protobuf's JSON mapping, with the
identifier fields rewritten to the lowercase hex OTLP/JSON requires.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Mapping, Optional, Sequence

import httpx
from google.protobuf.json_format import MessageToDict
from opentelemetry.exporter.otlp.proto.common.trace_encoder import encode_spans
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

logger = logging.getLogger(__name__)

_ID_FIELDS = ("traceId", "spanId", "parentSpanId")


def _b64_to_hex(value: str) -> str:
    return base64.b64decode(value).hex()


def _hex_ids(obj: Dict[str, Any]) -> None:
    for key in _ID_FIELDS:
        if obj.get(key):
            obj[key] = _b64_to_hex(obj[key])


def spans_to_otlp_json(spans: Sequence[ReadableSpan]) -> Dict[str, Any]:
    """Encode spans as an OTLP/JSON ``ExportTraceServiceRequest`` body."""
    body = MessageToDict(encode_spans(spans), use_integers_for_enums=True)
    for resource_spans in body.get("resourceSpans", []):
        for scope_spans in resource_spans.get("scopeSpans", []):
            for span in scope_spans.get("spans", []):
                _hex_ids(span)
                for link in span.get("links", []):
                    _hex_ids(link)
    return body


class OTLPJsonSpanExporter(SpanExporter):
    """Export spans as OTLP/JSON over HTTP.

    Args:
        endpoint: Full traces URL, e.g. ``http://localhost:4000/v1/traces``.
        headers: Extra request headers (tenant ids, auth).
        timeout: Request timeout in seconds.
        transport: Custom httpx transport.
    """

    def __init__(
        self,
        endpoint: str,
        headers: Optional[Mapping[str, str]] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not endpoint.startswith(("http://", "https://")):
            raise ValueError(f"OTLP endpoint must be an http(s) URL, got {endpoint!r}")
        self._endpoint = endpoint
        self._client = httpx.Client(
            headers={"Content-Type": "application/json", **dict(headers or {})},
            timeout=timeout,
            transport=transport,
        )
        self._shutdown = False

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        if self._shutdown:
            logger.warning("Exporter already shut down, dropping %d spans", len(spans))
            return SpanExportResult.FAILURE
        try:
            response = self._client.post(self._endpoint, json=spans_to_otlp_json(spans))
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Failed to export %d spans to %s: %s", len(spans), self._endpoint, exc)
            return SpanExportResult.FAILURE
        return SpanExportResult.SUCCESS

    def force_flush(self, timeout_millis: int = 30000) -> bool:  # noqa: ARG002
        return True

    def shutdown(self) -> None:
        if self._shutdown:
            return
        self._shutdown = True
        self._client.close()
