"""OpenTelemetry spans for HTTP requests and index operations.

Every request gets a server span labelled with its route template and, for
``/indexes/{name}/...`` paths, the collection name. Service operations open
child spans through ``create_span``. Spans stay in-process unless an OTLP/HTTP
endpoint is configured.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import time
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import SpanKind, Status, StatusCode
from starlette.routing import Match

from doc_index_server.observability.context import bind_request, bind_span, current_context
from doc_index_server.observability.metrics import REQUEST_COUNT, REQUEST_LATENCY


if TYPE_CHECKING:
    from collections.abc import Iterator

    from opentelemetry.trace import Span, Tracer
    from starlette.requests import Request
    from starlette.responses import Response

logger = logging.getLogger(__name__)

SERVICE_NAME = "doc-index-server"
TRACE_HEADER = "x-trace-id"
INDEXES_PREFIX = "indexes"

_tracer_holder: dict[str, Tracer | None] = {"tracer": None}


def init_tracing(service_name: str = SERVICE_NAME) -> TracerProvider:
    """Install an SDK tracer provider for this process and return it."""
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    trace.set_tracer_provider(provider)
    _tracer_holder["tracer"] = provider.get_tracer(__name__)
    logger.info("Tracing initialized for service %s", service_name)
    return provider


def configure_trace_exporter(endpoint: str, provider: TracerProvider | None = None) -> bool:
    """Ship spans to an OTLP/HTTP collector at ``endpoint``.

    Returns False (and exports nothing) when ``endpoint`` is empty or the
    exporter cannot be built.
    """
    if not endpoint:
        return False
    if provider is None:
        current = trace.get_tracer_provider()
        provider = current if isinstance(current, TracerProvider) else init_tracing()

    try:
        exporter = OTLPSpanExporter(endpoint=endpoint)
    except Exception as exc:
        logger.error("Cannot create OTLP span exporter for %s: %s", endpoint, exc)
        return False

    provider.add_span_processor(BatchSpanProcessor(exporter))
    logger.info("Exporting spans to %s", endpoint)
    return True


def get_tracer() -> Tracer:
    tracer = _tracer_holder["tracer"]
    if tracer is None:
        tracer = trace.get_tracer(__name__)
        _tracer_holder["tracer"] = tracer
    return tracer


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """Open a span and point the log context at it; exceptions mark it as failed."""
    with get_tracer().start_as_current_span(name, kind=kind, attributes=attributes) as span:
        span_context = span.get_span_context()
        if span_context.is_valid:
            bind_span(format(span_context.span_id, "016x"))
        try:
            yield span
        except Exception as exc:
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            span.record_exception(exc)
            raise


def _extract_collection_from_path(path: str) -> str | None:
    parts = path.strip("/").split("/")
    if len(parts) >= 2 and parts[0] == INDEXES_PREFIX and parts[1]:
        return parts[1]
    return None


class TraceContextMiddleware:
    """Pure ASGI middleware: starts the log context and echoes the trace id header."""

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(self, scope: dict, receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        incoming = dict(scope.get("headers", [])).get(TRACE_HEADER.encode(), b"").decode("latin-1")
        ctx = bind_request(incoming or None, _extract_collection_from_path(scope.get("path", "")))

        async def send_with_trace_id(message: dict) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((TRACE_HEADER.encode(), ctx.trace_id.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        await self.app(scope, receive, send_with_trace_id)


def _route_label(request: Request) -> str:
    """Route template for metric labels, so path parameters do not explode cardinality."""
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", "unmatched")
    return "unmatched"


async def trace_request(request: Request, call_next: Any) -> Response:
    """Server span plus request latency/count metrics, labelled by route template."""
    route = _route_label(request)
    attributes: dict[str, Any] = {
        "http.method": request.method,
        "http.route": route,
        "http.target": request.url.path,
        "docindex.trace_id": current_context().trace_id,
    }
    collection = _extract_collection_from_path(request.url.path)
    if collection:
        attributes["docindex.collection"] = collection

    start = time.perf_counter()
    with create_span(f"{request.method} {route}", kind=SpanKind.SERVER, attributes=attributes) as span:
        response: Response = await call_next(request)
        span.set_attribute("http.status_code", response.status_code)
        if response.status_code >= 500:
            span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))

    REQUEST_LATENCY.labels(method=request.method, route=route).observe(time.perf_counter() - start)
    REQUEST_COUNT.labels(method=request.method, route=route, status=str(response.status_code)).inc()
    return response
