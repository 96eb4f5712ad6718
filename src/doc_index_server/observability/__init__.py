"""Observability: structured logging, Prometheus metrics and OpenTelemetry tracing."""

from doc_index_server.observability.context import LogContext, bind_request, current_context
from doc_index_server.observability.logging import JsonFormatter, configure_logging
from doc_index_server.observability.metrics import (
    DOCUMENT_COUNT,
    PERSIST_FAILURES,
    QUERY_LATENCY,
    QUERY_NOT_FOUND,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    get_metrics,
    get_metrics_content_type,
    track_latency,
)
from doc_index_server.observability.tracing import (
    TraceContextMiddleware,
    configure_trace_exporter,
    create_span,
    get_tracer,
    init_tracing,
    trace_request,
)


__all__ = [
    "DOCUMENT_COUNT",
    "PERSIST_FAILURES",
    "QUERY_LATENCY",
    "QUERY_NOT_FOUND",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "JsonFormatter",
    "LogContext",
    "TraceContextMiddleware",
    "bind_request",
    "configure_logging",
    "configure_trace_exporter",
    "create_span",
    "current_context",
    "get_metrics",
    "get_metrics_content_type",
    "get_tracer",
    "init_tracing",
    "trace_request",
    "track_latency",
]
