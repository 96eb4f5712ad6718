"""Prometheus metrics for request, query and persistence golden signals."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator


REQUEST_LATENCY = Histogram(
    "docindex_request_latency_seconds",
    "HTTP request latency in seconds",
    ["method", "route"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

REQUEST_COUNT = Counter(
    "docindex_requests_total",
    "Total HTTP requests",
    ["method", "route", "status"],
)

QUERY_LATENCY = Histogram(
    "docindex_query_latency_seconds",
    "Query evaluation latency by mode",
    ["mode"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

QUERY_NOT_FOUND = Counter(
    "docindex_query_not_found_total",
    "Queries against collections that do not exist",
    ["mode"],
)

DOCUMENT_COUNT = Gauge(
    "docindex_collection_documents",
    "Documents held per collection",
    ["collection"],
)

PERSIST_FAILURES = Counter(
    "docindex_persist_failures_total",
    "Failed durable writes",
    ["kind"],
)


@contextmanager
def track_latency(histogram: Histogram, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get content type for metrics endpoint."""
    return CONTENT_TYPE_LATEST
