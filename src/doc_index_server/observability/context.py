"""Per-request log context: trace ids plus the collection being served.

The context lives in a ``ContextVar`` so every log record emitted while a
request is handled, including records from worker-thread persistence, can be
tied back to that request and collection.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, replace
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class LogContext:
    trace_id: str
    span_id: str
    collection: str | None = None

    def to_fields(self) -> dict[str, str]:
        fields = {"trace_id": self.trace_id, "span_id": self.span_id}
        if self.collection:
            fields["collection"] = self.collection
        return fields


_current: ContextVar[LogContext | None] = ContextVar("doc_index_log_context", default=None)


def new_trace_id() -> str:
    return uuid4().hex


def new_span_id() -> str:
    return uuid4().hex[:16]


def current_context() -> LogContext:
    """Context of the running request; a fresh one is started outside requests."""
    ctx = _current.get()
    if ctx is None:
        ctx = LogContext(trace_id=new_trace_id(), span_id=new_span_id())
        _current.set(ctx)
    return ctx


def bind_request(trace_id: str | None = None, collection: str | None = None) -> LogContext:
    """Start the context of a new request, keeping a caller-supplied trace id."""
    ctx = LogContext(trace_id=trace_id or new_trace_id(), span_id=new_span_id(), collection=collection)
    _current.set(ctx)
    return ctx


def bind_span(span_id: str) -> None:
    _current.set(replace(current_context(), span_id=span_id))
