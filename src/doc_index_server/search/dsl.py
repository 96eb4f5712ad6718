"""Structured query language: term/range filters, single-field sort, aggregation.

Pipeline order is fixed:

1. term filters (exact string equality, ANDed)
2. range filters (inclusive numeric bounds, ANDed)
3. sort (numbers by value, strings lexicographically, anything else ties)
4. aggregation over the filtered, sorted set
5. truncation to ``limit`` and per-hit scoring

Aggregation therefore always sees every matching document, even when
``limit`` keeps fewer hits.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from doc_index_server.domain.model import Document, Hit, Index
from doc_index_server.search.fuzzy import distance_to_score, fuzzy_match
from doc_index_server.search.keyword import render_value
from doc_index_server.search.vector import is_number


_MISSING = object()


class RangeFilter(BaseModel):
    """Inclusive numeric bounds; a missing bound is unconstrained."""

    model_config = ConfigDict(frozen=True)

    gte: float | None = None
    lte: float | None = None

    def accepts(self, value: Any) -> bool:
        if not is_number(value):
            return False
        if self.gte is not None and value < self.gte:
            return False
        return self.lte is None or value <= self.lte


class SortSpec(BaseModel):
    """Single-field sort. Any order other than "desc" sorts ascending."""

    model_config = ConfigDict(frozen=True)

    field: str
    order: str = "asc"

    @field_validator("order", mode="before")
    @classmethod
    def _null_order(cls, value: Any) -> Any:
        return "asc" if value is None else value

    @property
    def descending(self) -> bool:
        return self.order == "desc"


class DslQuery(BaseModel):
    """A structured query request."""

    model_config = ConfigDict(frozen=True)

    term: dict[str, str] | None = None
    range: dict[str, RangeFilter] | None = None
    sort: SortSpec | None = None
    aggs: str | None = None
    limit: int | None = Field(default=None, ge=0)
    fuzz: int = Field(default=0, ge=0)
    scores: bool = False

    @field_validator("fuzz", "scores", mode="before")
    @classmethod
    def _null_means_default(cls, value: Any, info: ValidationInfo) -> Any:
        return cls.model_fields[info.field_name].default if value is None else value


@dataclass(slots=True)
class QueryResult:
    hits: list[Hit] = field(default_factory=list)
    aggregations: dict[str, int] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"hits": [hit.to_dict() for hit in self.hits]}
        if self.aggregations is not None:
            payload["aggregations"] = self.aggregations
        return payload


def field_value(document: Document, name: str) -> Any:
    """Top-level field of a document, or ``_MISSING`` (also for non-object documents)."""
    if isinstance(document.data, dict):
        return document.data.get(name, _MISSING)
    return _MISSING


def compare_values(a: Any, b: Any) -> int:
    """Order two field values; mismatched or missing values compare equal."""
    if is_number(a) and is_number(b):
        return (a > b) - (a < b)
    if isinstance(a, str) and isinstance(b, str):
        return (a > b) - (a < b)
    return 0


def _passes_terms(document: Document, terms: dict[str, str]) -> bool:
    for name, expected in terms.items():
        value = field_value(document, name)
        if not isinstance(value, str) or value != expected:
            return False
    return True


def _passes_ranges(document: Document, ranges: dict[str, RangeFilter]) -> bool:
    return all(bounds.accepts(field_value(document, name)) for name, bounds in ranges.items())


def _score(document: Document, query: DslQuery) -> float:
    if query.fuzz <= 0 or not query.term:
        return 1.0
    name, expected = next(iter(query.term.items()))
    value = field_value(document, name)
    if value is _MISSING:
        return 1.0
    distance = fuzzy_match(value, expected.lower(), query.fuzz)
    return 1.0 if distance is None else distance_to_score(distance)


def aggregate(documents: list[Document], name: str) -> dict[str, int]:
    """Count documents per rendered value of field ``name``; documents without it are skipped."""
    counts: Counter[str] = Counter()
    for document in documents:
        value = field_value(document, name)
        if value is not _MISSING:
            counts[render_value(value)] += 1
    return dict(counts)


def run_query(index: Index, query: DslQuery) -> QueryResult:
    """Evaluate ``query`` against every document of ``index``."""
    results = list(index.docs)
    if query.term:
        results = [document for document in results if _passes_terms(document, query.term)]
    if query.range:
        results = [document for document in results if _passes_ranges(document, query.range)]

    if query.sort is not None:
        sort_field = query.sort.field
        results.sort(key=cmp_to_key(lambda a, b: compare_values(field_value(a, sort_field), field_value(b, sort_field))))
        if query.sort.descending:
            results.reverse()

    aggregations = aggregate(results, query.aggs) if query.aggs else None

    limit = len(results) if query.limit is None else query.limit
    hits = [
        Hit(id=document.id, document=document.data, score=_score(document, query) if query.scores else None)
        for document in results[:limit]
    ]
    return QueryResult(hits=hits, aggregations=aggregations)
