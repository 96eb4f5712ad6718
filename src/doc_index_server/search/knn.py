"""Exhaustive k-nearest-neighbour search by Euclidean distance."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from doc_index_server.domain.model import Document, Hit, Index
from doc_index_server.search.vector import DEFAULT_VECTOR_FIELD, extract_vector, l2_distance


class VectorQuery(BaseModel):
    """Parameters of a vector search. ``k`` is accepted as an alias of ``limit``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    vector: list[float]
    limit: int = Field(default=10, ge=0, alias="k")
    field: str = DEFAULT_VECTOR_FIELD
    scores: bool = False

    @field_validator("limit", "field", "scores", mode="before")
    @classmethod
    def _null_means_default(cls, value: Any, info: ValidationInfo) -> Any:
        return cls.model_fields[info.field_name].default if value is None else value


def document_vector(document: Document, field_name: str) -> tuple[float, ...] | None:
    """Cached vector for the default field, on-the-fly extraction for any other."""
    if field_name == DEFAULT_VECTOR_FIELD:
        return document.vector
    return extract_vector(document.data, field_name)


def vector_search(index: Index, query: VectorQuery) -> list[Hit]:
    """Rank documents by distance to ``query.vector``, nearest first.

    Documents without an extractable vector are skipped. Dimension mismatches
    are kept with an infinite distance, which sorts after every real one.
    The score, when requested, is the raw distance (smaller is closer).
    """
    scored: list[tuple[float, Document]] = []
    for document in index.docs:
        candidate = document_vector(document, query.field)
        if candidate is None:
            continue
        scored.append((l2_distance(query.vector, candidate), document))

    scored.sort(key=lambda item: item[0])

    return [
        Hit(id=document.id, document=document.data, score=distance if query.scores else None)
        for distance, document in scored[: query.limit]
    ]
