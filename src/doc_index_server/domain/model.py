"""Domain model - collections, documents and the advisory mapping.

Documents are schema-light JSON trees. The model keeps them as plain Python
JSON values (``dict``/``list``/``str``/``int``/``float``/``bool``/``None``)
and layers only identity and the cached embedding on top.

Invariants:
- ``Document.id`` and ``Document.data`` never change after insertion.
- ``Document.vector`` is the extraction of field ``"vector"`` at insertion
  time; it is a memoization and is never recomputed.
- ``Index.docs`` is append-only and keeps insertion order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator

from doc_index_server.search.vector import DEFAULT_VECTOR_FIELD, extract_vector


JsonValue: TypeAlias = dict[str, Any] | list[Any] | str | int | float | bool | None


class FieldType(str, Enum):
    """Declared type of a mapped field."""

    STRING = "string"
    NUMERIC = "numeric"
    VECTOR = "vector"


class Mapping(BaseModel):
    """Advisory per-collection schema (field name -> declared type).

    Never validated against inserted documents. Field types are accepted either
    as bare strings (``"vector"``) or tagged objects (``{"type": "vector"}``).
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    fields: dict[str, FieldType] = Field(default_factory=dict)

    @field_validator("fields", mode="before")
    @classmethod
    def _unwrap_tagged_types(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {name: kind.get("type") if isinstance(kind, dict) else kind for name, kind in value.items()}

    def to_dict(self) -> dict[str, Any]:
        return {"fields": {name: kind.value for name, kind in self.fields.items()}}


@dataclass(frozen=True, slots=True)
class Document:
    """One stored record."""

    id: int
    data: JsonValue
    vector: tuple[float, ...] | None = None

    @classmethod
    def create(cls, doc_id: int, data: JsonValue) -> Document:
        """Build a document, caching the ``"vector"`` field when it is extractable."""
        return cls(id=doc_id, data=data, vector=extract_vector(data, DEFAULT_VECTOR_FIELD))


@dataclass(slots=True)
class Index:
    """A named collection's live state. The name is the registry key, not stored here."""

    docs: list[Document] = field(default_factory=list)
    mapping: Mapping | None = None

    @property
    def doc_count(self) -> int:
        return len(self.docs)

    def next_id(self) -> int:
        # Equal to count + 1 while ids are dense; stays unique if recovery dropped a record.
        if not self.docs:
            return 1
        return max(self.docs[-1].id, len(self.docs)) + 1

    def append(self, data: JsonValue) -> Document:
        document = Document.create(self.next_id(), data)
        self.docs.append(document)
        return document


@dataclass(frozen=True, slots=True)
class Hit:
    """A single query result."""

    id: int
    document: JsonValue
    score: float | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id, "document": self.document}
        if self.score is not None:
            payload["score"] = self.score
        return payload
