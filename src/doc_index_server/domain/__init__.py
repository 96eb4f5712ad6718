"""Domain layer - documents, collections and mappings with no infrastructure dependencies."""

from doc_index_server.domain.model import Document, FieldType, Hit, Index, JsonValue, Mapping


__all__ = [
    "Document",
    "FieldType",
    "Hit",
    "Index",
    "JsonValue",
    "Mapping",
]
