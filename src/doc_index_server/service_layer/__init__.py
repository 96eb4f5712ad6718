"""Service layer - use cases over the shared ``IndexStore``."""

from .index_store import IndexStore, InvalidCollectionName, StoreClosedError
from .services import (
    MappingLookup,
    get_mapping,
    insert,
    insert_many,
    search,
    set_mapping,
    structured_query,
    vector_search,
)


__all__ = [
    "IndexStore",
    "InvalidCollectionName",
    "MappingLookup",
    "StoreClosedError",
    "get_mapping",
    "insert",
    "insert_many",
    "search",
    "set_mapping",
    "structured_query",
    "vector_search",
]
