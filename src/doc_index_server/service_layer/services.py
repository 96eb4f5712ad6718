"""Service layer - the operations exposed to transport adapters.

Each function takes the explicitly owned ``IndexStore`` plus plain request
values and returns domain results. A collection that does not exist is a
normal outcome: query operations return None, never raise.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import logging

from doc_index_server.domain.model import Hit, JsonValue, Mapping
from doc_index_server.observability.metrics import QUERY_LATENCY, QUERY_NOT_FOUND, track_latency
from doc_index_server.observability.tracing import create_span
from doc_index_server.search.dsl import DslQuery, QueryResult, run_query
from doc_index_server.search.keyword import KeywordQuery, keyword_search
from doc_index_server.search.knn import VectorQuery
from doc_index_server.search.knn import vector_search as knn_search
from doc_index_server.service_layer.index_store import IndexStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MappingLookup:
    """Result of ``get_mapping`` for an existing collection."""

    mapping: Mapping | None

    def to_dict(self) -> dict:
        if self.mapping is None:
            return {"mapping": None}
        return {"mapping": self.mapping.to_dict()}


async def insert(store: IndexStore, collection: str, data: JsonValue) -> int:
    """Insert one document; raises StorageError if it could not be persisted."""
    with create_span("docindex.insert", attributes={"docindex.collection": collection}):
        doc_id = await store.insert_document(collection, data)
    logger.debug("Inserted document %d into %s", doc_id, collection)
    return doc_id


async def insert_many(store: IndexStore, collection: str, documents: Sequence[JsonValue]) -> list[int]:
    """Insert a batch item by item; returns the ids of the items that were persisted."""
    with create_span(
        "docindex.insert_many",
        attributes={"docindex.collection": collection, "docindex.batch_size": len(documents)},
    ):
        ids = await store.insert_documents(collection, documents)
    logger.info("Inserted %d of %d documents into %s", len(ids), len(documents), collection)
    return ids


async def set_mapping(store: IndexStore, collection: str, mapping: Mapping) -> None:
    with create_span("docindex.set_mapping", attributes={"docindex.collection": collection}):
        await store.set_mapping(collection, mapping)


async def get_mapping(store: IndexStore, collection: str) -> MappingLookup | None:
    with create_span("docindex.get_mapping", attributes={"docindex.collection": collection}):
        async with store.read(collection) as index:
            if index is None:
                return None
            return MappingLookup(mapping=index.mapping)


async def search(store: IndexStore, collection: str, query: KeywordQuery) -> list[Hit] | None:
    """Keyword search; None when the collection does not exist."""
    with create_span("docindex.search", attributes={"docindex.collection": collection, "docindex.fuzz": query.fuzz}):
        async with store.read(collection) as index:
            if index is None:
                QUERY_NOT_FOUND.labels(mode="keyword").inc()
                return None
            with track_latency(QUERY_LATENCY, mode="keyword"):
                return keyword_search(index, query)


async def structured_query(store: IndexStore, collection: str, query: DslQuery) -> QueryResult | None:
    """Filter/sort/aggregate query; None when the collection does not exist."""
    with create_span("docindex.structured_query", attributes={"docindex.collection": collection}):
        async with store.read(collection) as index:
            if index is None:
                QUERY_NOT_FOUND.labels(mode="dsl").inc()
                return None
            with track_latency(QUERY_LATENCY, mode="dsl"):
                return run_query(index, query)


async def vector_search(store: IndexStore, collection: str, query: VectorQuery) -> list[Hit] | None:
    """Nearest-neighbour search; None when the collection does not exist."""
    with create_span(
        "docindex.vector_search",
        attributes={"docindex.collection": collection, "docindex.field": query.field},
    ):
        async with store.read(collection) as index:
            if index is None:
                QUERY_NOT_FOUND.labels(mode="vector").inc()
                return None
            with track_latency(QUERY_LATENCY, mode="vector"):
                return knn_search(index, query)
