"""Unit tests for the service layer over a fake repository."""

import pytest

from doc_index_server.adapters.codec import StorageError
from doc_index_server.domain.model import FieldType, Mapping
from doc_index_server.search.dsl import DslQuery
from doc_index_server.search.keyword import KeywordQuery
from doc_index_server.search.knn import VectorQuery
from doc_index_server.service_layer import services
from doc_index_server.service_layer.index_store import IndexStore


@pytest.mark.unit
class TestServices:
    @pytest.mark.asyncio
    async def test_insert_and_search(self, fake_repository):
        store = await IndexStore.open(fake_repository)
        assert await services.insert(store, "docs", {"title": "hello world"}) == 1
        hits = await services.search(store, "docs", KeywordQuery(q="hello"))
        assert [hit.id for hit in hits] == [1]
        assert await services.search(store, "docs", KeywordQuery(q="xyz")) == []

    @pytest.mark.asyncio
    async def test_not_found_is_none_for_every_query_mode(self, fake_repository):
        store = await IndexStore.open(fake_repository)
        assert await services.search(store, "missing", KeywordQuery(q="a")) is None
        assert await services.structured_query(store, "missing", DslQuery()) is None
        assert await services.vector_search(store, "missing", VectorQuery(vector=[1.0])) is None
        assert await services.get_mapping(store, "missing") is None

    @pytest.mark.asyncio
    async def test_empty_collection_is_not_not_found(self, fake_repository):
        store = await IndexStore.open(fake_repository)
        await services.set_mapping(store, "empty", Mapping())
        assert await services.search(store, "empty", KeywordQuery(q="a")) == []

    @pytest.mark.asyncio
    async def test_insert_many(self, fake_repository, articles):
        store = await IndexStore.open(fake_repository)
        assert await services.insert_many(store, "articles", articles) == [1, 2, 3]
        result = await services.structured_query(
            store, "articles", DslQuery(range={"views": {"gte": 15}}, aggs="views", limit=1)
        )
        assert len(result.hits) == 1
        assert result.aggregations == {"20": 1, "15": 1}

    @pytest.mark.asyncio
    async def test_insert_many_omits_failed_items(self, fake_repository, articles):
        store = await IndexStore.open(fake_repository)
        fake_repository.fail_document_writes_after = 1
        assert await services.insert_many(store, "articles", articles) == [1]

    @pytest.mark.asyncio
    async def test_insert_failure_propagates(self, fake_repository):
        store = await IndexStore.open(fake_repository)
        fake_repository.fail_document_writes = True
        with pytest.raises(StorageError):
            await services.insert(store, "articles", {"title": "lost"})

    @pytest.mark.asyncio
    async def test_mapping_lookup(self, fake_repository):
        store = await IndexStore.open(fake_repository)
        await services.insert(store, "docs", {"a": 1})
        lookup = await services.get_mapping(store, "docs")
        assert lookup.to_dict() == {"mapping": None}

        await services.set_mapping(store, "docs", Mapping(fields={"a": FieldType.NUMERIC}))
        lookup = await services.get_mapping(store, "docs")
        assert lookup.to_dict() == {"mapping": {"fields": {"a": "numeric"}}}

    @pytest.mark.asyncio
    async def test_vector_search(self, fake_repository):
        store = await IndexStore.open(fake_repository)
        await services.insert_many(store, "vecs", [{"vector": [0, 1]}, {"vector": [1, 0]}])
        hits = await services.vector_search(store, "vecs", VectorQuery(vector=[0.9, 0.1], limit=1))
        assert [hit.document for hit in hits] == [{"vector": [1, 0]}]
