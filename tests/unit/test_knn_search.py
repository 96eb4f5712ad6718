"""Unit tests for exhaustive vector search."""

import math

import pytest

from doc_index_server.domain.model import Index
from doc_index_server.search.knn import VectorQuery, vector_search


def build_index(*items) -> Index:
    index = Index()
    for data in items:
        index.append(data)
    return index


@pytest.mark.unit
class TestVectorSearch:
    def test_nearest_neighbour(self):
        index = build_index({"vector": [0, 1]}, {"vector": [1, 0]})
        hits = vector_search(index, VectorQuery(vector=[0.9, 0.1], limit=1))
        assert [hit.id for hit in hits] == [2]

    def test_results_ordered_by_distance(self):
        index = build_index({"vector": [5, 5]}, {"vector": [1, 1]}, {"vector": [0, 0]})
        hits = vector_search(index, VectorQuery(vector=[0, 0], scores=True))
        assert [hit.id for hit in hits] == [3, 2, 1]
        assert hits[0].score == 0.0
        assert hits[1].score == pytest.approx(math.sqrt(2))

    def test_mismatched_dimensions_sort_last(self):
        index = build_index({"vector": [1, 2, 3]}, {"vector": [1, 0]}, {"vector": [0, 1]})
        hits = vector_search(index, VectorQuery(vector=[1, 0], limit=2))
        assert 1 not in [hit.id for hit in hits]

        everything = vector_search(index, VectorQuery(vector=[1, 0], scores=True))
        assert everything[-1].id == 1
        assert math.isinf(everything[-1].score)

    def test_documents_without_vectors_are_skipped(self):
        index = build_index({"title": "no vector"}, {"vector": "nope"}, {"vector": [1, 1]})
        hits = vector_search(index, VectorQuery(vector=[1, 1]))
        assert [hit.id for hit in hits] == [3]

    def test_custom_field_is_extracted_on_the_fly(self):
        index = build_index({"embedding": [0, 0], "vector": [9, 9]}, {"embedding": [3, 3]})
        hits = vector_search(index, VectorQuery(vector=[3, 3], field="embedding", limit=1))
        assert [hit.id for hit in hits] == [2]

    def test_k_alias(self):
        query = VectorQuery.model_validate({"vector": [1.0], "k": 3})
        assert query.limit == 3

    def test_empty_index(self):
        assert vector_search(Index(), VectorQuery(vector=[1.0])) == []

    def test_large_components_rank_without_overflow(self):
        index = build_index({"vector": [1e200, 0]}, {"vector": [0, 1]})
        hits = vector_search(index, VectorQuery(vector=[-1e200, 0], limit=1, scores=True))
        assert [hit.id for hit in hits] == [2]
        assert hits[0].score == pytest.approx(1e200)

    def test_null_options_fall_back_to_defaults(self):
        query = VectorQuery.model_validate({"vector": [1.0], "k": None, "field": None, "scores": None})
        assert query.limit == 10
        assert query.field == "vector"
        assert query.scores is False
