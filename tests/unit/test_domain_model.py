"""Unit tests for the domain model."""

from pydantic import ValidationError
import pytest

from doc_index_server.domain.model import Document, FieldType, Hit, Index, Mapping


def build_index(*items) -> Index:
    index = Index()
    for data in items:
        index.append(data)
    return index


@pytest.mark.unit
class TestDocument:
    def test_create_caches_vector(self):
        document = Document.create(1, {"title": "a", "vector": [1, 0]})
        assert document.vector == (1.0, 0.0)

    def test_create_without_vector(self):
        assert Document.create(1, {"title": "a"}).vector is None
        assert Document.create(2, "plain string").vector is None

    def test_document_is_immutable(self):
        document = Document.create(1, {"a": 1})
        with pytest.raises(AttributeError):
            document.id = 2  # type: ignore[misc]


@pytest.mark.unit
class TestIndex:
    def test_ids_are_dense_from_one(self):
        index = build_index({"a": 1}, {"a": 2}, {"a": 3})
        assert [document.id for document in index.docs] == [1, 2, 3]
        assert index.doc_count == 3

    def test_next_id_stays_unique_after_gap(self):
        index = Index(docs=[Document.create(1, {}), Document.create(5, {})])
        assert index.next_id() == 6


@pytest.mark.unit
class TestMapping:
    def test_bare_type_names(self):
        mapping = Mapping.model_validate({"fields": {"title": "string", "vector": "vector"}})
        assert mapping.fields == {"title": FieldType.STRING, "vector": FieldType.VECTOR}

    def test_tagged_type_objects(self):
        mapping = Mapping.model_validate({"fields": {"views": {"type": "numeric"}}})
        assert mapping.fields["views"] is FieldType.NUMERIC

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ValidationError):
            Mapping.model_validate({"fields": {"title": "text"}})

    def test_to_dict(self):
        mapping = Mapping(fields={"views": FieldType.NUMERIC})
        assert mapping.to_dict() == {"fields": {"views": "numeric"}}


@pytest.mark.unit
def test_hit_omits_missing_score():
    assert Hit(id=1, document={"a": 1}).to_dict() == {"id": 1, "document": {"a": 1}}
    assert Hit(id=1, document={"a": 1}, score=0.5).to_dict()["score"] == 0.5
