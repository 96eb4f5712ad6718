"""Unit tests for the document envelope and mapping sidecar codec."""

import struct

import pytest

from doc_index_server.adapters.codec import (
    MAGIC,
    CodecError,
    PersistedDocument,
    StorageError,
    decode_documents,
    decode_envelope,
    decode_mapping,
    encode_documents,
    encode_mapping,
)
from doc_index_server.domain.model import Document, FieldType, Mapping


@pytest.mark.unit
class TestDocumentEnvelope:
    def test_round_trip_keeps_data_ids_and_vectors(self):
        documents = [
            Document.create(1, {"title": "hello", "vector": [0.5, 1.5]}),
            Document.create(2, ["a", 1, None, True]),
            Document.create(3, "bare string"),
        ]
        restored = decode_documents(encode_documents(documents))
        assert restored == documents
        assert restored[0].vector == (0.5, 1.5)

    def test_empty_collection(self):
        raw = encode_documents([])
        assert raw.startswith(MAGIC)
        assert decode_envelope(raw) == []

    def test_records_expose_payload(self):
        raw = encode_documents([Document.create(7, {"a": 1})])
        (record,) = decode_envelope(raw)
        assert record == PersistedDocument(id=7, payload=b'{"a":1}')
        assert record.decode() == {"a": 1}

    def test_bad_magic(self):
        with pytest.raises(CodecError, match="magic"):
            decode_envelope(b"NOPE" + struct.pack("<I", 0))

    def test_truncated_header(self):
        with pytest.raises(CodecError):
            decode_envelope(b"DI")

    def test_truncated_record(self):
        raw = encode_documents([Document.create(1, {"title": "hello"})])
        with pytest.raises(CodecError, match="truncated"):
            decode_envelope(raw[:-3])

    def test_trailing_bytes(self):
        raw = encode_documents([Document.create(1, {})]) + b"\x00"
        with pytest.raises(CodecError, match="trailing"):
            decode_envelope(raw)

    def test_undecodable_payload_is_dropped(self):
        good = PersistedDocument.from_document(Document.create(2, {"ok": True}))
        raw = (
            struct.pack("<4sI", MAGIC, 2)
            + struct.pack("<QI", 1, 3)
            + b"{{{"
            + struct.pack("<QI", good.id, len(good.payload))
            + good.payload
        )
        restored = decode_documents(raw)
        assert [document.id for document in restored] == [2]

    def test_codec_error_is_storage_error(self):
        assert issubclass(CodecError, StorageError)


@pytest.mark.unit
class TestMappingSidecar:
    def test_round_trip(self):
        mapping = Mapping(fields={"title": FieldType.STRING, "vector": FieldType.VECTOR})
        assert decode_mapping(encode_mapping(mapping)) == mapping

    def test_invalid_json(self):
        with pytest.raises(CodecError):
            decode_mapping(b"not json")

    def test_invalid_field_type(self):
        with pytest.raises(CodecError):
            decode_mapping(b'{"fields": {"a": "blob"}}')
