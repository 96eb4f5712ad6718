"""Binary envelope for collection documents and the textual mapping sidecar.

Document file layout (little-endian)::

    magic    4 bytes   b"DIX1"
    count    uint32
    records  count x { id uint64, length uint32, payload bytes[length] }

Each payload is the orjson encoding of the document's ``data``. Payloads are
opaque to the envelope, so a single bad payload can be dropped on load while
the rest of the collection is recovered.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import logging
import struct

import orjson
from pydantic import ValidationError

from doc_index_server.domain.model import Document, JsonValue, Mapping


logger = logging.getLogger(__name__)

MAGIC = b"DIX1"
_HEADER = struct.Struct("<4sI")
_RECORD = struct.Struct("<QI")


class StorageError(OSError):
    """Raised when collection state cannot be written to or read from disk."""


class CodecError(StorageError):
    """Raised when bytes on disk are not a valid envelope or mapping."""


@dataclass(frozen=True, slots=True)
class PersistedDocument:
    """On-disk form of a document: its id plus the encoded ``data``."""

    id: int
    payload: bytes

    @classmethod
    def from_document(cls, document: Document) -> PersistedDocument:
        return cls(id=document.id, payload=orjson.dumps(document.data))

    def decode(self) -> JsonValue:
        return orjson.loads(self.payload)


def encode_documents(documents: Iterable[Document]) -> bytes:
    """Serialize documents, in order, into one envelope."""
    records = [PersistedDocument.from_document(document) for document in documents]
    chunks = [_HEADER.pack(MAGIC, len(records))]
    for record in records:
        chunks.append(_RECORD.pack(record.id, len(record.payload)))
        chunks.append(record.payload)
    return b"".join(chunks)


def decode_envelope(raw: bytes) -> list[PersistedDocument]:
    """Split an envelope into persisted records without decoding payloads."""
    if len(raw) < _HEADER.size:
        raise CodecError("Document file is truncated: missing header")
    magic, count = _HEADER.unpack_from(raw, 0)
    if magic != MAGIC:
        raise CodecError(f"Unrecognized document file magic {magic!r}")

    offset = _HEADER.size
    records: list[PersistedDocument] = []
    for position in range(count):
        if offset + _RECORD.size > len(raw):
            raise CodecError(f"Document file is truncated at record {position}")
        doc_id, length = _RECORD.unpack_from(raw, offset)
        offset += _RECORD.size
        end = offset + length
        if end > len(raw):
            raise CodecError(f"Document file is truncated inside record {position}")
        records.append(PersistedDocument(id=doc_id, payload=raw[offset:end]))
        offset = end

    if offset != len(raw):
        raise CodecError(f"Document file has {len(raw) - offset} trailing bytes")
    return records


def decode_documents(raw: bytes) -> list[Document]:
    """Rebuild live documents, re-deriving each cached vector.

    Records whose payload is not valid JSON are dropped with a warning.
    """
    documents: list[Document] = []
    for record in decode_envelope(raw):
        try:
            data = record.decode()
        except orjson.JSONDecodeError as exc:
            logger.warning("Dropping document %d with undecodable payload: %s", record.id, exc)
            continue
        documents.append(Document.create(record.id, data))
    return documents


def encode_mapping(mapping: Mapping) -> bytes:
    return orjson.dumps(mapping.to_dict())


def decode_mapping(raw: bytes) -> Mapping:
    try:
        return Mapping.model_validate(orjson.loads(raw))
    except (orjson.JSONDecodeError, ValidationError) as exc:
        raise CodecError(f"Invalid mapping file: {exc}") from exc
