"""Registry of named collections, the single shared mutable state of the process.

Locking model:
- each collection entry owns a ``ReadWriteLock``; reads of any collection run
  concurrently, a write excludes only readers and writers of that collection
- a short-held registry lock serializes the creation of new entries
- document persistence happens while the collection's write lock is held, so
  the file on disk always matches a prefix-consistent view of memory

The store is an explicitly owned object: ``IndexStore.open()`` at startup,
``aclose()`` at shutdown.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
import logging
import re

from doc_index_server.adapters.codec import StorageError
from doc_index_server.adapters.filesystem_repository import AbstractIndexRepository, LoadedState
from doc_index_server.domain.model import Index, JsonValue, Mapping
from doc_index_server.observability.metrics import DOCUMENT_COUNT, PERSIST_FAILURES
from doc_index_server.service_layer.locks import ReadWriteLock


logger = logging.getLogger(__name__)

COLLECTION_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


class InvalidCollectionName(ValueError):
    """Raised for names that cannot be used as a collection (and file) name."""


class StoreClosedError(RuntimeError):
    """Raised when a mutation reaches a store that has been closed."""


def validate_collection_name(name: str) -> str:
    if not COLLECTION_NAME_PATTERN.match(name):
        raise InvalidCollectionName(f"Invalid collection name {name!r}: use 1-128 letters, digits, '_' or '-'")
    return name


@dataclass(slots=True)
class CollectionEntry:
    index: Index = field(default_factory=Index)
    lock: ReadWriteLock = field(default_factory=ReadWriteLock)


class IndexStore:
    """Concurrently accessed registry of named collections."""

    def __init__(self, repository: AbstractIndexRepository, state: LoadedState | None = None) -> None:
        self._repository = repository
        self._entries: dict[str, CollectionEntry] = {}
        self._pending_mappings: dict[str, Mapping] = {}
        self._registry_lock = asyncio.Lock()
        self._closed = False
        if state is not None:
            self._restore(state)

    @classmethod
    async def open(cls, repository: AbstractIndexRepository) -> IndexStore:
        """Build the registry from everything the repository can recover."""
        state = await repository.load_all()
        store = cls(repository, state)
        logger.info("Index store opened with %d collections", len(store._entries))
        return store

    def _restore(self, state: LoadedState) -> None:
        for name, documents in state.documents.items():
            self._entries[name] = CollectionEntry(index=Index(docs=list(documents)))
            DOCUMENT_COUNT.labels(collection=name).set(len(documents))
        for name, mapping in state.mappings.items():
            entry = self._entries.get(name)
            if entry is None:
                # Attached when the collection is first written to.
                self._pending_mappings[name] = mapping
            else:
                entry.index.mapping = mapping

    @property
    def closed(self) -> bool:
        return self._closed

    def collection_names(self) -> list[str]:
        return sorted(self._entries)

    def describe(self) -> dict[str, dict[str, object]]:
        """Per-collection summary without taking collection locks."""
        return {
            name: {"documents": entry.index.doc_count, "has_mapping": entry.index.mapping is not None}
            for name, entry in sorted(self._entries.items())
        }

    async def get_or_create(self, name: str) -> CollectionEntry:
        """Return the entry for ``name``, creating an empty collection if needed."""
        entry = self._entries.get(name)
        if entry is not None:
            return entry
        validate_collection_name(name)
        async with self._registry_lock:
            self._ensure_open()
            entry = self._entries.get(name)
            if entry is None:
                entry = CollectionEntry(index=Index(mapping=self._pending_mappings.pop(name, None)))
                self._entries[name] = entry
                logger.info("Created collection %s", name)
        return entry

    @asynccontextmanager
    async def read(self, name: str) -> AsyncIterator[Index | None]:
        """Hold a shared lock on ``name`` and yield its index, or None when it does not exist."""
        entry = self._entries.get(name)
        if entry is None:
            yield None
            return
        async with entry.lock.read():
            yield entry.index

    async def insert_document(self, name: str, data: JsonValue) -> int:
        """Append one document and persist the collection.

        The append is not undone when persistence fails; the StorageError is
        raised and memory stays ahead of disk until the next successful write.
        """
        entry = await self.get_or_create(name)
        async with entry.lock.write():
            self._ensure_open()
            document = entry.index.append(data)
            try:
                await self._repository.save_documents(name, entry.index.docs)
            except StorageError:
                PERSIST_FAILURES.labels(kind="documents").inc()
                logger.error("Failed to persist collection %s after inserting document %d", name, document.id)
                raise
            finally:
                DOCUMENT_COUNT.labels(collection=name).set(entry.index.doc_count)
        return document.id

    async def insert_documents(self, name: str, items: Sequence[JsonValue]) -> list[int]:
        """Insert ``items`` one at a time and return the ids that were persisted.

        Each item takes and releases the write lock on its own, so a failure
        part-way through keeps the items already written. Items that fail to
        persist are left out of the result.
        """
        ids: list[int] = []
        for position, data in enumerate(items):
            try:
                ids.append(await self.insert_document(name, data))
            except StorageError:
                logger.warning("Bulk insert into %s: item %d was not persisted", name, position)
        return ids

    async def set_mapping(self, name: str, mapping: Mapping) -> None:
        """Replace the mapping of ``name``. Persistence is best-effort."""
        entry = await self.get_or_create(name)
        async with entry.lock.write():
            self._ensure_open()
            entry.index.mapping = mapping
            try:
                await self._repository.save_mapping(name, mapping)
            except StorageError as exc:
                PERSIST_FAILURES.labels(kind="mapping").inc()
                logger.warning("Failed to persist mapping for %s: %s", name, exc)

    async def aclose(self) -> None:
        """Wait for in-flight writers, then reject further mutations."""
        async with self._registry_lock:
            self._closed = True
            entries = list(self._entries.values())
        for entry in entries:
            async with entry.lock.write():
                pass
        logger.info("Index store closed")

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreClosedError("Index store is closed")
