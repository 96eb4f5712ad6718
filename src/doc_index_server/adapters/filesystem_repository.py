"""Filesystem persistence for collections.

One document file (``<name>.bin``) and an optional mapping sidecar
(``<name>.mapping.json``) per collection, all under a single storage root.
Files are rewritten whole through a temporary sibling and ``Path.replace``
so readers never observe a half-written file.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
import logging
from pathlib import Path

import anyio

from doc_index_server.adapters.codec import (
    StorageError,
    decode_documents,
    decode_mapping,
    encode_documents,
    encode_mapping,
)
from doc_index_server.domain.model import Document, Mapping


logger = logging.getLogger(__name__)

DOCUMENT_SUFFIX = ".bin"
MAPPING_SUFFIX = ".mapping.json"
TMP_SUFFIX = ".tmp"


@dataclass(slots=True)
class LoadedState:
    """Everything recovered from the storage root at startup."""

    documents: dict[str, list[Document]] = field(default_factory=dict)
    mappings: dict[str, Mapping] = field(default_factory=dict)


class AbstractIndexRepository(ABC):
    """Durable storage contract used by the index store."""

    @abstractmethod
    async def load_all(self) -> LoadedState:
        """Recover every collection, skipping files that cannot be decoded."""

    @abstractmethod
    async def save_documents(self, name: str, documents: Sequence[Document]) -> None:
        """Overwrite the document file of ``name``. Raises StorageError."""

    @abstractmethod
    async def save_mapping(self, name: str, mapping: Mapping) -> None:
        """Overwrite the mapping sidecar of ``name``. Raises StorageError."""


class FileSystemIndexRepository(AbstractIndexRepository):
    """Stores collections as files in ``root``; the directory is created on first use."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def document_path(self, name: str) -> Path:
        return self.root / f"{name}{DOCUMENT_SUFFIX}"

    def mapping_path(self, name: str) -> Path:
        return self.root / f"{name}{MAPPING_SUFFIX}"

    async def load_all(self) -> LoadedState:
        return await anyio.to_thread.run_sync(self._load_all_sync)

    async def save_documents(self, name: str, documents: Sequence[Document]) -> None:
        # Snapshot so the worker thread never sees a list that is still growing.
        snapshot = tuple(documents)
        await anyio.to_thread.run_sync(self._save_documents_sync, name, snapshot)

    async def save_mapping(self, name: str, mapping: Mapping) -> None:
        await anyio.to_thread.run_sync(self._save_mapping_sync, name, mapping)

    def _load_all_sync(self) -> LoadedState:
        state = LoadedState()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            entries = sorted(self.root.iterdir())
        except OSError as exc:
            logger.error("Cannot read storage root %s: %s", self.root, exc)
            return state

        for path in entries:
            if not path.is_file():
                continue
            if path.name.endswith(MAPPING_SUFFIX):
                name = path.name.removesuffix(MAPPING_SUFFIX)
                try:
                    state.mappings[name] = decode_mapping(path.read_bytes())
                except (OSError, StorageError) as exc:
                    logger.warning("Skipping unreadable mapping file %s: %s", path, exc)
            elif path.suffix == DOCUMENT_SUFFIX:
                try:
                    state.documents[path.stem] = decode_documents(path.read_bytes())
                except (OSError, StorageError) as exc:
                    logger.warning("Skipping unreadable document file %s: %s", path, exc)

        logger.info(
            "Recovered %d collections (%d mappings) from %s",
            len(state.documents),
            len(state.mappings),
            self.root,
        )
        return state

    def _save_documents_sync(self, name: str, documents: Sequence[Document]) -> None:
        try:
            payload = encode_documents(documents)
        except TypeError as exc:
            raise StorageError(f"Cannot encode documents of '{name}': {exc}") from exc
        self._atomic_write(self.document_path(name), payload)

    def _save_mapping_sync(self, name: str, mapping: Mapping) -> None:
        self._atomic_write(self.mapping_path(name), encode_mapping(mapping))

    def _atomic_write(self, path: Path, payload: bytes) -> None:
        tmp_path = path.with_name(path.name + TMP_SUFFIX)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(payload)
            tmp_path.replace(path)
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc


class FakeIndexRepository(AbstractIndexRepository):
    """In-memory repository for testing; writes can be made to fail on demand."""

    def __init__(self, state: LoadedState | None = None) -> None:
        self.state = state or LoadedState()
        self.fail_document_writes = False
        # Number of document writes that succeed before every later one fails.
        self.fail_document_writes_after: int | None = None
        self.fail_mapping_writes = False
        self.document_writes: list[str] = []

    async def load_all(self) -> LoadedState:
        return LoadedState(
            documents={name: list(docs) for name, docs in self.state.documents.items()},
            mappings=dict(self.state.mappings),
        )

    async def save_documents(self, name: str, documents: Sequence[Document]) -> None:
        limit = self.fail_document_writes_after
        if self.fail_document_writes or (limit is not None and len(self.document_writes) >= limit):
            raise StorageError(f"Simulated write failure for '{name}'")
        self.document_writes.append(name)
        self.state.documents[name] = list(documents)

    async def save_mapping(self, name: str, mapping: Mapping) -> None:
        if self.fail_mapping_writes:
            raise StorageError(f"Simulated mapping write failure for '{name}'")
        self.state.mappings[name] = mapping
