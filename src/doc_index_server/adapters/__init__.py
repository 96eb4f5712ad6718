"""Adapters layer - persistence of collections.

The repository hides the on-disk layout (one binary document file and one
JSON mapping file per collection) behind a small async interface.
"""

from .codec import CodecError, StorageError
from .filesystem_repository import (
    AbstractIndexRepository,
    FakeIndexRepository,
    FileSystemIndexRepository,
    LoadedState,
)


__all__ = [
    "AbstractIndexRepository",
    "CodecError",
    "FakeIndexRepository",
    "FileSystemIndexRepository",
    "LoadedState",
    "StorageError",
]
