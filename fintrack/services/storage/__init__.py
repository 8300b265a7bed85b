"""
Storage Services Package

Provides the key/value backend interface, its SQLite and in-memory
implementations, the table text codec, and the per-user TableStore.
"""

from fintrack.services.storage.interface import (
    KeyValueBackend,
    StorageConnectionError,
    StorageError,
    StoreNotReadyError,
)
from fintrack.services.storage.codec import deserialize, serialize
from fintrack.services.storage.memory import InMemoryBackend
from fintrack.services.storage.sqlite_backend import SQLiteBackend
from fintrack.services.storage.table_store import TableStore

__all__ = [
    # Interface
    "KeyValueBackend",
    # Exceptions
    "StorageConnectionError",
    "StorageError",
    "StoreNotReadyError",
    # Codec
    "deserialize",
    "serialize",
    # Implementations
    "InMemoryBackend",
    "SQLiteBackend",
    "TableStore",
]
