"""
Abstract Storage Interface

DESIGN DECISION: The local store is a plain key/value store of text,
partitioned by namespace and keyed by user identity. Tables, remote file
references and preferences are all serialized before they reach a backend.
This allows us to:
1. Use SQLite on disk and a dict in tests behind one interface
2. Keep per-user isolation a property of the key, not of the backend
3. Keep table semantics (headers, metadata, migration) out of backends

The interface is intentionally small - it mirrors what a browser-local
object store offers, nothing more.
"""

from abc import ABC, abstractmethod
from typing import Optional


# Namespaces used by TableStore
TABLES_NAMESPACE = "tables"
REMOTE_FILES_NAMESPACE = "remote_files"
PREFERENCES_NAMESPACE = "preferences"


class KeyValueBackend(ABC):
    """
    Abstract interface for the persistent key/value store.

    Every method except open() raises StoreNotReadyError until open()
    has completed.
    """

    @abstractmethod
    async def open(self) -> None:
        """Prepare the backend for use (connect, create schema)."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the backend. Further calls raise StoreNotReadyError."""
        pass

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether open() has completed and close() has not been called."""
        pass

    @abstractmethod
    async def get(self, namespace: str, key: str) -> Optional[str]:
        """
        Read a value.

        Returns:
            The stored text, or None if the key is absent
        """
        pass

    @abstractmethod
    async def put(self, namespace: str, key: str, value: str) -> None:
        """Write a value, replacing any previous one."""
        pass

    @abstractmethod
    async def delete(self, namespace: str, key: str) -> bool:
        """
        Remove a value.

        Returns:
            True if a value was removed
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StoreNotReadyError(StorageError):
    """Store used before it was opened (or after it was closed)."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
