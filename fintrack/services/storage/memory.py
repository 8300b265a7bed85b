"""
In-Memory Storage

A dict-backed backend for tests and ephemeral sessions. It honours the
same open()/close() precondition as the SQLite backend.
"""

from typing import Optional

from fintrack.services.storage.interface import (
    KeyValueBackend,
    StoreNotReadyError,
)


class InMemoryBackend(KeyValueBackend):
    """Key/value backend held in a dict."""

    def __init__(self):
        self._data: dict[tuple[str, str], str] = {}
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def _check_open(self) -> None:
        if not self._open:
            raise StoreNotReadyError("In-memory store used before open()")

    async def open(self) -> None:
        self._open = True

    async def close(self) -> None:
        self._open = False

    async def get(self, namespace: str, key: str) -> Optional[str]:
        self._check_open()
        return self._data.get((namespace, key))

    async def put(self, namespace: str, key: str, value: str) -> None:
        self._check_open()
        self._data[(namespace, key)] = value

    async def delete(self, namespace: str, key: str) -> bool:
        self._check_open()
        return self._data.pop((namespace, key), None) is not None
