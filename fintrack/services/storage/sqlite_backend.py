"""
SQLite Key/Value Backend

Persists the local store to a single SQLite file. One table, keyed by
(namespace, key); values are opaque text written by TableStore.

DESIGN DECISION: sqlite3 is blocking, so every statement runs in a worker
thread via asyncio.to_thread and store access stays a suspension point.
One connection is shared across those threads (check_same_thread=False);
an asyncio.Lock keeps at most one statement in flight on it.
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path
import sqlite3
from typing import Optional

import structlog

from fintrack.config import get_settings
from fintrack.services.storage.interface import (
    KeyValueBackend,
    StorageConnectionError,
    StorageError,
    StoreNotReadyError,
)


logger = structlog.get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (namespace, key)
)
"""


class SQLiteBackend(KeyValueBackend):
    """SQLite implementation of the key/value backend."""

    def __init__(self, database_path: Optional[str | Path] = None):
        if database_path is None:
            database_path = get_settings().store.database_path
        self.database_path = str(database_path)
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def _require_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StoreNotReadyError(
                f"Store at {self.database_path} used before open()"
            )
        return self._connection

    # -------------------------------------------------------------------------
    # Blocking helpers (run in a worker thread)
    # -------------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        if self.database_path != ":memory:":
            Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)
        connection = sqlite3.connect(self.database_path, check_same_thread=False)
        connection.execute(SCHEMA)
        connection.commit()
        return connection

    @staticmethod
    def _select(connection: sqlite3.Connection, namespace: str, key: str) -> Optional[str]:
        row = connection.execute(
            "SELECT value FROM kv WHERE namespace = ? AND key = ?",
            (namespace, key),
        ).fetchone()
        return row[0] if row is not None else None

    @staticmethod
    def _upsert(connection: sqlite3.Connection, namespace: str, key: str, value: str) -> None:
        timestamp = datetime.now(timezone.utc).isoformat()
        with connection:
            connection.execute(
                "INSERT INTO kv (namespace, key, value, updated_at) VALUES (?, ?, ?, ?) "
                "ON CONFLICT(namespace, key) DO UPDATE SET "
                "value = excluded.value, updated_at = excluded.updated_at",
                (namespace, key, value, timestamp),
            )

    @staticmethod
    def _remove(connection: sqlite3.Connection, namespace: str, key: str) -> bool:
        with connection:
            cursor = connection.execute(
                "DELETE FROM kv WHERE namespace = ? AND key = ?",
                (namespace, key),
            )
        return cursor.rowcount > 0

    # -------------------------------------------------------------------------
    # KeyValueBackend
    # -------------------------------------------------------------------------

    async def open(self) -> None:
        async with self._lock:
            if self._connection is not None:
                return
            try:
                connection = await asyncio.to_thread(self._connect)
            except (OSError, sqlite3.Error) as e:
                raise StorageConnectionError(
                    f"Failed to open store at {self.database_path}: {e}"
                ) from e
            self._connection = connection
        logger.info("store_opened", path=self.database_path)

    async def close(self) -> None:
        async with self._lock:
            if self._connection is None:
                return
            connection, self._connection = self._connection, None
            await asyncio.to_thread(connection.close)
        logger.info("store_closed", path=self.database_path)

    async def get(self, namespace: str, key: str) -> Optional[str]:
        async with self._lock:
            connection = self._require_connection()
            try:
                return await asyncio.to_thread(self._select, connection, namespace, key)
            except sqlite3.Error as e:
                raise StorageError(f"Failed to read {namespace}/{key}: {e}") from e

    async def put(self, namespace: str, key: str, value: str) -> None:
        async with self._lock:
            connection = self._require_connection()
            try:
                await asyncio.to_thread(self._upsert, connection, namespace, key, value)
            except sqlite3.Error as e:
                raise StorageError(f"Failed to write {namespace}/{key}: {e}") from e

    async def delete(self, namespace: str, key: str) -> bool:
        async with self._lock:
            connection = self._require_connection()
            try:
                return await asyncio.to_thread(self._remove, connection, namespace, key)
            except sqlite3.Error as e:
                raise StorageError(f"Failed to delete {namespace}/{key}: {e}") from e
