"""Tests for the tabular record store and its backends."""

import asyncio

import pytest

from fintrack.config import StoreSettings
from fintrack.models.audit import AuditEventType
from fintrack.models.sync import RemoteFileInfo
from fintrack.models.table import METADATA_MARKER, Table
from fintrack.models.transaction import TRANSACTION_HEADERS
from fintrack.services.storage import (
    InMemoryBackend,
    SQLiteBackend,
    StorageError,
    StoreNotReadyError,
    TableStore,
)
from fintrack.services.storage.interface import TABLES_NAMESPACE

from conftest import USER


class TestBackends:
    """Tests for the key/value backends."""

    def test_memory_backend_requires_open(self):
        """Test use before open() is a precondition failure."""
        backend = InMemoryBackend()
        with pytest.raises(StoreNotReadyError):
            asyncio.run(backend.get("tables", "a"))

    def test_sqlite_backend_round_trip(self, tmp_path):
        """Test values persist across close and reopen."""
        path = tmp_path / "store" / "fintrack.db"

        async def scenario():
            backend = SQLiteBackend(path)
            await backend.open()
            await backend.put("tables", "a", "one")
            await backend.put("tables", "a", "two")
            await backend.close()

            reopened = SQLiteBackend(path)
            await reopened.open()
            value = await reopened.get("tables", "a")
            deleted = await reopened.delete("tables", "a")
            missing = await reopened.delete("tables", "a")
            await reopened.close()
            return value, deleted, missing

        value, deleted, missing = asyncio.run(scenario())
        assert value == "two"
        assert deleted is True
        assert missing is False

    def test_sqlite_backend_yields_to_event_loop(self, tmp_path):
        """Test reads and writes suspend, letting other tasks run meanwhile."""
        ticks = 0

        async def ticker(stop):
            nonlocal ticks
            while not stop.is_set():
                ticks += 1
                await asyncio.sleep(0)

        async def scenario():
            backend = SQLiteBackend(tmp_path / "fintrack.db")
            await backend.open()
            stop = asyncio.Event()
            task = asyncio.create_task(ticker(stop))
            await asyncio.sleep(0)
            start = ticks
            for index in range(20):
                await backend.put("tables", f"k{index}", str(index))
                await backend.get("tables", f"k{index}")
            advanced = ticks - start
            stop.set()
            await task
            await backend.close()
            return advanced

        assert asyncio.run(scenario()) > 0

    def test_sqlite_backend_concurrent_writes(self, tmp_path):
        """Test concurrent puts on one connection all land."""
        async def scenario():
            backend = SQLiteBackend(tmp_path / "fintrack.db")
            await backend.open()
            await asyncio.gather(*(
                backend.put("tables", f"k{index}", str(index)) for index in range(10)
            ))
            values = [await backend.get("tables", f"k{index}") for index in range(10)]
            await backend.close()
            return values

        assert asyncio.run(scenario()) == [str(index) for index in range(10)]

    def test_sqlite_backend_requires_open(self, tmp_path):
        backend = SQLiteBackend(tmp_path / "x.db")
        with pytest.raises(StoreNotReadyError):
            asyncio.run(backend.put("tables", "a", "b"))


class TestTableStore:
    """Tests for TableStore."""

    def test_get_creates_table_with_metadata(self, store, audit_storage):
        """Test first access creates the table and audits it."""
        table = asyncio.run(store.get(USER, TRANSACTION_HEADERS))

        assert table.metadata["type"] == METADATA_MARKER
        assert table.metadata["email"] == USER
        assert table.version == "1.0.0"
        for header in TRANSACTION_HEADERS:
            assert header in table.headers
        assert asyncio.run(store.exists(USER))
        assert audit_storage.events[-1].event_type == AuditEventType.TABLE_CREATED

    def test_get_migrates_missing_headers(self, store, audit_storage):
        """Test older tables gain new headers without rows changing."""
        old = Table(headers=["type", "id", "amount"], rows=[{"type": "expense", "id": "a", "amount": "3"}])
        asyncio.run(store.save(USER, old))

        table = asyncio.run(store.get(USER, ["id", "amount", "currency"]))

        assert table.headers == ["type", "id", "amount", "currency"]
        assert table.rows == [{"type": "expense", "id": "a", "amount": "3"}]
        reloaded = asyncio.run(store.get(USER))
        assert "currency" in reloaded.headers
        assert audit_storage.events[-1].event_type == AuditEventType.TABLE_MIGRATED

    def test_identities_are_isolated(self, store):
        asyncio.run(store.add_row(USER, {"id": "a"}))
        other = asyncio.run(store.get("bob@example.com"))
        assert other.rows == []

    def test_empty_identity_rejected(self, store):
        with pytest.raises(ValueError):
            asyncio.run(store.get("  "))

    def test_corrupt_table_raises_storage_error(self, store, backend):
        asyncio.run(backend.put(TABLES_NAMESPACE, USER, "{not json"))
        with pytest.raises(StorageError):
            asyncio.run(store.get(USER))

    def test_unopened_backend_propagates(self, audit_logger, app_settings):
        """Test the store surfaces the precondition failure unchanged."""
        store = TableStore(
            InMemoryBackend(),
            audit_logger=audit_logger,
            settings=StoreSettings(),
            app_settings=app_settings,
        )
        with pytest.raises(StoreNotReadyError):
            asyncio.run(store.get(USER))

    def test_add_row_extends_headers(self, store):
        asyncio.run(store.add_row(USER, {"id": "a", "note": "new column"}))
        table = asyncio.run(store.get(USER))
        assert "note" in table.headers
        assert table.rows[-1]["note"] == "new column"

    def test_export_then_import(self, store, audit_storage):
        """Test exported text restores the same rows."""
        asyncio.run(store.get(USER, TRANSACTION_HEADERS))
        asyncio.run(store.add_row(USER, {"id": "tx_1", "description": "Rent, March"}))
        text = asyncio.run(store.export_text(USER))

        imported = asyncio.run(store.import_text("bob@example.com", text))

        assert imported.rows[0]["description"] == "Rent, March"
        assert imported.metadata["email"] == USER
        assert audit_storage.events[-1].event_type == AuditEventType.TABLE_IMPORTED


class TestRemoteReference:
    """Tests for the stored remote file reference."""

    def test_save_get_clear(self, store):
        info = RemoteFileInfo(file_id="file-1", name="finance_data_alice.csv")

        asyncio.run(store.save_remote_reference(USER, info))
        assert asyncio.run(store.get_remote_reference(USER)) == info
        assert asyncio.run(store.clear_remote_reference(USER)) is True
        assert asyncio.run(store.get_remote_reference(USER)) is None
        assert asyncio.run(store.clear_remote_reference(USER)) is False


class TestPreferences:
    """Tests for the per-user default currency."""

    def test_default_from_settings(self, store):
        assert asyncio.run(store.get_default_currency(USER)) == "USD"

    def test_set_supported_currency(self, store):
        assert asyncio.run(store.set_default_currency(USER, "rub")) is True
        assert asyncio.run(store.get_default_currency(USER)) == "RUB"

    def test_unsupported_currency_rejected(self, store):
        assert asyncio.run(store.set_default_currency(USER, "XYZ")) is False
        assert asyncio.run(store.get_default_currency(USER)) == "USD"
