"""Tests for the audit logger and configuration."""

import asyncio

import pytest

from fintrack.audit import AuditLogger, AuditStorageInterface, InMemoryAuditStorage
from fintrack.config import AppSettings, SyncSettings, get_settings, validate_all_settings
from fintrack.models.audit import AuditEventBuilder, AuditEventType, AuditSeverity


class FailingAuditStorage(AuditStorageInterface):
    """Storage that rejects every write."""

    async def append_event(self, event):
        raise IOError("disk full")

    async def get_events_by_identity(self, identity):
        return []

    async def get_recent_events(self, limit=100):
        return []


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_events_persisted(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)

        assert asyncio.run(logger.log(AuditEventBuilder.table_created("a@b.c", "1.0.0")))
        asyncio.run(logger.log_sync_failed("a@b.c", "push", "timeout"))
        asyncio.run(logger.log_identity_switched(None, "x@y.z"))

        assert len(storage.events) == 3
        assert [e.event_type for e in asyncio.run(storage.get_events_by_identity("a@b.c"))] == [
            AuditEventType.TABLE_CREATED,
            AuditEventType.SYNC_FAILED,
        ]
        recent = asyncio.run(storage.get_recent_events(limit=1))
        assert recent[0].event_type == AuditEventType.IDENTITY_SWITCHED

    def test_storage_failure_is_swallowed(self):
        """Test a broken audit store never breaks the caller."""
        logger = AuditLogger(FailingAuditStorage())
        assert asyncio.run(logger.log(AuditEventBuilder.transaction_deleted("a@b.c", "tx_1"))) is False

    def test_without_storage_logs_locally(self):
        logger = AuditLogger()
        assert logger.storage is None
        assert asyncio.run(logger.log(AuditEventBuilder.transaction_deleted("a@b.c", "tx_1"))) is True

    def test_log_error(self):
        storage = InMemoryAuditStorage()
        asyncio.run(AuditLogger(storage).log_error(
            "import_failed",
            "bad header",
            details={"line": 1},
            identity="a@b.c",
        ))
        event = storage.events[0]
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.severity == AuditSeverity.ERROR
        assert event.details == {"line": 1}


class TestSettings:
    """Tests for configuration."""

    def test_sync_file_name_sanitizes_identity(self):
        settings = SyncSettings(file_name_template="finance_data_{identity}.csv")
        assert settings.file_name_for("a@b.c") == "finance_data_a_b.c.csv"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("FINTRACK_SYNC_DEBOUNCE_SECONDS", "0.5")
        assert SyncSettings().debounce_seconds == 0.5

    def test_validate_all_settings_reports_missing_drive(self, monkeypatch):
        """Test a missing Drive credential is reported, not raised."""
        monkeypatch.delenv("GOOGLE_DRIVE_CREDENTIALS_PATH", raising=False)
        get_settings.cache_clear()

        results = validate_all_settings()

        assert results["store"] is True
        assert results["sync"] is True
        assert results["google_drive"] is False
        assert "google_drive_error" in results


class TestInMemoryAuditStorage:
    """Tests for the bounded in-memory audit log."""

    def test_oldest_events_evicted_at_capacity(self):
        """Test the log never holds more than max_events."""
        storage = InMemoryAuditStorage(max_events=3)
        for index in range(5):
            asyncio.run(storage.append_event(
                AuditEventBuilder.transaction_deleted("a@b.c", f"tx_{index}")
            ))

        assert len(storage.events) == 3
        assert [e.entity_id for e in storage.events] == ["tx_2", "tx_3", "tx_4"]
        recent = asyncio.run(storage.get_recent_events(limit=2))
        assert [e.entity_id for e in recent] == ["tx_4", "tx_3"]

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            InMemoryAuditStorage(max_events=0)

    def test_default_capacity_from_settings(self, monkeypatch):
        monkeypatch.setenv("AUDIT_MAX_EVENTS", "25")
        assert AppSettings().audit_max_events == 25
