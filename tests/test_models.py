"""
Tests for fintrack

Test strategy:
1. Unit tests for individual components (models, validators, codec)
2. Integration tests for flows (with in-memory store and remote mirror)
3. No real API calls in tests (use stubs)
"""

import pytest
from datetime import date
from decimal import Decimal

from pydantic import ValidationError

from fintrack.models.table import METADATA_MARKER, Table, new_table
from fintrack.models.transaction import (
    TRANSACTION_HEADERS,
    Transaction,
    TransactionDraft,
    TransactionStatus,
    TransactionType,
    record_to_transaction,
    transaction_to_record,
)
from fintrack.models.analytics import MonthlyBucket
from fintrack.models.sync import RemoteFileInfo, SyncState, SyncStatus
from fintrack.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from fintrack.models.validation import ValidationIssue, ValidationResult


class TestTableModels:
    """Tests for the tabular record models."""

    def test_new_table_has_metadata_row(self):
        """Test new_table writes the format marker and owner."""
        table = new_table("bob@example.com", TRANSACTION_HEADERS, version="1.0.0")
        assert table.metadata["type"] == METADATA_MARKER
        assert table.metadata["email"] == "bob@example.com"
        assert table.version == "1.0.0"
        assert table.rows == []

    def test_headers_are_deduplicated(self):
        """Test repeated headers keep first occurrence order."""
        table = Table(headers=["id", "type", "id", "amount"])
        assert table.headers == ["id", "type", "amount"]

    def test_ensure_headers_appends_only_missing(self):
        """Test ensure_headers leaves rows untouched."""
        table = Table(headers=["id", "amount"], rows=[{"id": "a", "amount": "1"}])
        added = table.ensure_headers(["amount", "currency"])
        assert added == ["currency"]
        assert table.headers == ["id", "amount", "currency"]
        assert table.rows == [{"id": "a", "amount": "1"}]

    def test_version_unknown_without_metadata(self):
        """Test version falls back when no metadata row exists."""
        assert Table(headers=["id"]).version == "unknown"

    def test_data_rows_skip_metadata_marker(self):
        """Test metadata-marked rows are not data."""
        table = Table(
            headers=["type", "id"],
            rows=[{"type": "metadata", "id": None}, {"type": "income", "id": "x"}],
        )
        assert table.data_rows() == [{"type": "income", "id": "x"}]


class TestTransactionModels:
    """Tests for transaction parsing and its inverse."""

    def test_record_to_transaction_parses_fields(self):
        """Test a well-formed row parses into typed fields."""
        tx = record_to_transaction({
            "id": "tx_1",
            "type": "income",
            "amount": "1500.50",
            "date": "2026-10-01",
            "category": "Salary",
            "is_planned": "false",
            "status": "completed",
            "currency": "rub",
            "amount_usd": "16.31",
            "created_at": "2026-10-01T09:00:00+00:00",
        })
        assert tx.type == TransactionType.INCOME
        assert tx.amount == Decimal("1500.50")
        assert tx.date == date(2026, 10, 1)
        assert tx.currency == "RUB"
        assert tx.amount_usd == Decimal("16.31")
        assert tx.is_planned is False

    def test_record_to_transaction_is_total(self):
        """Test garbage cells fall back to defaults instead of raising."""
        tx = record_to_transaction({
            "id": "tx_2",
            "type": "bogus",
            "amount": "twelve",
            "date": "not a date",
            "is_planned": None,
        })
        assert tx.type == TransactionType.EXPENSE
        assert tx.amount == Decimal("0")
        assert tx.date is None
        assert tx.status == TransactionStatus.COMPLETED

    def test_missing_status_derived_from_planned_flag(self):
        """Test a planned row without status reads as pending."""
        tx = record_to_transaction({"id": "tx_3", "is_planned": "true"})
        assert tx.status == TransactionStatus.PENDING

    def test_full_timestamp_date_is_accepted(self):
        """Test ISO timestamps in the date column parse to a date."""
        tx = record_to_transaction({"id": "tx_4", "date": "2026-03-09T12:30:00Z"})
        assert tx.date == date(2026, 3, 9)

    def test_transaction_to_record_inverse(self):
        """Test the record written for a transaction parses back to it."""
        tx = Transaction(
            id="tx_5",
            created_at="2026-10-17T10:00:00+00:00",
            type=TransactionType.INVESTMENT,
            amount=Decimal("100"),
            date=date(2026, 10, 17),
            category="BTC",
            currency="USD",
            from_asset="USD",
            to_asset="BTC",
            exchange_rate=Decimal("0.0000150"),
        )
        record = transaction_to_record(tx)
        assert record["amount"] == "100"
        assert record["exchange_rate"] == "0.000015"
        assert record["is_planned"] == "false"
        assert record_to_transaction(record).model_dump() == tx.model_dump()

    def test_draft_normalizes_codes(self):
        """Test currency codes are upper-cased and blanks become None."""
        draft = TransactionDraft(
            type=TransactionType.EXPENSE,
            amount=Decimal("5"),
            date=date(2026, 10, 1),
            currency=" eur ",
            from_asset="",
        )
        assert draft.currency == "EUR"
        assert draft.from_asset is None

    def test_is_exchange(self):
        """Test is_exchange needs both assets."""
        tx = Transaction(id="tx_6", from_asset="USD")
        assert tx.is_exchange is False
        assert tx.model_copy(update={"to_asset": "ETH"}).is_exchange is True


class TestAnalyticsModels:
    """Tests for analytics result models."""

    def test_month_key_format_enforced(self):
        """Test MonthlyBucket rejects malformed month keys."""
        with pytest.raises(ValidationError):
            MonthlyBucket(month="2026-1", label="Jan 2026")


class TestSyncModels:
    """Tests for sync state models."""

    def test_sync_state_defaults_idle(self):
        state = SyncState()
        assert state.status == SyncStatus.IDLE
        assert state.error is None

    def test_sync_state_is_read_only(self):
        """Test snapshots cannot be mutated in place."""
        state = SyncState()
        with pytest.raises(ValidationError):
            state.status = SyncStatus.SYNCING

    def test_remote_file_info_requires_id(self):
        with pytest.raises(ValidationError):
            RemoteFileInfo(file_id="", name="finance_data_a.csv")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TABLE_CREATED,
            description="Table created",
        )
        assert event.event_type == AuditEventType.TABLE_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.transaction_added("a@b.c", "tx_1", "expense", "12.50")
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_added"
        assert log_dict["details"]["amount"] == "12.50"
        assert log_dict["identity"] == "a@b.c"

    def test_sync_failed_is_error(self):
        """Test AuditEventBuilder.sync_failed."""
        event = AuditEventBuilder.sync_failed("a@b.c", "push", "timeout")
        assert event.event_type == AuditEventType.SYNC_FAILED
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "timeout"

    def test_sync_completed_direction(self):
        """Test pull and push map to different event types."""
        pull = AuditEventBuilder.sync_completed("a@b.c", "pull", "file-1")
        push = AuditEventBuilder.sync_completed("a@b.c", "push", "file-1")
        assert pull.event_type == AuditEventType.SYNC_PULL_COMPLETED
        assert push.event_type == AuditEventType.SYNC_PUSH_COMPLETED

    def test_rates_fallback_is_warning(self):
        event = AuditEventBuilder.rates_fallback_used("USD", "default", "offline")
        assert event.severity == AuditSeverity.WARNING
        assert event.details == {"base": "USD", "source": "default"}


class TestValidationModels:
    """Tests for validation result models."""

    def test_warnings_do_not_invalidate(self):
        """Test only error-level issues make a result invalid."""
        result = ValidationResult(issues=[
            ValidationIssue(
                field="date",
                issue_type="suspicious_date",
                message="Old date",
                severity="warning",
            ),
        ])
        assert result.is_valid
        assert result.warnings == ["Old date"]

    def test_error_count(self):
        result = ValidationResult(issues=[
            ValidationIssue(field="amount", issue_type="invalid_value", message="a", severity="error"),
            ValidationIssue(field="category", issue_type="missing", message="b", severity="error"),
        ])
        assert not result.is_valid
        assert result.error_count == 2

    def test_severity_pattern_enforced(self):
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")
