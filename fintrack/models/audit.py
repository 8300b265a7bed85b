"""
Audit Models for fintrack

Every write to a user's table, every sync round-trip and every rate
fallback is recorded as an AuditEvent. This gives:
1. A history of what changed a user's data and when
2. Debugging information when a sync goes wrong
3. Visibility into degraded (fallback) currency conversions

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Local store
    TABLE_CREATED = "table_created"
    TABLE_MIGRATED = "table_migrated"
    TABLE_IMPORTED = "table_imported"

    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTION_REJECTED_BY_VALIDATION = "transaction_rejected_by_validation"

    # Sync
    SYNC_PUSH_COMPLETED = "sync_push_completed"
    SYNC_PULL_COMPLETED = "sync_pull_completed"
    SYNC_FAILED = "sync_failed"
    IDENTITY_SWITCHED = "identity_switched"

    # Rates
    RATES_FALLBACK_USED = "rates_fallback_used"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - whose data, and which entity
    identity: Optional[str] = Field(
        default=None,
        description="User identity whose table the event concerns"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'table', 'remote_file')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "identity": self.identity,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(identity, tx_id, "expense", "12.50")
        event = AuditEventBuilder.sync_failed(identity, "push", "timeout")
    """

    @staticmethod
    def table_created(identity: str, version: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TABLE_CREATED,
            identity=identity,
            entity_type="table",
            description=f"Table created (format {version})",
            details={"version": version},
        )

    @staticmethod
    def table_migrated(identity: str, added_headers: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TABLE_MIGRATED,
            identity=identity,
            entity_type="table",
            description=f"Table schema extended with {len(added_headers)} headers",
            details={"added_headers": added_headers},
        )

    @staticmethod
    def table_imported(identity: str, row_count: int, source: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TABLE_IMPORTED,
            identity=identity,
            entity_type="table",
            description=f"Table replaced from {source} ({row_count} rows)",
            details={"row_count": row_count, "source": source},
        )

    @staticmethod
    def transaction_added(
        identity: str,
        transaction_id: str,
        transaction_type: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            identity=identity,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction added: {transaction_type} {amount}",
            details={"type": transaction_type, "amount": amount},
        )

    @staticmethod
    def transaction_updated(
        identity: str,
        transaction_id: str,
        fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            identity=identity,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction updated: {', '.join(fields) or 'no fields'}",
            details={"fields": fields},
        )

    @staticmethod
    def transaction_deleted(identity: str, transaction_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            identity=identity,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction deleted",
        )

    @staticmethod
    def validation_failed(identity: str, issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REJECTED_BY_VALIDATION,
            severity=AuditSeverity.WARNING,
            identity=identity,
            entity_type="transaction",
            description=f"Transaction rejected with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def sync_completed(
        identity: str,
        direction: str,
        file_id: Optional[str],
    ) -> AuditEvent:
        event_type = (
            AuditEventType.SYNC_PUSH_COMPLETED
            if direction == "push"
            else AuditEventType.SYNC_PULL_COMPLETED
        )
        return AuditEvent(
            event_type=event_type,
            identity=identity,
            entity_type="remote_file",
            entity_id=file_id,
            description=f"Sync {direction} completed",
            details={"direction": direction},
        )

    @staticmethod
    def sync_failed(identity: str, direction: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_FAILED,
            severity=AuditSeverity.ERROR,
            identity=identity,
            entity_type="remote_file",
            description=f"Sync {direction} failed",
            error_message=error_message,
            details={"direction": direction},
        )

    @staticmethod
    def identity_switched(previous: Optional[str], current: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IDENTITY_SWITCHED,
            identity=current,
            description="Active user changed",
            details={"previous": previous},
        )

    @staticmethod
    def rates_fallback_used(base: str, source: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATES_FALLBACK_USED,
            severity=AuditSeverity.WARNING,
            entity_type="rates",
            entity_id=base,
            description=f"Rate fetch for {base} failed, using {source} rates",
            error_message=error_message,
            details={"base": base, "source": source},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        identity: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            identity=identity,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
