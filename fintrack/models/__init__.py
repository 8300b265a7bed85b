"""
Data Models Package

This package contains all Pydantic models used in fintrack.
All data flowing between the store, the analytics engine and the sync
loop conforms to these schemas.
"""

from fintrack.models.table import (
    METADATA_FIELD,
    METADATA_MARKER,
    Cell,
    Record,
    Table,
    new_table,
)
from fintrack.models.transaction import (
    TRANSACTION_HEADERS,
    Transaction,
    TransactionDraft,
    TransactionFilter,
    TransactionStatus,
    TransactionType,
    TransactionUpdate,
    record_to_transaction,
    transaction_to_record,
)
from fintrack.models.analytics import (
    Alert,
    AlertLevel,
    AnalyticsParams,
    AnalyticsResult,
    CategoryBucket,
    CurrencyAmount,
    MonthlyBucket,
    Period,
    PortfolioPosition,
    Totals,
)
from fintrack.models.sync import (
    RemoteFileInfo,
    SyncState,
    SyncStatus,
)
from fintrack.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from fintrack.models.validation import (
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Table models
    "METADATA_FIELD",
    "METADATA_MARKER",
    "Cell",
    "Record",
    "Table",
    "new_table",
    # Transaction models
    "TRANSACTION_HEADERS",
    "Transaction",
    "TransactionDraft",
    "TransactionFilter",
    "TransactionStatus",
    "TransactionType",
    "TransactionUpdate",
    "record_to_transaction",
    "transaction_to_record",
    # Analytics models
    "Alert",
    "AlertLevel",
    "AnalyticsParams",
    "AnalyticsResult",
    "CategoryBucket",
    "CurrencyAmount",
    "MonthlyBucket",
    "Period",
    "PortfolioPosition",
    "Totals",
    # Sync models
    "RemoteFileInfo",
    "SyncState",
    "SyncStatus",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
]
