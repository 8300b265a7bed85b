"""
Audit Logger

DESIGN DECISION: Every change to a user's data is logged.
This provides:
1. Traceability of every write to the local table
2. A record of sync round-trips and their failures
3. Visibility into degraded (fallback) exchange rates

The audit logger:
- Is async so it can sit in the same call chains as the store
- Gracefully handles failures (doesn't crash the app if logging fails)
"""

from typing import Optional

import structlog

from fintrack.audit.storage import AuditStorageInterface
from fintrack.models.audit import AuditEvent, AuditEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An AuditStorageInterface, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_sync_completed(
        self,
        identity: str,
        direction: str,
        file_id: Optional[str],
    ) -> None:
        """Log a finished push or pull."""
        await self.log(AuditEventBuilder.sync_completed(identity, direction, file_id))

    async def log_sync_failed(
        self,
        identity: str,
        direction: str,
        error_message: str,
    ) -> None:
        """Log a failed push or pull."""
        await self.log(AuditEventBuilder.sync_failed(identity, direction, error_message))

    async def log_identity_switched(
        self,
        previous: Optional[str],
        current: str,
    ) -> None:
        await self.log(AuditEventBuilder.identity_switched(previous, current))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        identity: Optional[str] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            identity=identity,
        )
        await self.log(event)
