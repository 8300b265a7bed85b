"""
Audit Storage

Where audit events are persisted beyond the local structured log.
Audit logs are append-only - we never delete or modify them.
"""

from abc import ABC, abstractmethod
from collections import deque

from fintrack.models.audit import AuditEvent


# Events kept by the in-memory log before the oldest is evicted
DEFAULT_MAX_EVENTS = 10_000


class AuditStorageInterface(ABC):
    """Abstract interface for audit log storage."""

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_identity(self, identity: str) -> list[AuditEvent]:
        """
        Get all events for one user identity.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class InMemoryAuditStorage(AuditStorageInterface):
    """
    Append-only audit log held in memory.

    Bounded: once `max_events` are held, the oldest event is evicted for
    each new one, so a long-running sync loop cannot grow it without limit.
    """

    def __init__(self, max_events: int = DEFAULT_MAX_EVENTS):
        if max_events < 1:
            raise ValueError("max_events must be at least 1")
        self._events: deque[AuditEvent] = deque(maxlen=max_events)

    @property
    def max_events(self) -> int:
        return self._events.maxlen

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_identity(self, identity: str) -> list[AuditEvent]:
        return [event for event in self._events if event.identity == identity]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
