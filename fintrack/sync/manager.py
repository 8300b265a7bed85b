"""
Sync Manager

Owns the single active SyncSession. Switching to a different identity
stops the old session (cancelling its timers) and starts a fresh one, so
no hash, flag or status leaks from one user to the next.
"""

from typing import Callable, Optional

import structlog

from fintrack.audit import AuditLogger
from fintrack.models.sync import SyncState
from fintrack.sync.session import SyncSession


logger = structlog.get_logger(__name__)


class SyncManager:
    """
    Args:
        session_factory: Builds a new, unstarted SyncSession
        audit_logger: Receives identity switch events
    """

    def __init__(
        self,
        session_factory: Callable[[], SyncSession],
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._session_factory = session_factory
        self._audit_logger = audit_logger
        self._session: Optional[SyncSession] = None

    @property
    def session(self) -> Optional[SyncSession]:
        return self._session

    @property
    def active_identity(self) -> Optional[str]:
        return self._session.identity if self._session else None

    @property
    def state(self) -> SyncState:
        """State of the active session, or idle when none is running."""
        return self._session.state if self._session else SyncState()

    async def activate(self, identity: str, poll: bool = True) -> SyncSession:
        """
        Make `identity` the active user.

        The same identity again is a no-op; a different one replaces the
        running session.
        """
        if self._session is not None and self._session.identity == identity:
            return self._session

        previous = self.active_identity
        await self.deactivate()

        session = self._session_factory()
        self._session = session
        await session.start(identity, poll=poll)

        logger.info("sync_identity_activated", identity=identity, previous=previous)
        if self._audit_logger:
            await self._audit_logger.log_identity_switched(previous, identity)
        return session

    async def deactivate(self) -> None:
        """Stop the active session, if any."""
        if self._session is None:
            return
        session, self._session = self._session, None
        await session.stop()
