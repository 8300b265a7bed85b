"""
Sync Reconciliation Loop

Keeps one user's local table mirrored to the remote file store.

Lifecycle of a SyncSession:
1. start(identity) bootstraps: find the remote file (stored reference,
   else by name); if there is one, pull it and seed the change hash from
   the pulled data, otherwise seed the hash from local data
2. A poll task hashes the local table every poll interval; a changed hash
   is recorded immediately and a push is scheduled after a quiet period,
   replacing any push still waiting
3. stop() cancels the poll and any scheduled push and waits for them

DESIGN DECISION: One push or pull at a time. The in-flight flag is set
before the first await and cleared in `finally`; a request arriving while
another is in flight is dropped, not queued.

DESIGN DECISION: A pull cancels any scheduled push, and no push is
scheduled before bootstrap has finished. The remote copy therefore wins
at startup, and the pulled data is never pushed straight back.

Failures never stop the loop: they are recorded in SyncState.error and
polling continues on its normal schedule.
"""

import asyncio
import hashlib
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

import structlog

from fintrack.audit import AuditLogger
from fintrack.config import SyncSettings, get_settings
from fintrack.models.sync import RemoteFileInfo, SyncState, SyncStatus
from fintrack.models.transaction import TRANSACTION_HEADERS
from fintrack.services.remote import RemoteMirrorError, RemoteMirrorInterface, RemoteNotFoundError
from fintrack.services.storage import TableStore, deserialize, serialize


logger = structlog.get_logger(__name__)


def content_hash(text: str) -> str:
    """SHA-256 of serialized table text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class SyncSession:
    """
    Sync loop for one active user identity.

    Args:
        store: Local table store
        remote: Remote mirror
        settings: Poll interval, debounce delay and file naming
        audit_logger: Receives push/pull completion and failure events
        default_headers: Headers the synced table is expected to carry
        clock: Returns the current UTC time; injectable for tests
    """

    def __init__(
        self,
        store: TableStore,
        remote: RemoteMirrorInterface,
        settings: Optional[SyncSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        default_headers: Iterable[str] = TRANSACTION_HEADERS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._remote = remote
        self._settings = settings or get_settings().sync
        self._audit_logger = audit_logger
        self._default_headers = list(default_headers)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._identity: Optional[str] = None
        self._reset()

    def _reset(self) -> None:
        self._state = SyncState()
        self._seen_hash: Optional[str] = None
        self._bootstrapped = False
        self._downloaded = False
        self._in_flight = False
        self._poll_task: Optional[asyncio.Task] = None
        self._debounce_task: Optional[asyncio.Task] = None
        self._tasks: set[asyncio.Task] = set()

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    @property
    def state(self) -> SyncState:
        """Read-only snapshot, replaced after every push or pull."""
        return self._state

    @property
    def seen_hash(self) -> Optional[str]:
        return self._seen_hash

    @property
    def is_bootstrapped(self) -> bool:
        return self._bootstrapped

    @property
    def downloaded(self) -> bool:
        """Whether this session has pulled remote data."""
        return self._downloaded

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def has_pending_push(self) -> bool:
        return self._debounce_task is not None and not self._debounce_task.done()

    @property
    def file_name(self) -> str:
        return self._settings.file_name_for(self._require_identity())

    def _require_identity(self) -> str:
        if self._identity is None:
            raise RuntimeError("Sync session has not been started")
        return self._identity

    def _update_state(self, **changes) -> None:
        self._state = self._state.model_copy(update=changes)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self, identity: str, poll: bool = True) -> None:
        """
        Bootstrap for `identity` and begin polling.

        A session already running for another identity is stopped first
        and all loop state is reset.
        """
        if self._identity is not None:
            await self.stop()

        self._reset()
        self._identity = identity
        logger.info("sync_session_started", identity=identity)

        await self.bootstrap()
        if poll:
            self._poll_task = self._spawn(self._poll_loop())

    async def stop(self) -> None:
        """Cancel polling and any scheduled push, and wait for them."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if self._identity is not None:
            logger.info("sync_session_stopped", identity=self._identity)
        self._identity = None
        self._reset()

    async def bootstrap(self) -> None:
        """Pull the remote copy if one exists; seed the change hash."""
        identity = self._require_identity()
        reference: Optional[RemoteFileInfo] = None

        try:
            reference = await self._store.get_remote_reference(identity)
            if reference is None:
                reference = await self._remote.find_by_name(self.file_name)
                if reference is not None:
                    await self._store.save_remote_reference(identity, reference)
        except Exception as e:
            logger.warning("sync_status_failed", identity=identity, error=str(e))
            self._update_state(status=SyncStatus.ERROR, error=str(e))

        if reference is not None:
            self._update_state(
                remote_file_id=reference.file_id,
                web_view_link=reference.web_view_link,
            )
            pulled = await self.pull()
            if not pulled:
                self._seen_hash = await self._local_hash()
        else:
            self._seen_hash = await self._local_hash()

        self._bootstrapped = True

    # -------------------------------------------------------------------------
    # Change detection
    # -------------------------------------------------------------------------

    async def _local_text(self) -> str:
        table = await self._store.get(self._require_identity(), self._default_headers)
        return serialize(table)

    async def _local_hash(self) -> str:
        return content_hash(await self._local_text())

    async def check_for_changes(self) -> bool:
        """
        Hash local data and schedule a push if it changed.

        Returns:
            True if the hash differed from the last seen one
        """
        digest = await self._local_hash()

        if self._seen_hash is None:
            self._seen_hash = digest
            return False
        if digest == self._seen_hash:
            return False

        self._seen_hash = digest
        if not self._bootstrapped:
            logger.debug("change_before_bootstrap", identity=self._identity)
            return True

        self._schedule_push()
        return True

    def _schedule_push(self) -> None:
        self.cancel_pending_push()
        self._debounce_task = self._spawn(self._debounced_push())

    def cancel_pending_push(self) -> bool:
        """Cancel a push that is still waiting out its quiet period."""
        if self.has_pending_push:
            self._debounce_task.cancel()
            self._debounce_task = None
            return True
        self._debounce_task = None
        return False

    async def _debounced_push(self) -> None:
        await asyncio.sleep(self._settings.debounce_seconds)
        # From here on the push is in progress and no longer cancellable
        # by a newer change.
        self._debounce_task = None
        await self.push()

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._settings.poll_interval_seconds)
            try:
                await self.check_for_changes()
            except Exception as e:
                logger.warning("change_check_failed", identity=self._identity, error=str(e))

    # -------------------------------------------------------------------------
    # Push / pull
    # -------------------------------------------------------------------------

    async def _audit_completed(self, direction: str, file_id: Optional[str]) -> None:
        if self._audit_logger:
            await self._audit_logger.log_sync_completed(self._require_identity(), direction, file_id)

    async def _fail(self, direction: str, error: Exception) -> None:
        message = str(error) or error.__class__.__name__
        logger.error(f"sync_{direction}_failed", identity=self._identity, error=message)
        self._update_state(status=SyncStatus.ERROR, error=message)
        if self._audit_logger:
            await self._audit_logger.log_sync_failed(self._require_identity(), direction, message)

    def _succeed(self, info: RemoteFileInfo) -> None:
        self._update_state(
            status=SyncStatus.SUCCESS,
            last_sync_time=info.modified_time or self._clock().isoformat(),
            error=None,
            remote_file_id=info.file_id,
            web_view_link=info.web_view_link,
        )

    async def push(self) -> bool:
        """
        Upload the full local table, creating the remote file on first push.

        Returns:
            True on success; False if dropped (another sync in flight) or failed
        """
        if self._in_flight:
            logger.debug("sync_push_dropped", identity=self._identity)
            return False
        self._in_flight = True
        try:
            identity = self._require_identity()
            self._update_state(status=SyncStatus.SYNCING)

            content = await self._local_text()
            reference = await self._store.get_remote_reference(identity)
            if reference is None:
                reference = await self._remote.find_by_name(self.file_name)

            try:
                info = await self._remote.upload(self.file_name, content, reference)
            except RemoteNotFoundError:
                if reference is None:
                    raise
                logger.warning("remote_reference_stale", identity=identity, file_id=reference.file_id)
                info = await self._remote.upload(self.file_name, content, None)

            await self._store.save_remote_reference(identity, info)
            self._seen_hash = content_hash(content)
            self._succeed(info)
            logger.info("sync_push_completed", identity=identity, file_id=info.file_id)
            await self._audit_completed("push", info.file_id)
            return True
        except Exception as e:
            await self._fail("push", e)
            return False
        finally:
            self._in_flight = False

    async def pull(self) -> bool:
        """
        Replace the local table with the remote copy.

        Any scheduled push is cancelled, and the change hash is reseeded
        from the pulled data.

        Returns:
            True on success; False if dropped (another sync in flight) or failed
        """
        if self._in_flight:
            logger.debug("sync_pull_dropped", identity=self._identity)
            return False
        self._in_flight = True
        self.cancel_pending_push()
        try:
            identity = self._require_identity()
            self._update_state(status=SyncStatus.SYNCING)

            reference = await self._store.get_remote_reference(identity)
            if reference is None:
                reference = await self._remote.find_by_name(self.file_name)
            if reference is None:
                raise RemoteNotFoundError(f"No remote file named {self.file_name}")

            content = await self._remote.download(reference.file_id)
            table = deserialize(content)
            if not table.headers:
                raise RemoteMirrorError(f"Remote file {reference.file_id} is empty")

            await self._store.save(identity, table)
            self._seen_hash = await self._local_hash()
            self._downloaded = True

            info = await self._remote.get_info(reference.file_id) or reference
            await self._store.save_remote_reference(identity, info)
            self._succeed(info)
            logger.info("sync_pull_completed", identity=identity, rows=len(table.rows))
            await self._audit_completed("pull", info.file_id)
            return True
        except Exception as e:
            await self._fail("pull", e)
            return False
        finally:
            self._in_flight = False
