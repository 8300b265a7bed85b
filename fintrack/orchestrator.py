"""
Main Orchestrator for fintrack

This module ties together all the components and defines the entry
points a UI calls:
1. Session (login -> table ready -> sync session started; logout)
2. Transactions (add / update / delete / mark completed or rejected)
3. Views (transactions, upcoming payments, analytics, alerts, portfolio)
4. Data (CSV export / import, default currency, sync status)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing touches the store before a user is logged in
- Every write goes through the repository (and so through validation)
- Every step is audited

The remote mirror is optional. Without Google Drive credentials the app
runs local-only and sync_state() reports idle.
"""

from dataclasses import dataclass
from typing import Optional, Union

import structlog

from fintrack.analytics import calculate_portfolio, get_alerts, recompute
from fintrack.audit import AuditLogger, AuditStorageInterface, InMemoryAuditStorage
from fintrack.config import get_settings
from fintrack.models.analytics import Alert, AnalyticsParams, AnalyticsResult, PortfolioPosition
from fintrack.models.sync import SyncState
from fintrack.models.transaction import (
    TRANSACTION_HEADERS,
    Transaction,
    TransactionDraft,
    TransactionFilter,
    TransactionStatus,
    TransactionType,
    TransactionUpdate,
)
from fintrack.repository import TransactionRepository, filter_transactions
from fintrack.services.exchange import CurrencyConverter, RateProviderInterface
from fintrack.services.remote import GoogleDriveMirror, RemoteMirrorInterface
from fintrack.services.storage import KeyValueBackend, SQLiteBackend, TableStore
from fintrack.sync import SyncManager, SyncSession


logger = structlog.get_logger(__name__)


@dataclass
class AppComponents:
    """Everything create_app_components wires together."""

    backend: KeyValueBackend
    store: TableStore
    converter: CurrencyConverter
    repository: TransactionRepository
    audit_logger: AuditLogger
    remote: Optional[RemoteMirrorInterface] = None
    sync_manager: Optional[SyncManager] = None


def create_app_components(
    backend: Optional[KeyValueBackend] = None,
    remote: Optional[RemoteMirrorInterface] = None,
    rate_provider: Optional[RateProviderInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    use_remote: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        backend: Local key/value backend (SQLite file from settings by default)
        remote: Remote mirror (Google Drive from settings by default)
        rate_provider: Quote source (public HTTP APIs by default)
        audit_storage: Where audit events are kept (bounded in-memory log by default)
        use_remote: Set to False to run local-only

    Returns:
        AppComponents
    """
    if audit_storage is None:
        audit_storage = InMemoryAuditStorage(get_settings().app.audit_max_events)
    audit_logger = AuditLogger(audit_storage)
    backend = backend or SQLiteBackend()
    store = TableStore(backend, audit_logger=audit_logger)
    converter = CurrencyConverter(rate_provider, audit_logger=audit_logger)
    repository = TransactionRepository(store, converter, audit_logger=audit_logger)

    if remote is None and use_remote:
        try:
            remote = GoogleDriveMirror()
        except Exception as e:
            # Remote not configured - continue local-only
            logger.warning("remote_mirror_not_configured", error=str(e))
            remote = None
    if not use_remote:
        remote = None

    sync_manager = None
    if remote is not None:
        mirror = remote
        sync_manager = SyncManager(
            lambda: SyncSession(store, mirror, audit_logger=audit_logger),
            audit_logger=audit_logger,
        )

    return AppComponents(
        backend=backend,
        store=store,
        converter=converter,
        repository=repository,
        audit_logger=audit_logger,
        remote=remote,
        sync_manager=sync_manager,
    )


class FinanceTracker:
    """
    Facade over the components for one logged-in user at a time.

    Usage:
        tracker = FinanceTracker(create_app_components())
        await tracker.login("user@example.com")
        await tracker.add_transaction({"type": "expense", ...})
        result = await tracker.analytics()
    """

    def __init__(self, components: AppComponents):
        self._components = components
        self._identity: Optional[str] = None

    @property
    def components(self) -> AppComponents:
        return self._components

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    def _require_identity(self) -> str:
        if self._identity is None:
            raise RuntimeError("No user is logged in")
        return self._identity

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    async def login(self, identity: str, poll: bool = True) -> None:
        """
        Make `identity` the active user.

        Opens the local store if needed, creates or migrates the user's
        table, and starts syncing when a remote mirror is configured.
        """
        identity = (identity or "").strip()
        if not identity:
            raise ValueError("A user identity is required")

        backend = self._components.backend
        if not backend.is_open:
            await backend.open()

        await self._components.store.get(identity, TRANSACTION_HEADERS)
        self._identity = identity
        if self._components.sync_manager:
            await self._components.sync_manager.activate(identity, poll=poll)
        logger.info("user_logged_in", identity=identity)

    async def logout(self) -> None:
        if self._components.sync_manager:
            await self._components.sync_manager.deactivate()
        if self._identity is not None:
            logger.info("user_logged_out", identity=self._identity)
        self._identity = None

    async def close(self) -> None:
        """Log out and release the local store."""
        await self.logout()
        await self._components.backend.close()

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def add_transaction(self, draft: Union[TransactionDraft, dict]) -> Transaction:
        if isinstance(draft, dict):
            draft = TransactionDraft.model_validate(draft)
        return await self._components.repository.add(self._require_identity(), draft)

    async def update_transaction(
        self,
        transaction_id: str,
        changes: Union[TransactionUpdate, dict],
    ) -> Optional[Transaction]:
        return await self._components.repository.update(
            self._require_identity(),
            transaction_id,
            changes,
        )

    async def delete_transaction(self, transaction_id: str) -> bool:
        return await self._components.repository.delete(self._require_identity(), transaction_id)

    async def mark_completed(self, transaction_id: str) -> Optional[Transaction]:
        """Settle a planned transaction; it stops being planned."""
        return await self.update_transaction(
            transaction_id,
            TransactionUpdate(status=TransactionStatus.COMPLETED),
        )

    async def mark_rejected(self, transaction_id: str) -> Optional[Transaction]:
        """Drop a planned transaction; it is kept but never counted."""
        return await self.update_transaction(
            transaction_id,
            TransactionUpdate(status=TransactionStatus.REJECTED),
        )

    async def list_transactions(
        self,
        criteria: Optional[Union[TransactionFilter, dict]] = None,
    ) -> list[Transaction]:
        transactions = await self._components.repository.list(self._require_identity())
        return filter_transactions(transactions, criteria)

    async def upcoming(self, within_days: Optional[int] = None) -> list[Transaction]:
        """Pending planned transactions in the look-ahead window."""
        return await self._components.repository.list_planned(
            self._require_identity(),
            within_days,
        )

    async def categories(self, type: Optional[TransactionType] = None) -> list[str]:
        return await self._components.repository.get_categories(self._require_identity(), type)

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    async def default_currency(self) -> str:
        return await self._components.store.get_default_currency(self._require_identity())

    async def set_default_currency(self, currency: str) -> bool:
        return await self._components.store.set_default_currency(
            self._require_identity(),
            currency,
        )

    async def analytics(self, params: Optional[AnalyticsParams] = None) -> AnalyticsResult:
        """Dashboard numbers, in the user's default currency unless given."""
        if params is None:
            params = AnalyticsParams(default_currency=await self.default_currency())
        transactions = await self.list_transactions()
        return await recompute(transactions, params, self._components.converter)

    async def alerts(self) -> list[Alert]:
        transactions = await self.list_transactions()
        return await get_alerts(
            transactions,
            self._components.converter,
            default_currency=await self.default_currency(),
        )

    async def portfolio(self) -> list[PortfolioPosition]:
        transactions = await self.list_transactions()
        return await calculate_portfolio(transactions, self._components.converter)

    # -------------------------------------------------------------------------
    # Data
    # -------------------------------------------------------------------------

    def sync_state(self) -> SyncState:
        """Snapshot of the remote mirror status, for display."""
        if self._components.sync_manager is None:
            return SyncState()
        return self._components.sync_manager.state

    async def sync_now(self) -> bool:
        """Push immediately instead of waiting for change detection."""
        manager = self._components.sync_manager
        if manager is None or manager.session is None:
            return False
        return await manager.session.push()

    async def export_csv(self) -> str:
        return await self._components.store.export_text(self._require_identity())

    async def import_csv(self, text: str) -> int:
        """
        Replace the user's table with CSV text.

        Returns:
            Number of transactions after the import
        """
        identity = self._require_identity()
        await self._components.store.import_text(identity, text)
        transactions = await self._components.repository.list(identity)
        return len(transactions)
