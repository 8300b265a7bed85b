"""
Transaction Repository

Typed CRUD over the user's table.

DESIGN DECISION: The repository owns every coercion the domain demands,
so no caller can write a row that breaks them:
1. Investments are never planned
2. Exchange fields exist only on investments
3. Status starts PENDING iff planned, and changes only when asked to
4. id and created_at are assigned here and never change

Not-found is a value (None / False), not an exception. Invalid input
raises TransactionValidationError before the store is read.
"""

import secrets
import string
import time
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Optional, Union

import structlog

from fintrack.audit import AuditLogger
from fintrack.config import AppSettings, get_settings
from fintrack.models.audit import AuditEventBuilder
from fintrack.models.table import METADATA_FIELD, METADATA_MARKER, Record, Table
from fintrack.models.transaction import (
    EXCHANGE_FIELDS,
    TRANSACTION_HEADERS,
    Transaction,
    TransactionDraft,
    TransactionFilter,
    TransactionStatus,
    TransactionType,
    TransactionUpdate,
    record_to_transaction,
    status_for,
    transaction_to_record,
)
from fintrack.models.validation import ValidationResult
from fintrack.services.exchange import CurrencyConverter
from fintrack.services.storage import TableStore
from fintrack.validation import TransactionValidationError, TransactionValidator


logger = structlog.get_logger(__name__)

ID_ALPHABET = string.digits + string.ascii_lowercase
USD_PRECISION = Decimal("0.01")


def new_transaction_id() -> str:
    """tx_<epoch milliseconds>_<9 random base36 chars>."""
    suffix = "".join(secrets.choice(ID_ALPHABET) for _ in range(9))
    return f"tx_{int(time.time() * 1000)}_{suffix}"


def _index_of(table: Table, transaction_id: str) -> Optional[int]:
    for index, row in enumerate(table.rows):
        if row.get(METADATA_FIELD) == METADATA_MARKER:
            continue
        if str(row.get("id") or "") == transaction_id:
            return index
    return None


def filter_transactions(
    transactions: list[Transaction],
    criteria: Optional[Union[TransactionFilter, dict]] = None,
) -> list[Transaction]:
    """
    Apply optional, AND-combined criteria.

    Search matches description or category, case-insensitively. The date
    range is inclusive; undated transactions fail any date bound.
    """
    if criteria is None:
        return list(transactions)
    if isinstance(criteria, dict):
        criteria = TransactionFilter.model_validate(criteria)

    search = criteria.search.lower() if criteria.search else None
    result = []
    for tx in transactions:
        if criteria.type and tx.type != criteria.type:
            continue
        if criteria.category and tx.category != criteria.category:
            continue
        if criteria.is_planned is not None and tx.is_planned != criteria.is_planned:
            continue
        if search and search not in tx.description.lower() and search not in tx.category.lower():
            continue
        if criteria.start_date or criteria.end_date:
            if tx.date is None:
                continue
            if criteria.start_date and tx.date < criteria.start_date:
                continue
            if criteria.end_date and tx.date > criteria.end_date:
                continue
        result.append(tx)
    return result


class TransactionRepository:
    """
    Transactions of one user, stored as rows of that user's table.

    Args:
        store: The table store
        converter: Used to capture the USD snapshot on write; optional
        validator: Defaults to a TransactionValidator
        audit_logger: Receives add/update/delete and rejection events
        clock: Returns the current UTC time; injectable for tests
    """

    def __init__(
        self,
        store: TableStore,
        converter: Optional[CurrencyConverter] = None,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._converter = converter
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger
        self._app_settings = app_settings or get_settings().app
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _audit(self, event) -> None:
        if self._audit_logger:
            await self._audit_logger.log(event)

    async def _reject(self, identity: str, result: ValidationResult) -> None:
        issues = [issue.model_dump() for issue in result.issues]
        logger.warning("transaction_rejected", identity=identity, errors=result.error_count)
        await self._audit(AuditEventBuilder.validation_failed(identity, issues))
        raise TransactionValidationError(result)

    async def _table(self, identity: str) -> Table:
        return await self._store.get(identity, TRANSACTION_HEADERS)

    async def _usd_snapshot(self, amount: Decimal, currency: Optional[str]) -> Optional[Decimal]:
        if not currency or self._converter is None:
            return None
        usd = await self._converter.convert_to_usd(amount, currency)
        return usd.quantize(USD_PRECISION)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def add(self, identity: str, draft: TransactionDraft) -> Transaction:
        """
        Append a new transaction.

        Raises:
            TransactionValidationError: If the draft has error-level issues
        """
        result = self._validator.validate(draft)
        if not result.is_valid:
            await self._reject(identity, result)

        is_investment = draft.type == TransactionType.INVESTMENT
        is_planned = draft.is_planned and not is_investment

        amount_usd = draft.amount_usd
        if amount_usd is None:
            amount_usd = await self._usd_snapshot(draft.amount, draft.currency)

        tx = Transaction(
            id=new_transaction_id(),
            created_at=self._clock().isoformat(),
            type=draft.type,
            amount=draft.amount,
            date=draft.date,
            category=draft.category,
            description=draft.description,
            currency=draft.currency,
            amount_usd=amount_usd,
            is_planned=is_planned,
            status=status_for(is_planned),
            from_asset=draft.from_asset if is_investment else None,
            to_asset=draft.to_asset if is_investment else None,
            exchange_rate=draft.exchange_rate if is_investment else None,
        )

        table = await self._table(identity)
        table.rows.append(transaction_to_record(tx))
        await self._store.save(identity, table)

        logger.info("transaction_added", identity=identity, transaction_id=tx.id, type=tx.type.value)
        await self._audit(
            AuditEventBuilder.transaction_added(identity, tx.id, tx.type.value, str(tx.amount))
        )
        return tx

    async def update(
        self,
        identity: str,
        transaction_id: str,
        changes: Union[TransactionUpdate, dict],
    ) -> Optional[Transaction]:
        """
        Merge `changes` onto a stored transaction.

        id and created_at are never changed. Setting status to completed
        or rejected without an explicit is_planned clears is_planned.

        Returns:
            The merged transaction, or None if no row has that id

        Raises:
            TransactionValidationError: If a changed field is invalid
        """
        if isinstance(changes, dict):
            changes = TransactionUpdate.model_validate(changes)

        result = self._validator.validate_update(changes)
        if not result.is_valid:
            await self._reject(identity, result)

        table = await self._table(identity)
        index = _index_of(table, transaction_id)
        if index is None:
            return None

        row = table.rows[index]
        current = record_to_transaction(row)
        data = changes.model_dump(exclude_unset=True)

        # Non-nullable fields: an explicit None means "leave as is"
        for field in ("type", "status", "is_planned", "amount"):
            if data.get(field, 0) is None:
                del data[field]
        for field in ("category", "description"):
            if field in data and data[field] is None:
                data[field] = ""

        if (
            data.get("status") in (TransactionStatus.COMPLETED, TransactionStatus.REJECTED)
            and "is_planned" not in data
        ):
            data["is_planned"] = False

        merged = current.model_copy(update=data)
        if merged.type == TransactionType.INVESTMENT and merged.is_planned:
            settled = {"is_planned": False}
            if merged.status == TransactionStatus.PENDING:
                settled["status"] = TransactionStatus.COMPLETED
            merged = merged.model_copy(update=settled)
        if merged.type != TransactionType.INVESTMENT:
            merged = merged.model_copy(update={field: None for field in EXCHANGE_FIELDS})

        value_changed = "amount" in data or "currency" in data
        if value_changed and "amount_usd" not in data and merged.currency:
            snapshot = await self._usd_snapshot(merged.amount, merged.currency)
            if snapshot is not None:
                merged = merged.model_copy(update={"amount_usd": snapshot})

        record: Record = {**row, **transaction_to_record(merged)}
        record["id"] = row.get("id")
        record["created_at"] = row.get("created_at")
        table.rows[index] = record
        await self._store.save(identity, table)

        logger.info("transaction_updated", identity=identity, transaction_id=transaction_id)
        await self._audit(
            AuditEventBuilder.transaction_updated(identity, transaction_id, sorted(data))
        )
        return record_to_transaction(record)

    async def delete(self, identity: str, transaction_id: str) -> bool:
        """
        Remove a transaction.

        Returns:
            False if no row has that id
        """
        table = await self._table(identity)
        index = _index_of(table, transaction_id)
        if index is None:
            return False

        del table.rows[index]
        await self._store.save(identity, table)

        logger.info("transaction_deleted", identity=identity, transaction_id=transaction_id)
        await self._audit(AuditEventBuilder.transaction_deleted(identity, transaction_id))
        return True

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get(self, identity: str, transaction_id: str) -> Optional[Transaction]:
        for tx in await self.list(identity):
            if tx.id == transaction_id:
                return tx
        return None

    async def list_planned(
        self,
        identity: str,
        within_days: Optional[int] = None,
        today: Optional[date] = None,
    ) -> list[Transaction]:
        """
        Pending transactions dated after today and at most `within_days` ahead,
        earliest first.
        """
        if within_days is None:
            within_days = self._app_settings.planned_window_days
        today = today or self._clock().date()
        horizon = today + timedelta(days=within_days)

        planned = [
            tx for tx in await self.list(identity)
            if tx.status == TransactionStatus.PENDING
            and tx.date is not None
            and today < tx.date <= horizon
        ]
        planned.sort(key=lambda tx: tx.date)
        return planned

    async def get_categories(
        self,
        identity: str,
        type: Optional[TransactionType] = None,
    ) -> list[str]:
        """Sorted distinct non-empty categories, optionally of one type."""
        categories = {
            tx.category for tx in await self.list(identity)
            if tx.category and (type is None or tx.type == type)
        }
        return sorted(categories)

    async def list(self, identity: str) -> list[Transaction]:
        """All transactions in store order; rows without an id are skipped."""
        table = await self._table(identity)
        transactions = [record_to_transaction(row) for row in table.data_rows()]
        return [tx for tx in transactions if tx.id]
