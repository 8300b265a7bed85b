"""
Tabular Record Store

Per-user tables on top of a KeyValueBackend.

Each identity owns three keys:
- tables/<identity>        the Table, as JSON
- remote_files/<identity>  reference to the remote mirror file, as JSON
- preferences/<identity>   user preferences (default currency), as JSON

DESIGN DECISION: get() is also the migration point. A table that lacks
headers the caller expects gets them appended and is written back; rows
are never rewritten, so older data stays readable by newer code.
"""

import json
from typing import Iterable, Optional

from pydantic import ValidationError

import structlog

from fintrack.audit import AuditLogger
from fintrack.config import AppSettings, StoreSettings, get_settings
from fintrack.constants import CURRENCY_CODES
from fintrack.models.audit import AuditEventBuilder
from fintrack.models.sync import RemoteFileInfo
from fintrack.models.table import Record, Table, new_table
from fintrack.services.storage.codec import deserialize, serialize
from fintrack.services.storage.interface import (
    PREFERENCES_NAMESPACE,
    REMOTE_FILES_NAMESPACE,
    TABLES_NAMESPACE,
    KeyValueBackend,
    StorageError,
)


logger = structlog.get_logger(__name__)


class TableStore:
    """
    Lazily-created, self-migrating tables keyed by user identity.

    All methods raise StoreNotReadyError (from the backend) if the
    backend has not been opened.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[StoreSettings] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._backend = backend
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().store
        self._app_settings = app_settings or get_settings().app

    @property
    def backend(self) -> KeyValueBackend:
        return self._backend

    @staticmethod
    def _key(identity: str) -> str:
        if not identity or not identity.strip():
            raise ValueError("A user identity is required")
        return identity.strip()

    async def _load(self, identity: str) -> Optional[Table]:
        raw = await self._backend.get(TABLES_NAMESPACE, self._key(identity))
        if raw is None:
            return None
        try:
            return Table.model_validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"Stored table for {identity} is corrupt: {e}") from e

    async def _audit(self, event) -> None:
        if self._audit_logger:
            await self._audit_logger.log(event)

    # -------------------------------------------------------------------------
    # Tables
    # -------------------------------------------------------------------------

    async def get(self, identity: str, default_headers: Iterable[str] = ()) -> Table:
        """
        Return the user's table, creating or migrating it as needed.

        Args:
            identity: Owning user identity
            default_headers: Headers the caller needs; missing ones are
                appended (and the table persisted) without touching rows

        Returns:
            The table
        """
        default_headers = list(default_headers)
        table = await self._load(identity)

        if table is None:
            table = new_table(
                identity,
                default_headers,
                version=self._settings.app_version,
                user_agent=self._settings.user_agent,
            )
            await self.save(identity, table)
            logger.info("table_created", identity=identity, headers=len(table.headers))
            await self._audit(AuditEventBuilder.table_created(identity, table.version))
            return table

        added = table.ensure_headers(default_headers)
        if added:
            await self.save(identity, table)
            logger.info("table_migrated", identity=identity, added_headers=added)
            await self._audit(AuditEventBuilder.table_migrated(identity, added))

        return table

    async def save(self, identity: str, table: Table) -> None:
        """Replace the user's table wholesale."""
        await self._backend.put(
            TABLES_NAMESPACE,
            self._key(identity),
            table.model_dump_json(),
        )

    async def exists(self, identity: str) -> bool:
        """Whether a table has been created for the user."""
        return await self._load(identity) is not None

    async def add_row(self, identity: str, row: Record) -> None:
        """Append one row and persist."""
        table = await self.get(identity)
        table.ensure_headers(row.keys())
        table.rows.append(row)
        await self.save(identity, table)

    # -------------------------------------------------------------------------
    # Import / export
    # -------------------------------------------------------------------------

    async def export_text(self, identity: str) -> str:
        """The user's table as delimited text."""
        return serialize(await self.get(identity))

    async def import_text(self, identity: str, text: str, source: str = "file") -> Table:
        """
        Replace the user's table with one parsed from delimited text.

        Returns:
            The imported table
        """
        table = deserialize(text)
        await self.save(identity, table)
        logger.info("table_imported", identity=identity, rows=len(table.rows), source=source)
        await self._audit(AuditEventBuilder.table_imported(identity, len(table.rows), source))
        return table

    # -------------------------------------------------------------------------
    # Remote file reference
    # -------------------------------------------------------------------------

    async def get_remote_reference(self, identity: str) -> Optional[RemoteFileInfo]:
        """Reference to the user's remote mirror file, if one was recorded."""
        raw = await self._backend.get(REMOTE_FILES_NAMESPACE, self._key(identity))
        if raw is None:
            return None
        try:
            return RemoteFileInfo.model_validate_json(raw)
        except ValidationError:
            logger.warning("remote_reference_corrupt", identity=identity)
            return None

    async def save_remote_reference(self, identity: str, info: RemoteFileInfo) -> None:
        await self._backend.put(
            REMOTE_FILES_NAMESPACE,
            self._key(identity),
            info.model_dump_json(),
        )

    async def clear_remote_reference(self, identity: str) -> bool:
        return await self._backend.delete(REMOTE_FILES_NAMESPACE, self._key(identity))

    # -------------------------------------------------------------------------
    # Preferences
    # -------------------------------------------------------------------------

    async def _preferences(self, identity: str) -> dict:
        raw = await self._backend.get(PREFERENCES_NAMESPACE, self._key(identity))
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}

    async def get_default_currency(self, identity: str) -> str:
        """User's default currency, or the configured default."""
        stored = (await self._preferences(identity)).get("default_currency")
        if isinstance(stored, str) and stored.upper() in CURRENCY_CODES:
            return stored.upper()
        return self._app_settings.default_currency

    async def set_default_currency(self, identity: str, currency: str) -> bool:
        """
        Store the user's default currency.

        Returns:
            False (and stores nothing) if the currency is not supported
        """
        code = (currency or "").strip().upper()
        if code not in CURRENCY_CODES:
            logger.warning("unsupported_default_currency", identity=identity, currency=currency)
            return False
        preferences = await self._preferences(identity)
        preferences["default_currency"] = code
        await self._backend.put(
            PREFERENCES_NAMESPACE,
            self._key(identity),
            json.dumps(preferences),
        )
        return True
