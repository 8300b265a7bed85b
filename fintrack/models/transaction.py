"""
Transaction Models

Transactions are stored as loose table rows (see fintrack.models.table)
and handled everywhere else as typed models. The two conversion functions
at the bottom of this module are the only place the mapping lives:

- record_to_transaction: total parse, every field has a defined default
- transaction_to_record: inverse, used for every write

DESIGN DECISION: Parsing never raises. A row written by an older client,
or hand-edited in a spreadsheet, still yields a Transaction; rows without
an id are dropped by the repository, not here.
"""

import datetime as dt
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fintrack.models.table import Cell, Record


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Kind of money movement."""
    INCOME = "income"
    EXPENSE = "expense"
    INVESTMENT = "investment"
    CRYPTO = "crypto"


class TransactionStatus(str, Enum):
    """
    Settlement status.

    Planned transactions start PENDING and are moved to COMPLETED or
    REJECTED explicitly; everything else is COMPLETED from creation.
    """
    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"


# Column order of the transactions table
TRANSACTION_HEADERS = [
    "id",
    "type",
    "amount",
    "date",
    "category",
    "description",
    "is_planned",
    "status",
    "from_asset",
    "to_asset",
    "exchange_rate",
    "currency",
    "amount_usd",
    "created_at",
]

EXCHANGE_FIELDS = ("from_asset", "to_asset", "exchange_rate")


def status_for(is_planned: bool) -> TransactionStatus:
    """Initial status implied by the planned flag."""
    return TransactionStatus.PENDING if is_planned else TransactionStatus.COMPLETED


# =============================================================================
# CORE MODELS
# =============================================================================

class Transaction(BaseModel):
    """
    A stored transaction.

    `id` and `created_at` are assigned by the repository and never change.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: str = Field(
        ...,
        description="Opaque, time-ordered unique token"
    )
    created_at: str = Field(
        default="",
        description="ISO timestamp of creation"
    )

    # Classification and value
    type: TransactionType = TransactionType.EXPENSE
    amount: Decimal = Field(
        default=Decimal("0"),
        description="Amount in `currency`"
    )
    date: Optional[dt.date] = None
    category: str = ""
    description: str = ""
    currency: Optional[str] = Field(
        default=None,
        description="Currency code; None means the user's default currency"
    )
    amount_usd: Optional[Decimal] = Field(
        default=None,
        description="USD snapshot captured at write time"
    )

    # Scheduling
    is_planned: bool = False
    status: TransactionStatus = TransactionStatus.COMPLETED

    # Exchange sub-fields (investment only)
    from_asset: Optional[str] = None
    to_asset: Optional[str] = None
    exchange_rate: Optional[Decimal] = None

    @property
    def is_exchange(self) -> bool:
        """True when this records an asset exchange."""
        return bool(self.from_asset and self.to_asset)

    def currency_or(self, default_currency: str) -> str:
        """Currency of the amount, falling back to the user's default."""
        return (self.currency or default_currency).upper()


class TransactionDraft(BaseModel):
    """
    Input to TransactionRepository.add.

    The repository assigns id, created_at and status.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: TransactionType
    amount: Decimal
    date: dt.date
    category: str = ""
    description: str = ""
    is_planned: bool = False
    currency: Optional[str] = None
    amount_usd: Optional[Decimal] = None
    from_asset: Optional[str] = None
    to_asset: Optional[str] = None
    exchange_rate: Optional[Decimal] = None

    @field_validator('currency', 'from_asset', 'to_asset')
    @classmethod
    def upper_codes(cls, v: Optional[str]) -> Optional[str]:
        """Normalize currency and asset codes; blank becomes None."""
        if v is None:
            return None
        v = v.strip().upper()
        return v or None


class TransactionUpdate(BaseModel):
    """
    Partial update for TransactionRepository.update.

    Only fields explicitly set are merged; id and created_at are not
    part of this model and so can never be changed.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: Optional[TransactionType] = None
    amount: Optional[Decimal] = None
    date: Optional[dt.date] = None
    category: Optional[str] = None
    description: Optional[str] = None
    is_planned: Optional[bool] = None
    status: Optional[TransactionStatus] = None
    currency: Optional[str] = None
    amount_usd: Optional[Decimal] = None
    from_asset: Optional[str] = None
    to_asset: Optional[str] = None
    exchange_rate: Optional[Decimal] = None

    @field_validator('currency', 'from_asset', 'to_asset')
    @classmethod
    def upper_codes(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().upper()
        return v or None


class TransactionFilter(BaseModel):
    """
    Criteria for filter_transactions.

    All criteria are optional and AND-combined.
    """

    type: Optional[TransactionType] = None
    category: Optional[str] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    is_planned: Optional[bool] = None
    search: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring of description or category"
    )


# =============================================================================
# RECORD <-> TRANSACTION
# =============================================================================

def _text(value: Cell) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(value: Cell) -> Optional[str]:
    return _text(value) or None


def _decimal(value: Cell) -> Optional[Decimal]:
    text = _text(value)
    if not text:
        return None
    try:
        result = Decimal(text)
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def _flag(value: Cell) -> bool:
    return value is True or _text(value).lower() == "true"


def _date(value: Cell) -> Optional[dt.date]:
    """Parse 'YYYY-MM-DD' or a full ISO timestamp; None if neither."""
    text = _text(value)
    if not text:
        return None
    try:
        return dt.date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return dt.datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _enum(enum_cls, value: Cell, default):
    try:
        return enum_cls(_text(value).lower())
    except ValueError:
        return default


def _format_decimal(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    # normalize() would turn 100 into 1E+2
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def record_to_transaction(record: Record) -> Transaction:
    """
    Parse a table row into a Transaction.

    Total function: every field has a default, nothing raises.
    """
    is_planned = _flag(record.get("is_planned"))
    status = _enum(
        TransactionStatus,
        record.get("status"),
        status_for(is_planned),
    )
    amount = _decimal(record.get("amount"))

    return Transaction(
        id=_text(record.get("id")),
        created_at=_text(record.get("created_at")),
        type=_enum(TransactionType, record.get("type"), TransactionType.EXPENSE),
        amount=amount if amount is not None else Decimal("0"),
        date=_date(record.get("date")),
        category=_text(record.get("category")),
        description=_text(record.get("description")),
        currency=(_optional_text(record.get("currency")) or "").upper() or None,
        amount_usd=_decimal(record.get("amount_usd")),
        is_planned=is_planned,
        status=status,
        from_asset=_optional_text(record.get("from_asset")),
        to_asset=_optional_text(record.get("to_asset")),
        exchange_rate=_decimal(record.get("exchange_rate")),
    )


def transaction_to_record(tx: Transaction) -> Record:
    """Inverse of record_to_transaction."""
    return {
        "id": tx.id,
        "type": tx.type.value,
        "amount": _format_decimal(tx.amount),
        "date": tx.date.isoformat() if tx.date else None,
        "category": tx.category,
        "description": tx.description,
        "is_planned": "true" if tx.is_planned else "false",
        "status": tx.status.value,
        "from_asset": tx.from_asset,
        "to_asset": tx.to_asset,
        "exchange_rate": _format_decimal(tx.exchange_rate),
        "currency": tx.currency,
        "amount_usd": _format_decimal(tx.amount_usd),
        "created_at": tx.created_at,
    }
