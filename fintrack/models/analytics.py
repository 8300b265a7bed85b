"""
Analytics Models

Result types produced by fintrack.analytics. All amounts are Decimals in
the requested display currency, except the breakdown entries, which keep
the original currency and amount for display.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from fintrack.models.transaction import TransactionType


class CurrencyAmount(BaseModel):
    """An unconverted sum in one currency."""

    currency: str
    amount: Decimal = Decimal("0")


class MonthlyBucket(BaseModel):
    """
    Income and expense for one calendar month.

    `cumulative` is the running sum of `balance` over all buckets up to
    and including this one, in chronological order.
    """

    month: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="Month key, YYYY-MM"
    )
    label: str = Field(
        ...,
        description="Display label, e.g. 'Oct 2026'"
    )
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    cumulative: Decimal = Decimal("0")
    income_breakdown: list[CurrencyAmount] = Field(default_factory=list)
    expense_breakdown: list[CurrencyAmount] = Field(default_factory=list)


class CategoryBucket(BaseModel):
    """Converted total for one (type, category) pair."""

    category: str
    type: TransactionType
    amount: Decimal = Decimal("0")
    breakdown: list[CurrencyAmount] = Field(default_factory=list)


class Totals(BaseModel):
    """Converted income/expense totals."""

    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")


class Period(BaseModel):
    """Inclusive date range."""

    start: dt.date
    end: dt.date


class PortfolioPosition(BaseModel):
    """Holdings of one investment or crypto asset."""

    asset: str
    amount: Decimal = Decimal("0")
    cost_usd: Decimal = Decimal("0")
    current_price_usd: Decimal = Decimal("0")
    current_value_usd: Decimal = Decimal("0")
    profit_loss_usd: Decimal = Decimal("0")
    profit_loss_percent: Decimal = Decimal("0")


class AlertLevel(str, Enum):
    """How loudly an alert should be shown."""
    WARNING = "warning"
    DANGER = "danger"


class Alert(BaseModel):
    """A spending alert for the current month."""

    level: AlertLevel
    code: str = Field(
        ...,
        description="Stable identifier of the check that fired"
    )
    message: str


class AnalyticsParams(BaseModel):
    """Parameters for a full analytics recomputation."""

    month_span: int = Field(
        default=12,
        ge=1,
        le=120,
        description="Number of months in the window (each side when forward_range)"
    )
    include_planned: bool = False
    forward_range: bool = False
    category_type: Optional[TransactionType] = None
    default_currency: str = "USD"
    period: Optional[Period] = None


class AnalyticsResult(BaseModel):
    """Everything the dashboard shows, computed in one pass."""

    currency: str
    monthly: list[MonthlyBucket] = Field(default_factory=list)
    categories: list[CategoryBucket] = Field(default_factory=list)
    totals: Totals = Field(default_factory=Totals)
    expense_ratio: Decimal = Decimal("0")
    alerts: list[Alert] = Field(default_factory=list)
