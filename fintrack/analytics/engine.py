"""
Analytics Aggregation Engine

Time- and category-bucketed sums over transactions, converted into one
display currency.

DESIGN DECISION: Every function here is a plain async function of its
inputs. The converter (and through it the rate cache) is passed in
explicitly and the reference date is a parameter, so results are
reproducible and there is no hidden recomputation.

Planned-inclusion rule, shared by every aggregate:
- non-planned transactions are always counted
- planned transactions are counted only when asked for, and only while
  still pending
- rejected transactions are never counted
"""

import calendar
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional

from fintrack.constants import CRYPTO_CODES, SUPPORTED_STOCKS
from fintrack.models.analytics import (
    CategoryBucket,
    CurrencyAmount,
    MonthlyBucket,
    Period,
    PortfolioPosition,
    Totals,
)
from fintrack.models.transaction import Transaction, TransactionStatus, TransactionType
from fintrack.services.exchange import CurrencyConverter


ZERO = Decimal("0")
HUNDRED = Decimal("100")


# =============================================================================
# HELPERS
# =============================================================================

def include_transaction(tx: Transaction, include_planned: bool) -> bool:
    """Whether an aggregate counts `tx`."""
    if tx.status == TransactionStatus.REJECTED:
        return False
    if not tx.is_planned:
        return True
    return include_planned and tx.status == TransactionStatus.PENDING


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_window(
    month_span: int,
    forward_range: bool = False,
    now: Optional[date] = None,
) -> list[tuple[int, int]]:
    """
    (year, month) pairs of the window, oldest first.

    forward_range: [now - span, now + span]; otherwise [now - (span - 1), now].
    """
    now = now or date.today()
    if forward_range:
        first, last = -month_span, month_span
    else:
        first, last = -(month_span - 1), 0
    return [_shift_month(now.year, now.month, delta) for delta in range(first, last + 1)]


def month_bounds(year: int, month: int) -> Period:
    """First and last day of a calendar month."""
    last_day = calendar.monthrange(year, month)[1]
    return Period(start=date(year, month, 1), end=date(year, month, last_day))


def _breakdown(sums: dict[str, Decimal]) -> list[CurrencyAmount]:
    return [CurrencyAmount(currency=code, amount=sums[code]) for code in sorted(sums)]


async def _converted(
    tx: Transaction,
    converter: CurrencyConverter,
    default_currency: str,
) -> Decimal:
    return await converter.convert(tx.amount, tx.currency_or(default_currency), default_currency)


# =============================================================================
# AGGREGATES
# =============================================================================

async def group_by_month(
    transactions: list[Transaction],
    converter: CurrencyConverter,
    month_span: int = 12,
    include_planned: bool = False,
    forward_range: bool = False,
    default_currency: str = "USD",
    now: Optional[date] = None,
) -> list[MonthlyBucket]:
    """
    Income and expense per calendar month across the window.

    Every month of the window is present, zero-filled when empty.
    `cumulative` is a running sum of `balance`, oldest first.
    """
    default_currency = default_currency.upper()
    window = month_window(month_span, forward_range, now)
    keys = [f"{year:04d}-{month:02d}" for year, month in window]

    income: dict[str, Decimal] = defaultdict(Decimal)
    expense: dict[str, Decimal] = defaultdict(Decimal)
    income_sums: dict[str, dict[str, Decimal]] = defaultdict(lambda: defaultdict(Decimal))
    expense_sums: dict[str, dict[str, Decimal]] = defaultdict(lambda: defaultdict(Decimal))
    in_window = set(keys)

    for tx in transactions:
        if tx.type not in (TransactionType.INCOME, TransactionType.EXPENSE):
            continue
        if tx.date is None or not include_transaction(tx, include_planned):
            continue
        key = f"{tx.date.year:04d}-{tx.date.month:02d}"
        if key not in in_window:
            continue

        value = await _converted(tx, converter, default_currency)
        currency = tx.currency_or(default_currency)
        if tx.type == TransactionType.INCOME:
            income[key] += value
            income_sums[key][currency] += tx.amount
        else:
            expense[key] += value
            expense_sums[key][currency] += tx.amount

    buckets = []
    cumulative = ZERO
    for (year, month), key in zip(window, keys):
        balance = income[key] - expense[key]
        cumulative += balance
        buckets.append(MonthlyBucket(
            month=key,
            label=f"{calendar.month_abbr[month]} {year}",
            income=income[key],
            expense=expense[key],
            balance=balance,
            cumulative=cumulative,
            income_breakdown=_breakdown(income_sums[key]),
            expense_breakdown=_breakdown(expense_sums[key]),
        ))
    return buckets


async def group_by_category(
    transactions: list[Transaction],
    converter: CurrencyConverter,
    type: Optional[TransactionType] = None,
    include_planned: bool = False,
    default_currency: str = "USD",
) -> list[CategoryBucket]:
    """Converted totals per (type, category), largest first."""
    default_currency = default_currency.upper()
    totals: dict[tuple[TransactionType, str], Decimal] = defaultdict(Decimal)
    sums: dict[tuple[TransactionType, str], dict[str, Decimal]] = defaultdict(
        lambda: defaultdict(Decimal)
    )

    for tx in transactions:
        if type and tx.type != type:
            continue
        if not include_transaction(tx, include_planned):
            continue
        key = (tx.type, tx.category)
        totals[key] += await _converted(tx, converter, default_currency)
        sums[key][tx.currency_or(default_currency)] += tx.amount

    buckets = [
        CategoryBucket(
            category=category,
            type=tx_type,
            amount=amount,
            breakdown=_breakdown(sums[(tx_type, category)]),
        )
        for (tx_type, category), amount in totals.items()
    ]
    buckets.sort(key=lambda bucket: bucket.amount, reverse=True)
    return buckets


async def calculate_totals(
    transactions: list[Transaction],
    converter: CurrencyConverter,
    include_planned: bool = False,
    default_currency: str = "USD",
) -> Totals:
    """Converted income and expense, with the same inclusion rule as group_by_month."""
    default_currency = default_currency.upper()
    total_income = ZERO
    total_expense = ZERO

    for tx in transactions:
        if not include_transaction(tx, include_planned):
            continue
        if tx.type == TransactionType.INCOME:
            total_income += await _converted(tx, converter, default_currency)
        elif tx.type == TransactionType.EXPENSE:
            total_expense += await _converted(tx, converter, default_currency)

    return Totals(
        total_income=total_income,
        total_expense=total_expense,
        balance=total_income - total_expense,
    )


def get_period_data(
    transactions: list[Transaction],
    start: date,
    end: date,
) -> list[Transaction]:
    """Non-planned transactions dated within [start, end]."""
    return [
        tx for tx in transactions
        if not tx.is_planned and tx.date is not None and start <= tx.date <= end
    ]


async def calculate_expense_ratio(
    transactions: list[Transaction],
    converter: CurrencyConverter,
    period: Optional[Period] = None,
    default_currency: str = "USD",
) -> Decimal:
    """100 * expense / income; 0 when there is no income."""
    if period:
        transactions = get_period_data(transactions, period.start, period.end)
    totals = await calculate_totals(transactions, converter, default_currency=default_currency)
    if totals.total_income == 0:
        return ZERO
    return totals.total_expense / totals.total_income * HUNDRED


async def calculate_portfolio(
    transactions: list[Transaction],
    converter: CurrencyConverter,
) -> list[PortfolioPosition]:
    """
    Holdings per asset from investment and crypto transactions, in USD.

    Cost basis is the stored USD snapshot, else the converted amount.
    Crypto assets are valued at the current spot price. Stocks and
    anything else are valued at cost while no quote is available.
    """
    amounts: dict[str, Decimal] = defaultdict(Decimal)
    costs: dict[str, Decimal] = defaultdict(Decimal)

    for tx in transactions:
        if tx.type not in (TransactionType.INVESTMENT, TransactionType.CRYPTO):
            continue
        if not include_transaction(tx, include_planned=False):
            continue
        asset = (tx.category or tx.to_asset or "UNKNOWN").upper()
        if tx.amount_usd is not None:
            cost = tx.amount_usd
        elif tx.currency:
            cost = await converter.convert_to_usd(tx.amount, tx.currency)
        else:
            cost = tx.amount
        amounts[asset] += tx.amount
        costs[asset] += cost

    positions = []
    for asset, amount in amounts.items():
        price = ZERO
        if asset in CRYPTO_CODES:
            price = await converter.get_crypto_rate(asset)
        elif asset in SUPPORTED_STOCKS:
            price = await converter.get_stock_rate(asset)

        cost = costs[asset]
        value = amount * price if price > 0 else cost
        profit = value - cost
        percent = profit / cost * HUNDRED if cost > 0 else ZERO
        positions.append(PortfolioPosition(
            asset=asset,
            amount=amount,
            cost_usd=cost,
            current_price_usd=price,
            current_value_usd=value,
            profit_loss_usd=profit,
            profit_loss_percent=percent,
        ))

    positions.sort(key=lambda position: position.current_value_usd, reverse=True)
    return positions

