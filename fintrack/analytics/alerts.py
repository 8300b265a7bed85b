"""
Spending Alerts

Checks over the current and previous calendar month, actual (non-planned)
transactions only:

1. DANGER   expenses reached income (income > 0)
2. WARNING  otherwise, expenses above the warning ratio of income
3. WARNING  expense ratio grew by more than the configured number of
            points since last month (both months had income)

Checks 1/2 and 3 are independent; both kinds may fire together.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from fintrack.analytics.engine import (
    calculate_totals,
    get_period_data,
    month_bounds,
)
from fintrack.config import AppSettings, get_settings
from fintrack.models.analytics import Alert, AlertLevel
from fintrack.models.transaction import Transaction
from fintrack.services.exchange import CurrencyConverter, format_amount


async def get_alerts(
    transactions: list[Transaction],
    converter: CurrencyConverter,
    default_currency: str = "USD",
    now: Optional[date] = None,
    settings: Optional[AppSettings] = None,
) -> list[Alert]:
    """Alerts for the month containing `now` (today by default)."""
    settings = settings or get_settings().app
    now = now or date.today()
    currency = default_currency.upper()

    current = month_bounds(now.year, now.month)
    previous_year, previous_month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
    previous = month_bounds(previous_year, previous_month)

    current_totals = await calculate_totals(
        get_period_data(transactions, current.start, current.end),
        converter,
        default_currency=currency,
    )
    previous_totals = await calculate_totals(
        get_period_data(transactions, previous.start, previous.end),
        converter,
        default_currency=currency,
    )

    alerts: list[Alert] = []
    income = current_totals.total_income
    expense = current_totals.total_expense
    current_ratio = expense / income * 100 if income > 0 else Decimal("0")

    if income > 0 and expense >= income:
        alerts.append(Alert(
            level=AlertLevel.DANGER,
            code="expenses_exceed_income",
            message=(
                f"Expenses ({format_amount(expense, currency)}) have reached or exceeded "
                f"income ({format_amount(income, currency)}) this month."
            ),
        ))
    elif income > 0 and current_ratio > Decimal(str(settings.expense_warning_ratio)):
        alerts.append(Alert(
            level=AlertLevel.WARNING,
            code="high_expense_ratio",
            message=f"Expenses are {current_ratio:.0f}% of income this month.",
        ))

    previous_income = previous_totals.total_income
    if previous_income > 0 and income > 0:
        previous_ratio = previous_totals.total_expense / previous_income * 100
        growth = current_ratio - previous_ratio
        if growth > Decimal(str(settings.ratio_growth_warning_points)):
            alerts.append(Alert(
                level=AlertLevel.WARNING,
                code="expense_ratio_growth",
                message=f"Expense ratio grew by {growth:.0f} points compared to last month.",
            ))

    return alerts
