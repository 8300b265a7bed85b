"""Analytics package: aggregation, alerts and dashboard recomputation."""

from fintrack.analytics.alerts import get_alerts
from fintrack.analytics.dashboard import recompute
from fintrack.analytics.engine import (
    calculate_expense_ratio,
    calculate_portfolio,
    calculate_totals,
    get_period_data,
    group_by_category,
    group_by_month,
    include_transaction,
    month_bounds,
    month_window,
)

__all__ = [
    # Aggregates
    "calculate_expense_ratio",
    "calculate_portfolio",
    "calculate_totals",
    "get_period_data",
    "group_by_category",
    "group_by_month",
    "include_transaction",
    "month_bounds",
    "month_window",
    # Alerts
    "get_alerts",
    # Dashboard
    "recompute",
]
