"""
Dashboard Recomputation

recompute() bundles every aggregate the dashboard shows into one
AnalyticsResult. Callers invoke it whenever they need fresh numbers;
nothing recomputes implicitly.
"""

from datetime import date
from typing import Optional

import structlog

from fintrack.analytics.alerts import get_alerts
from fintrack.analytics.engine import (
    calculate_expense_ratio,
    calculate_totals,
    group_by_category,
    group_by_month,
)
from fintrack.config import AppSettings
from fintrack.models.analytics import AnalyticsParams, AnalyticsResult
from fintrack.models.transaction import Transaction
from fintrack.services.exchange import CurrencyConverter


logger = structlog.get_logger(__name__)


async def recompute(
    transactions: list[Transaction],
    params: AnalyticsParams,
    converter: CurrencyConverter,
    now: Optional[date] = None,
    settings: Optional[AppSettings] = None,
) -> AnalyticsResult:
    """Monthly buckets, categories, totals, expense ratio and alerts."""
    currency = params.default_currency.upper()

    monthly = await group_by_month(
        transactions,
        converter,
        month_span=params.month_span,
        include_planned=params.include_planned,
        forward_range=params.forward_range,
        default_currency=currency,
        now=now,
    )
    categories = await group_by_category(
        transactions,
        converter,
        type=params.category_type,
        include_planned=params.include_planned,
        default_currency=currency,
    )
    totals = await calculate_totals(
        transactions,
        converter,
        include_planned=params.include_planned,
        default_currency=currency,
    )
    ratio = await calculate_expense_ratio(
        transactions,
        converter,
        period=params.period,
        default_currency=currency,
    )
    alerts = await get_alerts(
        transactions,
        converter,
        default_currency=currency,
        now=now,
        settings=settings,
    )

    logger.debug("analytics_recomputed", transactions=len(transactions), months=len(monthly))
    return AnalyticsResult(
        currency=currency,
        monthly=monthly,
        categories=categories,
        totals=totals,
        expense_ratio=ratio,
        alerts=alerts,
    )
