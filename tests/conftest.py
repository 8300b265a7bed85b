"""
Shared fixtures.

No test touches the network: the store is in memory, the remote mirror is
InMemoryRemoteMirror and rates come from StubRateProvider.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from fintrack.audit import AuditLogger, InMemoryAuditStorage
from fintrack.config import AppSettings, ExchangeSettings, StoreSettings
from fintrack.models.transaction import Transaction, TransactionStatus, TransactionType
from fintrack.repository import TransactionRepository
from fintrack.services.exchange import CurrencyConverter, RateProviderError, RateProviderInterface
from fintrack.services.storage import InMemoryBackend, TableStore
from fintrack.validation import TransactionValidator


USER = "alice@example.com"


class StubRateProvider(RateProviderInterface):
    """Serves a fixed USD rate table, re-based on request."""

    def __init__(self, usd_rates=None, prices=None, fail=False):
        self.usd_rates = usd_rates if usd_rates is not None else {
            "USD": 1.0,
            "RUB": 92.0,
            "EUR": 0.92,
            "KZT": 450.0,
        }
        self.prices = prices or {}
        self.fail = fail
        self.fiat_calls = 0
        self.spot_calls = 0

    async def fiat_rates(self, base: str) -> dict[str, float]:
        self.fiat_calls += 1
        if self.fail:
            raise RateProviderError("provider offline")
        divisor = self.usd_rates[base.upper()]
        return {code: rate / divisor for code, rate in self.usd_rates.items()}

    async def spot_price(self, asset_id: str, vs_currency: str) -> float:
        self.spot_calls += 1
        if self.fail:
            raise RateProviderError("provider offline")
        return self.prices.get(asset_id, 0.0)


def make_tx(
    type=TransactionType.EXPENSE,
    amount="100",
    on=None,
    category="Food",
    currency="USD",
    is_planned=False,
    status=None,
    **fields,
) -> Transaction:
    """A stored-looking transaction for engine tests."""
    if status is None:
        status = TransactionStatus.PENDING if is_planned else TransactionStatus.COMPLETED
    return Transaction(
        id=fields.pop("id", f"tx_{category}_{amount}"),
        type=type,
        amount=Decimal(amount),
        date=on or date(2026, 10, 5),
        category=category,
        currency=currency,
        is_planned=is_planned,
        status=status,
        **fields,
    )


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def backend():
    backend = InMemoryBackend()
    asyncio.run(backend.open())
    return backend


@pytest.fixture
def app_settings():
    return AppSettings(default_currency="USD")


@pytest.fixture
def store(backend, audit_logger, app_settings):
    return TableStore(
        backend,
        audit_logger=audit_logger,
        settings=StoreSettings(app_version="1.0.0"),
        app_settings=app_settings,
    )


@pytest.fixture
def provider():
    return StubRateProvider()


@pytest.fixture
def converter(provider, audit_logger):
    return CurrencyConverter(
        provider,
        settings=ExchangeSettings(cache_ttl_seconds=3600),
        audit_logger=audit_logger,
    )


@pytest.fixture
def repository(store, converter, audit_logger, app_settings):
    return TransactionRepository(
        store,
        converter,
        validator=TransactionValidator(today=date(2026, 10, 17)),
        audit_logger=audit_logger,
        app_settings=app_settings,
    )
