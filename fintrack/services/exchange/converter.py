"""
Currency Converter

USD-pivot conversion over cached rate tables.

DESIGN DECISION: Rates are degraded data, never a reason to fail.
get_rates() falls back, in order, to:
1. a fresh cache entry for the base
2. a new fetch from the provider
3. the last cached entry for the base, however old
4. a hardcoded table re-based to the requested base

convert() passes the amount through unchanged when a rate is missing.
Callers must tolerate approximate results.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional, Union

import structlog

from fintrack.audit import AuditLogger
from fintrack.config import ExchangeSettings, get_settings
from fintrack.constants import CURRENCY_SYMBOLS
from fintrack.models.audit import AuditEventBuilder
from fintrack.services.exchange.cache import RateCache, RateCacheEntry
from fintrack.services.exchange.providers import HttpRateProvider, RateProviderInterface


logger = structlog.get_logger(__name__)

PIVOT_CURRENCY = "USD"

# Units per 1 USD, used only when no rate table was ever fetched
DEFAULT_USD_RATES = {
    "USD": 1.0,
    "EUR": 0.92,
    "RUB": 92.0,
    "GBP": 0.79,
    "JPY": 150.0,
    "CNY": 7.2,
    "KZT": 450.0,
}

CRYPTO_IDS = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "USDT": "tether",
    "BNB": "binancecoin",
    "SOL": "solana",
    "XRP": "ripple",
    "ADA": "cardano",
    "DOGE": "dogecoin",
}

DEFAULT_CRYPTO_PRICES = {
    "BTC": Decimal("45000"),
    "ETH": Decimal("2500"),
    "USDT": Decimal("1"),
}

Number = Union[Decimal, int, float, str]


def _decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Not a number: {value!r}") from e


def default_rates(base: str = PIVOT_CURRENCY) -> dict[str, float]:
    """The hardcoded table expressed relative to `base` (USD if unknown)."""
    base = base.upper()
    divisor = DEFAULT_USD_RATES.get(base)
    if not divisor:
        return dict(DEFAULT_USD_RATES)
    return {code: rate / divisor for code, rate in DEFAULT_USD_RATES.items()}


def currency_symbol(currency: str) -> str:
    return CURRENCY_SYMBOLS.get(currency.upper(), currency)


def format_amount(
    amount: Number,
    currency: str,
    show_symbol: bool = True,
    decimals: int = 2,
) -> str:
    """
    Format for display: space-grouped thousands, comma decimal mark.

    format_amount(Decimal("1234.5"), "RUB") -> "1 234,50 ₽"
    """
    text = f"{_decimal(amount):,.{decimals}f}"
    text = text.replace(",", " ").replace(".", ",")
    if not show_symbol:
        return text
    return f"{text} {currency_symbol(currency)}"


class CurrencyConverter:
    """
    Rate lookups and conversion, backed by an explicitly owned RateCache.

    Args:
        provider: Quote source (HttpRateProvider by default)
        cache: Rate cache (a fresh one by default)
        settings: TTL and provider settings
        audit_logger: Receives an event whenever fallback rates are served
        clock: Returns the current time; injectable for tests
    """

    def __init__(
        self,
        provider: Optional[RateProviderInterface] = None,
        cache: Optional[RateCache] = None,
        settings: Optional[ExchangeSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._settings = settings or get_settings().exchange
        self._provider = provider or HttpRateProvider(self._settings)
        self._cache = cache if cache is not None else RateCache()
        self._audit_logger = audit_logger
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def cache(self) -> RateCache:
        return self._cache

    async def _report_fallback(self, base: str, source: str, error: Exception) -> None:
        logger.warning("rates_fallback_used", base=base, source=source, error=str(error))
        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.rates_fallback_used(base, source, str(error))
            )

    async def get_rates(self, base: str = PIVOT_CURRENCY) -> dict[str, float]:
        """
        Rate table for `base`. Never raises.

        Returns:
            Mapping currency code -> units per 1 `base`
        """
        base = base.upper()
        now = self._clock()
        entry = self._cache.get(base)

        if entry and entry.is_fresh(self._settings.cache_ttl_seconds, now):
            return dict(entry.rates)

        try:
            rates = await self._provider.fiat_rates(base)
            if not rates:
                raise ValueError(f"Provider returned no rates for {base}")
        except Exception as e:
            if entry:
                await self._report_fallback(base, "cached", e)
                return dict(entry.rates)
            await self._report_fallback(base, "default", e)
            return default_rates(base)

        self._cache.put(RateCacheEntry(base_currency=base, rates=rates, fetched_at=now))
        return dict(rates)

    async def convert(self, amount: Number, from_currency: str, to_currency: str) -> Decimal:
        """
        Convert through USD: amount / rate[from] * rate[to].

        Returns the amount unchanged if either rate is unknown.
        """
        value = _decimal(amount)
        source = (from_currency or PIVOT_CURRENCY).upper()
        target = (to_currency or PIVOT_CURRENCY).upper()
        if source == target:
            return value

        rates = await self.get_rates(PIVOT_CURRENCY)
        rates.setdefault(PIVOT_CURRENCY, 1.0)
        from_rate = rates.get(source)
        to_rate = rates.get(target)

        if not from_rate or not to_rate:
            logger.warning(
                "exchange_rate_missing",
                from_currency=source,
                to_currency=target,
            )
            return value

        return value / Decimal(str(from_rate)) * Decimal(str(to_rate))

    async def convert_to_usd(self, amount: Number, from_currency: str) -> Decimal:
        return await self.convert(amount, from_currency, PIVOT_CURRENCY)

    async def get_crypto_rate(self, symbol: str, vs_currency: str = PIVOT_CURRENCY) -> Decimal:
        """
        Spot price of one unit of a crypto asset.

        Unknown symbols are looked up by their lower-cased name. On
        failure, a small default table is used, else 0.
        """
        code = symbol.upper()
        asset_id = CRYPTO_IDS.get(code, symbol.lower())
        try:
            price = await self._provider.spot_price(asset_id, vs_currency.lower())
        except Exception as e:
            logger.warning("crypto_rate_failed", symbol=code, error=str(e))
            return DEFAULT_CRYPTO_PRICES.get(code, Decimal("0"))
        return _decimal(price) if price else Decimal("0")

    async def get_stock_rate(self, symbol: str) -> Decimal:
        """No stock quote source is wired; prices are entered by hand."""
        logger.warning("stock_rate_unavailable", symbol=symbol.upper())
        return Decimal("0")
