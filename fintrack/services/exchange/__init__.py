"""Exchange rate services package."""

from fintrack.constants import (
    CRYPTO_CODES,
    CURRENCY_CODES,
    CURRENCY_SYMBOLS,
    SUPPORTED_CRYPTOS,
    SUPPORTED_CURRENCIES,
    SUPPORTED_STOCKS,
)
from fintrack.services.exchange.cache import RateCache, RateCacheEntry
from fintrack.services.exchange.converter import (
    CRYPTO_IDS,
    DEFAULT_CRYPTO_PRICES,
    DEFAULT_USD_RATES,
    CurrencyConverter,
    currency_symbol,
    default_rates,
    format_amount,
)
from fintrack.services.exchange.providers import (
    HttpRateProvider,
    RateProviderError,
    RateProviderInterface,
)

__all__ = [
    # Constants
    "CRYPTO_CODES",
    "CRYPTO_IDS",
    "CURRENCY_CODES",
    "CURRENCY_SYMBOLS",
    "DEFAULT_CRYPTO_PRICES",
    "DEFAULT_USD_RATES",
    "SUPPORTED_CRYPTOS",
    "SUPPORTED_CURRENCIES",
    "SUPPORTED_STOCKS",
    # Cache
    "RateCache",
    "RateCacheEntry",
    # Conversion
    "CurrencyConverter",
    "currency_symbol",
    "default_rates",
    "format_amount",
    # Providers
    "HttpRateProvider",
    "RateProviderError",
    "RateProviderInterface",
]
