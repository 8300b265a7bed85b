"""
Rate-Quote Providers

DESIGN DECISION: Providers are opaque price-lookup services. They fetch
and raise; they never cache and never fall back. Caching and degraded
behaviour live in CurrencyConverter so every provider gets them for free.

HttpRateProvider talks to:
1. exchangerate-api.com for fiat tables (GET <url>/<BASE>)
2. CoinGecko for crypto spot prices (GET ?ids=<id>&vs_currencies=<ccy>)
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional

import requests
import structlog
from tenacity import retry, stop_after_attempt, wait_exponential

from fintrack.config import ExchangeSettings, get_settings


logger = structlog.get_logger(__name__)


class RateProviderError(Exception):
    """A provider could not produce a usable quote."""
    pass


class RateProviderInterface(ABC):
    """Source of fiat rate tables and crypto spot prices."""

    @abstractmethod
    async def fiat_rates(self, base: str) -> dict[str, float]:
        """
        Full rate table for a base currency.

        Returns:
            Mapping currency code -> units of that currency per 1 `base`
        """
        pass

    @abstractmethod
    async def spot_price(self, asset_id: str, vs_currency: str) -> float:
        """Price of one unit of the asset, in `vs_currency`. 0 if unknown."""
        pass


class HttpRateProvider(RateProviderInterface):
    """Public HTTP APIs via requests, run off the event loop."""

    def __init__(self, settings: Optional[ExchangeSettings] = None):
        self._settings = settings or get_settings().exchange

    def _get_json(self, url: str, params: Optional[dict] = None) -> Any:
        try:
            response = requests.get(
                url,
                params=params,
                timeout=self._settings.timeout_seconds,
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise RateProviderError(f"Request to {url} failed: {e}") from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def fiat_rates(self, base: str) -> dict[str, float]:
        url = f"{self._settings.fiat_api_url.rstrip('/')}/{base.upper()}"
        payload = await asyncio.to_thread(self._get_json, url)

        rates = payload.get("rates") if isinstance(payload, dict) else None
        if not isinstance(rates, dict) or not rates:
            raise RateProviderError(f"No rates in response for {base}")

        logger.debug("fiat_rates_fetched", base=base, count=len(rates))
        return {str(code).upper(): float(rate) for code, rate in rates.items()}

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def spot_price(self, asset_id: str, vs_currency: str) -> float:
        vs = vs_currency.lower()
        payload = await asyncio.to_thread(
            self._get_json,
            self._settings.crypto_api_url,
            {"ids": asset_id, "vs_currencies": vs},
        )
        if not isinstance(payload, dict):
            raise RateProviderError(f"Unexpected price response for {asset_id}")

        price = (payload.get(asset_id) or {}).get(vs)
        return float(price) if price else 0.0
