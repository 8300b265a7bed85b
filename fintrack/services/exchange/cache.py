"""
Rate Cache

One entry per base currency. The cache is a plain object owned by
whoever constructs the converter; there is no module-level state.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RateCacheEntry(BaseModel):
    """A fetched rate table."""

    base_currency: str
    rates: dict[str, float]
    fetched_at: datetime = Field(default_factory=_utcnow)

    def is_fresh(self, ttl_seconds: float, now: Optional[datetime] = None) -> bool:
        """True while now - fetched_at < ttl."""
        now = now or _utcnow()
        return (now - self.fetched_at).total_seconds() < ttl_seconds


class RateCache:
    """Last good rate table per base currency."""

    def __init__(self):
        self._entries: dict[str, RateCacheEntry] = {}

    def get(self, base: str) -> Optional[RateCacheEntry]:
        return self._entries.get(base.upper())

    def put(self, entry: RateCacheEntry) -> None:
        self._entries[entry.base_currency.upper()] = entry

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
