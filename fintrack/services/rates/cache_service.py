from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from fintrack.models.constants import parse_currency
from fintrack.models.rates import RateCacheEntry, RateSnapshot
from .base import KeyValueStore

"""Process-wide exchange rate cache.

Purpose:
    Avoid a provider round trip for a currency pair fetched recently. Rates are
    currency-pair facts, so the cache is shared by every user.

Layout:
    One entry per source currency, persisted in the injected KeyValueStore
    under two keys:
        exchange_rates_<FROM>            JSON object {target_code: rate}
        exchange_rates_timestamp_<FROM>  epoch milliseconds of the last put

Freshness:
    An entry is served while now - timestamp <= ttl (15 minutes by default).
    The timestamp is shared by all targets of a source currency, so a put for
    A->B also extends the life of every other cached A->* rate. Known
    imprecision, kept as is.
"""

DEFAULT_TTL = timedelta(minutes=15)
RATES_KEY_PREFIX = "exchange_rates"
TIMESTAMP_KEY_PREFIX = "exchange_rates_timestamp"

logger = logging.getLogger("fintrack.rates.cache")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _rates_key(code: str) -> str:
    return f"{RATES_KEY_PREFIX}_{code}"


def _timestamp_key(code: str) -> str:
    return f"{TIMESTAMP_KEY_PREFIX}_{code}"


class RateCache:
    """TTL-bound rate cache keyed by source currency."""

    def __init__(
        self,
        store: KeyValueStore,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _utc_now,
    ):
        if ttl <= timedelta(0):
            raise ValueError("cache ttl must be positive")
        self._store = store
        self._ttl = ttl
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    # Internal --------------------------------------------------
    def _load(self, code: str) -> Optional[RateCacheEntry]:
        raw_rates = self._store.get(_rates_key(code))
        raw_ts = self._store.get(_timestamp_key(code))
        if not raw_rates or not raw_ts:
            return None
        try:
            rates = json.loads(raw_rates)
            fetched_at = datetime.fromtimestamp(int(raw_ts) / 1000, tz=timezone.utc)
        except (ValueError, TypeError, OverflowError):
            logger.warning("discarding unreadable rate cache entry for %s", code)
            return None
        if not isinstance(rates, dict):
            logger.warning("discarding malformed rate cache entry for %s", code)
            return None
        clean: Dict[str, float] = {
            str(k): float(v)
            for k, v in rates.items()
            if isinstance(v, (int, float)) and not isinstance(v, bool)
        }
        return RateCacheEntry(base_code=code, rates=clean, fetched_at=fetched_at)

    # Public API -----------------------------------------------
    def get(self, from_currency: str) -> Optional[RateCacheEntry]:
        """Fresh entry for ``from_currency`` or None when absent or expired."""
        code = parse_currency(from_currency).value
        entry = self._load(code)
        if entry is None or not entry.is_fresh(self._clock(), self._ttl):
            return None
        return entry

    def get_rate(self, from_currency: str, to_currency: str) -> Optional[float]:
        entry = self.get(from_currency)
        if entry is None:
            return None
        return entry.rates.get(parse_currency(to_currency).value)

    def put(self, from_currency: str, to_currency: str, rate: float) -> RateCacheEntry:
        """Merge ``rate`` into the source entry and refresh its timestamp.

        Targets of an already expired entry are dropped rather than carried
        over, since the refreshed timestamp would otherwise make them look new.
        """
        code = parse_currency(from_currency).value
        target = parse_currency(to_currency).value
        if rate <= 0:
            raise ValueError("rate must be positive")
        current = self.get(code)
        rates = dict(current.rates) if current else {}
        rates[target] = float(rate)
        now = self._clock()
        self._store.set(_rates_key(code), json.dumps(rates, separators=(",", ":")))
        self._store.set(_timestamp_key(code), str(round(now.timestamp() * 1000)))
        logger.debug("cached rate %s->%s=%s", code, target, rate)
        return RateCacheEntry(base_code=code, rates=rates, fetched_at=now)

    def snapshot(self, from_currency: str) -> Optional[RateSnapshot]:
        entry = self.get(from_currency)
        if entry is None or entry.fetched_at is None:
            return None
        return RateSnapshot(
            base_code=entry.base_code,
            rates=dict(entry.rates),
            time_last_update=entry.fetched_at,
            time_next_update=entry.fetched_at + self._ttl,
        )
