"""Bounded, time-limited cache in front of the forecast engine.

Entries are keyed by model, symbol, horizon, confidence and a cheap
fingerprint of the bars.  The fingerprint is the bar count plus the last
five closes rounded to cents: two different series with the same length
and the same recent closes collide.  That risk is accepted in exchange for
not hashing the whole series on every lookup.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from tradecast.forecast.models import ForecastResult
from tradecast.strategy.models import OHLCVBar

logger = logging.getLogger("tradecast.cache")

DEFAULT_MAX_ENTRIES = 4
DEFAULT_TTL_SECONDS = 300.0
FINGERPRINT_CLOSES = 5


def fingerprint(bars: list[OHLCVBar]) -> str:
    """Bar count plus the last five closes formatted to two decimals."""
    recent = ",".join(f"{b.close:.2f}" for b in bars[-FINGERPRINT_CLOSES:])
    return f"{len(bars)}:{recent}"


def cache_key(
    model: str,
    symbol: str,
    forecast_period: int,
    confidence_level: float,
    bars: list[OHLCVBar],
) -> str:
    return f"{model}:{symbol}:{forecast_period}:{confidence_level}:{fingerprint(bars)}"


@dataclass
class ForecastCacheEntry:
    result: Optional[ForecastResult]
    timestamp: float
    symbol: str
    model: str


class ForecastCache:
    """LRU-by-age forecast cache.

    Holds at most ``max_entries`` results; inserting a new key into a full
    cache evicts the entry with the oldest timestamp.  An entry older than
    ``ttl_seconds`` is removed on read and reported as a miss.

    Entry mutations happen under one re-entrant lock and ``get_or_compute``
    serialises the read-check-then-write per key, so endpoints running on
    worker threads never compute the same forecast twice at once.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, ForecastCacheEntry] = {}
        self._lock = threading.RLock()
        # key -> (lock, number of callers holding or waiting on it)
        self._key_locks: dict[str, tuple[threading.Lock, int]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get_entry(key) is not None

    # ── Reads ────────────────────────────────────────────────────────────

    def get_entry(self, key: str) -> Optional[ForecastCacheEntry]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.timestamp > self.ttl_seconds:
                del self._entries[key]
                logger.debug("Cache entry expired: %s", key)
                return None
            return entry

    def get(self, key: str) -> Optional[ForecastResult]:
        """Cached result for *key*, or ``None`` when missing or expired."""
        entry = self.get_entry(key)
        return entry.result if entry is not None else None

    def entries(self) -> list[dict]:
        """Live entries as plain dicts (key, symbol, model, age in seconds)."""
        with self._lock:
            now = self._clock()
            return [
                {
                    "key": key,
                    "symbol": entry.symbol,
                    "model": entry.model,
                    "age_seconds": round(now - entry.timestamp, 3),
                }
                for key, entry in self._entries.items()
                if now - entry.timestamp <= self.ttl_seconds
            ]

    # ── Writes ───────────────────────────────────────────────────────────

    def set(
        self,
        key: str,
        result: Optional[ForecastResult],
        symbol: str = "",
        model: str = "",
    ) -> None:
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                oldest = min(self._entries, key=lambda k: self._entries[k].timestamp)
                del self._entries[oldest]
                logger.debug("Cache full, evicted oldest entry: %s", oldest)
            self._entries[key] = ForecastCacheEntry(
                result=result,
                timestamp=self._clock(),
                symbol=symbol,
                model=model,
            )

    def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Optional[ForecastResult]],
        symbol: str = "",
        model: str = "",
    ) -> Optional[ForecastResult]:
        """Return the cached result for *key*, computing and storing it on a miss.

        Concurrent callers for the same key wait for the first computation
        instead of repeating it; other keys are not blocked.  A ``None``
        result from *compute* is not cached.
        """
        with self._lock:
            key_lock, users = self._key_locks.get(key, (None, 0))
            if key_lock is None:
                key_lock = threading.Lock()
            self._key_locks[key] = (key_lock, users + 1)
        try:
            with key_lock:
                entry = self.get_entry(key)
                if entry is not None:
                    return entry.result
                result = compute()
                if result is not None:
                    self.set(key, result, symbol=symbol, model=model)
                return result
        finally:
            with self._lock:
                # The lock outlives the caller while others still wait on it
                _, users = self._key_locks[key]
                if users > 1:
                    self._key_locks[key] = (key_lock, users - 1)
                else:
                    del self._key_locks[key]

    def evict_symbol(self, symbol: str) -> int:
        """Remove every entry for *symbol*; return how many were removed."""
        with self._lock:
            stale = [k for k, e in self._entries.items() if e.symbol == symbol]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.info("Evicted %d cached forecast(s) for %s", len(stale), symbol)
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Forecast cache cleared")
