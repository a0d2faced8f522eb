"""In-process TTL cache for aggregation results. Owned object with an injected clock."""

import threading
import time
from collections.abc import Callable
from typing import Any

from apps.visits.config import config


class TTLCache:
    """
    Key -> value cache where each entry expires ttl_seconds after it was set.
    clock returns seconds (monotonic by default); inject a fake clock to test expiry.
    ttl_seconds <= 0 disables caching (get always misses, set is a no-op).
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def get(self, key: str) -> Any | None:
        """Return cached value, or None if missing or expired. Expired entries are dropped."""
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        """Insert or replace entry."""
        if not self.enabled:
            return
        with self._lock:
            self._entries[key] = (self._clock() + self._ttl, value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_analytics_cache: TTLCache | None = None


def get_analytics_cache(*, force_refresh: bool = False) -> TTLCache:
    """Return the process-wide analytics cache (ANALYTICS_CACHE_TTL_SECONDS). force_refresh for tests."""
    global _analytics_cache
    if _analytics_cache is None or force_refresh:
        _analytics_cache = TTLCache(config.ANALYTICS_CACHE_TTL_SECONDS)
    return _analytics_cache
