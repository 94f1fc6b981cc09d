"""
Analytics cache - in-process TTL cache with prefix invalidation

Owned by the application (created in the lifespan, stored on app.state) and
handed to services explicitly. Expired entries are reaped lazily on get and
stats; there is no background eviction.

Key convention: every per-user analytics key starts with
``summary_<userId>`` or ``analytics_<userId>`` so that ledger writes can drop
them with two prefix invalidations.
"""
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


def summary_prefix(user_id: str) -> str:
    return f"summary_{user_id}"


def analytics_prefix(user_id: str) -> str:
    return f"analytics_{user_id}"


class AnalyticsCache:
    """
    Mapping key -> (value, absolute expiry)

    Args:
        default_ttl_seconds: TTL used when set() gets no explicit ttl
        clock: returns current time in seconds (time.time by default)
    """

    def __init__(
        self,
        default_ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.default_ttl_seconds = default_ttl_seconds or DEFAULT_TTL_SECONDS
        self._clock = clock
        self._store: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Return the value if present and unexpired, else None (and evict)."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() > expires_at:
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._store[key] = (value, self._clock() + ttl)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def invalidate_by_prefix(self, prefix: str) -> int:
        """Drop every key starting with prefix, return how many were removed."""
        with self._lock:
            keys = [key for key in self._store if key.startswith(prefix)]
            for key in keys:
                del self._store[key]
        if keys:
            logger.debug("Cache: invalidated %d key(s) with prefix %s", len(keys), prefix)
        return len(keys)

    def invalidate_user(self, user_id: str) -> None:
        """Drop all derived analytics of one user."""
        self.invalidate_by_prefix(summary_prefix(user_id))
        self.invalidate_by_prefix(analytics_prefix(user_id))

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def stats(self) -> Dict[str, int]:
        """Count active/expired entries; expired ones are reaped while counting."""
        now = self._clock()
        with self._lock:
            expired = [key for key, (_, expires_at) in self._store.items() if now > expires_at]
            for key in expired:
                del self._store[key]
            active = len(self._store)
        return {"active": active, "expired": len(expired), "total": active + len(expired)}

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
