"""
cache.py
========
Cache-aside layer in front of the score computation.

The backing store only has to offer get / set / get_many / set_many /
delete_pattern. The default `MemoryCache` keeps JSON-encoded values in process
with a per-key TTL, the same shape a Redis deployment would have. Values go
through JSON on the way in and out, so a hit is a fresh copy that callers can
mutate safely.

The engine never talks to the backend directly: it goes through the
cache_* helpers below. They log and absorb backend failures, because the cache
is an optimization and the database stays authoritative.
"""

from __future__ import annotations
from fnmatch import fnmatchcase
from glob import escape as glob_escape
from typing import Any, Dict, Iterable, List, Optional, Tuple
import json
import threading
import time

from .config import SCORE_CACHE_TTL
from .logging_setup import get_logger

logger = get_logger("personalizer.cache")


class CacheKeys:
    @staticmethod
    def article_score(user_id: str, article_id: str) -> str:
        return f"score:{user_id}:{article_id}"

    @staticmethod
    def user_scores(user_id: str) -> str:
        # Glob matching every score entry of one user
        return f"score:{glob_escape(user_id)}:*"


class CacheTTL:
    ARTICLE_SCORE = SCORE_CACHE_TTL


class MemoryCache:
    """Thread-safe in-process TTL cache with glob-pattern deletion."""

    # Hard cap on stored keys; entries closest to expiry go first
    _MAX_SLOTS = 10_000
    # Expired entries are purged every N writes
    _EVICTION_INTERVAL = 100

    def __init__(self, max_slots: Optional[int] = None) -> None:
        self._values: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()
        self.max_slots = max_slots or self._MAX_SLOTS
        self._writes = 0

    def get(self, key: str) -> Optional[Any]:
        now = time.time()
        with self._lock:
            entry = self._values.get(key)
            if not entry:
                return None
            raw, expires = entry
            if expires <= now:
                del self._values[key]
                return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: int) -> None:
        raw = json.dumps(value)
        now = time.time()
        with self._lock:
            self._values[key] = (raw, now + ttl)
            self._writes += 1
            if self._writes >= self._EVICTION_INTERVAL or len(self._values) > self.max_slots:
                self._evict(now)
                self._writes = 0

    def _evict(self, now: float) -> None:
        """Drop expired entries, then enforce max_slots. Caller holds the lock."""
        expired = [k for k, (_, expires) in self._values.items() if expires <= now]
        for k in expired:
            del self._values[k]

        overshoot = len(self._values) - self.max_slots
        if overshoot > 0:
            by_expiry = sorted(self._values, key=lambda k: self._values[k][1])
            for k in by_expiry[:overshoot]:
                del self._values[k]

        if expired or overshoot > 0:
            logger.debug(
                "CACHE_EVICTED",
                extra={"expired": len(expired), "trimmed": max(0, overshoot), "remaining": len(self._values)},
            )

    def get_many(self, keys: List[str]) -> List[Optional[Any]]:
        return [self.get(k) for k in keys]

    def set_many(self, entries: Iterable[Tuple[str, Any, int]]) -> None:
        for key, value, ttl in entries:
            self.set(key, value, ttl)

    def delete_pattern(self, pattern: str) -> int:
        with self._lock:
            doomed = [k for k in self._values if fnmatchcase(k, pattern)]
            for k in doomed:
                del self._values[k]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def __len__(self) -> int:
        return len(self._values)


_cache = MemoryCache()


def get_cache():
    return _cache


def set_cache(backend) -> None:
    """Swap the backend (e.g. a Redis adapter, or a failing stub in tests)."""
    global _cache
    _cache = backend


# ---- Failure-tolerant helpers used by the engine ----

def cache_get(key: str) -> Optional[Any]:
    try:
        return _cache.get(key)
    except Exception as e:
        logger.warning("CACHE_GET_FAILED", extra={"key": key, "error": type(e).__name__})
        return None


def cache_get_many(keys: List[str]) -> List[Optional[Any]]:
    if not keys:
        return []
    try:
        return _cache.get_many(keys)
    except Exception as e:
        logger.warning("CACHE_GET_MANY_FAILED", extra={"count": len(keys), "error": type(e).__name__})
        return [None] * len(keys)


def cache_set(key: str, value: Any, ttl: int) -> bool:
    try:
        _cache.set(key, value, ttl)
        return True
    except Exception as e:
        logger.warning("CACHE_SET_FAILED", extra={"key": key, "error": type(e).__name__})
        return False


def cache_set_many(entries: List[Tuple[str, Any, int]]) -> bool:
    if not entries:
        return True
    try:
        _cache.set_many(entries)
        return True
    except Exception as e:
        logger.warning("CACHE_SET_MANY_FAILED", extra={"count": len(entries), "error": type(e).__name__})
        return False


def invalidate_user_scores(user_id: str) -> int:
    """Drop every cached score of one user. Called whenever their patterns change."""
    try:
        removed = _cache.delete_pattern(CacheKeys.user_scores(user_id))
    except Exception as e:
        logger.warning("CACHE_INVALIDATE_FAILED", extra={"user_id": user_id, "error": type(e).__name__})
        return 0
    logger.debug("SCORE_CACHE_INVALIDATED", extra={"user_id": user_id, "removed": removed})
    return removed
