"""
Cache Management Utilities
Key/value cache with per-entry TTL, lazy + scheduled expiry and prefix invalidation
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from water_spots.config import DEFAULT_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A stored value and the instant it stops being valid"""

    value: Any
    created_at: float
    ttl_seconds: float

    @property
    def expires_at(self) -> Optional[float]:
        if self.ttl_seconds <= 0:
            return None
        return self.created_at + self.ttl_seconds

    def is_expired(self, now: float) -> bool:
        expires_at = self.expires_at
        return expires_at is not None and now >= expires_at


class TTLCache:
    """
    In-memory cache with TTL per entry

    Expiry happens two ways, both at created_at + ttl:
    - lazily, when an expired entry is read
    - actively, through one eviction timer per key on the running event loop

    Setting a key cancels its pending timer before scheduling a new one, so a
    stale timer never removes a newer value. Internal failures are logged and
    reported as a miss; the cache never raises.
    """

    def __init__(self, default_ttl: float = DEFAULT_CACHE_TTL_SECONDS,
                 max_entries: Optional[int] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize cache

        Args:
            default_ttl: TTL used when set() gets none, in seconds
            max_entries: Upper bound on stored entries (None for unbounded)
            clock: Monotonic time source; must match the event loop clock
                   for scheduled and lazy expiry to agree
        """
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._timers: Dict[str, asyncio.TimerHandle] = {}

    # ========================================
    # CORE OPERATIONS
    # ========================================

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> bool:
        """
        Store a value, replacing any existing entry and its eviction timer

        Args:
            key: Cache key
            value: Value to store (returned unchanged by get)
            ttl_seconds: Time to live; <= 0 stores without automatic eviction

        Returns:
            True if stored
        """
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        try:
            self._cancel_timer(key)

            entry = CacheEntry(value=value, created_at=self._clock(), ttl_seconds=ttl)
            self._entries[key] = entry

            if entry.expires_at is not None:
                self._schedule_eviction(key, entry)

            self._enforce_max_entries()
            return True
        except Exception as e:
            logger.error("Cache set failed for key '%s': %s", key, e)
            return False

    def get(self, key: str) -> Optional[Any]:
        """
        Get a value if present and fresh

        Args:
            key: Cache key

        Returns:
            Stored value or None (missing or expired)
        """
        try:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("Cache MISS: %s", key)
                return None

            if entry.is_expired(self._clock()):
                logger.debug("Cache EXPIRED: %s", key)
                self.delete(key)
                return None

            logger.debug("Cache HIT: %s", key)
            return entry.value
        except Exception as e:
            logger.error("Cache get failed for key '%s': %s", key, e)
            return None

    def delete(self, key: str) -> bool:
        """
        Remove a key and its pending eviction

        Returns:
            True if an entry was removed
        """
        try:
            self._cancel_timer(key)
            return self._entries.pop(key, None) is not None
        except Exception as e:
            logger.error("Cache delete failed for key '%s': %s", key, e)
            return False

    def clear(self) -> bool:
        """Remove every entry and cancel every timer"""
        try:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
            self._entries.clear()
            return True
        except Exception as e:
            logger.error("Cache clear failed: %s", e)
            return False

    def has(self, key: str) -> bool:
        """Check whether a fresh entry exists for key"""
        try:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                self.delete(key)
                return False
            return True
        except Exception as e:
            logger.error("Cache has failed for key '%s': %s", key, e)
            return False

    def close(self):
        """Tear down at process shutdown"""
        self.clear()

    # ========================================
    # NAMESPACED ACCESS
    # ========================================

    def keys(self) -> List[str]:
        return list(self._entries.keys())

    def keys_by_prefix(self, prefix: str) -> List[str]:
        """List keys starting with prefix (e.g. every cached page of one ward)"""
        return [key for key in self._entries if key.startswith(prefix)]

    def delete_by_prefix(self, prefix: str) -> int:
        """
        Delete every key starting with prefix

        Returns:
            Number of deleted entries
        """
        deleted = 0
        for key in self.keys_by_prefix(prefix):
            if self.delete(key):
                deleted += 1
        if deleted:
            logger.info("Cache invalidated %d entries with prefix '%s'", deleted, prefix)
        return deleted

    def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        return {key: self.get(key) for key in keys}

    def set_many(self, entries: Dict[str, Any], ttl_seconds: Optional[float] = None) -> Dict[str, bool]:
        return {key: self.set(key, value, ttl_seconds) for key, value in entries.items()}

    # ========================================
    # MAINTENANCE
    # ========================================

    def cleanup(self) -> int:
        """
        Remove entries that are logically expired but not yet evicted

        Returns:
            Number of removed entries
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            self.delete(key)
        return len(expired)

    def stats(self) -> Dict:
        """
        Get cache statistics

        Returns:
            Dictionary with cache stats
        """
        now = self._clock()
        valid = 0
        expired = 0
        size_bytes = 0

        for entry in self._entries.values():
            if entry.is_expired(now):
                expired += 1
            else:
                valid += 1
            size_bytes += self._estimate_size(entry.value)

        return {
            'total_entries': len(self._entries),
            'valid_entries': valid,
            'expired_entries': expired,
            'estimated_size_bytes': size_bytes,
            'timers_active': len(self._timers),
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    # ========================================
    # INTERNALS
    # ========================================

    def _schedule_eviction(self, key: str, entry: CacheEntry):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop: lazy expiry only
            return

        delay = max(0.0, entry.expires_at - self._clock())
        self._timers[key] = loop.call_later(delay, self._evict, key, entry)

    def _evict(self, key: str, entry: CacheEntry):
        # Only remove the entry this timer was scheduled for
        if self._entries.get(key) is entry:
            del self._entries[key]
            self._timers.pop(key, None)
            logger.debug("Cache EVICTED: %s", key)

    def _cancel_timer(self, key: str):
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()

    def _enforce_max_entries(self):
        if self.max_entries is None:
            return
        while len(self._entries) > self.max_entries:
            oldest_key = min(self._entries, key=lambda k: self._entries[k].created_at)
            self.delete(oldest_key)

    @staticmethod
    def _estimate_size(value: Any) -> int:
        try:
            return len(json.dumps(value, ensure_ascii=False, default=str).encode('utf-8'))
        except (TypeError, ValueError):
            return 0
