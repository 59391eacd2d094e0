"""
In-process TTL cache for store reads.

Keeps repeated reads of performers, support events, query results and
favorite membership off the remote document store.

Design:
- Entries expire lazily: an expired entry is evicted when it is read
- Pattern invalidation deletes every key containing a substring
- ``None`` is a cacheable value; ``get`` returns a (value, found) pair
- No size bound and no locking; last write wins

One instance is created per process in the FastAPI lifespan and passed to
the services that need it.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Tuple

from cheerboard.utils.logging_config import get_logger


logger = get_logger("cache")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: the current timezone-aware UTC time."""
    return datetime.now(timezone.utc)


@dataclass
class CacheEntry:
    """
    A single cached value.

    Attributes:
        key: Cache key
        value: Opaque cached value (may be None)
        expires_at: Instant after which the entry behaves as absent
    """

    key: str
    value: Any
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Check if the entry has expired at ``now``."""
        return now > self.expires_at


class MemoryCache:
    """
    Key/value cache with per-entry TTL and substring pattern invalidation.

    Usage:
        >>> cache = MemoryCache()
        >>> cache.set("performer:prf_01...", performer, ttl_minutes=15)
        >>> value, found = cache.get("performer:prf_01...")
        >>> cache.clear_pattern("performers:")
    """

    def __init__(self, clock: Clock = utc_now):
        """
        Initialize an empty cache.

        Args:
            clock: Callable returning the current aware datetime
        """
        self._entries: Dict[str, CacheEntry] = {}
        self._clock = clock

    def get(self, key: str) -> Tuple[Any, bool]:
        """
        Read a cached value.

        Args:
            key: Cache key

        Returns:
            (value, True) on a hit, (None, False) on a miss or expired entry
        """
        entry = self._entries.get(key)
        if entry is None:
            logger.debug(f"Cache MISS: {key}")
            return None, False

        if entry.is_expired(self._clock()):
            del self._entries[key]
            logger.debug(f"Cache EXPIRED: {key}")
            return None, False

        logger.debug(f"Cache HIT: {key}")
        return entry.value, True

    def set(self, key: str, value: Any, ttl_minutes: float) -> None:
        """
        Store a value, replacing any existing entry for the key.

        Args:
            key: Cache key
            value: Value to cache (None allowed)
            ttl_minutes: Time to live in minutes
        """
        expires_at = self._clock() + timedelta(minutes=ttl_minutes)
        self._entries[key] = CacheEntry(key=key, value=value, expires_at=expires_at)
        logger.debug(f"Cache SET: {key} (ttl={ttl_minutes}m)")

    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if an entry was removed."""
        removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug(f"Cache DELETE: {key}")
        return removed

    def clear_pattern(self, pattern: str) -> int:
        """
        Remove every key containing ``pattern`` as a substring.

        Args:
            pattern: Substring to match against keys

        Returns:
            Number of entries removed
        """
        matching = [key for key in self._entries if pattern in key]
        for key in matching:
            del self._entries[key]
        if matching:
            logger.debug(f"Cache CLEAR_PATTERN: '{pattern}' removed {len(matching)} entries")
        return len(matching)

    def clear(self) -> int:
        """Remove every entry. Returns the number removed."""
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"Cache cleared ({count} entries)")
        return count

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Expired entries that were never read again still count until evicted.

        Returns:
            Dictionary with 'size' and 'keys'
        """
        keys: List[str] = sorted(self._entries.keys())
        return {"size": len(keys), "keys": keys}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        _, found = self.get(key)
        return found
