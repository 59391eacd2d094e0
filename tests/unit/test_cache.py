"""
Unit tests for the in-process TTL cache.

Tests MemoryCache for:
- Hit/miss/expiry behavior
- Caching of None values
- Substring pattern invalidation
- Statistics
"""

import pytest
from freezegun import freeze_time

from cheerboard.utils.cache import CacheEntry, MemoryCache


class TestCacheEntry:
    """Tests for CacheEntry dataclass."""

    @freeze_time("2026-01-01 12:00:00")
    def test_is_expired_boundary(self):
        """An entry is still valid at exactly its expiry instant."""
        cache = MemoryCache()
        cache.set("k", "v", ttl_minutes=10)
        entry = cache._entries["k"]

        assert isinstance(entry, CacheEntry)
        assert not entry.is_expired(entry.expires_at)


class TestMemoryCacheGetSet:
    """Tests for get/set/delete."""

    def test_get_missing_key(self):
        cache = MemoryCache()

        assert cache.get("nope") == (None, False)

    def test_set_then_get(self):
        cache = MemoryCache()
        cache.set("performer:prf_1", {"stage_name": "Mina"}, ttl_minutes=15)

        assert cache.get("performer:prf_1") == ({"stage_name": "Mina"}, True)

    def test_none_is_cacheable(self):
        """A cached None (not-found marker) is a hit, not a miss."""
        cache = MemoryCache()
        cache.set("performer:missing", None, ttl_minutes=5)

        assert cache.get("performer:missing") == (None, True)

    def test_set_replaces_existing_entry(self):
        cache = MemoryCache()
        cache.set("k", 1, ttl_minutes=5)
        cache.set("k", 2, ttl_minutes=5)

        assert cache.get("k") == (2, True)
        assert len(cache) == 1

    def test_delete(self):
        cache = MemoryCache()
        cache.set("k", 1, ttl_minutes=5)

        assert cache.delete("k") is True
        assert cache.delete("k") is False
        assert "k" not in cache

    @freeze_time("2026-01-01 12:00:00")
    def test_entry_expires_after_ttl(self):
        """Test entries disappear once their TTL has passed."""
        cache = MemoryCache()
        cache.set("k", "v", ttl_minutes=15)

        with freeze_time("2026-01-01 12:15:00"):
            assert cache.get("k") == ("v", True)

        with freeze_time("2026-01-01 12:15:01"):
            assert cache.get("k") == (None, False)

    @freeze_time("2026-01-01 12:00:00")
    def test_expired_entry_is_evicted_on_read(self):
        cache = MemoryCache()
        cache.set("k", "v", ttl_minutes=1)

        with freeze_time("2026-01-01 12:05:00"):
            assert len(cache) == 1
            cache.get("k")
            assert len(cache) == 0

    @freeze_time("2026-01-01 12:00:00")
    def test_zero_ttl_expires_immediately_after(self):
        cache = MemoryCache()
        cache.set("k", "v", ttl_minutes=0)

        with freeze_time("2026-01-01 12:00:01"):
            assert cache.get("k") == (None, False)

    def test_injected_clock(self, clock):
        cache = MemoryCache(clock=clock)
        cache.set("k", "v", ttl_minutes=2)

        clock.advance(minutes=1)
        assert cache.get("k") == ("v", True)

        clock.advance(minutes=2)
        assert cache.get("k") == (None, False)


class TestMemoryCacheInvalidation:
    """Tests for pattern invalidation and clearing."""

    def test_clear_pattern_removes_substring_matches(self):
        cache = MemoryCache()
        cache.set("performers:approved", [], ttl_minutes=30)
        cache.set("performers:filters:{}", [], ttl_minutes=2)
        cache.set("performer:prf_1", None, ttl_minutes=15)
        cache.set("events:approved", [], ttl_minutes=10)

        removed = cache.clear_pattern("performers:")

        assert removed == 2
        assert cache.get("performer:prf_1") == (None, True)
        assert cache.get("events:approved") == ([], True)
        assert "performers:approved" not in cache

    def test_clear_pattern_matches_anywhere_in_key(self):
        cache = MemoryCache()
        cache.set("favorites:alice:{}", [], ttl_minutes=60)
        cache.set("favorites:bob:{}", [], ttl_minutes=60)

        assert cache.clear_pattern(":alice:") == 1
        assert "favorites:bob:{}" in cache

    def test_clear_pattern_no_match(self):
        cache = MemoryCache()
        cache.set("k", 1, ttl_minutes=5)

        assert cache.clear_pattern("zzz") == 0
        assert len(cache) == 1

    def test_clear(self):
        cache = MemoryCache()
        cache.set("a", 1, ttl_minutes=5)
        cache.set("b", 2, ttl_minutes=5)

        assert cache.clear() == 2
        assert len(cache) == 0


class TestMemoryCacheStats:
    """Tests for get_stats."""

    def test_stats_empty(self):
        assert MemoryCache().get_stats() == {"size": 0, "keys": []}

    def test_stats_lists_sorted_keys(self):
        cache = MemoryCache()
        cache.set("b", 1, ttl_minutes=5)
        cache.set("a", 2, ttl_minutes=5)

        assert cache.get_stats() == {"size": 2, "keys": ["a", "b"]}


@pytest.mark.parametrize("pattern,expected", [
    ("performers:", 1),
    ("performer:", 1),
    ("events:", 0),
])
def test_singular_and_plural_prefixes_do_not_overlap(pattern, expected):
    cache = MemoryCache()
    cache.set("performer:prf_1", None, ttl_minutes=5)
    cache.set("performers:approved", [], ttl_minutes=5)

    assert cache.clear_pattern(pattern) == expected
