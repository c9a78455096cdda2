"""Tests for the quote cache and maintenance loop."""

import asyncio

import pytest

from crossswap.utils.cache import CacheEntry, QuoteCache, request_fingerprint
from crossswap.utils.maintenance import MaintenanceLoop
from crossswap.utils.rate_limit import RateLimiter


class TestRequestFingerprint:
    """Tests for cache key derivation."""

    def test_identical_requests_collide(self):
        """Test identical requests collide."""
        a = request_fingerprint("1:native:ETH", "1:0xa0b8", 10**18, 1, {"preference": "speed", "wallet": ""})
        b = request_fingerprint("1:NATIVE:ETH", "1:0xA0B8", 10**18, 1, {"wallet": "", "preference": "SPEED"})
        assert a == b
        assert a.startswith("routes:")

    def test_amount_changes_key(self):
        """Test amount changes key."""
        a = request_fingerprint("1:native:ETH", "1:0xa0b8", 10**18, 1)
        b = request_fingerprint("1:native:ETH", "1:0xa0b8", 10**18 + 1, 1)
        assert a != b

    def test_flags_change_key(self):
        """Test flags change key."""
        a = request_fingerprint("1:native:ETH", "1:0xa0b8", 10**18, 1, {"preference": "speed"})
        b = request_fingerprint("1:native:ETH", "1:0xa0b8", 10**18, 1, {"preference": "security"})
        assert a != b


class TestCacheEntry:
    def test_valid_strictly_before_ttl(self):
        """Test valid strictly before TTL."""
        entry = CacheEntry(payload="x", fetched_at_ms=1000, ttl_ms=500)
        assert entry.is_valid(1499)
        assert not entry.is_valid(1500)


class TestQuoteCache:
    """Tests for QuoteCache."""

    def test_get_miss_then_hit(self, clock):
        """Test get miss then hit."""
        cache = QuoteCache(clock=clock)
        assert cache.get("k") is None

        cache.set("k", {"routes": []})
        assert cache.get("k") == {"routes": []}

        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1

    def test_expired_entry_is_a_miss_and_deleted(self, clock):
        """Test expired entry is a miss and deleted."""
        cache = QuoteCache(default_ttl_ms=100, clock=clock)
        cache.set("k", "payload")

        clock.advance(99)
        assert cache.get("k") == "payload"

        clock.advance(1)
        assert cache.get("k") is None
        assert len(cache) == 0
        assert cache.stats()["expirations"] == 1

    def test_per_entry_ttl(self, clock):
        """Test per entry TTL."""
        cache = QuoteCache(default_ttl_ms=1000, clock=clock)
        cache.set("short", 1, ttl_ms=10)
        cache.set("long", 2)

        clock.advance(50)
        assert cache.get("short") is None
        assert cache.get("long") == 2

    def test_invalidate(self, clock):
        """Test invalidate removes an entry."""
        cache = QuoteCache(clock=clock)
        cache.set("k", 1)
        cache.invalidate("k")
        cache.invalidate("missing")
        assert cache.get("k") is None

    def test_eviction_removes_oldest_first(self, clock):
        """Test eviction removes oldest first."""
        cache = QuoteCache(max_entries=3, clock=clock)
        for key in ("a", "b", "c"):
            cache.set(key, key)
            clock.advance(1)

        cache.set("d", "d")

        assert len(cache) == 3
        assert cache.get("a") is None
        assert cache.get("b") == "b"
        assert cache.get("d") == "d"
        assert cache.stats()["evictions"] == 1

    def test_overwrite_does_not_evict(self, clock):
        """Test overwrite does not evict."""
        cache = QuoteCache(max_entries=2, clock=clock)
        cache.set("a", 1)
        clock.advance(1)
        cache.set("b", 2)
        clock.advance(1)
        cache.set("a", 3)

        assert cache.get("a") == 3
        assert cache.get("b") == 2
        assert cache.stats()["evictions"] == 0

    def test_sweep_removes_only_expired(self, clock):
        """Test sweep removes only expired."""
        cache = QuoteCache(default_ttl_ms=100, clock=clock)
        cache.set("old", 1)
        clock.advance(60)
        cache.set("new", 2)
        clock.advance(50)

        assert cache.sweep() == 1
        assert "old" not in cache
        assert "new" in cache

    def test_rejects_zero_capacity(self):
        """Test rejects zero capacity."""
        with pytest.raises(ValueError):
            QuoteCache(max_entries=0)


class TestMaintenanceLoop:
    """Tests for periodic maintenance."""

    def test_run_once_sweeps_cache_and_prunes_limiter(self, clock):
        """Test run once sweeps cache and prunes limiter."""
        cache = QuoteCache(default_ttl_ms=10, clock=clock)
        limiter = RateLimiter(quota=5, window_seconds=10, clock=clock)
        cache.set("k", 1)
        limiter.check_and_record("client")

        clock.advance(20)
        result = MaintenanceLoop(cache, limiter).run_once()

        assert result == {"expired_entries": 1, "pruned_clients": 1}

    async def test_start_and_stop(self):
        """Test start and stop."""
        loop = MaintenanceLoop(QuoteCache(), RateLimiter(), interval_seconds=0.01)
        loop.start()
        assert loop.running

        await asyncio.sleep(0.03)
        await loop.stop()
        assert not loop.running
