#!/usr/bin/env python3
"""
Unit tests for the variant cache
get/set, TTL, namespace isolation, degradation on store failure, fingerprints
"""

import pytest
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from pagecache.cache import VariantCache
from pagecache.circuit_breaker import CircuitBreakerStore
from pagecache.fingerprint import FingerprintBuilder, fingerprint
from pagecache.store import MemoryStore, StoreUnavailable


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


class BrokenStore:
    """Store whose every call fails."""

    def __init__(self):
        self.calls = 0

    def get(self, namespace, key):
        self.calls += 1
        raise StoreUnavailable("disk gone")

    def set(self, namespace, key, value, ttl=0):
        self.calls += 1
        raise StoreUnavailable("disk gone")

    def clear_namespace(self, namespace):
        self.calls += 1
        raise StoreUnavailable("disk gone")

    def clear_expired(self):
        self.calls += 1
        raise StoreUnavailable("disk gone")


class TestVariantCache:
    """Test namespaced cache operations."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self, clock):
        return MemoryStore(clock=clock)

    @pytest.fixture
    def cache(self, store):
        return VariantCache(store, namespace="resource_custom")

    def test_cache_write_and_read(self, cache):
        """Test: write entry, read it back."""
        assert cache.set("12.mobile", "<html>mobile</html>") is True

        assert cache.get("12.mobile") == "<html>mobile</html>"

    def test_miss_is_none(self, cache):
        """Test: a miss is a normal outcome, not an error."""
        assert cache.get("99.desktop") is None

        stats = cache.get_stats()
        assert stats["misses"] == 1
        assert stats["errors"] == 0

    def test_set_overwrites(self, cache):
        cache.set("12.tablet", "old")
        cache.set("12.tablet", "new")

        assert cache.get("12.tablet") == "new"

    def test_zero_ttl_never_expires(self, cache, clock):
        cache.set("12.desktop", "page", ttl=0)

        clock.now += 10 * 365 * 86400
        assert cache.get("12.desktop") == "page"

    def test_ttl_expiry(self, store, clock):
        """Test: entries expire after TTL."""
        cache = VariantCache(store, ttl=60)
        cache.set("12.mobile", "page")

        clock.now += 59
        assert cache.get("12.mobile") == "page"

        clock.now += 2
        assert cache.get("12.mobile") is None

    def test_clear_expired(self, store, clock):
        cache = VariantCache(store, ttl=60)
        cache.set("1.mobile", "short")
        cache.set("2.mobile", "forever", ttl=0)

        clock.now += 61
        assert cache.clear_expired() == 1
        assert cache.get("2.mobile") == "forever"

    def test_clear_namespace_leaves_host_namespace(self, cache, store):
        """Test: clearing variants never touches the host's own entries."""
        store.set("default", "12", "host page")
        cache.set("12.mobile", "m")
        cache.set("13.tablet", "t")

        assert cache.clear_namespace() == 2

        assert cache.get("12.mobile") is None
        assert cache.get("13.tablet") is None
        assert store.get("default", "12") == "host page"

    def test_host_clear_leaves_variants(self, cache, store):
        store.set("default", "12", "host page")
        cache.set("12.mobile", "m")

        store.clear_namespace("default")

        assert cache.get("12.mobile") == "m"

    def test_host_namespace_rejected(self, store):
        with pytest.raises(ValueError):
            VariantCache(store, namespace="default")

    def test_negative_ttl_rejected(self, store):
        with pytest.raises(ValueError):
            VariantCache(store, ttl=-5)

    def test_stats_accuracy(self, cache):
        """Test: stats accurately reflect cache operations."""
        cache.set("1.desktop", "a")
        cache.set("2.desktop", "b")

        cache.get("1.desktop")  # Hit
        cache.get("1.desktop")  # Hit
        cache.get("2.desktop")  # Hit
        cache.get("3.desktop")  # Miss

        stats = cache.get_stats()
        assert stats["writes"] == 2
        assert stats["hits"] == 3
        assert stats["misses"] == 1
        assert stats["hit_rate_percent"] == 75.0

    def test_stats_exact_under_concurrent_access(self, cache):
        """Test: counters stay exact when many threads share one cache."""
        workers, rounds = 8, 200

        def worker(n):
            for i in range(rounds):
                key = f"{n}.desktop"
                if cache.get(key) is None:
                    cache.set(key, f"page {i}")

        with ThreadPoolExecutor(max_workers=workers) as pool:
            list(pool.map(worker, range(workers)))

        stats = cache.get_stats()
        assert stats["total_requests"] == workers * rounds
        assert stats["hits"] + stats["misses"] == workers * rounds
        assert stats["writes"] == stats["misses"] == workers


class TestStoreFailures:
    """Test: store failures degrade to miss / dropped write."""

    def test_get_failure_is_miss(self):
        cache = VariantCache(BrokenStore())

        assert cache.get("12.mobile") is None
        assert cache.get_stats()["errors"] == 1

    def test_set_failure_is_swallowed(self):
        cache = VariantCache(BrokenStore())

        assert cache.set("12.mobile", "page") is False

    def test_clear_failure_returns_zero(self):
        cache = VariantCache(BrokenStore())

        assert cache.clear_namespace() == 0
        assert cache.clear_expired() == 0

    def test_breaker_skips_store_after_failures(self):
        clock = FakeClock()
        store = BrokenStore()
        breaker = CircuitBreakerStore(max_failures=2, ttl_sec=30, clock=clock)
        cache = VariantCache(store, breaker=breaker)

        cache.get("1.desktop")
        cache.get("1.desktop")
        assert store.calls == 2

        # Breaker open: store not touched
        assert cache.get("1.desktop") is None
        assert cache.set("1.desktop", "page") is False
        assert store.calls == 2
        assert cache.get_stats()["skipped"] == 2

        clock.now += 31
        cache.get("1.desktop")
        assert store.calls == 3


class TestFingerprintBuilder:
    """Test fingerprint generation."""

    @pytest.fixture
    def builder(self):
        return FingerprintBuilder()

    def test_deterministic_keys(self, builder):
        """Test: same inputs → same key."""
        assert builder.fingerprint(12, "mobile") == builder.fingerprint(12, "mobile")

    def test_format(self, builder):
        assert builder.fingerprint(12, "mobile") == "12.mobile"
        assert fingerprint("12", "mobile") == "12.mobile"

    def test_different_variant_different_key(self, builder):
        """Test: different variant → different key."""
        keys = {builder.fingerprint(12, v) for v in ("desktop", "tablet", "mobile")}

        assert len(keys) == 3

    def test_no_collisions_across_resources(self, builder):
        resources = [1, 12, 121, "1.2", "a.b.c"]
        variants = ["desktop", "tablet", "mobile"]

        keys = [builder.fingerprint(r, v) for r in resources for v in variants]

        assert len(set(keys)) == len(keys)

    def test_split_inverts(self, builder):
        assert builder.split(builder.fingerprint("a.b", "tablet")) == ("a.b", "tablet")

    @pytest.mark.parametrize("variant", ["", "mob.ile"])
    def test_invalid_variant_rejected(self, builder, variant):
        with pytest.raises(ValueError):
            builder.fingerprint(12, variant)


if __name__ == "__main__":
    # Run tests
    pytest.main([__file__, "-v"])
