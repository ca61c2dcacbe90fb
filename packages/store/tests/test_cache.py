"""Tests for the TTL caches."""

from commitscore_store.cache import MemoryCache, NullCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestMemoryCache:
    def test_set_and_get(self):
        cache = MemoryCache()
        cache.set("k", {"v": 1})
        assert cache.get("k") == {"v": 1}

    def test_miss_returns_none(self):
        assert MemoryCache().get("missing") is None

    def test_entry_expires_after_default_ttl(self):
        clock = FakeClock()
        cache = MemoryCache(default_ttl=60, clock=clock)
        cache.set("k", "v")

        clock.advance(59)
        assert cache.get("k") == "v"
        clock.advance(1)
        assert cache.get("k") is None

    def test_per_entry_ttl(self):
        clock = FakeClock()
        cache = MemoryCache(default_ttl=60, clock=clock)
        cache.set("short", 1, ttl=5)
        cache.set("long", 2)

        clock.advance(10)
        assert cache.get("short") is None
        assert cache.get("long") == 2

    def test_len_counts_live_entries(self):
        clock = FakeClock()
        cache = MemoryCache(default_ttl=60, clock=clock)
        cache.set("a", 1, ttl=5)
        cache.set("b", 2)
        assert len(cache) == 2
        clock.advance(10)
        assert len(cache) == 1

    def test_delete(self):
        cache = MemoryCache()
        cache.set("k", "v")
        cache.delete("k")
        cache.delete("never-set")
        assert cache.get("k") is None

    def test_full_cache_evicts_expired_then_soonest(self):
        clock = FakeClock()
        cache = MemoryCache(default_ttl=100, max_entries=2, clock=clock)
        cache.set("stale", 1, ttl=1)
        cache.set("soon", 2, ttl=50)
        clock.advance(5)

        cache.set("new", 3)
        assert cache.get("stale") is None
        assert cache.get("soon") == 2

        cache.set("newer", 4)
        assert cache.get("soon") is None
        assert cache.get("new") == 3
        assert cache.get("newer") == 4

    def test_overwriting_a_key_does_not_evict(self):
        cache = MemoryCache(max_entries=1)
        cache.set("k", 1)
        cache.set("k", 2)
        assert cache.get("k") == 2


def test_null_cache_always_misses():
    cache = NullCache()
    cache.set("k", "v")
    assert cache.get("k") is None
    cache.delete("k")
