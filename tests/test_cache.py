import pytest

from repolens.cache import CacheEntry, CacheStore, InMemoryBackend, NullBackend, create_cache_store
from conftest import make_settings


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class ExplodingBackend:
    def get(self, key):
        raise ConnectionError("backend down")

    def set(self, key, value, ttl_ms):
        raise ConnectionError("backend down")

    def delete(self, key):
        raise ConnectionError("backend down")

    def keys(self, prefix=""):
        raise ConnectionError("backend down")


def test_cache_entry_expiry():
    entry = CacheEntry(key="k", value=1, ttl_ms=500, created_at=10.0)
    assert entry.expires_at == 10.5
    assert not entry.expired(10.4)
    assert entry.expired(10.5)


class TestInMemoryBackend:
    def test_entries_expire_after_ttl(self):
        clock = FakeClock()
        backend = InMemoryBackend(maxsize=10, clock=clock)
        backend.set("a", {"x": 1}, ttl_ms=1000)
        clock.advance(0.999)
        assert backend.get("a") == {"x": 1}
        clock.advance(0.001)
        assert backend.get("a") is None
        assert len(backend) == 0

    def test_size_cap_evicts_oldest_insertion(self):
        backend = InMemoryBackend(maxsize=2)
        backend.set("a", 1, 60_000)
        backend.set("b", 2, 60_000)
        backend.set("c", 3, 60_000)
        assert backend.get("a") is None
        assert backend.get("b") == 2
        assert backend.get("c") == 3

    def test_overwrite_does_not_evict_other_keys(self):
        backend = InMemoryBackend(maxsize=2)
        backend.set("a", 1, 60_000)
        backend.set("b", 2, 60_000)
        backend.set("a", 10, 60_000)
        assert backend.get("a") == 10
        assert backend.get("b") == 2

    def test_keys_by_prefix_skips_expired(self):
        clock = FakeClock()
        backend = InMemoryBackend(clock=clock)
        backend.set("github:user_stats:octo", 1, 1000)
        backend.set("github:user_stats:octo:max:5", 2, 5000)
        backend.set("github:repo:octo:hello", 3, 5000)
        clock.advance(2)
        assert backend.keys("github:user_stats:") == ["github:user_stats:octo:max:5"]


class TestCacheStore:
    @pytest.mark.asyncio
    async def test_round_trip_is_namespaced(self, backend):
        store = CacheStore(backend, default_ttl_ms=60_000)
        await store.set("repo:octo:hello", {"name": "hello"})
        assert await store.get("repo:octo:hello") == {"name": "hello"}
        assert backend.get("github:repo:octo:hello") == {"name": "hello"}

    @pytest.mark.asyncio
    async def test_zero_ttl_falls_back_to_default(self):
        clock = FakeClock()
        store = CacheStore(InMemoryBackend(clock=clock), default_ttl_ms=2000)
        await store.set("k", "v", ttl_ms=0)
        clock.advance(1.5)
        assert await store.get("k") == "v"
        clock.advance(1)
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_explicit_ttl_wins(self):
        clock = FakeClock()
        store = CacheStore(InMemoryBackend(clock=clock), default_ttl_ms=60_000)
        await store.set("k", "v", ttl_ms=100)
        clock.advance(0.2)
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_backend_failures_are_swallowed(self, caplog):
        store = CacheStore(ExplodingBackend(), default_ttl_ms=1000)
        assert await store.get("k") is None
        await store.set("k", "v")
        await store.delete("k")
        assert await store.delete_by_prefix("user_stats:") == 0
        assert "backend down" in caplog.text

    @pytest.mark.asyncio
    async def test_delete(self, cache):
        await cache.set("a", 1)
        await cache.delete("a")
        assert await cache.get("a") is None

    @pytest.mark.asyncio
    async def test_delete_by_prefix(self, cache):
        await cache.set("user_stats:octo:max:3", 1)
        await cache.set("user_stats:octo:max:7", 2)
        await cache.set("user_stats:other:max:3", 3)
        assert await cache.delete_by_prefix("user_stats:octo:max:") == 2
        assert await cache.get("user_stats:other:max:3") == 3

    @pytest.mark.asyncio
    async def test_delete_by_prefix_unsupported(self, caplog):
        store = CacheStore(NullBackend(), default_ttl_ms=1000)
        assert await store.delete_by_prefix("user_stats:") == 0
        assert "not supported" in caplog.text

    @pytest.mark.asyncio
    async def test_get_many_and_set_many(self, cache):
        await cache.set_many({"a": 1, "b": 2})
        assert await cache.get_many(["a", "b", "c"]) == {"a": 1, "b": 2, "c": None}

    @pytest.mark.asyncio
    async def test_null_backend_always_misses(self):
        store = CacheStore(NullBackend(), default_ttl_ms=1000)
        await store.set("k", "v")
        assert await store.get("k") is None


def test_create_cache_store_disables_on_zero_ttl():
    store = create_cache_store(make_settings(CACHE_TIMEOUT_MS=0))
    assert isinstance(store.backend, NullBackend)

    store = create_cache_store(make_settings(CACHE_TIMEOUT_MS=1000, CACHE_MAX_ENTRIES=5))
    assert isinstance(store.backend, InMemoryBackend)
    assert store.default_ttl_ms == 1000
