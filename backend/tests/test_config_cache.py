"""
Config Cache - الذاكرة المؤقتة للإعدادات
"""
import asyncio

from services.config_cache import ConfigCache


class FakeClock:

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class CountingFetch:

    def __init__(self, value):
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0)
        if isinstance(self.value, Exception):
            raise self.value
        return self.value


class TestConfigCacheTTL:

    async def test_hit_within_ttl(self):
        clock = FakeClock()
        cache = ConfigCache(clock=clock)
        fetch = CountingFetch({"enabled": True})

        assert await cache.get("flag", fetch, ttl_ms=300000) == {"enabled": True}
        clock.advance(299)
        assert await cache.get("flag", fetch, ttl_ms=300000) == {"enabled": True}
        assert fetch.calls == 1

    async def test_boundary_age_still_fresh(self):
        clock = FakeClock()
        cache = ConfigCache(clock=clock)
        fetch = CountingFetch("v")

        await cache.get("k", fetch, ttl_ms=1000)
        clock.advance(1.0)
        await cache.get("k", fetch, ttl_ms=1000)
        assert fetch.calls == 1

    async def test_refetch_after_expiry(self):
        clock = FakeClock()
        cache = ConfigCache(clock=clock)
        fetch = CountingFetch("v1")

        await cache.get("k", fetch, ttl_ms=1000)
        clock.advance(1.5)
        fetch.value = "v2"
        assert await cache.get("k", fetch, ttl_ms=1000) == "v2"
        assert fetch.calls == 2


class TestConfigCacheFailures:

    async def test_fetch_error_returns_none(self):
        cache = ConfigCache()
        fetch = CountingFetch(RuntimeError("boom"))
        assert await cache.get("k", fetch, ttl_ms=1000) is None
        assert "k" not in cache

    async def test_missing_value_not_cached(self):
        cache = ConfigCache()
        fetch = CountingFetch(None)
        await cache.get("k", fetch, ttl_ms=1000)
        await cache.get("k", fetch, ttl_ms=1000)
        assert fetch.calls == 2


class TestConfigCacheConcurrency:

    async def test_concurrent_misses_share_one_fetch(self):
        cache = ConfigCache()
        fetch = CountingFetch("shared")
        results = await asyncio.gather(*[cache.get("k", fetch, ttl_ms=1000) for _ in range(5)])
        assert results == ["shared"] * 5
        assert fetch.calls == 1

    async def test_invalidate(self):
        cache = ConfigCache()
        fetch = CountingFetch("v")
        await cache.get("a", fetch, ttl_ms=1000)
        await cache.get("b", fetch, ttl_ms=1000)

        cache.invalidate("a")
        assert "a" not in cache
        assert "b" in cache

        cache.invalidate_all()
        assert "b" not in cache
