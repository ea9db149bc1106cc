"""
Config Cache - ذاكرة مؤقتة لإعدادات الحضور

Time-bounded cache in front of a remote configuration source. A failed
remote read never raises: the caller gets None and supplies its own default.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigCacheEntry:
    key: str
    value: Any
    cached_at: float  # seconds, cache clock
    ttl_ms: int


class ConfigCache:
    """TTL cache keyed by configuration name."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, ConfigCacheEntry] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _fresh(self, key: str, ttl_ms: int) -> Optional[ConfigCacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        age_ms = (self._clock() - entry.cached_at) * 1000
        if age_ms > ttl_ms:
            self._entries.pop(key, None)
            return None
        return entry

    async def get(self, key: str, fetch_remote: Callable[[], Awaitable[Any]], ttl_ms: int) -> Any:
        entry = self._fresh(key, ttl_ms)
        if entry is not None:
            logger.debug(f"Config cache hit: {key}")
            return entry.value

        # concurrent misses for the same key share one remote read
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            entry = self._fresh(key, ttl_ms)
            if entry is not None:
                return entry.value

            try:
                value = await fetch_remote()
            except Exception as e:
                logger.error(f"❌ Config fetch failed for {key}: {e}")
                return None

            if value is None:
                logger.warning(f"⚠️ Config {key} not found")
                return None

            self._entries[key] = ConfigCacheEntry(key=key, value=value, cached_at=self._clock(), ttl_ms=ttl_ms)
            return value

    def invalidate(self, key: str):
        self._entries.pop(key, None)

    def invalidate_all(self):
        self._entries.clear()
        logger.info("All config caches cleared")

    def __contains__(self, key: str) -> bool:
        return key in self._entries
