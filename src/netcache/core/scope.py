from __future__ import annotations

import logging
from dataclasses import replace

from .cache import NetworkCache
from .config import CacheConfig
from .matcher import Pattern
from .records import RecordKind, RequestRecord, ResponseRecord

logger = logging.getLogger("netcache.NetworkCacheRegistry")


class NetworkCacheRegistry:
    """one browser-wide cache plus one page cache per tab.

    page caches forward everything they accept to `browser_cache`, so
    lookups can be scoped to a single tab or to the whole browser
    (`global_cache=True`).

    :param config: template config. every cache gets its own copy.
    """

    def __init__(self, config: CacheConfig | None = None):
        self.config = config or CacheConfig()
        self.browser_cache = NetworkCache(replace(self.config), name="browser")
        self._pages: dict[str, NetworkCache] = {}

    def for_tab(self, target_id: str) -> NetworkCache:
        """page cache for `target_id`, created on first use"""
        cache = self._pages.get(target_id)
        if cache is None:
            cache = NetworkCache(
                replace(self.config),
                parent=self.browser_cache,
                name=f"page:{target_id}",
            )
            self._pages[target_id] = cache
            logger.debug("created page cache for %s", target_id)
        return cache

    def drop_tab(self, target_id: str) -> NetworkCache | None:
        """forget a tab's page cache. the browser cache keeps its records."""
        return self._pages.pop(target_id, None)

    @property
    def tabs(self) -> list[str]:
        return list(self._pages)

    def _scoped(self, target_id: str | None, global_cache: bool) -> NetworkCache:
        if global_cache or target_id is None:
            return self.browser_cache
        return self.for_tab(target_id)

    def exist_request(self, pattern: Pattern, target_id: str | None = None, *, global_cache: bool = False) -> RequestRecord | None:
        return self._scoped(target_id, global_cache).exist_request(pattern)

    def exist_response(self, pattern: Pattern, target_id: str | None = None, *, global_cache: bool = False) -> ResponseRecord | None:
        return self._scoped(target_id, global_cache).exist_response(pattern)

    async def wait_request(self,
        pattern: Pattern,
        target_id: str | None = None,
        timeout_ms: float | None = None,
        *,
        global_cache: bool = False,
    ) -> RequestRecord:
        return await self._scoped(target_id, global_cache).start_wait(RecordKind.REQUEST, pattern, timeout_ms)

    async def wait_response(self,
        pattern: Pattern,
        target_id: str | None = None,
        timeout_ms: float | None = None,
        *,
        global_cache: bool = False,
    ) -> ResponseRecord:
        return await self._scoped(target_id, global_cache).start_wait(RecordKind.RESPONSE, pattern, timeout_ms)

    def configure(self, capacity: int | None = None, **kwargs):
        """apply `NetworkCache.configure()` to the browser cache, every
        existing page cache and the template for future tabs"""
        for cache in [self.browser_cache, *self._pages.values()]:
            cache.configure(capacity, **kwargs)
        # keep the template in sync for tabs created later
        self.config = replace(self.browser_cache.config)
