"""Process-local cache for read endpoints, invalidated from the change feed."""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from flight_scheduler.config.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class QueryCache:
    """Tuple-keyed cache with a stale time and prefix invalidation.

    Entries are served only while the cache is *live*, i.e. while a realtime
    subscriber is connected and able to invalidate them. Going offline clears
    the cache and every lookup falls through to the loader.
    """

    def __init__(
        self,
        stale_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._stale_seconds = (
            settings.realtime.cache_stale_seconds
            if stale_seconds is None
            else stale_seconds
        )
        self._clock = clock
        self._entries: dict[tuple, tuple[float, Any]] = {}
        self._live = False

    @property
    def live(self) -> bool:
        return self._live

    def set_live(self, live: bool) -> None:
        if self._live and not live:
            self.clear()
        self._live = live

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: tuple) -> tuple[bool, Any]:
        if not self._live:
            return False, None
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        stored_at, value = entry
        if self._clock() - stored_at > self._stale_seconds:
            del self._entries[key]
            return False, None
        return True, value

    def set(self, key: tuple, value: Any) -> None:
        if self._live:
            self._entries[key] = (self._clock(), value)

    async def get_or_load(self, key: tuple, loader: Callable[[], Awaitable[T]]) -> T:
        hit, value = self.get(key)
        if hit:
            return value
        value = await loader()
        self.set(key, value)
        return value

    def invalidate(self, prefix: tuple) -> int:
        """Drop every entry whose key starts with ``prefix``."""

        size = len(prefix)
        doomed = [key for key in self._entries if key[:size] == prefix]
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.debug("Invalidated %d cache entries for %s", len(doomed), prefix)
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()


query_cache = QueryCache()


__all__ = ["QueryCache", "query_cache"]
