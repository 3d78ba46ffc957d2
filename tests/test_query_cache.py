"""Query cache liveness, staleness and prefix invalidation."""

from __future__ import annotations

import asyncio

from flight_scheduler.services.query_cache import QueryCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _loader(value, calls):
    async def _load():
        calls.append(value)
        return value

    return _load


def test_offline_cache_always_loads():
    cache = QueryCache(stale_seconds=30)
    calls = []

    for _ in range(2):
        assert asyncio.run(cache.get_or_load(("bookings", 1), _loader("rows", calls))) == "rows"

    assert calls == ["rows", "rows"]
    assert len(cache) == 0


def test_live_cache_serves_until_stale():
    clock = FakeClock()
    cache = QueryCache(stale_seconds=30, clock=clock)
    cache.set_live(True)
    calls = []

    asyncio.run(cache.get_or_load(("aircraft", False), _loader("a", calls)))
    clock.now = 29.0
    asyncio.run(cache.get_or_load(("aircraft", False), _loader("b", calls)))
    assert calls == ["a"]

    clock.now = 31.0
    assert asyncio.run(cache.get_or_load(("aircraft", False), _loader("c", calls))) == "c"
    assert calls == ["a", "c"]


def test_prefix_invalidation():
    cache = QueryCache(stale_seconds=30)
    cache.set_live(True)
    cache.set(("bookings", 1, False, None), "one")
    cache.set(("bookings", 1, True, None), "one-past")
    cache.set(("bookings", 2, False, None), "two")
    cache.set(("admin-bookings", False, None), "all")

    assert cache.invalidate(("bookings", 1)) == 2
    assert cache.get(("bookings", 2, False, None)) == (True, "two")

    assert cache.invalidate(("bookings",)) == 1
    assert cache.get(("admin-bookings", False, None)) == (True, "all")
    assert cache.invalidate(("weather-conflicts",)) == 0


def test_going_offline_clears_entries():
    cache = QueryCache(stale_seconds=30)
    cache.set_live(True)
    cache.set(("airports", False), ["KAUS"])

    cache.set_live(False)

    assert len(cache) == 0
    assert cache.get(("airports", False)) == (False, None)
    cache.set(("airports", False), ["KAUS"])
    assert len(cache) == 0
