"""Keyed trailing-edge debouncing on the running event loop."""

from __future__ import annotations

import asyncio
import inspect
import logging
from functools import partial
from typing import Any, Callable, Hashable

logger = logging.getLogger(__name__)


class Debouncer:
    """Collapse repeated calls for the same key into one call after the last."""

    def __init__(self) -> None:
        self._handles: dict[Hashable, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._handles)

    def call(
        self, key: Hashable, delay_seconds: float, callback: Callable[[], Any]
    ) -> None:
        loop = asyncio.get_running_loop()
        previous = self._handles.pop(key, None)
        if previous is not None:
            previous.cancel()
        self._handles[key] = loop.call_later(delay_seconds, self._fire, key, callback)

    def _fire(self, key: Hashable, callback: Callable[[], Any]) -> None:
        self._handles.pop(key, None)
        try:
            result = callback()
        except Exception:
            logger.exception("Debounced callback for %r failed", key)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(partial(self._finished, key))

    def _finished(self, key: Hashable, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Debounced callback for %r failed", key, exc_info=exc)

    def cancel_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        for task in self._tasks:
            task.cancel()
        self._tasks.clear()


__all__ = ["Debouncer"]
