"""Channel subscriber with debounced invalidation and reconnect backoff."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from enum import Enum
from functools import partial
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Protocol

from flight_scheduler.config.settings import settings
from flight_scheduler.realtime.channels import ChannelSpec
from flight_scheduler.realtime.debounce import Debouncer
from flight_scheduler.realtime.feed import (
    ChangeEvent,
    ChangeFeed,
    ChannelClosedError,
    change_feed,
)
from flight_scheduler.telemetry import record_reconnect

logger = logging.getLogger(__name__)


class ConnectionStatus(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class ChannelError(Exception):
    """Raised by a transport when a channel fails to open or breaks."""


class ChannelSubscription(Protocol):
    def __aiter__(self) -> AsyncIterator[ChangeEvent]: ...

    def close(self) -> None: ...


class ChannelTransport(Protocol):
    async def open(self, channel: ChannelSpec) -> ChannelSubscription: ...


class LocalFeedTransport:
    """Transport backed by the in-process change feed."""

    def __init__(self, feed: Optional[ChangeFeed] = None) -> None:
        self._feed = feed or change_feed

    async def open(self, channel: ChannelSpec) -> ChannelSubscription:
        return self._feed.subscribe()


class RealtimeSubscriber:
    """Follow one channel and invalidate cache keys for matching changes.

    Every matching change schedules a debounced call of ``on_invalidate`` with
    the binding's cache key. When the channel errors, times out or closes the
    subscriber reconnects with exponential backoff; after the configured number
    of failed attempts it stops and reports ``ConnectionStatus.ERROR``.
    """

    def __init__(
        self,
        channel: ChannelSpec,
        transport: ChannelTransport,
        on_invalidate: Callable[[tuple], Any],
        *,
        on_status: Optional[Callable[[ConnectionStatus], Any]] = None,
        initial_backoff: Optional[float] = None,
        max_backoff: Optional[float] = None,
        max_attempts: Optional[int] = None,
        connect_timeout: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        config = settings.realtime
        self.channel = channel
        self._transport = transport
        self._on_invalidate = on_invalidate
        self._on_status = on_status
        self._initial_backoff = (
            config.initial_backoff_seconds if initial_backoff is None else initial_backoff
        )
        self._max_backoff = (
            config.max_backoff_seconds if max_backoff is None else max_backoff
        )
        self._max_attempts = (
            config.max_reconnect_attempts if max_attempts is None else max_attempts
        )
        self._connect_timeout = (
            config.connect_timeout_seconds if connect_timeout is None else connect_timeout
        )
        self._sleep = sleep
        self._debouncer = Debouncer()
        self._task: Optional[asyncio.Task] = None
        self._status = ConnectionStatus.DISCONNECTED
        self.attempts = 0
        self.next_delay = self._initial_backoff

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def pending_invalidations(self) -> int:
        return self._debouncer.pending

    def _set_status(self, status: ConnectionStatus) -> None:
        if status == self._status:
            return
        self._status = status
        logger.info("Realtime channel %s is %s", self.channel.name, status.value)
        if self._on_status is not None:
            self._on_status(status)

    def _mark_connected(self) -> None:
        self.attempts = 0
        self.next_delay = self._initial_backoff
        self._set_status(ConnectionStatus.CONNECTED)

    def handle_event(self, change: ChangeEvent) -> None:
        for binding in self.channel.matching(change):
            self._debouncer.call(
                binding.invalidate,
                binding.debounce_ms / 1000.0,
                partial(self._on_invalidate, binding.invalidate),
            )

    async def _consume(self) -> None:
        try:
            subscription = await asyncio.wait_for(
                self._transport.open(self.channel), timeout=self._connect_timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Realtime channel %s timed out", self.channel.name)
            return
        except ChannelError as exc:
            logger.warning("Realtime channel %s failed: %s", self.channel.name, exc)
            return
        except Exception:
            logger.exception("Realtime channel %s could not be opened", self.channel.name)
            return

        self._mark_connected()
        try:
            async for change in subscription:
                self.handle_event(change)
            logger.warning("Realtime channel %s closed", self.channel.name)
        except (ChannelError, ChannelClosedError) as exc:
            logger.warning("Realtime channel %s error: %s", self.channel.name, exc)
        except Exception:
            logger.exception("Realtime channel %s failed while streaming", self.channel.name)
        finally:
            subscription.close()

    async def run(self) -> ConnectionStatus:
        """Subscribe until stopped or the reconnect budget is exhausted."""

        while True:
            await self._consume()
            self._set_status(ConnectionStatus.DISCONNECTED)

            if self.attempts >= self._max_attempts:
                logger.error(
                    "Max reconnection attempts reached for channel %s",
                    self.channel.name,
                )
                self._set_status(ConnectionStatus.ERROR)
                return self._status

            delay = self.next_delay
            self.attempts += 1
            record_reconnect(self.channel.name)
            logger.info(
                "Reconnecting %s in %.1fs (attempt %d/%d)",
                self.channel.name,
                delay,
                self.attempts,
                self._max_attempts,
            )
            await self._sleep(delay)
            self.next_delay = min(delay * 2, self._max_backoff)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(
                self.run(), name=f"realtime:{self.channel.name}"
            )
        return self._task

    async def stop(self) -> None:
        """Cancel the reconnect loop and every pending debounced invalidation."""

        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        self._debouncer.cancel_all()
        self._set_status(ConnectionStatus.DISCONNECTED)


__all__ = [
    "ChannelError",
    "ChannelSubscription",
    "ChannelTransport",
    "ConnectionStatus",
    "LocalFeedTransport",
    "RealtimeSubscriber",
]
