"""Publish/subscribe feed of committed row changes.

Mutations are captured from SQLAlchemy session events: rows touched during a
flush are remembered on the session and published once the transaction
commits. A rollback discards them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from flight_scheduler.config.settings import settings

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"

WATCHED_TABLES = frozenset(
    {
        "aircraft",
        "airports",
        "availability",
        "bookings",
        "lesson_types",
        "notifications",
        "reschedule_proposals",
        "users",
        "weather_conflicts",
    }
)

_EXCLUDED_COLUMNS = {"users": frozenset({"password_hash"})}
_PENDING_KEY = "flight_scheduler.pending_changes"
_CLOSED = object()


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event: str
    record: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"table": self.table, "event": self.event, "record": self.record}


class ChannelClosedError(RuntimeError):
    """Raised by a subscription once it has been closed or dropped."""


class FeedSubscription:
    """Bounded queue of events delivered to one subscriber."""

    def __init__(self, feed: "ChangeFeed", maxsize: int) -> None:
        self._feed = feed
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize + 1)
        self._maxsize = maxsize
        self._closed = False
        self.close_reason: Optional[str] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, change: ChangeEvent) -> bool:
        if self._closed or self._queue.qsize() >= self._maxsize:
            return False
        self._queue.put_nowait(change)
        return True

    def close(self, reason: Optional[str] = None) -> None:
        if self._closed:
            return
        self._closed = True
        self.close_reason = reason
        self._feed.unsubscribe(self)
        if reason is not None:
            # Pending events are dropped so the error surfaces immediately.
            while not self._queue.empty():
                self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    async def get(self) -> ChangeEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            raise ChannelClosedError(self.close_reason or "subscription closed")
        return item

    def __aiter__(self) -> "FeedSubscription":
        return self

    async def __anext__(self) -> ChangeEvent:
        try:
            return await self.get()
        except ChannelClosedError:
            if self.close_reason is None:
                raise StopAsyncIteration from None
            raise


class ChangeFeed:
    """Fan-out of change events to every active subscription."""

    def __init__(self, queue_size: Optional[int] = None) -> None:
        self._queue_size = queue_size or settings.realtime.subscriber_queue_size
        self._subscriptions: set[FeedSubscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, maxsize: Optional[int] = None) -> FeedSubscription:
        subscription = FeedSubscription(self, maxsize or self._queue_size)
        self._subscriptions.add(subscription)
        return subscription

    def unsubscribe(self, subscription: FeedSubscription) -> None:
        self._subscriptions.discard(subscription)

    def publish(self, change: ChangeEvent) -> int:
        """Deliver ``change`` to every subscriber, dropping any that cannot keep up."""

        delivered = 0
        for subscription in list(self._subscriptions):
            if subscription.offer(change):
                delivered += 1
                continue
            logger.warning(
                "Dropping realtime subscriber: queue full while publishing %s %s",
                change.event,
                change.table,
            )
            subscription.close("subscriber queue full")
        return delivered


def _json_safe(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def serialize_row(instance: Any) -> dict[str, Any]:
    """Return the loaded column values of an ORM instance as JSON-safe data."""

    state = inspect(instance)
    table = state.mapper.local_table.name
    excluded = _EXCLUDED_COLUMNS.get(table, frozenset())
    record: dict[str, Any] = {}
    for attr in state.mapper.column_attrs:
        column_name = attr.columns[0].name
        if column_name in excluded or attr.key not in state.dict:
            continue
        record[column_name] = _json_safe(state.dict[attr.key])
    return record


def _table_name(instance: Any) -> Optional[str]:
    table = getattr(instance, "__table__", None)
    if table is None or table.name not in WATCHED_TABLES:
        return None
    return table.name


def _capture_flush(session: Session, flush_context: Any) -> None:
    pending = session.info.setdefault(_PENDING_KEY, [])
    for kind, instances in (
        (INSERT, session.new),
        (UPDATE, session.dirty),
        (DELETE, session.deleted),
    ):
        for instance in instances:
            table = _table_name(instance)
            if table is None:
                continue
            if kind == UPDATE and not session.is_modified(
                instance, include_collections=False
            ):
                continue
            pending.append(ChangeEvent(table, kind, serialize_row(instance)))


class _CaptureHooks:
    def __init__(
        self, feed: ChangeFeed, on_commit: Optional[Callable[[ChangeEvent], None]]
    ) -> None:
        self.feed = feed
        self.on_commit = on_commit

    def after_flush(self, session: Session, flush_context: Any) -> None:
        _capture_flush(session, flush_context)

    def after_commit(self, session: Session) -> None:
        pending = session.info.pop(_PENDING_KEY, [])
        for change in pending:
            if self.on_commit is not None:
                try:
                    self.on_commit(change)
                except Exception:
                    logger.exception(
                        "Commit listener failed for %s %s", change.event, change.table
                    )
            self.feed.publish(change)

    def after_rollback(self, session: Session) -> None:
        session.info.pop(_PENDING_KEY, None)


_installed_hooks: Optional[_CaptureHooks] = None


def install_change_capture(
    feed: ChangeFeed, on_commit: Optional[Callable[[ChangeEvent], None]] = None
) -> None:
    """Publish committed ORM changes to ``feed``; later calls retarget the feed.

    ``on_commit`` runs synchronously for each change before it is published,
    so in-process state can be updated before the committing request returns.
    """

    global _installed_hooks
    if _installed_hooks is not None:
        _installed_hooks.feed = feed
        _installed_hooks.on_commit = on_commit
        return

    hooks = _CaptureHooks(feed, on_commit)
    event.listen(Session, "after_flush", hooks.after_flush)
    event.listen(Session, "after_commit", hooks.after_commit)
    event.listen(Session, "after_rollback", hooks.after_rollback)
    _installed_hooks = hooks


change_feed = ChangeFeed()


__all__ = [
    "ChangeEvent",
    "ChangeFeed",
    "ChannelClosedError",
    "FeedSubscription",
    "INSERT",
    "UPDATE",
    "DELETE",
    "WATCHED_TABLES",
    "change_feed",
    "install_change_capture",
    "serialize_row",
]
