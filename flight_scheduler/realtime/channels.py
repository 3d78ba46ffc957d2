"""Channel definitions mapping table changes to cache keys."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from flight_scheduler.config.settings import settings
from flight_scheduler.models.user import UserRole
from flight_scheduler.realtime.feed import INSERT, UPDATE, ChangeEvent

ANY_EVENT = "*"


@dataclass(frozen=True)
class Binding:
    """Invalidate ``invalidate`` (debounced) when a matching change arrives."""

    table: str
    invalidate: tuple
    debounce_ms: int
    events: tuple[str, ...] = (ANY_EVENT,)
    filter: Optional[tuple[str, Any]] = None

    def matches(self, change: ChangeEvent) -> bool:
        if change.table != self.table:
            return False
        if ANY_EVENT not in self.events and change.event not in self.events:
            return False
        if self.filter is not None:
            column, value = self.filter
            return change.record.get(column) == value
        return True


@dataclass(frozen=True)
class ChannelSpec:
    name: str
    bindings: tuple[Binding, ...]

    def matching(self, change: ChangeEvent) -> list[Binding]:
        return [binding for binding in self.bindings if binding.matches(change)]

    def invalidations(self, change: ChangeEvent) -> list[tuple]:
        """Distinct cache keys the change invalidates, in binding order."""

        keys: list[tuple] = []
        for binding in self.matching(change):
            if binding.invalidate not in keys:
                keys.append(binding.invalidate)
        return keys


def user_channel(user_id: int) -> ChannelSpec:
    delay = settings.realtime.user_debounce_ms
    return ChannelSpec(
        name=f"user-{user_id}-updates",
        bindings=(
            Binding(
                "bookings",
                ("bookings", user_id),
                delay,
                filter=("student_id", user_id),
            ),
            Binding(
                "bookings",
                ("bookings", user_id),
                delay,
                filter=("instructor_id", user_id),
            ),
            Binding(
                "weather_conflicts",
                ("weather-conflicts", user_id),
                delay,
                events=(INSERT, UPDATE),
            ),
            Binding(
                "reschedule_proposals",
                ("proposals",),
                delay,
                events=(INSERT, UPDATE),
            ),
        ),
    )


def instructor_channel(instructor_id: int) -> ChannelSpec:
    delay = settings.realtime.user_debounce_ms
    return ChannelSpec(
        name=f"instructor-{instructor_id}-updates",
        bindings=(
            Binding(
                "bookings",
                ("instructor-bookings", instructor_id),
                delay,
                filter=("instructor_id", instructor_id),
            ),
            Binding("weather_conflicts", ("weather-conflicts", instructor_id), delay),
            Binding(
                "weather_conflicts", ("instructor-proposals", instructor_id), delay
            ),
            Binding(
                "reschedule_proposals",
                ("instructor-proposals", instructor_id),
                delay,
                events=(UPDATE,),
            ),
        ),
    )


def _admin_bindings() -> tuple[Binding, ...]:
    delay = settings.realtime.admin_debounce_ms
    return (
        Binding("bookings", ("admin-bookings",), delay),
        Binding("weather_conflicts", ("admin-weather-conflicts",), delay),
        Binding("reschedule_proposals", ("admin-proposals",), delay),
        Binding("users", ("admin-users",), settings.realtime.users_table_debounce_ms),
        Binding("airports", ("airports",), delay),
        Binding("lesson_types", ("lesson-types",), delay),
    )


def admin_channel() -> ChannelSpec:
    return ChannelSpec(name="admin-system-updates", bindings=_admin_bindings())


def server_cache_channel() -> ChannelSpec:
    """System-wide channel used by the process to keep its query cache coherent.

    Extends the admin bindings with unfiltered bindings for the per-user key
    prefixes so every cached user list is dropped on relevant changes.
    """

    delay = settings.realtime.admin_debounce_ms
    return ChannelSpec(
        name="server-cache-updates",
        bindings=_admin_bindings()
        + (
            Binding("bookings", ("bookings",), delay),
            Binding("bookings", ("instructor-bookings",), delay),
            Binding("weather_conflicts", ("weather-conflicts",), delay),
            Binding("weather_conflicts", ("instructor-proposals",), delay),
            Binding("reschedule_proposals", ("proposals",), delay),
            Binding("reschedule_proposals", ("instructor-proposals",), delay),
            Binding("aircraft", ("aircraft",), delay),
        ),
    )


def channel_for_user(user: Any) -> ChannelSpec:
    """Pick the channel a connected user should follow based on their role."""

    role = getattr(user.role, "value", user.role)
    if role == UserRole.ADMIN.value:
        return admin_channel()
    if role == UserRole.INSTRUCTOR.value:
        return instructor_channel(user.id)
    return user_channel(user.id)


__all__ = [
    "ANY_EVENT",
    "Binding",
    "ChannelSpec",
    "admin_channel",
    "channel_for_user",
    "instructor_channel",
    "server_cache_channel",
    "user_channel",
]
