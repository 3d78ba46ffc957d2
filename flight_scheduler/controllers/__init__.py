"""FastAPI routers acting as controllers in the MVC architecture."""

from . import (
    aircraft,
    analytics,
    auth,
    availability,
    bookings,
    lookups,
    notifications,
    proposals,
    realtime,
    users,
    weather,
)

__all__ = [
    "aircraft",
    "analytics",
    "auth",
    "availability",
    "bookings",
    "lookups",
    "notifications",
    "proposals",
    "realtime",
    "users",
    "weather",
]
