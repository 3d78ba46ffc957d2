"""Telemetry helpers and metrics."""

from .metrics import (
    BOOKING_TRANSITIONS,
    CONFLICTS_DETECTED,
    ERROR_COUNTER,
    LOGIN_COUNTER,
    PROPOSALS_GENERATED,
    REALTIME_RECONNECTS,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    increment_login,
    observe_request,
    record_conflict,
    record_proposals,
    record_reconnect,
    record_transition,
)

__all__ = [
    "BOOKING_TRANSITIONS",
    "CONFLICTS_DETECTED",
    "ERROR_COUNTER",
    "LOGIN_COUNTER",
    "PROPOSALS_GENERATED",
    "REALTIME_RECONNECTS",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "increment_login",
    "observe_request",
    "record_conflict",
    "record_proposals",
    "record_reconnect",
    "record_transition",
]
