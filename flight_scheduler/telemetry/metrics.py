"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

LOGIN_COUNTER = Counter(
    "app_logins_total",
    "Number of successful user login events",
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

BOOKING_TRANSITIONS = Counter(
    "booking_status_transitions_total",
    "Booking status changes grouped by the status entered",
    ("status",),
)

CONFLICTS_DETECTED = Counter(
    "weather_conflicts_detected_total",
    "Weather conflicts raised by the monitor or the simulator",
    ("source",),
)

PROPOSALS_GENERATED = Counter(
    "reschedule_proposals_generated_total",
    "Reschedule proposals stored, grouped by how they were ranked",
    ("ranking",),
)

REALTIME_RECONNECTS = Counter(
    "realtime_reconnect_attempts_total",
    "Reconnect attempts made by realtime subscribers",
    ("channel",),
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def increment_login() -> None:
    """Increment the successful login counter."""

    LOGIN_COUNTER.inc()


def record_transition(status: str) -> None:
    BOOKING_TRANSITIONS.labels(status=status).inc()


def record_conflict(source: str = "monitor") -> None:
    CONFLICTS_DETECTED.labels(source=source).inc()


def record_proposals(count: int, ranking: str) -> None:
    if count > 0:
        PROPOSALS_GENERATED.labels(ranking=ranking).inc(count)


def record_reconnect(channel: str) -> None:
    REALTIME_RECONNECTS.labels(channel=channel).inc()
