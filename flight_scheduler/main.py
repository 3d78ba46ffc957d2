"""Application entry point and FastAPI app factory."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config.settings import settings
from .controllers import (
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
from .database import dispose_engine, init_models
from .middleware import StructuredLoggingMiddleware, TelemetryMiddleware
from .realtime import (
    ChangeEvent,
    ConnectionStatus,
    LocalFeedTransport,
    RealtimeSubscriber,
    change_feed,
    install_change_capture,
    server_cache_channel,
)
from .services.query_cache import query_cache
from .services.weather_monitor import WeatherMonitor

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Stream logs to stdout and rotating files; pipeline logs get their own file."""

    logging.getLogger().handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    log_path = Path(settings.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=1_000_000,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(file_handler)
    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    middleware_logger = logging.getLogger("flight_scheduler.middleware.structured")
    middleware_logger.handlers.clear()
    middleware_stdout = logging.StreamHandler(sys.stdout)
    middleware_stdout.setFormatter(logging.Formatter("%(message)s"))
    middleware_logger.addHandler(middleware_stdout)
    middleware_logger.setLevel(logging.INFO)
    middleware_logger.propagate = False

    pipeline_log_path = Path(settings.pipeline_log_file)
    pipeline_log_path.parent.mkdir(parents=True, exist_ok=True)
    pipeline_handler = RotatingFileHandler(
        pipeline_log_path,
        maxBytes=500_000,
        backupCount=5,
        encoding="utf-8",
    )
    pipeline_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    )
    pipeline_logger = logging.getLogger("flight_scheduler.pipeline")
    pipeline_logger.handlers.clear()
    pipeline_logger.addHandler(pipeline_handler)
    pipeline_logger.setLevel(logging.INFO)

    noisy_loggers = [
        "botocore",
        "boto3",
        "urllib3",
        "httpx",
        "sqlalchemy.engine",
    ]
    for name in noisy_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


_server_cache_channel = server_cache_channel()


def _on_cache_status(status: ConnectionStatus) -> None:
    query_cache.set_live(status == ConnectionStatus.CONNECTED)


def invalidate_committed(change: ChangeEvent) -> None:
    """Drop this process's cached reads touched by a committed change.

    Runs inside the commit, so a read issued right after a write never sees
    the previous list.
    """

    for key in _server_cache_channel.invalidations(change):
        query_cache.invalidate(key)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    _configure_logging()
    install_change_capture(change_feed, on_commit=invalidate_committed)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        description="Flight training scheduling backend with weather monitoring",
    )

    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(bookings.router)
    app.include_router(availability.router)
    app.include_router(aircraft.router)
    app.include_router(lookups.router)
    app.include_router(weather.router)
    app.include_router(proposals.router)
    app.include_router(notifications.router)
    app.include_router(analytics.router)
    app.include_router(realtime.router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""

        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "status": "operational",
        }

    @app.get("/health", include_in_schema=False)
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""

        subscriber = getattr(app.state, "cache_subscriber", None)
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
            "realtime": subscriber.status.value if subscriber else "disconnected",
        }

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose application metrics for Prometheus scraping."""

        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    @app.on_event("startup")
    async def startup_event() -> None:
        await init_models()

        subscriber = RealtimeSubscriber(
            server_cache_channel(),
            LocalFeedTransport(change_feed),
            query_cache.invalidate,
            on_status=_on_cache_status,
        )
        subscriber.start()
        app.state.cache_subscriber = subscriber

        if settings.weather.monitor_enabled:
            monitor = WeatherMonitor()
            monitor.start()
            app.state.weather_monitor = monitor

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        monitor = getattr(app.state, "weather_monitor", None)
        if monitor is not None:
            await monitor.stop()
        subscriber = getattr(app.state, "cache_subscriber", None)
        if subscriber is not None:
            await subscriber.stop()
        await dispose_engine()

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "flight_scheduler.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
