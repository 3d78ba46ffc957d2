"""Service layer: booking workflow, weather, rescheduling and integrations."""

from .bookings import BookingActionError
from .email import EmailServiceError, send_email
from .llm_client import BedrockLlmClient, LlmInvocationError
from .query_cache import QueryCache, query_cache
from .rescheduler import RescheduleError, Rescheduler
from .weather import WeatherClient, WeatherServiceError
from .weather_monitor import WeatherMonitor, run_weather_sweep, simulate_conflict

__all__ = [
    "BedrockLlmClient",
    "BookingActionError",
    "EmailServiceError",
    "LlmInvocationError",
    "QueryCache",
    "RescheduleError",
    "Rescheduler",
    "WeatherClient",
    "WeatherMonitor",
    "WeatherServiceError",
    "query_cache",
    "run_weather_sweep",
    "send_email",
    "simulate_conflict",
]
