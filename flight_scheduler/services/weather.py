"""Weather observations, training minimums and violation rules.

Forecast hours come from the WeatherAPI.com forecast endpoint and are cached
per (airport, forecast time) in ``weather_cache``. Current conditions for the
conditions endpoint come from the aviationweather.gov METAR API.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

import httpx
from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flight_scheduler.config.settings import settings
from flight_scheduler.models.base import utcnow
from flight_scheduler.models.booking import Booking, FlightType
from flight_scheduler.models.user import TrainingLevel
from flight_scheduler.models.weather import WeatherCache

logger = logging.getLogger("flight_scheduler.pipeline")

MPH_TO_KNOTS = 0.868976
CROSSWIND_FACTOR = 0.7
THUNDERSTORM_CODES = frozenset({1087, 1273, 1276, 1279, 1282})


class WeatherServiceError(RuntimeError):
    """Raised when weather data cannot be retrieved or understood."""

    def __init__(self, message: str, status_code: int = status.HTTP_502_BAD_GATEWAY):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class TrainingMinimums:
    visibility_miles: float
    ceiling_ft: int
    wind_speed_knots: int
    crosswind_knots: int
    cloud_cover_percent: int
    no_thunderstorms: bool = True
    no_icing: bool = True
    clear_skies_required: bool = False


TRAINING_MINIMUMS: dict[TrainingLevel, TrainingMinimums] = {
    TrainingLevel.STUDENT_PILOT: TrainingMinimums(5, 5000, 10, 7, 25, True, True, True),
    TrainingLevel.PRIVATE_PILOT: TrainingMinimums(3, 1000, 20, 15, 75, True, True, False),
    TrainingLevel.INSTRUMENT_RATED: TrainingMinimums(1, 200, 30, 20, 100, True, True, False),
    TrainingLevel.COMMERCIAL_PILOT: TrainingMinimums(1, 200, 35, 20, 100, True, True, False),
}


def minimums_for(level: Any) -> TrainingMinimums:
    """Minimums for a training level; unknown or missing levels get student minimums."""

    try:
        return TRAINING_MINIMUMS[TrainingLevel(getattr(level, "value", level))]
    except ValueError:
        return TRAINING_MINIMUMS[TrainingLevel.STUDENT_PILOT]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def mph_to_knots(mph: float) -> int:
    return round_half_up((mph or 0) * MPH_TO_KNOTS)


def estimate_ceiling(cloud_cover: float) -> Optional[int]:
    """Rough ceiling from cloud cover (SKC/FEW/SCT/BKN/OVC bands)."""

    if cloud_cover < 12:
        return None
    if cloud_cover < 25:
        return 10000
    if cloud_cover < 50:
        return 5000
    if cloud_cover < 87:
        return 3000
    return 1000


def has_icing_conditions(
    temp_f: float, cloud_cover: float, precip_mm: float, humidity: float
) -> bool:
    """Freezing temperature with visible moisture."""

    if temp_f > 32:
        return False
    return cloud_cover > 50 or precip_mm > 0 or humidity > 80


def _number(value: Any) -> str:
    """Render 1.5 as "1.5" and 5.0 as "5"."""

    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def observation_from_hour(airport: str, hour: dict[str, Any]) -> dict[str, Any]:
    """Convert one WeatherAPI forecast hour into a checkpoint observation."""

    condition = hour.get("condition") or {}
    cloud = hour.get("cloud", 0) or 0
    temp_f = hour.get("temp_f", 70)
    wind_knots = mph_to_knots(hour.get("wind_mph", 0))
    return {
        "airport": airport,
        "timestamp": hour.get("time"),
        "visibility_miles": hour.get("vis_miles", 10),
        "ceiling_ft": estimate_ceiling(cloud),
        "wind_speed_knots": wind_knots,
        "wind_direction_deg": hour.get("wind_degree", 0),
        "crosswind_knots": round_half_up(wind_knots * CROSSWIND_FACTOR),
        "cloud_cover_percent": cloud,
        "temp_f": temp_f,
        "condition_code": condition.get("code"),
        "condition_text": condition.get("text", "Unknown"),
        "has_thunderstorm": condition.get("code") in THUNDERSTORM_CODES,
        "has_icing": has_icing_conditions(
            temp_f,
            cloud,
            hour.get("precip_mm", 0) or 0,
            hour.get("humidity", 0) or 0,
        ),
    }


def select_forecast_hour(payload: dict[str, Any], when: datetime) -> dict[str, Any]:
    """Pick the forecast hour matching ``when``'s hour, else the first hour."""

    try:
        hours = payload["forecast"]["forecastday"][0]["hour"]
    except (KeyError, IndexError, TypeError):
        raise WeatherServiceError("Weather API response has no forecast hours") from None
    if not hours:
        raise WeatherServiceError("Weather API response has no forecast hours")

    for hour in hours:
        try:
            stamp = datetime.strptime(hour.get("time", ""), "%Y-%m-%d %H:%M")
        except ValueError:
            continue
        if stamp.hour == when.hour:
            return hour
    return hours[0]


def checkpoints_for(booking: Booking) -> list[str]:
    """Airports whose weather gates the flight, in route order."""

    checkpoints = [booking.departure_airport]
    if not booking.destination_airport:
        return checkpoints
    if booking.flight_type == FlightType.SHORT_XC:
        checkpoints.append(booking.destination_airport)
    elif booking.flight_type == FlightType.LONG_XC:
        waypoints = booking.route_waypoints or []
        if waypoints:
            middle = waypoints[len(waypoints) // 2]
            code = middle.get("airport") if isinstance(middle, dict) else middle
            if code:
                checkpoints.append(str(code).upper())
        checkpoints.append(booking.destination_airport)
    return checkpoints


def check_violations(
    observations: Iterable[dict[str, Any]],
    minimums: TrainingMinimums,
    aircraft_minimums: Optional[dict[str, Any]] = None,
) -> list[str]:
    """Human readable reasons the observations break the minimums."""

    violations: list[str] = []
    clear_skies_aircraft = bool((aircraft_minimums or {}).get("clear_skies_required"))

    for weather in observations:
        location = weather.get("airport")
        visibility = weather.get("visibility_miles")
        ceiling = weather.get("ceiling_ft")
        wind = weather.get("wind_speed_knots", 0)
        crosswind = weather.get("crosswind_knots", 0)
        cloud = weather.get("cloud_cover_percent", 0)

        if visibility is not None and visibility < minimums.visibility_miles:
            violations.append(
                f"Visibility at {location}: {_number(visibility)}mi "
                f"(min: {_number(minimums.visibility_miles)}mi)"
            )
        if ceiling is not None and ceiling < minimums.ceiling_ft:
            violations.append(
                f"Ceiling at {location}: {ceiling}ft (min: {minimums.ceiling_ft}ft)"
            )
        if wind > minimums.wind_speed_knots:
            violations.append(
                f"Wind at {location}: {wind}kts (max: {minimums.wind_speed_knots}kts)"
            )
        if crosswind > minimums.crosswind_knots:
            violations.append(
                f"Crosswind at {location}: {crosswind}kts "
                f"(max: {minimums.crosswind_knots}kts)"
            )
        if cloud > minimums.cloud_cover_percent:
            violations.append(
                f"Cloud cover at {location}: {_number(cloud)}% "
                f"(max: {minimums.cloud_cover_percent}%)"
            )
        if minimums.no_thunderstorms and weather.get("has_thunderstorm"):
            violations.append(
                f"Thunderstorms detected at {location}: {weather.get('condition_text')}"
            )
        if minimums.no_icing and weather.get("has_icing"):
            violations.append(
                f"Icing conditions at {location}: Temp {_number(weather.get('temp_f'))}°F "
                "with visible moisture"
            )
        if minimums.clear_skies_required and (
            cloud >= 25 or (ceiling is not None and ceiling <= 5000)
        ):
            violations.append(
                f"Clear skies required at {location}: {_number(cloud)}% cloud cover"
            )
        if clear_skies_aircraft and cloud > 0:
            violations.append(
                f"Aircraft requires clear skies at {location}: {_number(cloud)}% cloud cover"
            )
    return violations


class WeatherClient:
    """HTTP access to the forecast provider and the METAR service."""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None) -> None:
        self._http_client = http_client

    async def _get(self, url: str, params: dict[str, Any]) -> Any:
        timeout = settings.weather.request_timeout_seconds
        try:
            if self._http_client is not None:
                response = await self._http_client.get(url, params=params, timeout=timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(url, params=params, timeout=timeout)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise WeatherServiceError(
                f"Weather provider error: {exc.response.status_code}",
                exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            raise WeatherServiceError(
                f"Unable to reach weather provider: {exc}",
                status.HTTP_503_SERVICE_UNAVAILABLE,
            ) from exc
        except ValueError as exc:
            raise WeatherServiceError(f"Invalid weather provider response: {exc}") from exc

    async def fetch_forecast(self, airport: str, when: datetime) -> dict[str, Any]:
        api_key = settings.weather.api_key
        if api_key is None:
            raise WeatherServiceError(
                "Weather API key is not configured", status.HTTP_503_SERVICE_UNAVAILABLE
            )
        return await self._get(
            f"{settings.weather.api_url.rstrip('/')}/forecast.json",
            {
                "key": api_key.get_secret_value(),
                "q": airport,
                "dt": when.strftime("%Y-%m-%d"),
                "aqi": "no",
                "alerts": "no",
            },
        )

    async def fetch_metar(self, icao_code: str) -> dict[str, Any]:
        data = await self._get(
            settings.weather.metar_url, {"ids": icao_code, "format": "json"}
        )
        if not data:
            raise WeatherServiceError(
                f"No METAR data available for {icao_code}", status.HTTP_404_NOT_FOUND
            )
        return data[0]


async def get_observation(
    session: AsyncSession,
    airport: str,
    when: datetime,
    client: Optional[WeatherClient] = None,
) -> dict[str, Any]:
    """Observation for a checkpoint, served from ``weather_cache`` while fresh."""

    now = utcnow()
    result = await session.execute(
        select(WeatherCache).where(
            WeatherCache.airport_code == airport,
            WeatherCache.forecast_time == when,
        )
    )
    cached = result.scalar_one_or_none()
    if cached is not None and cached.expires_at >= now:
        logger.info("Using cached weather for %s at %s", airport, when.isoformat())
        return cached.weather_data

    logger.info("Fetching weather for %s at %s", airport, when.isoformat())
    payload = await (client or WeatherClient()).fetch_forecast(airport, when)
    observation = observation_from_hour(airport, select_forecast_hour(payload, when))

    expires_at = now + timedelta(seconds=settings.weather.cache_ttl_seconds)
    if cached is None:
        session.add(
            WeatherCache(
                airport_code=airport,
                forecast_time=when,
                weather_data=observation,
                fetched_at=now,
                expires_at=expires_at,
            )
        )
    else:
        cached.weather_data = observation
        cached.fetched_at = now
        cached.expires_at = expires_at
    await session.flush()
    return observation


__all__ = [
    "THUNDERSTORM_CODES",
    "TRAINING_MINIMUMS",
    "TrainingMinimums",
    "WeatherClient",
    "WeatherServiceError",
    "check_violations",
    "checkpoints_for",
    "estimate_ceiling",
    "get_observation",
    "has_icing_conditions",
    "minimums_for",
    "mph_to_knots",
    "observation_from_hour",
    "select_forecast_hour",
]
