"""Weather minimums, violation text and forecast conversion."""

from __future__ import annotations

from datetime import datetime

import pytest

from flight_scheduler.models import Booking, FlightType, TrainingLevel
from flight_scheduler.services.weather import (
    TRAINING_MINIMUMS,
    WeatherServiceError,
    check_violations,
    checkpoints_for,
    estimate_ceiling,
    has_icing_conditions,
    minimums_for,
    mph_to_knots,
    observation_from_hour,
    select_forecast_hour,
)


def _clear(**overrides):
    weather = {
        "airport": "KAUS",
        "visibility_miles": 10,
        "ceiling_ft": None,
        "wind_speed_knots": 5,
        "crosswind_knots": 3,
        "cloud_cover_percent": 0,
        "temp_f": 70,
        "condition_text": "Sunny",
        "has_thunderstorm": False,
        "has_icing": False,
    }
    weather.update(overrides)
    return weather


def test_unknown_level_falls_back_to_student_minimums():
    assert minimums_for(None) is TRAINING_MINIMUMS[TrainingLevel.STUDENT_PILOT]
    assert minimums_for("bogus") is TRAINING_MINIMUMS[TrainingLevel.STUDENT_PILOT]
    assert minimums_for("instrument_rated").ceiling_ft == 200


@pytest.mark.parametrize(
    "mph, knots",
    [(0, 0), (10, 9), (23, 20), (12.1, 11)],
)
def test_mph_to_knots_rounds_half_up(mph, knots):
    assert mph_to_knots(mph) == knots


def test_estimate_ceiling_bands():
    assert estimate_ceiling(0) is None
    assert estimate_ceiling(20) == 10000
    assert estimate_ceiling(40) == 5000
    assert estimate_ceiling(60) == 3000
    assert estimate_ceiling(95) == 1000


def test_icing_needs_freezing_and_moisture():
    assert has_icing_conditions(30, 60, 0, 40) is True
    assert has_icing_conditions(30, 10, 0, 40) is False
    assert has_icing_conditions(33, 100, 5, 100) is False


def test_clear_weather_has_no_violations():
    minimums = minimums_for(TrainingLevel.PRIVATE_PILOT)
    assert check_violations([_clear()], minimums) == []


def test_violation_messages():
    minimums = minimums_for(TrainingLevel.STUDENT_PILOT)
    weather = _clear(
        visibility_miles=1.5,
        ceiling_ft=800,
        wind_speed_knots=30,
        crosswind_knots=21,
        cloud_cover_percent=98,
    )

    violations = check_violations([weather], minimums)

    assert violations == [
        "Visibility at KAUS: 1.5mi (min: 5mi)",
        "Ceiling at KAUS: 800ft (min: 5000ft)",
        "Wind at KAUS: 30kts (max: 10kts)",
        "Crosswind at KAUS: 21kts (max: 7kts)",
        "Cloud cover at KAUS: 98% (max: 25%)",
        "Clear skies required at KAUS: 98% cloud cover",
    ]


def test_thunderstorms_and_icing_are_reported():
    minimums = minimums_for(TrainingLevel.COMMERCIAL_PILOT)
    weather = _clear(
        has_thunderstorm=True,
        condition_text="Thundery outbreaks",
        has_icing=True,
        temp_f=28,
    )

    assert check_violations([weather], minimums) == [
        "Thunderstorms detected at KAUS: Thundery outbreaks",
        "Icing conditions at KAUS: Temp 28°F with visible moisture",
    ]


def test_aircraft_clear_skies_requirement():
    minimums = minimums_for(TrainingLevel.COMMERCIAL_PILOT)
    weather = _clear(cloud_cover_percent=10)

    assert check_violations([weather], minimums, {"clear_skies_required": True}) == [
        "Aircraft requires clear skies at KAUS: 10% cloud cover"
    ]


def test_observation_from_forecast_hour():
    hour = {
        "time": "2025-03-01 14:00",
        "vis_miles": 6.0,
        "cloud": 60,
        "wind_mph": 23,
        "wind_degree": 180,
        "temp_f": 55,
        "precip_mm": 0,
        "humidity": 40,
        "condition": {"code": 1273, "text": "Patchy light rain with thunder"},
    }

    observation = observation_from_hour("KAUS", hour)

    assert observation["ceiling_ft"] == 3000
    assert observation["wind_speed_knots"] == 20
    assert observation["crosswind_knots"] == 14
    assert observation["has_thunderstorm"] is True
    assert observation["has_icing"] is False


def test_select_forecast_hour():
    payload = {
        "forecast": {
            "forecastday": [
                {"hour": [{"time": "2025-03-01 13:00"}, {"time": "2025-03-01 14:00"}]}
            ]
        }
    }

    assert select_forecast_hour(payload, datetime(2025, 3, 1, 14))["time"].endswith("14:00")
    assert select_forecast_hour(payload, datetime(2025, 3, 1, 20))["time"].endswith("13:00")

    with pytest.raises(WeatherServiceError):
        select_forecast_hour({"forecast": {"forecastday": []}}, datetime(2025, 3, 1))


def test_checkpoints_follow_route():
    local = Booking(departure_airport="KAUS", flight_type=FlightType.LOCAL)
    short = Booking(
        departure_airport="KAUS", destination_airport="KSAT", flight_type=FlightType.SHORT_XC
    )
    long = Booking(
        departure_airport="KAUS",
        destination_airport="KELP",
        flight_type=FlightType.LONG_XC,
        route_waypoints=[{"airport": "kjct"}, {"airport": "kfst"}, {"airport": "kmaf"}],
    )

    assert checkpoints_for(local) == ["KAUS"]
    assert checkpoints_for(short) == ["KAUS", "KSAT"]
    assert checkpoints_for(long) == ["KAUS", "KFST", "KELP"]
