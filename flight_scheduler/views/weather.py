"""Pydantic schemas for weather conflicts and conditions."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from flight_scheduler.models.weather import ConflictStatus
from flight_scheduler.views.bookings import BookingResponse
from flight_scheduler.views.common import CamelModel


class WeatherConflictResponse(CamelModel):
    id: int
    booking_id: int
    detected_at: datetime
    status: ConflictStatus
    weather_data: list[dict[str, Any]] = []
    conflict_reasons: list[str] = []
    ai_processing_started_at: Optional[datetime] = None
    ai_processing_completed_at: Optional[datetime] = None
    ai_processing_duration_ms: Optional[int] = None
    resolved_at: Optional[datetime] = None
    resolution_method: Optional[str] = None
    booking: Optional[BookingResponse] = None


class SimulateConflictRequest(CamelModel):
    booking_id: int = Field(ge=1)


class SweepResponse(CamelModel):
    checked: int
    conflicts_detected: int
    conflict_ids: list[int] = []
    errors: list[dict[str, Any]] = []


class CloudLayer(BaseModel):
    """Cloud layer information."""

    cover: str = Field(..., description="Cloud coverage (e.g., FEW, SCT, BKN, OVC)")
    base: Optional[int] = Field(None, description="Cloud base altitude in feet AGL")


class MetarResponse(BaseModel):
    """Current METAR conditions for an airport."""

    icaoId: str = Field(..., description="ICAO airport code")
    temp: Optional[float] = Field(None, description="Temperature in Celsius")
    dewp: Optional[float] = Field(None, description="Dew point in Celsius")
    wdir: Optional[Union[int, str]] = Field(None, description="Wind direction in degrees")
    wspd: Optional[int] = Field(None, description="Wind speed in knots")
    visib: Optional[Union[str, float]] = Field(None, description="Visibility")
    altim: Optional[float] = Field(None, description="Altimeter setting")
    rawOb: str = Field(..., description="Raw METAR observation text")
    clouds: Optional[List[CloudLayer]] = Field(
        None, description="Cloud layer information"
    )
    fltCat: Optional[str] = Field(
        None, description="Flight category (VFR, MVFR, IFR, LIFR)"
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


__all__ = [
    "CloudLayer",
    "MetarResponse",
    "SimulateConflictRequest",
    "SweepResponse",
    "WeatherConflictResponse",
]
