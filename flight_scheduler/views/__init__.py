"""Pydantic schemas used as views in the MVC architecture."""

from .aircraft import (
    AircraftCreateRequest,
    AircraftResponse,
    AircraftUpdateRequest,
    WeatherMinimums,
)
from .analytics import AnalyticsResponse, InstructorLoad, ProposalStats
from .auth import LoginRequest, SignupRequest, TokenResponse
from .availability import (
    AvailabilityCreateRequest,
    AvailabilityResponse,
    AvailabilityUpdateRequest,
    AvailableInstructor,
    InstructorAvailabilityResponse,
    TimeRangeQuery,
)
from .bookings import (
    AircraftSummary,
    BookingCreateRequest,
    BookingResponse,
    CancelBookingRequest,
    PartySummary,
    RescheduleRequest,
)
from .common import CamelModel, ErrorResponse, SuccessResponse
from .lookups import (
    AirportCreateRequest,
    AirportResponse,
    AirportUpdateRequest,
    LessonTypeCreateRequest,
    LessonTypeResponse,
    LessonTypeUpdateRequest,
)
from .notifications import NotificationResponse, UnreadCountResponse
from .proposals import RescheduleProposalResponse
from .users import (
    AdminCreateRequest,
    AdminUserUpdateRequest,
    ChangeEmailRequest,
    ChangePasswordRequest,
    ProfileUpdateRequest,
    UserDetailResponse,
    UserResponse,
)
from .weather import (
    MetarResponse,
    SimulateConflictRequest,
    SweepResponse,
    WeatherConflictResponse,
)

__all__ = [
    "AdminCreateRequest",
    "AdminUserUpdateRequest",
    "AircraftCreateRequest",
    "AircraftResponse",
    "AircraftSummary",
    "AircraftUpdateRequest",
    "AirportCreateRequest",
    "AirportResponse",
    "AirportUpdateRequest",
    "AnalyticsResponse",
    "AvailabilityCreateRequest",
    "AvailabilityResponse",
    "AvailabilityUpdateRequest",
    "AvailableInstructor",
    "BookingCreateRequest",
    "BookingResponse",
    "CamelModel",
    "CancelBookingRequest",
    "ChangeEmailRequest",
    "ChangePasswordRequest",
    "ErrorResponse",
    "InstructorAvailabilityResponse",
    "InstructorLoad",
    "LessonTypeCreateRequest",
    "LessonTypeResponse",
    "LessonTypeUpdateRequest",
    "LoginRequest",
    "MetarResponse",
    "NotificationResponse",
    "PartySummary",
    "ProfileUpdateRequest",
    "ProposalStats",
    "RescheduleProposalResponse",
    "RescheduleRequest",
    "SignupRequest",
    "SimulateConflictRequest",
    "SuccessResponse",
    "SweepResponse",
    "TimeRangeQuery",
    "TokenResponse",
    "UnreadCountResponse",
    "UserDetailResponse",
    "UserResponse",
    "WeatherConflictResponse",
    "WeatherMinimums",
]
