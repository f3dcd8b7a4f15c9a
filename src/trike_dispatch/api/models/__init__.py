from .drivers import DriverCandidateResponse, PresenceUpdateRequest, RegisterDriverRequest
from .safety import SafetyReportRequest
from .scheduling import DiscountRequestBody, RejectDiscountRequest, ScheduleRideRequest
from .trips import (
    AcceptTripRequest,
    CancelTripRequest,
    CompleteTripRequest,
    CreateTripRequest,
    LocateDriverRequest,
    LocationBody,
    RateTripRequest,
)

__all__ = [
    "AcceptTripRequest",
    "CancelTripRequest",
    "CompleteTripRequest",
    "CreateTripRequest",
    "DiscountRequestBody",
    "DriverCandidateResponse",
    "LocateDriverRequest",
    "LocationBody",
    "PresenceUpdateRequest",
    "RateTripRequest",
    "RegisterDriverRequest",
    "RejectDiscountRequest",
    "SafetyReportRequest",
    "ScheduleRideRequest",
]
