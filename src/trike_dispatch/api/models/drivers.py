from pydantic import BaseModel, Field

from trike_dispatch.driver import DriverProfile
from trike_dispatch.safety import SafetyBadge


class RegisterDriverRequest(BaseModel):
    profile: DriverProfile = Field(default_factory=DriverProfile)
    is_verified: bool = True


class PresenceUpdateRequest(BaseModel):
    latitude: float
    longitude: float


class DriverCandidateResponse(BaseModel):
    driver_id: str
    location: tuple[float, float]
    distance_km: float
    eta_minutes: int
    full_name: str
    vehicle_model: str | None
    vehicle_color: str | None
    plate_number: str | None
    average_rating: float | None
    total_rides: int
    safety_badge: SafetyBadge
