from pydantic import BaseModel, Field

from trike_dispatch.fare import DiscountType
from trike_dispatch.safety import SafetyBadge
from trike_dispatch.trip import CancelledBy, PaymentMethod, RideType, UserRole


class LocationBody(BaseModel):
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    address: str = ""


class CreateTripRequest(BaseModel):
    """Booking request. Each end is either a coordinate or a saved favorite."""

    passenger_id: str = Field(min_length=1)
    pickup: LocationBody | None = None
    dropoff: LocationBody | None = None
    pickup_favorite_id: str | None = None
    dropoff_favorite_id: str | None = None
    discount_type: DiscountType = DiscountType.NONE
    payment_method: PaymentMethod = PaymentMethod.CASH
    ride_type: RideType = RideType.NORMAL
    errand_notes: str | None = Field(default=None, max_length=500)
    begin_search: bool = True


class LocateDriverRequest(BaseModel):
    radius_km: float | None = Field(default=None, gt=0)
    min_safety: SafetyBadge | None = None


class AcceptTripRequest(BaseModel):
    driver_id: str = Field(min_length=1)


class CompleteTripRequest(BaseModel):
    final_distance_km: float | None = None


class CancelTripRequest(BaseModel):
    cancelled_by: CancelledBy
    reason: str | None = Field(default=None, max_length=500)


class RateTripRequest(BaseModel):
    rater_role: UserRole
    rating: int
    feedback: str | None = Field(default=None, max_length=1000)
