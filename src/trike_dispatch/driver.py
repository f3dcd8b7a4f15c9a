"""Driver presence models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, model_validator


class DriverOccupancy(str, Enum):
    OFFLINE = "offline"
    AVAILABLE = "available"
    ON_RIDE = "on_ride"


class DriverProfile(BaseModel):
    """Display metadata shown to passengers."""

    full_name: str = ""
    vehicle_model: str | None = None
    vehicle_color: str | None = None
    plate_number: str | None = None


class DriverPresenceRecord(BaseModel):
    """Live location and occupancy of one driver."""

    driver_id: str
    location: tuple[float, float] | None = None
    is_online: bool = False
    occupancy: DriverOccupancy = DriverOccupancy.OFFLINE
    active_trip_id: str | None = None
    last_location_update: datetime | None = None
    profile: DriverProfile = DriverProfile()
    average_rating: float | None = None
    total_rides: int = 0
    is_verified: bool = True
    registered_at: datetime | None = None
    version: int = 1

    @model_validator(mode="after")
    def check_presence_invariants(self) -> "DriverPresenceRecord":
        if (self.location is not None) != self.is_online:
            raise ValueError("location must be set exactly when the driver is online")
        if self.occupancy == DriverOccupancy.ON_RIDE and not self.is_online:
            raise ValueError("a driver on a ride must be online")
        if self.occupancy == DriverOccupancy.OFFLINE and self.is_online:
            raise ValueError("an online driver cannot have offline occupancy")
        return self
