"""Scheduled ride status and models."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from trike_dispatch.trip import Location, PaymentMethod


class ScheduledRideStatus(str, Enum):
    SCHEDULED = "scheduled"
    ACCEPTED = "accepted"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


OPEN_SCHEDULED_STATUSES = frozenset({ScheduledRideStatus.SCHEDULED, ScheduledRideStatus.ACCEPTED})


class ScheduledRideRequest(BaseModel):
    """A booking for a future pickup time."""

    pickup: Location
    dropoff: Location
    scheduled_at: datetime
    payment_method: PaymentMethod = PaymentMethod.CASH
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("scheduled_at")
    @classmethod
    def to_naive_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class ScheduledRide(BaseModel):
    ride_id: str
    passenger_id: str
    driver_id: str | None = None
    status: ScheduledRideStatus = ScheduledRideStatus.SCHEDULED
    pickup: Location
    dropoff: Location
    scheduled_at: datetime
    distance_km: float
    estimated_fare: float
    payment_method: PaymentMethod = PaymentMethod.CASH
    notes: str | None = None
    created_at: datetime
    accepted_at: datetime | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
