from datetime import datetime

from pydantic import BaseModel, Field

from trike_dispatch.fare import DiscountType
from trike_dispatch.trip import PaymentMethod

from .trips import LocationBody


class ScheduleRideRequest(BaseModel):
    passenger_id: str = Field(min_length=1)
    pickup: LocationBody
    dropoff: LocationBody
    scheduled_at: datetime
    payment_method: PaymentMethod = PaymentMethod.CASH
    notes: str | None = Field(default=None, max_length=500)


class DiscountRequestBody(BaseModel):
    discount_type: DiscountType


class RejectDiscountRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)
