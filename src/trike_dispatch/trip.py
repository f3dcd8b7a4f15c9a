"""Trip state machine and models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from trike_dispatch.core.exceptions import InvalidTransition
from trike_dispatch.fare import DiscountType


class TripStatus(str, Enum):
    """Trip lifecycle states."""

    PENDING = "pending"
    SEARCHING = "searching"
    DRIVER_FOUND = "driver_found"
    DRIVER_ACCEPTED = "driver_accepted"
    ARRIVED = "arrived"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


class TripEvent(str, Enum):
    """Events that drive trip status transitions."""

    BEGIN_MATCHING = "begin_matching"
    DRIVER_LOCATED = "driver_located"
    ACCEPT = "accept"
    ARRIVE = "arrive"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"


class PaymentMethod(str, Enum):
    CASH = "cash"
    GCASH = "gcash"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class RideType(str, Enum):
    NORMAL = "normal"
    ERRAND = "errand"


class CancelledBy(str, Enum):
    PASSENGER = "passenger"
    DRIVER = "driver"
    SYSTEM = "system"


class UserRole(str, Enum):
    """Which side of a trip a user is on. When rating, each side rates the other."""

    PASSENGER = "passenger"
    DRIVER = "driver"


TERMINAL_STATUSES = frozenset({TripStatus.COMPLETED, TripStatus.CANCELLED})

# Statuses during which a trip still occupies its passenger and driver.
ACTIVE_STATUSES = frozenset(
    {
        TripStatus.PENDING,
        TripStatus.SEARCHING,
        TripStatus.DRIVER_FOUND,
        TripStatus.DRIVER_ACCEPTED,
        TripStatus.ARRIVED,
        TripStatus.IN_PROGRESS,
    }
)

PRE_ACCEPTANCE_STATUSES = frozenset({TripStatus.SEARCHING, TripStatus.DRIVER_FOUND})

# event -> (statuses the event is legal from, resulting status)
TRANSITIONS: dict[TripEvent, tuple[frozenset[TripStatus], TripStatus]] = {
    TripEvent.BEGIN_MATCHING: (frozenset({TripStatus.PENDING}), TripStatus.SEARCHING),
    TripEvent.DRIVER_LOCATED: (frozenset({TripStatus.SEARCHING}), TripStatus.DRIVER_FOUND),
    TripEvent.ACCEPT: (PRE_ACCEPTANCE_STATUSES, TripStatus.DRIVER_ACCEPTED),
    TripEvent.ARRIVE: (frozenset({TripStatus.DRIVER_ACCEPTED}), TripStatus.ARRIVED),
    TripEvent.START: (frozenset({TripStatus.ARRIVED}), TripStatus.IN_PROGRESS),
    TripEvent.COMPLETE: (frozenset({TripStatus.IN_PROGRESS}), TripStatus.COMPLETED),
    TripEvent.CANCEL: (ACTIVE_STATUSES, TripStatus.CANCELLED),
}


def next_status(current: TripStatus, event: TripEvent) -> TripStatus:
    """Resolve the status an event leads to, or raise InvalidTransition."""
    if current in TERMINAL_STATUSES:
        raise InvalidTransition(
            f"Cannot {event.value} a trip in terminal status {current.value}",
            details={"status": current.value, "event": event.value},
        )

    allowed_from, target = TRANSITIONS[event]
    if current not in allowed_from:
        raise InvalidTransition(
            f"Invalid transition: {event.value} is not allowed from {current.value}",
            details={"status": current.value, "event": event.value},
        )
    return target


class Location(BaseModel):
    """A coordinate with its free-text address."""

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    address: str = ""

    @property
    def coordinates(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


class RideOptions(BaseModel):
    """Passenger choices made at booking time."""

    discount_type: DiscountType = DiscountType.NONE
    payment_method: PaymentMethod = PaymentMethod.CASH
    ride_type: RideType = RideType.NORMAL
    errand_notes: str | None = None


class Trip(BaseModel):
    """Trip with state machine logic."""

    trip_id: str
    passenger_id: str
    driver_id: str | None = None
    status: TripStatus = Field(default=TripStatus.PENDING)
    pickup: Location
    dropoff: Location
    distance_km: float = Field(ge=0)
    base_fare: float
    discount_type: DiscountType = DiscountType.NONE
    discount_amount: float = 0.0
    estimated_fare: float
    fare: float | None = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_status: PaymentStatus = PaymentStatus.PENDING
    ride_type: RideType = RideType.NORMAL
    errand_notes: str | None = None
    rating_for_driver: int | None = None
    feedback_for_driver: str | None = None
    rating_for_passenger: int | None = None
    feedback_for_passenger: str | None = None
    cancelled_by: CancelledBy | None = None
    cancellation_reason: str | None = None
    created_at: datetime | None = None
    accepted_at: datetime | None = None
    arrived_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    version: int = 1

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES
