"""Rides booked ahead of time and claimed by drivers before pickup."""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.orm import Session, sessionmaker

from trike_dispatch.core.exceptions import (
    AlreadyAccepted,
    DriverNotFound,
    DriverUnavailable,
    InvalidTransition,
    ScheduledRideNotFound,
    ValidationError,
)
from trike_dispatch.db.repositories import DriverPresenceRepository, ScheduledRideRepository
from trike_dispatch.db.transaction import transaction
from trike_dispatch.db.utils import utc_now
from trike_dispatch.fare import FareCalculator
from trike_dispatch.geo.distance import haversine_distance_km
from trike_dispatch.scheduled_ride import (
    OPEN_SCHEDULED_STATUSES,
    ScheduledRide,
    ScheduledRideRequest,
    ScheduledRideStatus,
)

logger = logging.getLogger(__name__)


class ScheduledRideService:
    """Future bookings, kept apart from the live trip lifecycle.

    A scheduled ride is quoted at booking time and waits in `scheduled`
    until a verified driver claims it. Claims are conditional updates on
    an unclaimed, not-yet-due row, so two drivers cannot both win.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        fare_calculator: FareCalculator | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._fare = fare_calculator or FareCalculator()
        self._clock = clock

    def create(self, passenger_id: str, request: ScheduledRideRequest) -> ScheduledRide:
        """Book a ride for a future time.

        Raises:
            ValidationError: missing passenger or a pickup time not in the future
        """
        if not passenger_id:
            raise ValidationError("passenger_id is required")
        now = self._clock()
        if request.scheduled_at <= now:
            raise ValidationError(
                "Scheduled time must be in the future",
                details={"scheduled_at": request.scheduled_at.isoformat()},
            )

        distance = haversine_distance_km(
            *request.pickup.coordinates, *request.dropoff.coordinates
        )
        fare = self._fare.calculate(distance)
        ride_id = str(uuid.uuid4())

        with self._session_factory() as session, transaction(session):
            rides = ScheduledRideRepository(session)
            rides.create(
                ride_id=ride_id,
                passenger_id=passenger_id,
                pickup=request.pickup,
                dropoff=request.dropoff,
                scheduled_at=request.scheduled_at,
                distance_km=distance,
                estimated_fare=fare.final_fare,
                payment_method=request.payment_method,
                notes=request.notes,
                created_at=now,
            )
            ride = self._load(rides, ride_id)
        logger.info(
            "Scheduled ride %s for %s at %s", ride_id, passenger_id, request.scheduled_at
        )
        return ride

    def get(self, ride_id: str) -> ScheduledRide:
        with self._session_factory() as session, transaction(session):
            return self._load(ScheduledRideRepository(session), ride_id)

    def list_upcoming(self, passenger_id: str) -> list[ScheduledRide]:
        with self._session_factory() as session, transaction(session):
            return ScheduledRideRepository(session).list_upcoming(passenger_id, self._clock())

    def list_past(self, passenger_id: str) -> list[ScheduledRide]:
        with self._session_factory() as session, transaction(session):
            return ScheduledRideRepository(session).list_past(passenger_id, self._clock())

    def list_available(self) -> list[ScheduledRide]:
        with self._session_factory() as session, transaction(session):
            return ScheduledRideRepository(session).list_available(self._clock())

    def list_for_driver(self, driver_id: str) -> list[ScheduledRide]:
        with self._session_factory() as session, transaction(session):
            return ScheduledRideRepository(session).list_for_driver(driver_id)

    def accept(self, ride_id: str, driver_id: str) -> ScheduledRide:
        """Claim a scheduled ride for a driver.

        Raises:
            ScheduledRideNotFound, DriverNotFound
            DriverUnavailable: the driver is not verified
            AlreadyAccepted: another driver holds the ride
            InvalidTransition: the ride is cancelled, completed or already due
        """
        now = self._clock()
        with self._session_factory() as session, transaction(session):
            rides = ScheduledRideRepository(session)
            driver = DriverPresenceRepository(session).get(driver_id)
            if driver is None:
                raise DriverNotFound(driver_id)
            if not driver.is_verified:
                raise DriverUnavailable(
                    f"Driver {driver_id} is not verified", details={"driver_id": driver_id}
                )
            if not rides.claim_for_driver(ride_id, driver_id, now):
                current = self._load(rides, ride_id)
                if current.status == ScheduledRideStatus.ACCEPTED:
                    raise AlreadyAccepted(
                        f"Scheduled ride {ride_id} already accepted",
                        details={"ride_id": ride_id, "driver_id": current.driver_id},
                    )
                raise InvalidTransition(
                    f"Scheduled ride {ride_id} cannot be accepted",
                    details={
                        "ride_id": ride_id,
                        "status": current.status.value,
                        "scheduled_at": current.scheduled_at.isoformat(),
                    },
                )
            ride = self._load(rides, ride_id)
        logger.info("Scheduled ride %s accepted by %s", ride_id, driver_id)
        return ride

    def cancel(self, ride_id: str) -> ScheduledRide:
        """scheduled or accepted -> cancelled."""
        return self._move(
            ride_id, OPEN_SCHEDULED_STATUSES, ScheduledRideStatus.CANCELLED, "cancelled_at"
        )

    def complete(self, ride_id: str) -> ScheduledRide:
        """accepted -> completed."""
        return self._move(
            ride_id,
            frozenset({ScheduledRideStatus.ACCEPTED}),
            ScheduledRideStatus.COMPLETED,
            "completed_at",
        )

    def _move(
        self,
        ride_id: str,
        expected: frozenset[ScheduledRideStatus],
        target: ScheduledRideStatus,
        stamp_field: str,
    ) -> ScheduledRide:
        with self._session_factory() as session, transaction(session):
            rides = ScheduledRideRepository(session)
            if not rides.transition(ride_id, expected, target, **{stamp_field: self._clock()}):
                current = self._load(rides, ride_id)
                raise InvalidTransition(
                    f"Scheduled ride {ride_id} is {current.status.value}",
                    details={"ride_id": ride_id, "status": current.status.value},
                )
            ride = self._load(rides, ride_id)
        logger.info("Scheduled ride %s -> %s", ride_id, target.value)
        return ride

    @staticmethod
    def _load(rides: ScheduledRideRepository, ride_id: str) -> ScheduledRide:
        ride = rides.get(ride_id)
        if ride is None:
            raise ScheduledRideNotFound(ride_id)
        return ride
