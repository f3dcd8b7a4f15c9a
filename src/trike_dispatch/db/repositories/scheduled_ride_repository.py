"""Scheduled ride repository for CRUD operations and conditional status updates."""

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import and_, or_, select, update
from sqlalchemy.orm import Session

from trike_dispatch.scheduled_ride import ScheduledRide as ScheduledRideDomain
from trike_dispatch.scheduled_ride import ScheduledRideStatus
from trike_dispatch.trip import Location, PaymentMethod

from ..schema import ScheduledRide

_OPEN = [ScheduledRideStatus.SCHEDULED.value, ScheduledRideStatus.ACCEPTED.value]
_CLOSED = [ScheduledRideStatus.COMPLETED.value, ScheduledRideStatus.CANCELLED.value]


class ScheduledRideRepository:
    """Repository for future bookings.

    Like trips, status writes are compare-and-set on the status read, and
    a driver claim also requires the row to still have no driver.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(
        self,
        ride_id: str,
        passenger_id: str,
        pickup: Location,
        dropoff: Location,
        scheduled_at: datetime,
        distance_km: float,
        estimated_fare: float,
        payment_method: PaymentMethod,
        notes: str | None,
        created_at: datetime,
    ) -> None:
        ride = ScheduledRide(
            ride_id=ride_id,
            passenger_id=passenger_id,
            status=ScheduledRideStatus.SCHEDULED.value,
            pickup_latitude=pickup.latitude,
            pickup_longitude=pickup.longitude,
            pickup_address=pickup.address,
            dropoff_latitude=dropoff.latitude,
            dropoff_longitude=dropoff.longitude,
            dropoff_address=dropoff.address,
            scheduled_at=scheduled_at,
            distance_km=distance_km,
            estimated_fare=estimated_fare,
            payment_method=payment_method.value,
            notes=notes,
            created_at=created_at,
        )
        self.session.add(ride)
        self.session.flush()

    def get(self, ride_id: str) -> ScheduledRideDomain | None:
        ride = self.session.get(ScheduledRide, ride_id, populate_existing=True)
        if ride is None:
            return None
        return self._to_domain(ride)

    def transition(
        self,
        ride_id: str,
        expected: Iterable[ScheduledRideStatus],
        new_status: ScheduledRideStatus,
        **fields: Any,
    ) -> bool:
        stmt = (
            update(ScheduledRide)
            .where(
                ScheduledRide.ride_id == ride_id,
                ScheduledRide.status.in_([s.value for s in expected]),
            )
            .values(status=new_status.value, **fields)
            .execution_options(synchronize_session=False)
        )
        return _rowcount(self.session.execute(stmt)) == 1

    def claim_for_driver(self, ride_id: str, driver_id: str, now: datetime) -> bool:
        """Bind a driver to a still-unclaimed ride whose time has not passed."""
        stmt = (
            update(ScheduledRide)
            .where(
                ScheduledRide.ride_id == ride_id,
                ScheduledRide.status == ScheduledRideStatus.SCHEDULED.value,
                ScheduledRide.driver_id.is_(None),
                ScheduledRide.scheduled_at >= now,
            )
            .values(
                status=ScheduledRideStatus.ACCEPTED.value,
                driver_id=driver_id,
                accepted_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return _rowcount(self.session.execute(stmt)) == 1

    def list_upcoming(self, passenger_id: str, now: datetime) -> list[ScheduledRideDomain]:
        """Scheduled or accepted rides not yet due, soonest first."""
        stmt = (
            select(ScheduledRide)
            .where(
                ScheduledRide.passenger_id == passenger_id,
                ScheduledRide.status.in_(_OPEN),
                ScheduledRide.scheduled_at >= now,
            )
            .order_by(ScheduledRide.scheduled_at.asc())
        )
        return self._all(stmt)

    def list_past(self, passenger_id: str, now: datetime) -> list[ScheduledRideDomain]:
        """Completed or cancelled rides plus unclaimed ones whose time passed, latest first."""
        stmt = (
            select(ScheduledRide)
            .where(
                ScheduledRide.passenger_id == passenger_id,
                or_(
                    ScheduledRide.status.in_(_CLOSED),
                    and_(
                        ScheduledRide.status == ScheduledRideStatus.SCHEDULED.value,
                        ScheduledRide.scheduled_at < now,
                    ),
                ),
            )
            .order_by(ScheduledRide.scheduled_at.desc())
        )
        return self._all(stmt)

    def list_available(self, now: datetime) -> list[ScheduledRideDomain]:
        """Unclaimed future rides any driver may accept, soonest first."""
        stmt = (
            select(ScheduledRide)
            .where(
                ScheduledRide.status == ScheduledRideStatus.SCHEDULED.value,
                ScheduledRide.driver_id.is_(None),
                ScheduledRide.scheduled_at >= now,
            )
            .order_by(ScheduledRide.scheduled_at.asc())
        )
        return self._all(stmt)

    def list_for_driver(self, driver_id: str) -> list[ScheduledRideDomain]:
        """Accepted and completed rides of a driver, soonest first."""
        stmt = (
            select(ScheduledRide)
            .where(
                ScheduledRide.driver_id == driver_id,
                ScheduledRide.status.in_(
                    [ScheduledRideStatus.ACCEPTED.value, ScheduledRideStatus.COMPLETED.value]
                ),
            )
            .order_by(ScheduledRide.scheduled_at.asc())
        )
        return self._all(stmt)

    def _all(self, stmt: Any) -> list[ScheduledRideDomain]:
        result = self.session.execute(stmt)
        return [self._to_domain(r) for r in result.scalars().all()]

    def _to_domain(self, ride: ScheduledRide) -> ScheduledRideDomain:
        return ScheduledRideDomain(
            ride_id=ride.ride_id,
            passenger_id=ride.passenger_id,
            driver_id=ride.driver_id,
            status=ScheduledRideStatus(ride.status),
            pickup=Location(
                latitude=ride.pickup_latitude,
                longitude=ride.pickup_longitude,
                address=ride.pickup_address,
            ),
            dropoff=Location(
                latitude=ride.dropoff_latitude,
                longitude=ride.dropoff_longitude,
                address=ride.dropoff_address,
            ),
            scheduled_at=ride.scheduled_at,
            distance_km=ride.distance_km,
            estimated_fare=ride.estimated_fare,
            payment_method=PaymentMethod(ride.payment_method),
            notes=ride.notes,
            created_at=ride.created_at,
            accepted_at=ride.accepted_at,
            cancelled_at=ride.cancelled_at,
            completed_at=ride.completed_at,
        )


def _rowcount(result: Any) -> int:
    return int(result.rowcount or 0)
