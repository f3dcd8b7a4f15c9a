"""Trip repository for CRUD operations and conditional status updates."""

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from trike_dispatch.fare import DiscountType, FareBreakdown
from trike_dispatch.trip import (
    ACTIVE_STATUSES,
    CancelledBy,
    Location,
    PaymentMethod,
    PaymentStatus,
    RideOptions,
    RideType,
    UserRole,
)
from trike_dispatch.trip import Trip as TripDomain
from trike_dispatch.trip import TripStatus

from ..schema import Trip

ACTIVE_STATUS_VALUES = [s.value for s in ACTIVE_STATUSES]


def _rowcount(result: Any) -> int:
    return int(result.rowcount or 0)


class TripRepository:
    """Repository for trip CRUD operations.

    Status writes are compare-and-set: each takes the status it expects the
    row to be in and reports whether the row actually changed, so two
    concurrent writers can never both succeed.
    """

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        trip_id: str,
        passenger_id: str,
        pickup: Location,
        dropoff: Location,
        distance_km: float,
        fare: FareBreakdown,
        options: RideOptions,
        status: TripStatus,
        created_at: datetime,
    ) -> None:
        """Insert a new trip row. Flushes so uniqueness violations surface here."""
        trip = Trip(
            trip_id=trip_id,
            passenger_id=passenger_id,
            status=status.value,
            pickup_latitude=pickup.latitude,
            pickup_longitude=pickup.longitude,
            pickup_address=pickup.address,
            dropoff_latitude=dropoff.latitude,
            dropoff_longitude=dropoff.longitude,
            dropoff_address=dropoff.address,
            distance_km=distance_km,
            base_fare=fare.base_component,
            discount_type=fare.discount_type.value,
            discount_amount=fare.discount_amount,
            estimated_fare=fare.final_fare,
            payment_method=options.payment_method.value,
            payment_status=PaymentStatus.PENDING.value,
            ride_type=options.ride_type.value,
            errand_notes=options.errand_notes,
            created_at=created_at,
        )
        self.session.add(trip)
        self.session.flush()

    def get(self, trip_id: str) -> TripDomain | None:
        """Get trip by ID, returning domain model."""
        trip = self.session.get(Trip, trip_id, populate_existing=True)
        if trip is None:
            return None
        return self._to_domain(trip)

    def transition(
        self,
        trip_id: str,
        expected: TripStatus | Iterable[TripStatus],
        new_status: TripStatus,
        **fields: Any,
    ) -> bool:
        """Move a trip to new_status only if it is still in an expected status.

        Returns:
            True if the row changed, False if the trip is missing or was
            already moved by someone else.
        """
        expected_set = {expected} if isinstance(expected, TripStatus) else set(expected)
        stmt = (
            update(Trip)
            .where(
                Trip.trip_id == trip_id,
                Trip.status.in_([s.value for s in expected_set]),
            )
            .values(status=new_status.value, version=Trip.version + 1, **fields)
            .execution_options(synchronize_session=False)
        )
        return _rowcount(self.session.execute(stmt)) == 1

    def claim_for_driver(
        self,
        trip_id: str,
        driver_id: str,
        expected: Iterable[TripStatus],
        accepted_at: datetime,
    ) -> bool:
        """Bind a driver to an unclaimed trip in one conditional update."""
        stmt = (
            update(Trip)
            .where(
                Trip.trip_id == trip_id,
                Trip.status.in_([s.value for s in expected]),
                Trip.driver_id.is_(None),
            )
            .values(
                status=TripStatus.DRIVER_ACCEPTED.value,
                driver_id=driver_id,
                accepted_at=accepted_at,
                version=Trip.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        return _rowcount(self.session.execute(stmt)) == 1

    def set_rating(
        self,
        trip_id: str,
        rater: UserRole,
        rating: int,
        feedback: str | None,
    ) -> bool:
        """Store a rating on a completed trip if that side has not rated yet."""
        if rater == UserRole.PASSENGER:
            rating_column, values = Trip.rating_for_driver, {
                "rating_for_driver": rating,
                "feedback_for_driver": feedback,
            }
        else:
            rating_column, values = Trip.rating_for_passenger, {
                "rating_for_passenger": rating,
                "feedback_for_passenger": feedback,
            }

        stmt = (
            update(Trip)
            .where(
                Trip.trip_id == trip_id,
                Trip.status == TripStatus.COMPLETED.value,
                rating_column.is_(None),
            )
            .values(version=Trip.version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        return _rowcount(self.session.execute(stmt)) == 1

    def get_active_for_passenger(self, passenger_id: str) -> TripDomain | None:
        stmt = select(Trip).where(
            Trip.passenger_id == passenger_id,
            Trip.status.in_(ACTIVE_STATUS_VALUES),
        )
        trip = self.session.execute(stmt).scalars().first()
        return self._to_domain(trip) if trip else None

    def get_active_for_driver(self, driver_id: str) -> TripDomain | None:
        stmt = select(Trip).where(
            Trip.driver_id == driver_id,
            Trip.status.in_(ACTIVE_STATUS_VALUES),
        )
        trip = self.session.execute(stmt).scalars().first()
        return self._to_domain(trip) if trip else None

    def list_by_passenger(self, passenger_id: str) -> list[TripDomain]:
        """List trips by passenger ID, newest first."""
        stmt = (
            select(Trip)
            .where(Trip.passenger_id == passenger_id)
            .order_by(Trip.created_at.desc())
        )
        result = self.session.execute(stmt)
        return [self._to_domain(t) for t in result.scalars().all()]

    def list_by_driver(self, driver_id: str) -> list[TripDomain]:
        """List trips by driver ID, newest first."""
        stmt = (
            select(Trip)
            .where(Trip.driver_id == driver_id)
            .order_by(Trip.created_at.desc())
        )
        result = self.session.execute(stmt)
        return [self._to_domain(t) for t in result.scalars().all()]

    def list_open(self) -> list[TripDomain]:
        """Trips still waiting for a driver, oldest first."""
        stmt = (
            select(Trip)
            .where(
                Trip.status.in_([TripStatus.PENDING.value, TripStatus.SEARCHING.value])
            )
            .order_by(Trip.created_at.asc())
        )
        result = self.session.execute(stmt)
        return [self._to_domain(t) for t in result.scalars().all()]

    def count_completed_by_driver(self, driver_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(Trip)
            .where(Trip.driver_id == driver_id, Trip.status == TripStatus.COMPLETED.value)
        )
        return self.session.execute(stmt).scalar() or 0

    def driver_earnings(
        self, driver_id: str, since: datetime | None = None
    ) -> tuple[float, int]:
        """Sum of final fares and count of completed trips, optionally since a time."""
        conditions = [Trip.driver_id == driver_id, Trip.status == TripStatus.COMPLETED.value]
        if since is not None:
            conditions.append(Trip.completed_at >= since)
        stmt = select(func.coalesce(func.sum(Trip.fare), 0.0), func.count()).where(*conditions)
        total, count = self.session.execute(stmt).one()
        return float(total), int(count)

    def driver_rating_stats(self, driver_id: str) -> tuple[float | None, int]:
        """Average and count of passenger ratings over completed trips."""
        stmt = select(func.avg(Trip.rating_for_driver), func.count(Trip.rating_for_driver)).where(
            Trip.driver_id == driver_id,
            Trip.status == TripStatus.COMPLETED.value,
            Trip.rating_for_driver.is_not(None),
        )
        average, count = self.session.execute(stmt).one()
        return (float(average) if average is not None else None, int(count))

    def passenger_rating_stats(self, passenger_id: str) -> tuple[float | None, int]:
        """Average and count of driver ratings over completed trips."""
        stmt = select(
            func.avg(Trip.rating_for_passenger), func.count(Trip.rating_for_passenger)
        ).where(
            Trip.passenger_id == passenger_id,
            Trip.status == TripStatus.COMPLETED.value,
            Trip.rating_for_passenger.is_not(None),
        )
        average, count = self.session.execute(stmt).one()
        return (float(average) if average is not None else None, int(count))

    def _to_domain(self, trip: Trip) -> TripDomain:
        """Convert ORM model to domain model."""
        return TripDomain(
            trip_id=trip.trip_id,
            passenger_id=trip.passenger_id,
            driver_id=trip.driver_id,
            status=TripStatus(trip.status),
            pickup=Location(
                latitude=trip.pickup_latitude,
                longitude=trip.pickup_longitude,
                address=trip.pickup_address,
            ),
            dropoff=Location(
                latitude=trip.dropoff_latitude,
                longitude=trip.dropoff_longitude,
                address=trip.dropoff_address,
            ),
            distance_km=trip.distance_km,
            base_fare=trip.base_fare,
            discount_type=DiscountType(trip.discount_type),
            discount_amount=trip.discount_amount,
            estimated_fare=trip.estimated_fare,
            fare=trip.fare,
            payment_method=PaymentMethod(trip.payment_method),
            payment_status=PaymentStatus(trip.payment_status),
            ride_type=RideType(trip.ride_type),
            errand_notes=trip.errand_notes,
            rating_for_driver=trip.rating_for_driver,
            feedback_for_driver=trip.feedback_for_driver,
            rating_for_passenger=trip.rating_for_passenger,
            feedback_for_passenger=trip.feedback_for_passenger,
            cancelled_by=CancelledBy(trip.cancelled_by) if trip.cancelled_by else None,
            cancellation_reason=trip.cancellation_reason,
            created_at=trip.created_at,
            accepted_at=trip.accepted_at,
            arrived_at=trip.arrived_at,
            started_at=trip.started_at,
            completed_at=trip.completed_at,
            cancelled_at=trip.cancelled_at,
            version=trip.version,
        )
