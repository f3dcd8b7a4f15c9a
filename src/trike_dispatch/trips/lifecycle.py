"""Store-backed trip lifecycle: booking, matching, acceptance, completion, rating."""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from trike_dispatch.core.exceptions import (
    ActiveTripExists,
    AlreadyAccepted,
    AlreadyRated,
    DriverNotFound,
    DriverUnavailable,
    InvalidTransition,
    TripNotFound,
    ValidationError,
)
from trike_dispatch.db.repositories import (
    DriverPresenceRepository,
    PassengerRepository,
    TripRepository,
)
from trike_dispatch.db.transaction import transaction
from trike_dispatch.db.utils import utc_now
from trike_dispatch.discounts import check_discount_eligibility, discount_status
from trike_dispatch.dispatch_logging import log_trip_context
from trike_dispatch.driver import DriverOccupancy, DriverPresenceRecord
from trike_dispatch.fare import DiscountType, FareBreakdown, FareCalculator, round_money
from trike_dispatch.geo.distance import haversine_distance_km, is_within_proximity
from trike_dispatch.matching.matcher import DriverCandidate, NearestDriverMatcher
from trike_dispatch.matching.notification_dispatch import NotificationDispatch
from trike_dispatch.matching.presence_registry import DriverPresenceRegistry
from trike_dispatch.pubsub.channels import TRIP_TOPIC_PREFIX, trip_payload, trip_topic
from trike_dispatch.pubsub.propagation import PropagationChannel
from trike_dispatch.safety.models import SafetyBadge
from trike_dispatch.trip import (
    PRE_ACCEPTANCE_STATUSES,
    CancelledBy,
    Location,
    PaymentStatus,
    RideOptions,
    Trip,
    TripEvent,
    TripStatus,
    UserRole,
    next_status,
)

from .earnings import EarningsPeriod, EarningsSummary, period_starts

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5

# A driver reporting arrival farther than this from the pickup is logged.
ARRIVAL_PROXIMITY_M = 150.0

# Timestamp column written when a trip enters each status.
_STATUS_TIMESTAMPS = {
    TripStatus.DRIVER_ACCEPTED: "accepted_at",
    TripStatus.ARRIVED: "arrived_at",
    TripStatus.IN_PROGRESS: "started_at",
    TripStatus.COMPLETED: "completed_at",
    TripStatus.CANCELLED: "cancelled_at",
}

_ACCEPTED_OR_LATER = frozenset(
    {TripStatus.DRIVER_ACCEPTED, TripStatus.ARRIVED, TripStatus.IN_PROGRESS}
)


def _as_location(value: Location | tuple[float, float] | None, field: str) -> Location:
    if value is None:
        raise ValidationError(f"Missing {field} coordinates", details={"field": field})
    if isinstance(value, Location):
        return value
    try:
        lat, lon = value
        return Location(latitude=lat, longitude=lon)
    except (TypeError, ValueError) as e:
        raise ValidationError(
            f"Invalid {field} coordinates", details={"field": field, "value": str(value)}
        ) from e


def _as_role(role: UserRole | str) -> UserRole:
    try:
        return UserRole(role)
    except ValueError as e:
        raise ValidationError(f"Unknown role: {role}", details={"role": str(role)}) from e


def _latest_timestamp(trip: Trip) -> datetime | None:
    stamps = [
        trip.created_at,
        trip.accepted_at,
        trip.arrived_at,
        trip.started_at,
        trip.completed_at,
        trip.cancelled_at,
    ]
    present = [s for s in stamps if s is not None]
    return max(present) if present else None


class TripLifecycle:
    """Moves trips through their lifecycle against the record store.

    Each operation runs in its own transaction and either commits fully or
    raises with nothing changed. Status changes are conditional updates
    keyed on the status that was read, so concurrent callers cannot both
    win. After commit, the trip snapshot is published on `trip:<id>`,
    presence changes on the online-drivers topic, and push notifications
    are sent; failures there are logged and never undo the commit.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        registry: DriverPresenceRegistry,
        matcher: NearestDriverMatcher,
        channel: PropagationChannel | None = None,
        notifications: NotificationDispatch | None = None,
        fare_calculator: FareCalculator | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._registry = registry
        self._matcher = matcher
        self._channel = channel
        self._notifications = notifications or NotificationDispatch()
        self._fare = fare_calculator or FareCalculator()
        self._clock = clock
        if channel is not None:
            channel.register_snapshot_provider(TRIP_TOPIC_PREFIX, self._trip_snapshot)

    # Booking

    def quote_fare(
        self,
        pickup: Location | tuple[float, float],
        dropoff: Location | tuple[float, float],
        discount_type: DiscountType | str = DiscountType.NONE,
    ) -> FareBreakdown:
        """Provisional fare for a pickup/dropoff pair without booking."""
        origin = _as_location(pickup, "pickup")
        destination = _as_location(dropoff, "dropoff")
        distance = haversine_distance_km(*origin.coordinates, *destination.coordinates)
        return self._fare.calculate(distance, discount_type)

    def create_trip(
        self,
        passenger_id: str,
        pickup: Location | tuple[float, float] | None,
        dropoff: Location | tuple[float, float] | None,
        options: RideOptions | None = None,
        begin_search: bool = True,
    ) -> Trip:
        """Book a trip for a passenger.

        The trip is created in `pending`; with `begin_search` it moves to
        `searching` in the same commit, so observers never see it pending.

        Raises:
            ValidationError: missing or out-of-range coordinates, or a
                discount the passenger is not verified for
            ActiveTripExists: the passenger already has an active trip
        """
        if not passenger_id:
            raise ValidationError("passenger_id is required")
        origin = _as_location(pickup, "pickup")
        destination = _as_location(dropoff, "dropoff")
        options = options or RideOptions()

        distance = haversine_distance_km(*origin.coordinates, *destination.coordinates)
        fare = self._fare.calculate(distance, options.discount_type)
        trip_id = str(uuid.uuid4())

        with log_trip_context(trip_id, passenger_id=passenger_id):
            try:
                with self._session_factory() as session, transaction(session):
                    check_discount_eligibility(
                        discount_status(PassengerRepository(session), passenger_id),
                        options.discount_type,
                    )
                    trips = TripRepository(session)
                    existing = trips.get_active_for_passenger(passenger_id)
                    if existing is not None:
                        raise self._passenger_busy(passenger_id, existing.trip_id)
                    trips.create(
                        trip_id=trip_id,
                        passenger_id=passenger_id,
                        pickup=origin,
                        dropoff=destination,
                        distance_km=distance,
                        fare=fare,
                        options=options,
                        status=TripStatus.PENDING,
                        created_at=self._clock(),
                    )
                    if begin_search:
                        target = next_status(TripStatus.PENDING, TripEvent.BEGIN_MATCHING)
                        trips.transition(trip_id, TripStatus.PENDING, target)
                    trip = self._load(trips, trip_id)
            except IntegrityError as e:
                raise self._passenger_busy(passenger_id, None) from e

            logger.info(
                "Trip created: %.2f km, estimated fare %.2f (%s)",
                distance,
                fare.final_fare,
                trip.status.value,
            )
        self._publish_trip(trip)
        return trip

    def begin_matching(self, trip_id: str) -> Trip:
        """pending -> searching."""
        trip = self._advance(trip_id, TripEvent.BEGIN_MATCHING)
        self._publish_trip(trip)
        return trip

    def locate_driver(
        self,
        trip_id: str,
        radius_km: float | None = None,
        min_safety: SafetyBadge | None = None,
    ) -> list[DriverCandidate]:
        """Search for drivers around the pickup.

        From `searching`, at least one candidate moves the trip to
        `driver_found` and the candidates are told about the request. An
        empty result leaves the trip searching so the caller can poll
        again. From `driver_found` the search is simply repeated.
        """
        trip = self.get_trip(trip_id)
        if trip.status != TripStatus.DRIVER_FOUND:
            next_status(trip.status, TripEvent.DRIVER_LOCATED)

        with log_trip_context(trip_id, passenger_id=trip.passenger_id):
            candidates = self._matcher.find_nearby_drivers(
                trip.pickup.coordinates, radius_km, min_safety
            )
            if not candidates or trip.status == TripStatus.DRIVER_FOUND:
                logger.info("Driver search returned %d candidates", len(candidates))
                return candidates

            with self._session_factory() as session, transaction(session):
                trips = TripRepository(session)
                moved = trips.transition(trip_id, TripStatus.SEARCHING, TripStatus.DRIVER_FOUND)
                updated = self._load(trips, trip_id)

            if not moved:
                logger.info("Trip left searching during driver search (%s)", updated.status.value)
                return candidates

            logger.info("Driver found: %d candidates", len(candidates))
            self._publish_trip(updated)
            self._notifications.notify_drivers_ride_request(
                updated, [c.driver_id for c in candidates]
            )
        return candidates

    # Acceptance

    def accept_trip(self, trip_id: str, driver_id: str) -> Trip:
        """Bind a driver to a trip.

        Trip status and driver occupancy change together in one transaction
        through conditional updates; if either precondition no longer holds
        both are rolled back. When several drivers race for the same trip
        exactly one wins and the others get AlreadyAccepted.

        Raises:
            TripNotFound, DriverNotFound
            AlreadyAccepted: another driver already holds the trip
            InvalidTransition: the trip is not open for acceptance
            DriverUnavailable: the driver is offline or unverified
            ActiveTripExists: the driver is already on a ride
        """
        with log_trip_context(trip_id, driver_id=driver_id):
            try:
                with self._session_factory() as session, transaction(session):
                    trips = TripRepository(session)
                    presence = DriverPresenceRepository(session)

                    if not trips.claim_for_driver(
                        trip_id, driver_id, PRE_ACCEPTANCE_STATUSES, self._clock()
                    ):
                        raise self._claim_failure(trips, trip_id)

                    if not presence.compare_and_set_occupancy(
                        driver_id,
                        DriverOccupancy.AVAILABLE,
                        DriverOccupancy.ON_RIDE,
                        active_trip_id=trip_id,
                        verified_only=True,
                    ):
                        raise self._occupancy_failure(presence, driver_id)

                    trip = self._load(trips, trip_id)
                    driver = presence.get(driver_id)
            except IntegrityError as e:
                raise ActiveTripExists(
                    f"Driver {driver_id} is already bound to an active trip",
                    details={"driver_id": driver_id},
                ) from e

            logger.info("Trip accepted")

        self._publish_trip(trip)
        if driver is not None:
            self._registry.publish(driver)
        self._notify_accepted(trip, driver)
        return trip

    # Ride progress

    def mark_arrived(self, trip_id: str) -> Trip:
        """driver_accepted -> arrived."""
        trip = self._advance(trip_id, TripEvent.ARRIVE)
        self._publish_trip(trip)
        driver = self._registry.get(trip.driver_id) if trip.driver_id else None
        if (
            driver is not None
            and driver.location is not None
            and not is_within_proximity(
                *driver.location, *trip.pickup.coordinates, threshold_m=ARRIVAL_PROXIMITY_M
            )
        ):
            logger.warning(
                "Driver %s marked arrived %.2f km from pickup",
                driver.driver_id,
                haversine_distance_km(*driver.location, *trip.pickup.coordinates),
            )
        self._notifications.notify_passenger_driver_arrived(
            trip, driver.profile.full_name if driver and driver.profile.full_name else None
        )
        return trip

    def start_trip(self, trip_id: str) -> Trip:
        """arrived -> in_progress."""
        trip = self._advance(trip_id, TripEvent.START)
        self._publish_trip(trip)
        self._notifications.notify_trip_started(trip)
        return trip

    def complete_trip(self, trip_id: str, final_distance_km: float | None = None) -> FareBreakdown:
        """in_progress -> completed, with the final fare.

        The fare is recomputed from the traveled distance (the booking
        estimate when none is given). The driver is released to
        available and credited one ride; payment is marked completed.
        """
        with log_trip_context(trip_id):
            with self._session_factory() as session, transaction(session):
                trips = TripRepository(session)
                presence = DriverPresenceRepository(session)
                current = self._load(trips, trip_id)
                target = next_status(current.status, TripEvent.COMPLETE)

                distance = current.distance_km if final_distance_km is None else final_distance_km
                fare = self._fare.calculate(distance, current.discount_type)

                self._transition_or_raise(
                    trips,
                    current,
                    target,
                    fare=fare.final_fare,
                    distance_km=fare.distance_km,
                    base_fare=fare.base_component,
                    discount_amount=fare.discount_amount,
                    payment_status=PaymentStatus.COMPLETED.value,
                    completed_at=self._stamp(current),
                )
                if current.driver_id:
                    presence.release(current.driver_id, trip_id)
                    presence.increment_total_rides(current.driver_id)
                trip = self._load(trips, trip_id)
                driver = presence.get(current.driver_id) if current.driver_id else None

            logger.info("Trip completed: %.2f km, fare %.2f", fare.distance_km, fare.final_fare)

        self._publish_trip(trip)
        if driver is not None:
            self._registry.publish(driver)
        self._notifications.notify_trip_completed(trip)
        return fare

    def cancel_trip(
        self,
        trip_id: str,
        cancelled_by: CancelledBy | str,
        reason: str | None = None,
    ) -> Trip:
        """Cancel a non-terminal trip, releasing its driver if one is bound."""
        try:
            cancelled_by = CancelledBy(cancelled_by)
        except ValueError as e:
            raise ValidationError(
                f"Unknown canceller: {cancelled_by}", details={"cancelled_by": str(cancelled_by)}
            ) from e

        with log_trip_context(trip_id):
            with self._session_factory() as session, transaction(session):
                trips = TripRepository(session)
                presence = DriverPresenceRepository(session)
                current = self._load(trips, trip_id)
                target = next_status(current.status, TripEvent.CANCEL)
                self._transition_or_raise(
                    trips,
                    current,
                    target,
                    cancelled_by=cancelled_by.value,
                    cancellation_reason=reason,
                    cancelled_at=self._stamp(current),
                )
                driver = None
                if current.driver_id and presence.release(current.driver_id, trip_id):
                    driver = presence.get(current.driver_id)
                trip = self._load(trips, trip_id)

            logger.info("Trip cancelled by %s from %s", cancelled_by.value, current.status.value)

        self._publish_trip(trip)
        if driver is not None:
            self._registry.publish(driver)
        self._notifications.notify_trip_cancelled(trip, cancelled_by)
        return trip

    # Ratings

    def rate_trip(
        self,
        trip_id: str,
        rater_role: UserRole | str,
        rating: int,
        feedback: str | None = None,
    ) -> Trip:
        """Rate the other side of a completed trip. Each side rates once.

        The rated party's average is recomputed from all of their rated
        completed trips.

        Raises:
            ValidationError: rating is not an integer in [1, 5]
            InvalidTransition: the trip is not completed
            AlreadyRated: this side already rated the trip
        """
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise ValidationError("Rating must be an integer", details={"rating": rating})
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(
                f"Rating must be between {MIN_RATING} and {MAX_RATING}",
                details={"rating": rating},
            )
        rater_role = _as_role(rater_role)

        with log_trip_context(trip_id):
            with self._session_factory() as session, transaction(session):
                trips = TripRepository(session)
                current = self._load(trips, trip_id)
                if current.status != TripStatus.COMPLETED:
                    raise InvalidTransition(
                        f"Only completed trips can be rated (trip is {current.status.value})",
                        details={"trip_id": trip_id, "status": current.status.value},
                    )
                if not trips.set_rating(trip_id, rater_role, rating, feedback):
                    raise AlreadyRated(
                        f"The {rater_role.value} already rated trip {trip_id}",
                        details={"trip_id": trip_id, "rater_role": rater_role.value},
                    )

                if rater_role == UserRole.PASSENGER and current.driver_id:
                    average, _ = trips.driver_rating_stats(current.driver_id)
                    DriverPresenceRepository(session).update_rating(
                        current.driver_id, round(average, 2) if average is not None else None
                    )
                elif rater_role == UserRole.DRIVER:
                    average, count = trips.passenger_rating_stats(current.passenger_id)
                    PassengerRepository(session).update_rating(
                        current.passenger_id,
                        round(average, 2) if average is not None else None,
                        count,
                    )
                trip = self._load(trips, trip_id)

            logger.info("Trip rated %d by %s", rating, rater_role.value)

        self._publish_trip(trip)
        return trip

    # Queries

    def get_trip(self, trip_id: str) -> Trip:
        with self._session_factory() as session, transaction(session):
            return self._load(TripRepository(session), trip_id)

    def get_active_trip(self, user_id: str, role: UserRole | str) -> Trip | None:
        role = _as_role(role)
        with self._session_factory() as session, transaction(session):
            trips = TripRepository(session)
            if role == UserRole.PASSENGER:
                return trips.get_active_for_passenger(user_id)
            return trips.get_active_for_driver(user_id)

    def list_trips(self, user_id: str, role: UserRole | str) -> list[Trip]:
        """Trip history for a passenger or driver, newest first."""
        role = _as_role(role)
        with self._session_factory() as session, transaction(session):
            trips = TripRepository(session)
            if role == UserRole.PASSENGER:
                return trips.list_by_passenger(user_id)
            return trips.list_by_driver(user_id)

    def earnings_summary(self, driver_id: str) -> EarningsSummary:
        """Final fares of a driver's completed trips, all time and by recent period."""
        starts = period_starts(self._clock())
        with self._session_factory() as session, transaction(session):
            trips = TripRepository(session)
            if DriverPresenceRepository(session).get(driver_id) is None:
                raise DriverNotFound(driver_id)
            totals = {"all_time": trips.driver_earnings(driver_id)}
            for name, since in starts.items():
                totals[name] = trips.driver_earnings(driver_id, since)

        periods = {
            name: EarningsPeriod(total=float(round_money(total)), trips=count)
            for name, (total, count) in totals.items()
        }
        return EarningsSummary(driver_id=driver_id, **periods)

    def list_open_trips(self) -> list[Trip]:
        """Requests still waiting for a driver, oldest first."""
        with self._session_factory() as session, transaction(session):
            return TripRepository(session).list_open()

    # Internals

    def _advance(self, trip_id: str, event: TripEvent) -> Trip:
        with log_trip_context(trip_id):
            with self._session_factory() as session, transaction(session):
                trips = TripRepository(session)
                current = self._load(trips, trip_id)
                target = next_status(current.status, event)
                fields: dict[str, Any] = {}
                if target in _STATUS_TIMESTAMPS:
                    fields[_STATUS_TIMESTAMPS[target]] = self._stamp(current)
                self._transition_or_raise(trips, current, target, **fields)
                trip = self._load(trips, trip_id)
            logger.info("Trip %s -> %s", current.status.value, target.value)
        return trip

    def _transition_or_raise(
        self, trips: TripRepository, current: Trip, target: TripStatus, **fields: Any
    ) -> None:
        if not trips.transition(current.trip_id, current.status, target, **fields):
            raise InvalidTransition(
                f"Trip {current.trip_id} changed while moving to {target.value}",
                details={"trip_id": current.trip_id, "expected_status": current.status.value},
            )

    def _stamp(self, trip: Trip) -> datetime:
        """Current time, never earlier than the trip's latest timestamp."""
        now = self._clock()
        latest = _latest_timestamp(trip)
        return max(now, latest) if latest is not None else now

    @staticmethod
    def _load(trips: TripRepository, trip_id: str) -> Trip:
        trip = trips.get(trip_id)
        if trip is None:
            raise TripNotFound(trip_id)
        return trip

    @staticmethod
    def _passenger_busy(passenger_id: str, trip_id: str | None) -> ActiveTripExists:
        return ActiveTripExists(
            f"Passenger {passenger_id} already has an active trip",
            details={"passenger_id": passenger_id, "trip_id": trip_id},
        )

    @staticmethod
    def _claim_failure(trips: TripRepository, trip_id: str) -> Exception:
        trip = trips.get(trip_id)
        if trip is None:
            return TripNotFound(trip_id)
        if trip.status in _ACCEPTED_OR_LATER or trip.driver_id is not None:
            return AlreadyAccepted(
                f"Trip {trip_id} was already accepted",
                details={"trip_id": trip_id, "status": trip.status.value},
            )
        return InvalidTransition(
            f"Invalid transition: accept is not allowed from {trip.status.value}",
            details={"trip_id": trip_id, "status": trip.status.value, "event": "accept"},
        )

    @staticmethod
    def _occupancy_failure(presence: DriverPresenceRepository, driver_id: str) -> Exception:
        driver = presence.get(driver_id)
        if driver is None:
            return DriverNotFound(driver_id)
        if driver.occupancy == DriverOccupancy.ON_RIDE:
            return ActiveTripExists(
                f"Driver {driver_id} is already on trip {driver.active_trip_id}",
                details={"driver_id": driver_id, "trip_id": driver.active_trip_id},
            )
        reason = "unverified" if not driver.is_verified else "offline"
        return DriverUnavailable(
            f"Driver {driver_id} is {reason}",
            details={"driver_id": driver_id, "reason": reason},
        )

    def _notify_accepted(self, trip: Trip, driver: DriverPresenceRecord | None) -> None:
        name = None
        eta = None
        if driver is not None:
            name = driver.profile.full_name or None
            if driver.location is not None:
                distance = haversine_distance_km(*driver.location, *trip.pickup.coordinates)
                eta = self._matcher.estimate_eta_minutes(distance)
        self._notifications.notify_passenger_driver_accepted(trip, name, eta)

    def _publish_trip(self, trip: Trip) -> None:
        if self._channel is None:
            return
        try:
            self._channel.publish(trip_topic(trip.trip_id), trip_payload(trip))
        except Exception:
            logger.exception("Failed to publish trip %s", trip.trip_id)

    def _trip_snapshot(self, topic: str) -> dict[str, Any] | None:
        trip_id = topic[len(TRIP_TOPIC_PREFIX):]
        with self._session_factory() as session, transaction(session):
            trip = TripRepository(session).get(trip_id)
        return trip_payload(trip) if trip else None
