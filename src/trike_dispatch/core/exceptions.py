"""Standardized exception hierarchy for the dispatch engine."""

from typing import Any


class DispatchError(Exception):
    """Base exception for all dispatch engine errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransientError(DispatchError):
    """Errors that may succeed on retry. The engine itself never retries."""

    pass


class StoreUnavailableError(TransientError):
    """Record store unreachable, locked past its timeout, or disconnected."""

    pass


class PermanentError(DispatchError):
    """Errors that will not succeed on retry."""

    pass


class ValidationError(PermanentError):
    """Invalid input rejected before any state mutation."""

    pass


class NotFoundError(PermanentError):
    """Requested entity does not exist."""

    pass


class TripNotFound(NotFoundError):
    def __init__(self, trip_id: str):
        super().__init__(f"Trip {trip_id} not found", details={"trip_id": trip_id})
        self.trip_id = trip_id


class DriverNotFound(NotFoundError):
    def __init__(self, driver_id: str):
        super().__init__(f"Driver {driver_id} not found", details={"driver_id": driver_id})
        self.driver_id = driver_id


class FavoriteNotFound(NotFoundError):
    def __init__(self, favorite_id: str):
        super().__init__(
            f"Favorite location {favorite_id} not found", details={"favorite_id": favorite_id}
        )
        self.favorite_id = favorite_id


class ScheduledRideNotFound(NotFoundError):
    def __init__(self, ride_id: str):
        super().__init__(f"Scheduled ride {ride_id} not found", details={"ride_id": ride_id})
        self.ride_id = ride_id


class StateError(PermanentError):
    """Precondition or state conflict. Nothing was changed."""

    pass


class InvalidTransition(StateError):
    """Event not allowed from the trip's current status."""

    pass


class AlreadyAccepted(InvalidTransition):
    """Another driver won the acceptance of this trip."""

    pass


class ActiveTripExists(StateError):
    """Passenger or driver is already bound to an active trip."""

    pass


class DriverUnavailable(StateError):
    """Driver is offline or unverified and cannot take trips."""

    pass


class AlreadyRated(StateError):
    """This side of the trip has already submitted its rating."""

    pass


class DiscountRequestConflict(StateError):
    """Discount request already pending or approved, or no request to review."""

    pass


class ConfigurationError(PermanentError):
    """Missing or invalid configuration."""

    pass
