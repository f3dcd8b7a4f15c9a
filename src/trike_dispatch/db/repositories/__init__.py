"""Repository layer for database CRUD operations."""

from .favorite_repository import FavoriteLocationRepository
from .passenger_repository import PassengerRepository
from .presence_repository import DriverPresenceRepository
from .safety_record_repository import SafetyRecordRepository
from .scheduled_ride_repository import ScheduledRideRepository
from .trip_repository import TripRepository

__all__ = [
    "DriverPresenceRepository",
    "FavoriteLocationRepository",
    "PassengerRepository",
    "SafetyRecordRepository",
    "ScheduledRideRepository",
    "TripRepository",
]
