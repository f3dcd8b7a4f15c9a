"""Database persistence module."""

from .database import create_store_engine, init_database
from .schema import DriverPresence, FavoriteLocation, Passenger, SafetyRecord, SchemaMetadata, Trip
from .transaction import transaction

__all__ = [
    "create_store_engine",
    "init_database",
    "DriverPresence",
    "FavoriteLocation",
    "Passenger",
    "SafetyRecord",
    "SchemaMetadata",
    "Trip",
    "transaction",
]
