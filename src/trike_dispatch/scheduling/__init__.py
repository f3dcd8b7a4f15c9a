"""Rides booked for a later pickup time."""

from .service import ScheduledRideService

__all__ = ["ScheduledRideService"]
