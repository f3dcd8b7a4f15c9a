"""Saved places."""

from .models import FavoriteIcon, FavoriteLocation, FavoriteLocationInput, FavoriteLocationUpdate
from .service import FavoriteLocationService

__all__ = [
    "FavoriteIcon",
    "FavoriteLocation",
    "FavoriteLocationInput",
    "FavoriteLocationService",
    "FavoriteLocationUpdate",
]
