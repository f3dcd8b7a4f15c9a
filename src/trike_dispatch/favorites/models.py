"""Saved place models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from trike_dispatch.trip import Location


class FavoriteIcon(str, Enum):
    HOME = "home"
    BRIEFCASE = "briefcase"
    SCHOOL = "school"
    LOCATION = "location"
    HEART = "heart"
    STAR = "star"


class FavoriteLocationInput(BaseModel):
    label: str = Field(min_length=1, max_length=80)
    address: str = ""
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    icon: FavoriteIcon = FavoriteIcon.LOCATION


class FavoriteLocationUpdate(BaseModel):
    label: str | None = Field(default=None, min_length=1, max_length=80)
    address: str | None = None
    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)
    icon: FavoriteIcon | None = None


class FavoriteLocation(BaseModel):
    favorite_id: str
    owner_id: str
    label: str
    address: str
    latitude: float
    longitude: float
    icon: FavoriteIcon
    created_at: datetime

    def to_location(self) -> Location:
        return Location(latitude=self.latitude, longitude=self.longitude, address=self.address)
