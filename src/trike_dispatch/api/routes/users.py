from typing import Literal

from fastapi import APIRouter, Response, status

from trike_dispatch.api.dependencies import (
    DiscountsDep,
    FavoritesDep,
    LifecycleDep,
    ScheduledRidesDep,
)
from trike_dispatch.api.models import DiscountRequestBody
from trike_dispatch.discounts import DiscountStatus
from trike_dispatch.favorites import FavoriteLocation, FavoriteLocationInput, FavoriteLocationUpdate
from trike_dispatch.scheduled_ride import ScheduledRide
from trike_dispatch.trip import Trip, UserRole

router = APIRouter()


@router.get("/{user_id}/trips", response_model=list[Trip])
def trip_history(
    user_id: str, lifecycle: LifecycleDep, role: UserRole = UserRole.PASSENGER
) -> list[Trip]:
    """Trips for a passenger or driver, newest first."""
    return lifecycle.list_trips(user_id, role)


@router.get("/{user_id}/active-trip", response_model=Trip | None)
def active_trip(
    user_id: str, lifecycle: LifecycleDep, role: UserRole = UserRole.PASSENGER
) -> Trip | None:
    return lifecycle.get_active_trip(user_id, role)


@router.get("/{user_id}/favorites", response_model=list[FavoriteLocation])
def list_favorites(user_id: str, favorites: FavoritesDep) -> list[FavoriteLocation]:
    return favorites.list_favorites(user_id)


@router.post(
    "/{user_id}/favorites",
    response_model=FavoriteLocation,
    status_code=status.HTTP_201_CREATED,
)
def save_favorite(
    user_id: str, body: FavoriteLocationInput, favorites: FavoritesDep
) -> FavoriteLocation:
    return favorites.save(user_id, body)


@router.put("/{user_id}/favorites/{favorite_id}", response_model=FavoriteLocation)
def update_favorite(
    user_id: str, favorite_id: str, body: FavoriteLocationUpdate, favorites: FavoritesDep
) -> FavoriteLocation:
    return favorites.update(user_id, favorite_id, body)


@router.delete("/{user_id}/favorites/{favorite_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_favorite(user_id: str, favorite_id: str, favorites: FavoritesDep) -> Response:
    favorites.delete(user_id, favorite_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{user_id}/scheduled-rides", response_model=list[ScheduledRide])
def scheduled_rides_for_passenger(
    user_id: str,
    scheduled_rides: ScheduledRidesDep,
    when: Literal["upcoming", "past"] = "upcoming",
) -> list[ScheduledRide]:
    """Upcoming rides soonest first, or past rides latest first."""
    if when == "past":
        return scheduled_rides.list_past(user_id)
    return scheduled_rides.list_upcoming(user_id)


@router.get("/{user_id}/discount", response_model=DiscountStatus)
def discount_status(user_id: str, discounts: DiscountsDep) -> DiscountStatus:
    return discounts.get_status(user_id)


@router.post("/{user_id}/discount", response_model=DiscountStatus)
def request_discount(
    user_id: str, body: DiscountRequestBody, discounts: DiscountsDep
) -> DiscountStatus:
    """Submit a senior or PWD discount for verification."""
    return discounts.request(user_id, body.discount_type)
