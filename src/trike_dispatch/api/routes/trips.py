from fastapi import APIRouter, status

from trike_dispatch.api.dependencies import FavoritesDep, LifecycleDep
from trike_dispatch.api.models import (
    AcceptTripRequest,
    CancelTripRequest,
    CompleteTripRequest,
    CreateTripRequest,
    DriverCandidateResponse,
    LocateDriverRequest,
    RateTripRequest,
)
from trike_dispatch.api.routes.drivers import to_candidate_response
from trike_dispatch.fare import FareBreakdown
from trike_dispatch.trip import Location, RideOptions, Trip

router = APIRouter()


def _resolve_end(
    favorites: FavoritesDep,
    passenger_id: str,
    location: Location | None,
    favorite_id: str | None,
) -> Location | None:
    if favorite_id is not None:
        return favorites.resolve(passenger_id, favorite_id)
    return location


@router.post("", response_model=Trip, status_code=status.HTTP_201_CREATED)
def create_trip(body: CreateTripRequest, lifecycle: LifecycleDep, favorites: FavoritesDep) -> Trip:
    pickup = _resolve_end(
        favorites,
        body.passenger_id,
        Location(**body.pickup.model_dump()) if body.pickup else None,
        body.pickup_favorite_id,
    )
    dropoff = _resolve_end(
        favorites,
        body.passenger_id,
        Location(**body.dropoff.model_dump()) if body.dropoff else None,
        body.dropoff_favorite_id,
    )
    options = RideOptions(
        discount_type=body.discount_type,
        payment_method=body.payment_method,
        ride_type=body.ride_type,
        errand_notes=body.errand_notes,
    )
    return lifecycle.create_trip(
        body.passenger_id, pickup, dropoff, options, begin_search=body.begin_search
    )


@router.get("/open", response_model=list[Trip])
def list_open_trips(lifecycle: LifecycleDep) -> list[Trip]:
    """Requests still waiting for a driver, oldest first."""
    return lifecycle.list_open_trips()


@router.get("/{trip_id}", response_model=Trip)
def get_trip(trip_id: str, lifecycle: LifecycleDep) -> Trip:
    return lifecycle.get_trip(trip_id)


@router.post("/{trip_id}/begin-matching", response_model=Trip)
def begin_matching(trip_id: str, lifecycle: LifecycleDep) -> Trip:
    return lifecycle.begin_matching(trip_id)


@router.post("/{trip_id}/search", response_model=list[DriverCandidateResponse])
def search_drivers(
    trip_id: str, lifecycle: LifecycleDep, body: LocateDriverRequest | None = None
) -> list[DriverCandidateResponse]:
    """Run the driver search for a trip. An empty list means keep polling."""
    body = body or LocateDriverRequest()
    candidates = lifecycle.locate_driver(trip_id, body.radius_km, body.min_safety)
    return [to_candidate_response(c) for c in candidates]


@router.post("/{trip_id}/accept", response_model=Trip)
def accept_trip(trip_id: str, body: AcceptTripRequest, lifecycle: LifecycleDep) -> Trip:
    return lifecycle.accept_trip(trip_id, body.driver_id)


@router.post("/{trip_id}/arrive", response_model=Trip)
def mark_arrived(trip_id: str, lifecycle: LifecycleDep) -> Trip:
    return lifecycle.mark_arrived(trip_id)


@router.post("/{trip_id}/start", response_model=Trip)
def start_trip(trip_id: str, lifecycle: LifecycleDep) -> Trip:
    return lifecycle.start_trip(trip_id)


@router.post("/{trip_id}/complete", response_model=FareBreakdown)
def complete_trip(
    trip_id: str, lifecycle: LifecycleDep, body: CompleteTripRequest | None = None
) -> FareBreakdown:
    body = body or CompleteTripRequest()
    return lifecycle.complete_trip(trip_id, body.final_distance_km)


@router.post("/{trip_id}/cancel", response_model=Trip)
def cancel_trip(trip_id: str, body: CancelTripRequest, lifecycle: LifecycleDep) -> Trip:
    return lifecycle.cancel_trip(trip_id, body.cancelled_by, body.reason)


@router.post("/{trip_id}/rate", response_model=Trip)
def rate_trip(trip_id: str, body: RateTripRequest, lifecycle: LifecycleDep) -> Trip:
    return lifecycle.rate_trip(trip_id, body.rater_role, body.rating, body.feedback)
