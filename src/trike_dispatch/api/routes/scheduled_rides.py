from fastapi import APIRouter, status

from trike_dispatch.api.dependencies import ScheduledRidesDep
from trike_dispatch.api.models import AcceptTripRequest, ScheduleRideRequest
from trike_dispatch.scheduled_ride import ScheduledRide, ScheduledRideRequest
from trike_dispatch.trip import Location

router = APIRouter()


@router.post("", response_model=ScheduledRide, status_code=status.HTTP_201_CREATED)
def schedule_ride(body: ScheduleRideRequest, scheduled_rides: ScheduledRidesDep) -> ScheduledRide:
    request = ScheduledRideRequest(
        pickup=Location(**body.pickup.model_dump()),
        dropoff=Location(**body.dropoff.model_dump()),
        scheduled_at=body.scheduled_at,
        payment_method=body.payment_method,
        notes=body.notes,
    )
    return scheduled_rides.create(body.passenger_id, request)


@router.get("/available", response_model=list[ScheduledRide])
def available_rides(scheduled_rides: ScheduledRidesDep) -> list[ScheduledRide]:
    """Unclaimed future rides, soonest first."""
    return scheduled_rides.list_available()


@router.get("/{ride_id}", response_model=ScheduledRide)
def get_scheduled_ride(ride_id: str, scheduled_rides: ScheduledRidesDep) -> ScheduledRide:
    return scheduled_rides.get(ride_id)


@router.post("/{ride_id}/accept", response_model=ScheduledRide)
def accept_scheduled_ride(
    ride_id: str, body: AcceptTripRequest, scheduled_rides: ScheduledRidesDep
) -> ScheduledRide:
    return scheduled_rides.accept(ride_id, body.driver_id)


@router.post("/{ride_id}/cancel", response_model=ScheduledRide)
def cancel_scheduled_ride(ride_id: str, scheduled_rides: ScheduledRidesDep) -> ScheduledRide:
    return scheduled_rides.cancel(ride_id)


@router.post("/{ride_id}/complete", response_model=ScheduledRide)
def complete_scheduled_ride(ride_id: str, scheduled_rides: ScheduledRidesDep) -> ScheduledRide:
    return scheduled_rides.complete(ride_id)
