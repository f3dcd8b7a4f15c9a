from typing import Annotated

from fastapi import APIRouter, Query

from trike_dispatch.api.dependencies import (
    LifecycleDep,
    MatcherDep,
    RegistryDep,
    SafetyEngineDep,
    ScheduledRidesDep,
)
from trike_dispatch.api.models import (
    DriverCandidateResponse,
    PresenceUpdateRequest,
    RegisterDriverRequest,
)
from trike_dispatch.driver import DriverPresenceRecord
from trike_dispatch.matching import DriverCandidate
from trike_dispatch.safety import DriverSafetyRecord, SafetyBadge
from trike_dispatch.scheduled_ride import ScheduledRide
from trike_dispatch.trips import EarningsSummary

router = APIRouter()


def to_candidate_response(candidate: DriverCandidate) -> DriverCandidateResponse:
    return DriverCandidateResponse(
        driver_id=candidate.driver_id,
        location=candidate.location,
        distance_km=candidate.distance_km,
        eta_minutes=candidate.eta_minutes,
        full_name=candidate.profile.full_name,
        vehicle_model=candidate.profile.vehicle_model,
        vehicle_color=candidate.profile.vehicle_color,
        plate_number=candidate.profile.plate_number,
        average_rating=candidate.average_rating,
        total_rides=candidate.total_rides,
        safety_badge=candidate.safety_badge,
    )


Latitude = Annotated[float, Query(ge=-90.0, le=90.0)]
Longitude = Annotated[float, Query(ge=-180.0, le=180.0)]


@router.get("/nearby", response_model=list[DriverCandidateResponse])
def nearby_drivers(
    latitude: Latitude,
    longitude: Longitude,
    matcher: MatcherDep,
    radius_km: Annotated[float | None, Query(gt=0)] = None,
    min_safety: SafetyBadge | None = None,
) -> list[DriverCandidateResponse]:
    candidates = matcher.find_nearby_drivers((latitude, longitude), radius_km, min_safety)
    return [to_candidate_response(c) for c in candidates]


@router.get("/nearest", response_model=DriverCandidateResponse | None)
def nearest_driver(
    latitude: Latitude,
    longitude: Longitude,
    matcher: MatcherDep,
    min_safety: SafetyBadge | None = None,
) -> DriverCandidateResponse | None:
    candidate = matcher.find_nearest_driver((latitude, longitude), min_safety)
    return to_candidate_response(candidate) if candidate else None


@router.get("/online", response_model=list[DriverPresenceRecord])
def online_drivers(registry: RegistryDep) -> list[DriverPresenceRecord]:
    return registry.list_online()


@router.put("/{driver_id}", response_model=DriverPresenceRecord)
def register_driver(
    driver_id: str, body: RegisterDriverRequest, registry: RegistryDep
) -> DriverPresenceRecord:
    return registry.register_driver(driver_id, body.profile, body.is_verified)


@router.put("/{driver_id}/presence", response_model=DriverPresenceRecord)
def update_presence(
    driver_id: str, body: PresenceUpdateRequest, registry: RegistryDep
) -> DriverPresenceRecord:
    """Go online at a coordinate, or move if already online."""
    return registry.go_online(driver_id, (body.latitude, body.longitude))


@router.delete("/{driver_id}/presence", response_model=DriverPresenceRecord)
def remove_presence(driver_id: str, registry: RegistryDep) -> DriverPresenceRecord:
    return registry.go_offline(driver_id)


@router.get("/{driver_id}/safety", response_model=DriverSafetyRecord)
def driver_safety(driver_id: str, safety_engine: SafetyEngineDep) -> DriverSafetyRecord:
    return safety_engine.get_driver_safety_record(driver_id)


@router.get("/{driver_id}/earnings", response_model=EarningsSummary)
def driver_earnings(driver_id: str, lifecycle: LifecycleDep) -> EarningsSummary:
    """Completed-trip fares, all time and for today, the past week and month."""
    return lifecycle.earnings_summary(driver_id)


@router.get("/{driver_id}/scheduled-rides", response_model=list[ScheduledRide])
def driver_scheduled_rides(
    driver_id: str, scheduled_rides: ScheduledRidesDep
) -> list[ScheduledRide]:
    """Accepted and completed scheduled rides, soonest first."""
    return scheduled_rides.list_for_driver(driver_id)
