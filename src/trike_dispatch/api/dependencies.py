"""FastAPI dependency injection providers."""

from typing import Annotated

from fastapi import Depends, Request

from trike_dispatch.discounts import DiscountEligibilityService
from trike_dispatch.favorites import FavoriteLocationService
from trike_dispatch.matching import DriverPresenceRegistry, NearestDriverMatcher
from trike_dispatch.safety import SafetyScoreEngine
from trike_dispatch.scheduling import ScheduledRideService
from trike_dispatch.trips import TripLifecycle


def get_lifecycle(request: Request) -> TripLifecycle:
    """Retrieve TripLifecycle from app state."""
    return request.app.state.lifecycle


def get_registry(request: Request) -> DriverPresenceRegistry:
    return request.app.state.registry


def get_matcher(request: Request) -> NearestDriverMatcher:
    return request.app.state.matcher


def get_safety_engine(request: Request) -> SafetyScoreEngine:
    return request.app.state.safety_engine


def get_favorites(request: Request) -> FavoriteLocationService:
    return request.app.state.favorites


def get_scheduled_rides(request: Request) -> ScheduledRideService:
    return request.app.state.scheduled_rides


def get_discounts(request: Request) -> DiscountEligibilityService:
    return request.app.state.discounts


LifecycleDep = Annotated[TripLifecycle, Depends(get_lifecycle)]
RegistryDep = Annotated[DriverPresenceRegistry, Depends(get_registry)]
MatcherDep = Annotated[NearestDriverMatcher, Depends(get_matcher)]
SafetyEngineDep = Annotated[SafetyScoreEngine, Depends(get_safety_engine)]
FavoritesDep = Annotated[FavoriteLocationService, Depends(get_favorites)]
ScheduledRidesDep = Annotated[ScheduledRideService, Depends(get_scheduled_rides)]
DiscountsDep = Annotated[DiscountEligibilityService, Depends(get_discounts)]
