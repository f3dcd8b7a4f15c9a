"""FastAPI application factory for the dispatch API."""

import logging
import re

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trike_dispatch.core.exceptions import (
    DispatchError,
    NotFoundError,
    StateError,
    TransientError,
    ValidationError,
)
from trike_dispatch.discounts import DiscountEligibilityService
from trike_dispatch.favorites import FavoriteLocationService
from trike_dispatch.matching import DriverPresenceRegistry, NearestDriverMatcher
from trike_dispatch.safety import SafetyScoreEngine
from trike_dispatch.scheduling import ScheduledRideService
from trike_dispatch.settings import APISettings
from trike_dispatch.trips import TripLifecycle

from .routes import discounts, drivers, fare, safety, scheduled_rides, trips, users

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def error_code(exc: Exception) -> str:
    """AlreadyAccepted -> already_accepted."""
    return _CAMEL_BOUNDARY.sub("_", type(exc).__name__).lower()


def status_for(exc: DispatchError) -> int:
    if isinstance(exc, ValidationError):
        return 422
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, StateError):
        return 409
    if isinstance(exc, TransientError):
        return 503
    return 500


async def dispatch_error_handler(request: Request, exc: DispatchError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            {
                "error": error_code(exc),
                "message": exc.message,
                "details": exc.details,
                "retryable": isinstance(exc, TransientError),
            }
        ),
    )


def create_app(
    lifecycle: TripLifecycle,
    registry: DriverPresenceRegistry,
    matcher: NearestDriverMatcher,
    safety_engine: SafetyScoreEngine,
    favorites: FavoriteLocationService,
    scheduling: ScheduledRideService,
    eligibility: DiscountEligibilityService,
    settings: APISettings | None = None,
) -> FastAPI:
    """Create FastAPI application with injected dependencies.

    Args:
        lifecycle: TripLifecycle for booking and trip transitions
        registry: DriverPresenceRegistry shared with the lifecycle
        matcher: NearestDriverMatcher for nearby-driver lookups
        safety_engine: SafetyScoreEngine for badges and safety reports
        favorites: FavoriteLocationService for saved places
        scheduling: ScheduledRideService for rides booked ahead
        eligibility: DiscountEligibilityService for senior and PWD verification
        settings: API settings (CORS origins); defaults from environment
    """
    settings = settings or APISettings()

    app = FastAPI(
        title="Trike Dispatch API",
        version="1.0.0",
        description="Trip booking, driver matching and ride lifecycle for tricycle hailing",
    )

    # Set on state immediately so dependencies resolve in tests without a lifespan
    app.state.lifecycle = lifecycle
    app.state.registry = registry
    app.state.matcher = matcher
    app.state.safety_engine = safety_engine
    app.state.favorites = favorites
    app.state.scheduled_rides = scheduling
    app.state.discounts = eligibility

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DispatchError, dispatch_error_handler)

    app.include_router(trips.router, prefix="/trips", tags=["trips"])
    app.include_router(drivers.router, prefix="/drivers", tags=["drivers"])
    app.include_router(users.router, prefix="/users", tags=["users"])
    app.include_router(
        scheduled_rides.router, prefix="/scheduled-rides", tags=["scheduled-rides"]
    )
    app.include_router(discounts.router, prefix="/discounts", tags=["discounts"])
    app.include_router(safety.router, prefix="/safety", tags=["safety"])
    app.include_router(fare.router, tags=["fare"])

    @app.get("/health")
    def health_check() -> dict[str, str]:
        """Health check endpoint for monitoring."""
        return {"status": "healthy"}

    return app
