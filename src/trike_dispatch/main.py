"""
Trike Dispatch - Entry Point

Wires the record store, propagation channel, matching and lifecycle
services into the FastAPI app and serves it with uvicorn.
"""

import logging

import uvicorn

from trike_dispatch.api import create_app
from trike_dispatch.core.exceptions import ConfigurationError
from trike_dispatch.db import init_database
from trike_dispatch.discounts import DiscountEligibilityService
from trike_dispatch.dispatch_logging import setup_logging
from trike_dispatch.fare import FareCalculator
from trike_dispatch.favorites import FavoriteLocationService
from trike_dispatch.matching import (
    DriverPresenceRegistry,
    LoggingNotifier,
    NearestDriverMatcher,
    NotificationDispatch,
)
from trike_dispatch.pubsub import PropagationChannel
from trike_dispatch.redis_client import RedisChannelMirror
from trike_dispatch.safety import SafetyScoreEngine
from trike_dispatch.scheduling import ScheduledRideService
from trike_dispatch.settings import Settings, get_settings
from trike_dispatch.trips import TripLifecycle

logger = logging.getLogger(__name__)


def create_channel(settings: Settings) -> PropagationChannel:
    """In-process channel, mirrored to Redis when enabled."""
    mirror = None
    if settings.redis.enabled:
        mirror = RedisChannelMirror.from_settings(settings.redis)
        logger.info("Mirroring propagation events to Redis at %s", settings.redis.host)
    return PropagationChannel(
        buffer_size=settings.propagation.subscriber_buffer_size, mirror=mirror
    )


def main() -> None:
    """Main entry point - initializes and runs the dispatch API."""
    try:
        settings = get_settings()
    except ConfigurationError as e:
        raise SystemExit(f"{e.message}: {'; '.join(e.details['errors'])}") from e

    setup_logging(
        level=settings.dispatch.log_level,
        json_output=settings.dispatch.log_format == "json",
        environment=settings.dispatch.environment,
    )

    session_factory = init_database(
        settings.database.url, settings.database.sqlite_busy_timeout_seconds
    )
    channel = create_channel(settings)

    registry = DriverPresenceRegistry(session_factory, channel)
    safety_engine = SafetyScoreEngine(session_factory)
    matcher = NearestDriverMatcher(registry, safety_engine, settings.matching)
    lifecycle = TripLifecycle(
        session_factory,
        registry,
        matcher,
        channel=channel,
        notifications=NotificationDispatch(LoggingNotifier()),
        fare_calculator=FareCalculator(settings.fare),
    )
    favorites = FavoriteLocationService(session_factory)
    scheduling = ScheduledRideService(session_factory, FareCalculator(settings.fare))
    eligibility = DiscountEligibilityService(session_factory)

    app = create_app(
        lifecycle=lifecycle,
        registry=registry,
        matcher=matcher,
        safety_engine=safety_engine,
        favorites=favorites,
        scheduling=scheduling,
        eligibility=eligibility,
        settings=settings.api,
    )

    logger.info("Starting dispatch API on port %d", settings.api.port)
    uvicorn.run(
        app,
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.dispatch.log_level.lower(),
    )


if __name__ == "__main__":
    main()
