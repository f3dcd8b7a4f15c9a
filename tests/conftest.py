from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest

from tests.factories import DriverFactory
from trike_dispatch.db import init_database
from trike_dispatch.discounts import DiscountEligibilityService
from trike_dispatch.dispatch_logging import LogContext
from trike_dispatch.favorites import FavoriteLocationService
from trike_dispatch.matching import (
    DriverPresenceRegistry,
    NearestDriverMatcher,
    NotificationDispatch,
)
from trike_dispatch.pubsub import PropagationChannel
from trike_dispatch.safety import SafetyScoreEngine
from trike_dispatch.scheduling import ScheduledRideService
from trike_dispatch.trips import TripLifecycle

# Plaza Miranda, Quiapo
PICKUP = (14.5995, 120.9842)
# ~3 km north-east
DROPOFF = (14.6200, 121.0030)


class FakeClock:
    """Settable naive-UTC clock for deterministic timestamps."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def reset_log_context():
    """Keep thread-local log context from leaking between tests."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 2, 8, 0, 0))


@pytest.fixture
def temp_sqlite_db(tmp_path):
    """Temporary SQLite database for persistence tests."""
    return tmp_path / "test_dispatch.db"


@pytest.fixture
def session_factory(temp_sqlite_db):
    return init_database(f"sqlite:///{temp_sqlite_db}")


@pytest.fixture
def channel() -> PropagationChannel:
    return PropagationChannel(buffer_size=16)


@pytest.fixture
def registry(session_factory, channel, clock) -> DriverPresenceRegistry:
    return DriverPresenceRegistry(session_factory, channel, clock)


@pytest.fixture
def safety_engine(session_factory, clock) -> SafetyScoreEngine:
    return SafetyScoreEngine(session_factory, clock)


@pytest.fixture
def matcher(registry, safety_engine) -> NearestDriverMatcher:
    return NearestDriverMatcher(registry, safety_engine)


@pytest.fixture
def mock_notifier():
    """Mock push transport for notification tests."""
    return Mock()


@pytest.fixture
def lifecycle(session_factory, registry, matcher, channel, mock_notifier, clock) -> TripLifecycle:
    return TripLifecycle(
        session_factory,
        registry,
        matcher,
        channel=channel,
        notifications=NotificationDispatch(mock_notifier),
        clock=clock,
    )


@pytest.fixture
def favorites(session_factory, clock) -> FavoriteLocationService:
    return FavoriteLocationService(session_factory, clock)


@pytest.fixture
def discounts(session_factory, clock) -> DiscountEligibilityService:
    return DiscountEligibilityService(session_factory, clock)


@pytest.fixture
def scheduled_rides(session_factory, clock) -> ScheduledRideService:
    return ScheduledRideService(session_factory, clock=clock)


@pytest.fixture
def mock_redis_client():
    """Mock Redis client for mirror tests."""
    return Mock()


@pytest.fixture
def driver_factory() -> DriverFactory:
    return DriverFactory(seed=42)


@pytest.fixture
def online_driver(registry, driver_factory):
    """Register a verified driver and bring them online at a coordinate."""

    def _online_driver(driver_id: str, location=PICKUP, is_verified: bool = True):
        registry.register_driver(driver_id, driver_factory.profile(), is_verified=is_verified)
        return registry.go_online(driver_id, location)

    return _online_driver


@pytest.fixture
def accepted_trip(lifecycle, online_driver):
    """A trip bound to driver d1 for passenger p1."""
    online_driver("d1")
    trip = lifecycle.create_trip("p1", PICKUP, DROPOFF)
    lifecycle.locate_driver(trip.trip_id)
    return lifecycle.accept_trip(trip.trip_id, "d1")


@pytest.fixture
def completed_trip(lifecycle, accepted_trip):
    lifecycle.mark_arrived(accepted_trip.trip_id)
    lifecycle.start_trip(accepted_trip.trip_id)
    lifecycle.complete_trip(accepted_trip.trip_id)
    return lifecycle.get_trip(accepted_trip.trip_id)


@pytest.fixture
def test_client(
    lifecycle, registry, matcher, safety_engine, favorites, scheduled_rides, discounts
):
    """FastAPI test client wired to the real services over a temp database."""
    from fastapi.testclient import TestClient

    from trike_dispatch.api import create_app
    from trike_dispatch.settings import APISettings

    app = create_app(
        lifecycle,
        registry,
        matcher,
        safety_engine,
        favorites,
        scheduled_rides,
        discounts,
        settings=APISettings(cors_origins="http://localhost:8081"),
    )
    return TestClient(app)
