"""Driver presence registry backed by the record store."""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from trike_dispatch.core.exceptions import (
    ActiveTripExists,
    DriverNotFound,
    DriverUnavailable,
    ValidationError,
)
from trike_dispatch.db.repositories import DriverPresenceRepository
from trike_dispatch.db.transaction import transaction
from trike_dispatch.db.utils import utc_now
from trike_dispatch.driver import DriverPresenceRecord, DriverProfile
from trike_dispatch.pubsub.channels import TOPIC_DRIVERS_ONLINE, presence_payload
from trike_dispatch.pubsub.propagation import PropagationChannel

logger = logging.getLogger(__name__)


def validate_coordinate(location: tuple[float, float]) -> tuple[float, float]:
    lat, lon = location
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        raise ValidationError(
            "Coordinate out of range", details={"latitude": lat, "longitude": lon}
        )
    return (float(lat), float(lon))


class DriverPresenceRegistry:
    """Online flag, last coordinate and occupancy for every driver.

    An explicit, injected object: every component that reads or writes
    presence shares the same instance. Occupancy is only changed here
    through the lifecycle service; drivers themselves control online state
    and location. Every change is published on the online-drivers topic
    after it commits.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        channel: PropagationChannel | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._channel = channel
        self._clock = clock
        if channel is not None:
            channel.register_snapshot_provider(TOPIC_DRIVERS_ONLINE, self._online_snapshot)

    def register_driver(
        self,
        driver_id: str,
        profile: DriverProfile | None = None,
        is_verified: bool = True,
    ) -> DriverPresenceRecord:
        """Create the presence row for a driver, or refresh its display metadata."""
        profile = profile or DriverProfile()
        with self._session_factory() as session, transaction(session):
            repo = DriverPresenceRepository(session)
            if repo.get(driver_id) is None:
                repo.create(driver_id, profile, is_verified, self._clock())
                logger.info("Registered driver %s", driver_id)
            else:
                repo.update_profile(driver_id, profile, is_verified)
                session.flush()
            record = repo.get(driver_id)
            if record is None:
                raise DriverNotFound(driver_id)
        return record

    def go_online(
        self, driver_id: str, location: tuple[float, float]
    ) -> DriverPresenceRecord:
        """Publish a driver's coordinate; an offline driver becomes available."""
        coordinate = validate_coordinate(location)
        with self._session_factory() as session, transaction(session):
            repo = DriverPresenceRepository(session)
            if not repo.set_online(driver_id, coordinate, self._clock()):
                raise DriverNotFound(driver_id)
            record = repo.get(driver_id)
            if record is None:
                raise DriverNotFound(driver_id)
        logger.info("Driver %s online at %s (%s)", driver_id, coordinate, record.occupancy.value)
        self.publish(record)
        return record

    def update_location(
        self, driver_id: str, location: tuple[float, float]
    ) -> DriverPresenceRecord:
        """Move an online driver without touching occupancy.

        Raises:
            DriverNotFound: no presence row for this driver
            DriverUnavailable: the driver is offline; call go_online instead
        """
        coordinate = validate_coordinate(location)
        with self._session_factory() as session, transaction(session):
            repo = DriverPresenceRepository(session)
            if not repo.move(driver_id, coordinate, self._clock()):
                if repo.get(driver_id) is None:
                    raise DriverNotFound(driver_id)
                raise DriverUnavailable(
                    f"Driver {driver_id} is offline", details={"driver_id": driver_id}
                )
            record = repo.get(driver_id)
            if record is None:
                raise DriverNotFound(driver_id)
        self.publish(record)
        return record

    def go_offline(self, driver_id: str) -> DriverPresenceRecord:
        """Null the coordinate and mark the driver offline.

        Raises:
            DriverNotFound: no presence row for this driver
            ActiveTripExists: the driver is on a ride
        """
        with self._session_factory() as session, transaction(session):
            repo = DriverPresenceRepository(session)
            if not repo.set_offline(driver_id, self._clock()):
                current = repo.get(driver_id)
                if current is None:
                    raise DriverNotFound(driver_id)
                raise ActiveTripExists(
                    f"Driver {driver_id} cannot go offline during trip {current.active_trip_id}",
                    details={"driver_id": driver_id, "trip_id": current.active_trip_id},
                )
            record = repo.get(driver_id)
            if record is None:
                raise DriverNotFound(driver_id)
        logger.info("Driver %s went offline", driver_id)
        self.publish(record)
        return record

    def get(self, driver_id: str) -> DriverPresenceRecord | None:
        with self._session_factory() as session, transaction(session):
            return DriverPresenceRepository(session).get(driver_id)

    def list_online(self) -> list[DriverPresenceRecord]:
        with self._session_factory() as session, transaction(session):
            return DriverPresenceRepository(session).list_online()

    def list_available(self) -> list[DriverPresenceRecord]:
        """Online, verified, unoccupied drivers with a known coordinate."""
        with self._session_factory() as session, transaction(session):
            return DriverPresenceRepository(session).list_available()

    def publish(self, record: DriverPresenceRecord) -> None:
        """Push a committed presence change to online-driver observers."""
        if self._channel is None:
            return
        try:
            self._channel.publish(TOPIC_DRIVERS_ONLINE, presence_payload(record))
        except Exception:
            logger.exception("Failed to publish presence for driver %s", record.driver_id)

    def _online_snapshot(self, topic: str) -> list[dict[str, Any]]:
        return [presence_payload(record) for record in self.list_online()]
