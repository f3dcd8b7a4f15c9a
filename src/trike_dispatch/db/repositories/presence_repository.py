"""Driver presence repository for CRUD operations and occupancy swaps."""

from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from trike_dispatch.driver import DriverOccupancy, DriverPresenceRecord, DriverProfile

from ..schema import DriverPresence


class DriverPresenceRepository:
    """Repository for driver presence rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(
        self,
        driver_id: str,
        profile: DriverProfile,
        is_verified: bool,
        registered_at: datetime,
    ) -> None:
        presence = DriverPresence(
            driver_id=driver_id,
            is_online=False,
            occupancy=DriverOccupancy.OFFLINE.value,
            full_name=profile.full_name,
            vehicle_model=profile.vehicle_model,
            vehicle_color=profile.vehicle_color,
            plate_number=profile.plate_number,
            is_verified=is_verified,
            registered_at=registered_at,
        )
        self.session.add(presence)
        self.session.flush()

    def get(self, driver_id: str) -> DriverPresenceRecord | None:
        presence = self.session.get(DriverPresence, driver_id, populate_existing=True)
        if presence is None:
            return None
        return self._to_domain(presence)

    def update_profile(
        self, driver_id: str, profile: DriverProfile, is_verified: bool | None = None
    ) -> None:
        presence = self.session.get(DriverPresence, driver_id)
        if presence:
            presence.full_name = profile.full_name
            presence.vehicle_model = profile.vehicle_model
            presence.vehicle_color = profile.vehicle_color
            presence.plate_number = profile.plate_number
            if is_verified is not None:
                presence.is_verified = is_verified
            presence.version += 1

    def move(self, driver_id: str, location: tuple[float, float], now: datetime) -> bool:
        """Update the coordinate of an online driver. Occupancy is untouched."""
        lat, lon = location
        moved = self.session.execute(
            update(DriverPresence)
            .where(DriverPresence.driver_id == driver_id, DriverPresence.is_online.is_(True))
            .values(latitude=lat, longitude=lon, last_location_update=now, version=_bumped())
            .execution_options(synchronize_session=False)
        )
        return _rowcount(moved) == 1

    def set_online(
        self, driver_id: str, location: tuple[float, float], now: datetime
    ) -> bool:
        """Publish a coordinate for a driver, bringing them online if needed.

        An offline driver becomes available; an online driver keeps its
        occupancy and only moves.
        """
        if self.move(driver_id, location, now):
            return True

        lat, lon = location
        came_online = self.session.execute(
            update(DriverPresence)
            .where(DriverPresence.driver_id == driver_id, DriverPresence.is_online.is_(False))
            .values(
                latitude=lat,
                longitude=lon,
                last_location_update=now,
                is_online=True,
                occupancy=DriverOccupancy.AVAILABLE.value,
                active_trip_id=None,
                version=_bumped(),
            )
            .execution_options(synchronize_session=False)
        )
        return _rowcount(came_online) == 1

    def set_offline(self, driver_id: str, now: datetime) -> bool:
        """Null the coordinate and mark offline. Refused while on a ride."""
        result = self.session.execute(
            update(DriverPresence)
            .where(
                DriverPresence.driver_id == driver_id,
                DriverPresence.occupancy != DriverOccupancy.ON_RIDE.value,
            )
            .values(
                latitude=None,
                longitude=None,
                is_online=False,
                occupancy=DriverOccupancy.OFFLINE.value,
                active_trip_id=None,
                version=_bumped(),
                last_location_update=now,
            )
            .execution_options(synchronize_session=False)
        )
        return _rowcount(result) == 1

    def compare_and_set_occupancy(
        self,
        driver_id: str,
        expected: DriverOccupancy,
        new: DriverOccupancy,
        active_trip_id: str | None,
        verified_only: bool = False,
    ) -> bool:
        """Swap occupancy only if the driver is online and still in `expected`."""
        conditions = [
            DriverPresence.driver_id == driver_id,
            DriverPresence.is_online.is_(True),
            DriverPresence.occupancy == expected.value,
        ]
        if verified_only:
            conditions.append(DriverPresence.is_verified.is_(True))
        result = self.session.execute(
            update(DriverPresence)
            .where(*conditions)
            .values(occupancy=new.value, active_trip_id=active_trip_id, version=_bumped())
            .execution_options(synchronize_session=False)
        )
        return _rowcount(result) == 1

    def release(self, driver_id: str, trip_id: str) -> bool:
        """Return a driver bound to `trip_id` to available."""
        result = self.session.execute(
            update(DriverPresence)
            .where(
                DriverPresence.driver_id == driver_id,
                DriverPresence.active_trip_id == trip_id,
            )
            .values(
                occupancy=DriverOccupancy.AVAILABLE.value, active_trip_id=None, version=_bumped()
            )
            .execution_options(synchronize_session=False)
        )
        return _rowcount(result) == 1

    def increment_total_rides(self, driver_id: str) -> None:
        self.session.execute(
            update(DriverPresence)
            .where(DriverPresence.driver_id == driver_id)
            .values(total_rides=DriverPresence.total_rides + 1, version=_bumped())
            .execution_options(synchronize_session=False)
        )

    def update_rating(self, driver_id: str, average_rating: float | None) -> None:
        self.session.execute(
            update(DriverPresence)
            .where(DriverPresence.driver_id == driver_id)
            .values(average_rating=average_rating, version=_bumped())
            .execution_options(synchronize_session=False)
        )

    def list_online(self) -> list[DriverPresenceRecord]:
        stmt = (
            select(DriverPresence)
            .where(DriverPresence.is_online.is_(True))
            .order_by(DriverPresence.driver_id)
        )
        result = self.session.execute(stmt)
        return [self._to_domain(p) for p in result.scalars().all()]

    def list_available(self) -> list[DriverPresenceRecord]:
        """Online, verified drivers with a coordinate and no active trip."""
        stmt = (
            select(DriverPresence)
            .where(
                DriverPresence.is_online.is_(True),
                DriverPresence.is_verified.is_(True),
                DriverPresence.occupancy == DriverOccupancy.AVAILABLE.value,
                DriverPresence.latitude.is_not(None),
                DriverPresence.longitude.is_not(None),
            )
            .order_by(DriverPresence.driver_id)
        )
        result = self.session.execute(stmt)
        return [self._to_domain(p) for p in result.scalars().all()]

    def _to_domain(self, presence: DriverPresence) -> DriverPresenceRecord:
        location = None
        if presence.latitude is not None and presence.longitude is not None:
            location = (presence.latitude, presence.longitude)
        return DriverPresenceRecord(
            driver_id=presence.driver_id,
            location=location,
            is_online=presence.is_online,
            occupancy=DriverOccupancy(presence.occupancy),
            active_trip_id=presence.active_trip_id,
            last_location_update=presence.last_location_update,
            profile=DriverProfile(
                full_name=presence.full_name,
                vehicle_model=presence.vehicle_model,
                vehicle_color=presence.vehicle_color,
                plate_number=presence.plate_number,
            ),
            average_rating=presence.average_rating,
            total_rides=presence.total_rides,
            is_verified=presence.is_verified,
            registered_at=presence.registered_at,
            version=presence.version,
        )


def _rowcount(result: Any) -> int:
    return int(result.rowcount or 0)


def _bumped() -> Any:
    return DriverPresence.version + 1
