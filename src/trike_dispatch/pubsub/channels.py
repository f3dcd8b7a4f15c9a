"""Propagation topics and the message schemas published on them."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel

from trike_dispatch.driver import DriverPresenceRecord
from trike_dispatch.geo.distance import great_circle_waypoints
from trike_dispatch.trip import Trip

# Topic names
TOPIC_DRIVERS_ONLINE = "drivers:online"
TRIP_TOPIC_PREFIX = "trip:"


def trip_topic(trip_id: str) -> str:
    return f"{TRIP_TOPIC_PREFIX}{trip_id}"


def is_valid_topic(topic: str) -> bool:
    if topic == TOPIC_DRIVERS_ONLINE:
        return True
    return topic.startswith(TRIP_TOPIC_PREFIX) and len(topic) > len(TRIP_TOPIC_PREFIX)


class ChannelEvent(BaseModel):
    """One delivery on a topic. Sequence numbers increase per topic."""

    topic: str
    sequence: int
    kind: Literal["snapshot", "update"]
    payload: Any = None


class DriverPresenceMessage(BaseModel):
    """Driver location and occupancy update for map observers."""

    driver_id: str
    location: tuple[float, float] | None
    is_online: bool
    occupancy: str
    active_trip_id: str | None
    full_name: str
    vehicle_model: str | None
    plate_number: str | None
    average_rating: float | None
    timestamp: str | None
    version: int

    @classmethod
    def from_record(cls, record: DriverPresenceRecord) -> "DriverPresenceMessage":
        return cls(
            driver_id=record.driver_id,
            location=record.location,
            is_online=record.is_online,
            occupancy=record.occupancy.value,
            active_trip_id=record.active_trip_id,
            full_name=record.profile.full_name,
            vehicle_model=record.profile.vehicle_model,
            plate_number=record.profile.plate_number,
            average_rating=record.average_rating,
            timestamp=_iso(record.last_location_update),
            version=record.version,
        )


class TripUpdateMessage(BaseModel):
    """Trip state update with full context.

    route_preview is a great-circle sketch for the map, not a road route.
    """

    trip_id: str
    status: str
    passenger_id: str
    driver_id: str | None
    pickup: tuple[float, float]
    dropoff: tuple[float, float]
    route_preview: list[tuple[float, float]]
    pickup_address: str
    dropoff_address: str
    estimated_fare: float
    fare: float | None
    payment_status: str
    accepted_at: str | None
    arrived_at: str | None
    started_at: str | None
    completed_at: str | None
    cancelled_at: str | None
    version: int

    @classmethod
    def from_trip(cls, trip: Trip) -> "TripUpdateMessage":
        return cls(
            trip_id=trip.trip_id,
            status=trip.status.value,
            passenger_id=trip.passenger_id,
            driver_id=trip.driver_id,
            pickup=trip.pickup.coordinates,
            dropoff=trip.dropoff.coordinates,
            route_preview=great_circle_waypoints(
                trip.pickup.coordinates, trip.dropoff.coordinates
            ),
            pickup_address=trip.pickup.address,
            dropoff_address=trip.dropoff.address,
            estimated_fare=trip.estimated_fare,
            fare=trip.fare,
            payment_status=trip.payment_status.value,
            accepted_at=_iso(trip.accepted_at),
            arrived_at=_iso(trip.arrived_at),
            started_at=_iso(trip.started_at),
            completed_at=_iso(trip.completed_at),
            cancelled_at=_iso(trip.cancelled_at),
            version=trip.version,
        )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def presence_payload(record: DriverPresenceRecord) -> dict[str, Any]:
    return DriverPresenceMessage.from_record(record).model_dump(mode="json")


def trip_payload(trip: Trip) -> dict[str, Any]:
    return TripUpdateMessage.from_trip(trip).model_dump(mode="json")


def ordering_key(topic: str, payload: Any) -> str | None:
    """Name of the row a payload describes, or None if it carries no version.

    Trip topics describe a single trip; the online topic interleaves many
    drivers, each ordered independently.
    """
    if not isinstance(payload, dict) or "version" not in payload:
        return None
    if topic == TOPIC_DRIVERS_ONLINE:
        return payload.get("driver_id")
    return topic


def payload_versions(topic: str, payload: Any) -> dict[str, int]:
    """Row versions carried by an update or a snapshot, keyed by ordering_key."""
    items = payload if isinstance(payload, list) else [payload]
    versions: dict[str, int] = {}
    for item in items:
        key = ordering_key(topic, item)
        if key is not None:
            versions[key] = int(item["version"])
    return versions
