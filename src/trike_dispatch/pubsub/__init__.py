"""Location propagation: topics, in-process fan-out and poll transport."""

from .channels import (
    TOPIC_DRIVERS_ONLINE,
    ChannelEvent,
    DriverPresenceMessage,
    TripUpdateMessage,
    presence_payload,
    trip_payload,
    trip_topic,
)
from .polling import PollingObserver
from .propagation import PropagationChannel, Subscription

__all__ = [
    "TOPIC_DRIVERS_ONLINE",
    "ChannelEvent",
    "DriverPresenceMessage",
    "PollingObserver",
    "PropagationChannel",
    "Subscription",
    "TripUpdateMessage",
    "presence_payload",
    "trip_payload",
    "trip_topic",
]
