"""In-process topic fan-out with snapshot-on-subscribe."""

import logging
import threading
from collections import deque
from collections.abc import Callable
from typing import Any, Protocol

from trike_dispatch.core.exceptions import ValidationError

from .channels import TRIP_TOPIC_PREFIX, ChannelEvent, is_valid_topic, payload_versions

logger = logging.getLogger(__name__)

SnapshotProvider = Callable[[str], Any]
EventCallback = Callable[[ChannelEvent], None]


class ChannelMirror(Protocol):
    """Anything that forwards published events to another transport."""

    def publish(self, event: ChannelEvent) -> None: ...


class Subscription:
    """A single observer's view of one topic.

    Events are buffered up to `buffer_size`; when a slow observer falls
    behind, the oldest buffered events are dropped and counted in
    `dropped`. With a callback, events are handed over immediately and
    nothing is buffered.
    """

    def __init__(
        self,
        channel: "PropagationChannel",
        topic: str,
        buffer_size: int,
        callback: EventCallback | None = None,
    ) -> None:
        self.topic = topic
        self.dropped = 0
        self.closed = False
        self._channel = channel
        self._callback = callback
        self._events: deque[ChannelEvent] = deque(maxlen=buffer_size)
        self._cond = threading.Condition()

    def _deliver(self, event: ChannelEvent) -> None:
        if self.closed:
            return
        if self._callback is not None:
            try:
                self._callback(event)
            except Exception:
                logger.exception(
                    "Subscriber callback failed on %s (sequence %d)", event.topic, event.sequence
                )
            return

        with self._cond:
            if len(self._events) == self._events.maxlen:
                self.dropped += 1
            self._events.append(event)
            self._cond.notify_all()

    def get(self, timeout: float | None = None) -> ChannelEvent | None:
        """Pop the oldest buffered event, waiting up to `timeout` seconds."""
        with self._cond:
            if not self._events:
                self._cond.wait_for(lambda: bool(self._events) or self.closed, timeout)
            if not self._events:
                return None
            return self._events.popleft()

    def drain(self) -> list[ChannelEvent]:
        with self._cond:
            events = list(self._events)
            self._events.clear()
            return events

    def close(self) -> None:
        if self.closed:
            return
        self._channel._unsubscribe(self)
        with self._cond:
            self.closed = True
            self._cond.notify_all()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class PropagationChannel:
    """Publishes state changes to per-topic subscribers.

    Thread-safe: publish and subscribe share one re-entrant lock, so a
    subscriber sees its snapshot first and then every later update in
    publish order, with no gaps other than buffer overflow.
    """

    def __init__(self, buffer_size: int = 64, mirror: ChannelMirror | None = None) -> None:
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        self._buffer_size = buffer_size
        self._mirror = mirror
        self._lock = threading.RLock()
        self._sequences: dict[str, int] = {}
        self._subscribers: dict[str, list[Subscription]] = {}
        self._snapshot_providers: dict[str, SnapshotProvider] = {}
        self._versions: dict[str, dict[str, int]] = {}

    def register_snapshot_provider(self, topic_or_prefix: str, provider: SnapshotProvider) -> None:
        """Register how to build the current state for a topic.

        Keys are either an exact topic or a prefix ending in ':' such as
        'trip:'; exact topics win.
        """
        with self._lock:
            self._snapshot_providers[topic_or_prefix] = provider

    def publish(self, topic: str, payload: Any) -> ChannelEvent | None:
        """Deliver an update to every subscriber of `topic`.

        A versioned payload no newer than the last one seen for the same row
        is dropped and None is returned.
        """
        self._check_topic(topic)
        with self._lock:
            versions = payload_versions(topic, payload)
            if self._is_stale(topic, versions):
                logger.debug("Dropped stale update on %s: %s", topic, versions)
                return None
            self._record_versions(topic, versions)

            sequence = self._sequences.get(topic, 0) + 1
            self._sequences[topic] = sequence
            event = ChannelEvent(topic=topic, sequence=sequence, kind="update", payload=payload)
            for subscription in list(self._subscribers.get(topic, [])):
                subscription._deliver(event)

            # Mirrored under the lock so the mirror sees topic order too.
            if self._mirror is not None:
                try:
                    self._mirror.publish(event)
                except Exception:
                    logger.exception("Mirror publish failed for %s", topic)
        return event

    def subscribe(self, topic: str, callback: EventCallback | None = None) -> Subscription:
        """Subscribe to a topic. The first event delivered is the current snapshot."""
        self._check_topic(topic)
        subscription = Subscription(self, topic, self._buffer_size, callback)
        with self._lock:
            snapshot = ChannelEvent(
                topic=topic,
                sequence=self._sequences.get(topic, 0),
                kind="snapshot",
                payload=self._snapshot(topic),
            )
            self._record_versions(topic, payload_versions(topic, snapshot.payload))
            self._subscribers.setdefault(topic, []).append(subscription)
            subscription._deliver(snapshot)
        logger.debug("Subscribed to %s at sequence %d", topic, snapshot.sequence)
        return subscription

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, []))

    def last_sequence(self, topic: str) -> int:
        with self._lock:
            return self._sequences.get(topic, 0)

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscribers.get(subscription.topic, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._subscribers.pop(subscription.topic, None)

    def _is_stale(self, topic: str, versions: dict[str, int]) -> bool:
        seen = self._versions.get(topic, {})
        return any(version <= seen.get(key, 0) for key, version in versions.items())

    def _record_versions(self, topic: str, versions: dict[str, int]) -> None:
        seen = self._versions.setdefault(topic, {})
        for key, version in versions.items():
            seen[key] = max(version, seen.get(key, 0))

    def _snapshot(self, topic: str) -> Any:
        provider = self._snapshot_providers.get(topic)
        if provider is None and topic.startswith(TRIP_TOPIC_PREFIX):
            provider = self._snapshot_providers.get(TRIP_TOPIC_PREFIX)
        if provider is None:
            return None
        try:
            return provider(topic)
        except Exception:
            logger.exception("Snapshot provider failed for %s", topic)
            return None

    @staticmethod
    def _check_topic(topic: str) -> None:
        if not is_valid_topic(topic):
            raise ValidationError(f"Unknown topic: {topic}", details={"topic": topic})
