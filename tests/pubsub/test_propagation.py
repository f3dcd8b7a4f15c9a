"""Tests for the in-process propagation channel."""

from unittest.mock import Mock

import pytest

from trike_dispatch.core.exceptions import ValidationError
from trike_dispatch.pubsub import TOPIC_DRIVERS_ONLINE, PropagationChannel


@pytest.mark.unit
class TestSubscribe:
    def test_snapshot_delivered_first(self):
        channel = PropagationChannel()
        channel.register_snapshot_provider(TOPIC_DRIVERS_ONLINE, lambda topic: ["d1"])
        channel.publish(TOPIC_DRIVERS_ONLINE, {"driver_id": "d1"})

        sub = channel.subscribe(TOPIC_DRIVERS_ONLINE)
        channel.publish(TOPIC_DRIVERS_ONLINE, {"driver_id": "d2"})

        snapshot, update = sub.drain()
        assert snapshot.kind == "snapshot"
        assert snapshot.payload == ["d1"]
        assert snapshot.sequence == 1
        assert update.kind == "update"
        assert update.sequence == 2

    def test_prefix_provider_for_trip_topics(self):
        channel = PropagationChannel()
        channel.register_snapshot_provider("trip:", lambda topic: {"topic": topic})
        with channel.subscribe("trip:t1") as sub:
            assert sub.get(timeout=0).payload == {"topic": "trip:t1"}

    def test_failing_provider_yields_empty_snapshot(self):
        channel = PropagationChannel()

        def broken(topic):
            raise RuntimeError("store down")

        channel.register_snapshot_provider(TOPIC_DRIVERS_ONLINE, broken)
        with channel.subscribe(TOPIC_DRIVERS_ONLINE) as sub:
            assert sub.get(timeout=0).payload is None

    @pytest.mark.parametrize("topic", ["drivers", "trip:", "riders:online", ""])
    def test_unknown_topics_rejected(self, topic):
        channel = PropagationChannel()
        with pytest.raises(ValidationError):
            channel.subscribe(topic)
        with pytest.raises(ValidationError):
            channel.publish(topic, {})


@pytest.mark.unit
class TestOrdering:
    def test_updates_in_publish_order(self):
        channel = PropagationChannel()
        sub = channel.subscribe("trip:t1")
        sub.get(timeout=0)
        for i in range(5):
            channel.publish("trip:t1", {"n": i})

        assert [e.payload["n"] for e in sub.drain()] == [0, 1, 2, 3, 4]

    def test_sequences_are_per_topic(self):
        channel = PropagationChannel()
        channel.publish("trip:a", {})
        channel.publish("trip:a", {})
        event = channel.publish("trip:b", {})
        assert event.sequence == 1
        assert channel.last_sequence("trip:a") == 2

    def test_topics_are_isolated(self):
        channel = PropagationChannel()
        sub = channel.subscribe("trip:a")
        channel.publish("trip:b", {"x": 1})
        assert [e.kind for e in sub.drain()] == ["snapshot"]


@pytest.mark.unit
class TestBackpressure:
    def test_slow_subscriber_drops_oldest(self):
        channel = PropagationChannel(buffer_size=3)
        sub = channel.subscribe("trip:t1")
        for i in range(5):
            channel.publish("trip:t1", {"n": i})

        events = sub.drain()
        assert [e.payload["n"] for e in events] == [2, 3, 4]
        assert sub.dropped == 3

    def test_invalid_buffer_size(self):
        with pytest.raises(ValueError):
            PropagationChannel(buffer_size=0)


@pytest.mark.unit
class TestCallbacksAndLifecycle:
    def test_callback_receives_events(self):
        channel = PropagationChannel()
        received = []
        channel.subscribe("trip:t1", callback=received.append)
        channel.publish("trip:t1", {"status": "arrived"})
        assert [e.kind for e in received] == ["snapshot", "update"]

    def test_failing_callback_does_not_block_others(self):
        channel = PropagationChannel()
        channel.subscribe("trip:t1", callback=Mock(side_effect=RuntimeError("boom")))
        good = channel.subscribe("trip:t1")
        channel.publish("trip:t1", {})
        assert len(good.drain()) == 2

    def test_close_unsubscribes(self):
        channel = PropagationChannel()
        with channel.subscribe("trip:t1"):
            assert channel.subscriber_count("trip:t1") == 1
        assert channel.subscriber_count("trip:t1") == 0

    def test_get_times_out(self):
        channel = PropagationChannel()
        sub = channel.subscribe("trip:t1")
        sub.get(timeout=0)
        assert sub.get(timeout=0.01) is None

    def test_mirror_receives_events(self):
        mirror = Mock()
        channel = PropagationChannel(mirror=mirror)
        event = channel.publish("trip:t1", {"status": "searching"})
        mirror.publish.assert_called_once_with(event)

    def test_mirror_failure_is_logged_not_raised(self):
        mirror = Mock()
        mirror.publish.side_effect = ConnectionError("redis down")
        channel = PropagationChannel(mirror=mirror)
        assert channel.publish("trip:t1", {}).sequence == 1


@pytest.mark.unit
class TestVersionOrdering:
    def test_older_trip_version_is_dropped(self):
        channel = PropagationChannel()
        sub = channel.subscribe("trip:t1")
        channel.publish("trip:t1", {"status": "driver_found", "version": 2})
        channel.publish("trip:t1", {"status": "cancelled", "version": 4})
        assert channel.publish("trip:t1", {"status": "driver_accepted", "version": 3}) is None

        updates = [e.payload["status"] for e in sub.drain() if e.kind == "update"]
        assert updates == ["driver_found", "cancelled"]
        assert channel.last_sequence("trip:t1") == 2

    def test_same_version_is_not_redelivered(self):
        channel = PropagationChannel()
        channel.publish("trip:t1", {"version": 2})
        assert channel.publish("trip:t1", {"version": 2}) is None

    def test_drivers_are_ordered_independently(self):
        channel = PropagationChannel()
        channel.publish(TOPIC_DRIVERS_ONLINE, {"driver_id": "d1", "version": 5})
        event = channel.publish(TOPIC_DRIVERS_ONLINE, {"driver_id": "d2", "version": 2})
        assert event is not None
        assert channel.publish(TOPIC_DRIVERS_ONLINE, {"driver_id": "d1", "version": 4}) is None

    def test_snapshot_versions_guard_later_updates(self):
        channel = PropagationChannel()
        channel.register_snapshot_provider(
            "trip:", lambda topic: {"status": "arrived", "version": 5}
        )
        with channel.subscribe("trip:t1") as sub:
            sub.get(timeout=0)
            assert channel.publish("trip:t1", {"status": "driver_accepted", "version": 4}) is None
            assert sub.drain() == []

    def test_dropped_update_is_not_mirrored(self):
        mirror = Mock()
        channel = PropagationChannel(mirror=mirror)
        channel.publish("trip:t1", {"version": 3})
        channel.publish("trip:t1", {"version": 2})
        assert mirror.publish.call_count == 1
