"""Concurrency tests for trip acceptance and booking.

Several threads race on the same trip or passenger against a file-backed
store; the conditional updates must let exactly one of them win.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from tests.conftest import DROPOFF, PICKUP
from trike_dispatch.core.exceptions import ActiveTripExists, AlreadyAccepted
from trike_dispatch.driver import DriverOccupancy
from trike_dispatch.pubsub import trip_topic
from trike_dispatch.trip import TripStatus

NUM_DRIVERS = 8
STRESS_ITERATIONS = 3


@pytest.mark.unit
class TestConcurrentAccept:
    def test_exactly_one_driver_wins(self, lifecycle, online_driver, registry):
        driver_ids = [f"driver_{i}" for i in range(NUM_DRIVERS)]
        for driver_id in driver_ids:
            online_driver(driver_id)

        for iteration in range(STRESS_ITERATIONS):
            trip = lifecycle.create_trip(f"passenger_{iteration}", PICKUP, DROPOFF)
            lifecycle.locate_driver(trip.trip_id)
            barrier = threading.Barrier(NUM_DRIVERS)

            def accept(driver_id: str, trip_id: str = trip.trip_id, gate=barrier):
                gate.wait()
                try:
                    lifecycle.accept_trip(trip_id, driver_id)
                    return ("won", driver_id)
                except AlreadyAccepted:
                    return ("lost", driver_id)

            with ThreadPoolExecutor(max_workers=NUM_DRIVERS) as executor:
                results = list(executor.map(accept, driver_ids))

            winners = [d for outcome, d in results if outcome == "won"]
            assert len(winners) == 1, f"iteration {iteration}: {results}"
            assert sum(1 for outcome, _ in results if outcome == "lost") == NUM_DRIVERS - 1

            stored = lifecycle.get_trip(trip.trip_id)
            assert stored.status == TripStatus.DRIVER_ACCEPTED
            assert stored.driver_id == winners[0]

            on_ride = [
                d for d in driver_ids if registry.get(d).occupancy == DriverOccupancy.ON_RIDE
            ]
            assert on_ride == winners

            lifecycle.cancel_trip(trip.trip_id, "system")


@pytest.mark.unit
class TestConcurrentBooking:
    def test_one_active_trip_per_passenger_under_contention(self, lifecycle):
        threads = 6
        barrier = threading.Barrier(threads)

        def book(_: int):
            barrier.wait()
            try:
                return lifecycle.create_trip("p1", PICKUP, DROPOFF).trip_id
            except ActiveTripExists:
                return None

        with ThreadPoolExecutor(max_workers=threads) as executor:
            results = list(executor.map(book, range(threads)))

        created = [r for r in results if r is not None]
        assert len(created) == 1
        assert lifecycle.get_active_trip("p1", "passenger").trip_id == created[0]


@pytest.mark.unit
class TestLatePublish:
    def test_delayed_accept_publish_cannot_overwrite_cancel(
        self, lifecycle, online_driver, registry, channel, monkeypatch
    ):
        online_driver("d1")
        trip = lifecycle.create_trip("p1", PICKUP, DROPOFF)
        lifecycle.locate_driver(trip.trip_id)
        sub = channel.subscribe(trip_topic(trip.trip_id))

        release = threading.Event()
        publish = channel.publish

        def delayed_publish(topic, payload):
            if isinstance(payload, dict) and payload.get("status") == "driver_accepted":
                release.wait(timeout=5)
            return publish(topic, payload)

        monkeypatch.setattr(channel, "publish", delayed_publish)

        with ThreadPoolExecutor(max_workers=1) as executor:
            accepted = executor.submit(lifecycle.accept_trip, trip.trip_id, "d1")
            for _ in range(500):
                if lifecycle.get_trip(trip.trip_id).status == TripStatus.DRIVER_ACCEPTED:
                    break
                time.sleep(0.01)
            lifecycle.cancel_trip(trip.trip_id, "passenger")
            release.set()
            accepted.result(timeout=5)

        statuses = [e.payload["status"] for e in sub.drain()]
        assert statuses == ["driver_found", "cancelled"]
        assert lifecycle.get_trip(trip.trip_id).status == TripStatus.CANCELLED
        assert registry.get("d1").occupancy == DriverOccupancy.AVAILABLE
