"""Tests for push notification messages."""

from unittest.mock import Mock

import pytest

from trike_dispatch.matching import NotificationDispatch
from trike_dispatch.trip import CancelledBy, Location, Trip, TripStatus


@pytest.fixture
def trip() -> Trip:
    return Trip(
        trip_id="t1",
        passenger_id="p1",
        driver_id="d1",
        status=TripStatus.COMPLETED,
        pickup=Location(latitude=14.5995, longitude=120.9842, address="Quiapo Church"),
        dropoff=Location(latitude=14.62, longitude=121.003, address="Cubao"),
        distance_km=3.0,
        base_fare=15.0,
        estimated_fare=30.0,
        fare=32.5,
    )


@pytest.mark.unit
class TestMessages:
    def test_ride_request_to_each_driver(self, trip):
        notifier = Mock()
        sent = NotificationDispatch(notifier).notify_drivers_ride_request(trip, ["d1", "d2"])
        assert sent == 2
        recipient, message, payload = notifier.send.call_args_list[0].args
        assert recipient == "d1"
        assert message == "New ride request: Quiapo Church to Cubao (PHP 30.00)"
        assert payload["type"] == "ride_request"

    def test_accepted_with_eta(self, trip):
        notifier = Mock()
        NotificationDispatch(notifier).notify_passenger_driver_accepted(trip, "Juan", 4)
        notifier.send.assert_called_once()
        assert notifier.send.call_args.args[1] == "Juan is on the way. Arriving in 4 min"

    def test_accepted_without_name(self, trip):
        notifier = Mock()
        NotificationDispatch(notifier).notify_passenger_driver_accepted(trip)
        assert notifier.send.call_args.args[1] == "Your driver is on the way"

    def test_completed_goes_to_both_sides(self, trip):
        notifier = Mock()
        assert NotificationDispatch(notifier).notify_trip_completed(trip) == 2
        messages = [c.args[1] for c in notifier.send.call_args_list]
        assert messages == [
            "Your trip has been completed. Fare: PHP 32.50",
            "Trip completed. Collect PHP 32.50",
        ]

    def test_passenger_cancel_notifies_driver(self, trip):
        notifier = Mock()
        NotificationDispatch(notifier).notify_trip_cancelled(trip, CancelledBy.PASSENGER)
        assert notifier.send.call_args.args[0] == "d1"

    def test_driver_cancel_notifies_passenger(self, trip):
        notifier = Mock()
        NotificationDispatch(notifier).notify_trip_cancelled(trip, CancelledBy.DRIVER)
        assert notifier.send.call_args.args[0] == "p1"


@pytest.mark.unit
class TestDeliveryFailures:
    def test_failed_send_is_swallowed(self, trip):
        notifier = Mock()
        notifier.send.side_effect = RuntimeError("push gateway down")
        assert NotificationDispatch(notifier).notify_trip_started(trip) is False

    def test_no_notifier(self, trip):
        assert NotificationDispatch().notify_trip_started(trip) is False
