"""Push notifications to passengers and drivers after committed transitions."""

import logging
from typing import Any, Protocol

from trike_dispatch.trip import CancelledBy, Trip

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Push transport. Delivery is best effort."""

    def send(self, recipient_id: str, message: str, payload: dict[str, Any]) -> None: ...


class NotificationDispatch:
    """Builds the messages each party sees and hands them to the notifier.

    Called only after a transition has committed. A failed send is logged
    and never undoes the transition.
    """

    def __init__(self, notifier: Notifier | None = None):
        self._notifier = notifier

    def notify_drivers_ride_request(self, trip: Trip, driver_ids: list[str]) -> int:
        """Tell nearby drivers about a new request. Returns how many sends succeeded."""
        message = (
            f"New ride request: {trip.pickup.address or 'pickup'} to "
            f"{trip.dropoff.address or 'dropoff'} (PHP {trip.estimated_fare:.2f})"
        )
        payload = {
            "type": "ride_request",
            "trip_id": trip.trip_id,
            "pickup": list(trip.pickup.coordinates),
            "dropoff": list(trip.dropoff.coordinates),
            "estimated_fare": trip.estimated_fare,
        }
        return sum(self._send(driver_id, message, payload) for driver_id in driver_ids)

    def notify_passenger_driver_accepted(
        self, trip: Trip, driver_name: str | None = None, eta_minutes: int | None = None
    ) -> bool:
        message = f"{driver_name or 'Your driver'} is on the way"
        if eta_minutes is not None:
            message += f". Arriving in {eta_minutes} min"
        return self._send(
            trip.passenger_id,
            message,
            {"type": "driver_accepted", "trip_id": trip.trip_id, "driver_id": trip.driver_id},
        )

    def notify_passenger_driver_arrived(self, trip: Trip, driver_name: str | None = None) -> bool:
        return self._send(
            trip.passenger_id,
            f"{driver_name or 'Your driver'} has arrived at your pickup location",
            {"type": "driver_arrived", "trip_id": trip.trip_id, "driver_id": trip.driver_id},
        )

    def notify_trip_started(self, trip: Trip) -> bool:
        return self._send(
            trip.passenger_id,
            "Your trip has started.",
            {"type": "trip_started", "trip_id": trip.trip_id},
        )

    def notify_trip_completed(self, trip: Trip) -> int:
        fare = trip.fare if trip.fare is not None else trip.estimated_fare
        payload = {"type": "trip_completed", "trip_id": trip.trip_id, "fare": fare}
        message = f"Your trip has been completed. Fare: PHP {fare:.2f}"
        sent = int(self._send(trip.passenger_id, message, payload))
        if trip.driver_id:
            sent += self._send(trip.driver_id, f"Trip completed. Collect PHP {fare:.2f}", payload)
        return sent

    def notify_trip_cancelled(self, trip: Trip, cancelled_by: CancelledBy) -> bool:
        """Notify the counterparty of a cancellation."""
        payload = {
            "type": "trip_cancelled",
            "trip_id": trip.trip_id,
            "cancelled_by": cancelled_by.value,
            "reason": trip.cancellation_reason,
        }
        if cancelled_by == CancelledBy.PASSENGER:
            if trip.driver_id:
                return self._send(trip.driver_id, "The passenger cancelled the trip.", payload)
            return False
        if cancelled_by == CancelledBy.DRIVER:
            return self._send(trip.passenger_id, "Your driver cancelled the trip.", payload)

        sent = self._send(trip.passenger_id, "Your trip was cancelled.", payload)
        if trip.driver_id:
            sent = self._send(trip.driver_id, "The trip was cancelled.", payload) and sent
        return sent

    def _send(self, recipient_id: str, message: str, payload: dict[str, Any]) -> bool:
        if self._notifier is None:
            return False
        try:
            self._notifier.send(recipient_id, message, payload)
        except Exception:
            logger.exception(
                "Failed to notify %s (%s)", recipient_id, payload.get("type", "message")
            )
            return False
        return True


class LoggingNotifier:
    """Notifier that only logs. Used when no push transport is configured."""

    def send(self, recipient_id: str, message: str, payload: dict[str, Any]) -> None:
        logger.info("Notify %s: %s", recipient_id, message)
