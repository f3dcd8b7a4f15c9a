"""Driver presence, nearest-driver matching and notification dispatch."""

from .matcher import DriverCandidate, NearestDriverMatcher
from .notification_dispatch import LoggingNotifier, NotificationDispatch, Notifier
from .presence_registry import DriverPresenceRegistry

__all__ = [
    "DriverCandidate",
    "DriverPresenceRegistry",
    "LoggingNotifier",
    "NearestDriverMatcher",
    "NotificationDispatch",
    "Notifier",
]
