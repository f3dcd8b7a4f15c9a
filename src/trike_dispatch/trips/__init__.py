"""Trip lifecycle service."""

from .earnings import EarningsPeriod, EarningsSummary
from .lifecycle import TripLifecycle

__all__ = ["EarningsPeriod", "EarningsSummary", "TripLifecycle"]
