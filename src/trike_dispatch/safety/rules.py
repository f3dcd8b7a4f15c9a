"""Safety badge rule.

A single pure function shared by the summary and detail views. Rules are
evaluated in order: green when every green condition holds, otherwise red
when any red condition holds, otherwise yellow. An otherwise-green driver
with an incident in the last 30 days is therefore red, not yellow.
"""

from datetime import datetime, timedelta

from .models import SafetyAssessment, SafetyBadge, SafetyInputs

GREEN_MIN_RIDES = 50
GREEN_MIN_RATING = 4.5
GREEN_MAX_COMPLAINTS_30_DAYS = 1
RED_MAX_RATING = 3.5
RED_MAX_LIFETIME_INCIDENTS = 2
RED_MAX_LIFETIME_COMPLAINTS = 3

RECENT_INCIDENT_WINDOW = timedelta(days=90)
VERY_RECENT_WINDOW = timedelta(days=30)


def _within(dates: list[datetime], now: datetime, window: timedelta) -> int:
    return sum(1 for d in dates if now - d <= window)


def evaluate_safety_badge(inputs: SafetyInputs, now: datetime) -> SafetyAssessment:
    incidents_90 = _within(inputs.incident_dates, now, RECENT_INCIDENT_WINDOW)
    incidents_30 = _within(inputs.incident_dates, now, VERY_RECENT_WINDOW)
    complaints_30 = _within(inputs.complaint_dates, now, VERY_RECENT_WINDOW)
    rating = inputs.average_rating

    # No rated trips means no rating; rating clauses are skipped.
    if (
        inputs.total_rides >= GREEN_MIN_RIDES
        and rating is not None
        and rating >= GREEN_MIN_RATING
        and incidents_90 == 0
        and complaints_30 <= GREEN_MAX_COMPLAINTS_30_DAYS
    ):
        badge = SafetyBadge.GREEN
    elif (
        (rating is not None and rating < RED_MAX_RATING)
        or len(inputs.incident_dates) > RED_MAX_LIFETIME_INCIDENTS
        or len(inputs.complaint_dates) > RED_MAX_LIFETIME_COMPLAINTS
        or incidents_30 > 0
    ):
        badge = SafetyBadge.RED
    else:
        badge = SafetyBadge.YELLOW

    return SafetyAssessment(
        badge=badge,
        total_rides=inputs.total_rides,
        average_rating=rating,
        incidents=len(inputs.incident_dates),
        complaints=len(inputs.complaint_dates),
        incidents_last_90_days=incidents_90,
        incidents_last_30_days=incidents_30,
        complaints_last_30_days=complaints_30,
    )


def meets_minimum(badge: SafetyBadge, minimum: SafetyBadge | None) -> bool:
    """green keeps only green; yellow keeps green and yellow; red keeps all."""
    if minimum is None:
        return True
    return badge.rank >= minimum.rank
