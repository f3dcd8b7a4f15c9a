"""Tests for the safety badge rule."""

from datetime import datetime, timedelta

import pytest

from trike_dispatch.safety import SafetyBadge, SafetyInputs, evaluate_safety_badge, meets_minimum

NOW = datetime(2026, 3, 2, 8, 0, 0)


def days_ago(days: float) -> datetime:
    return NOW - timedelta(days=days)


def badge(**kwargs) -> SafetyBadge:
    return evaluate_safety_badge(SafetyInputs(**kwargs), NOW).badge


@pytest.mark.unit
class TestGreen:
    def test_experienced_well_rated_clean_driver(self):
        """60 rides, 4.8 average, no incidents, no recent complaints."""
        assert badge(total_rides=60, average_rating=4.8) == SafetyBadge.GREEN

    def test_one_recent_complaint_still_green(self):
        assert (
            badge(total_rides=60, average_rating=4.8, complaint_dates=[days_ago(5)])
            == SafetyBadge.GREEN
        )

    def test_old_incident_outside_90_days_still_green(self):
        assert (
            badge(total_rides=60, average_rating=4.8, incident_dates=[days_ago(120)])
            == SafetyBadge.GREEN
        )

    def test_three_old_incidents_with_green_profile_stays_green(self):
        """Lifetime incident count only matters once the green rule fails."""
        dates = [days_ago(200), days_ago(300), days_ago(400)]
        assert badge(total_rides=100, average_rating=4.9, incident_dates=dates) == SafetyBadge.GREEN

    def test_boundaries_are_inclusive(self):
        assert badge(total_rides=50, average_rating=4.5) == SafetyBadge.GREEN


@pytest.mark.unit
class TestRed:
    def test_recent_incident_overrides_green_profile(self):
        """Incident 10 days ago turns an otherwise green driver red."""
        assert (
            badge(total_rides=60, average_rating=4.8, incident_dates=[days_ago(10)])
            == SafetyBadge.RED
        )

    def test_low_rating(self):
        assert badge(total_rides=5, average_rating=3.4) == SafetyBadge.RED

    def test_too_many_lifetime_incidents(self):
        dates = [days_ago(200), days_ago(300), days_ago(400)]
        assert badge(total_rides=10, average_rating=4.9, incident_dates=dates) == SafetyBadge.RED

    def test_too_many_lifetime_complaints(self):
        dates = [days_ago(d) for d in (100, 200, 300, 400)]
        assert badge(total_rides=10, average_rating=4.0, complaint_dates=dates) == SafetyBadge.RED


@pytest.mark.unit
class TestYellow:
    def test_new_driver_without_ratings(self):
        assert badge(total_rides=0) == SafetyBadge.YELLOW

    def test_incident_between_30_and_90_days(self):
        assert (
            badge(total_rides=60, average_rating=4.8, incident_dates=[days_ago(45)])
            == SafetyBadge.YELLOW
        )

    def test_two_recent_complaints_block_green(self):
        dates = [days_ago(3), days_ago(4)]
        assert (
            badge(total_rides=60, average_rating=4.8, complaint_dates=dates) == SafetyBadge.YELLOW
        )

    def test_rating_exactly_3_5_is_not_red(self):
        assert badge(total_rides=5, average_rating=3.5) == SafetyBadge.YELLOW


@pytest.mark.unit
class TestAssessment:
    def test_counts_reported(self):
        assessment = evaluate_safety_badge(
            SafetyInputs(
                total_rides=12,
                average_rating=4.1,
                incident_dates=[days_ago(20), days_ago(60)],
                complaint_dates=[days_ago(1)],
            ),
            NOW,
        )
        assert assessment.incidents == 2
        assert assessment.incidents_last_90_days == 2
        assert assessment.incidents_last_30_days == 1
        assert assessment.complaints_last_30_days == 1

    def test_deterministic(self):
        inputs = SafetyInputs(total_rides=60, average_rating=4.8, incident_dates=[days_ago(31)])
        assert evaluate_safety_badge(inputs, NOW) == evaluate_safety_badge(inputs, NOW)


@pytest.mark.unit
class TestMeetsMinimum:
    @pytest.mark.parametrize(
        "actual,minimum,expected",
        [
            (SafetyBadge.GREEN, SafetyBadge.GREEN, True),
            (SafetyBadge.YELLOW, SafetyBadge.GREEN, False),
            (SafetyBadge.YELLOW, SafetyBadge.YELLOW, True),
            (SafetyBadge.RED, SafetyBadge.YELLOW, False),
            (SafetyBadge.RED, SafetyBadge.RED, True),
            (SafetyBadge.RED, None, True),
        ],
    )
    def test_meets_minimum(self, actual, minimum, expected):
        assert meets_minimum(actual, minimum) is expected
