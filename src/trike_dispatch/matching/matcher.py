"""Nearest-driver matching by great-circle distance."""

import logging

from pydantic import BaseModel

from trike_dispatch.core.exceptions import ValidationError
from trike_dispatch.driver import DriverProfile
from trike_dispatch.geo.distance import haversine_distance_km
from trike_dispatch.safety import SafetyAssessment, SafetyBadge, SafetyScoreEngine, meets_minimum
from trike_dispatch.settings import MatchingSettings

from .presence_registry import DriverPresenceRegistry, validate_coordinate

logger = logging.getLogger(__name__)


class DriverCandidate(BaseModel):
    """A nearby available driver, ranked by distance from the pickup."""

    driver_id: str
    location: tuple[float, float]
    distance_km: float
    eta_minutes: int
    profile: DriverProfile
    average_rating: float | None
    total_rides: int
    safety: SafetyAssessment

    @property
    def safety_badge(self) -> SafetyBadge:
        return self.safety.badge


class NearestDriverMatcher:
    """Finds available drivers around a coordinate.

    Reads presence through the injected registry; drivers that are offline,
    unverified, on a ride or without a coordinate are never candidates.
    Candidates are ordered by distance with the driver id breaking ties.
    """

    def __init__(
        self,
        registry: DriverPresenceRegistry,
        safety_engine: SafetyScoreEngine,
        settings: MatchingSettings | None = None,
    ) -> None:
        self._registry = registry
        self._safety = safety_engine
        self._settings = settings or MatchingSettings()

    def estimate_eta_minutes(self, distance_km: float) -> int:
        minutes = round(distance_km / self._settings.eta_speed_kmh * 60)
        return max(self._settings.min_eta_minutes, minutes)

    def find_nearby_drivers(
        self,
        location: tuple[float, float],
        radius_km: float | None = None,
        min_safety: SafetyBadge | None = None,
    ) -> list[DriverCandidate]:
        """Available drivers within radius_km of location, nearest first.

        Raises:
            ValidationError: the coordinate is out of range or the radius is
                not positive
        """
        origin = validate_coordinate(location)
        radius = self._resolve_radius(radius_km)

        in_range: list[tuple[float, str, tuple[float, float]]] = []
        records = {r.driver_id: r for r in self._registry.list_available()}
        for record in records.values():
            if record.location is None:
                continue
            distance = haversine_distance_km(*origin, *record.location)
            if distance <= radius:
                in_range.append((distance, record.driver_id, record.location))
        in_range.sort(key=lambda item: (item[0], item[1]))

        assessments = self._safety.get_safety_assessments(d for _, d, _ in in_range)

        candidates = []
        for distance, driver_id, coordinate in in_range:
            assessment = assessments.get(driver_id)
            if assessment is None or not meets_minimum(assessment.badge, min_safety):
                continue
            record = records[driver_id]
            candidates.append(
                DriverCandidate(
                    driver_id=driver_id,
                    location=coordinate,
                    distance_km=distance,
                    eta_minutes=self.estimate_eta_minutes(distance),
                    profile=record.profile,
                    average_rating=record.average_rating,
                    total_rides=record.total_rides,
                    safety=assessment,
                )
            )

        logger.debug(
            "Found %d drivers within %.1f km of %s", len(candidates), radius, origin
        )
        return candidates

    def find_nearest_driver(
        self, location: tuple[float, float], min_safety: SafetyBadge | None = None
    ) -> DriverCandidate | None:
        candidates = self.find_nearby_drivers(
            location, self._settings.nearest_radius_km, min_safety
        )
        return candidates[0] if candidates else None

    def _resolve_radius(self, radius_km: float | None) -> float:
        if radius_km is None:
            return self._settings.default_radius_km
        if radius_km <= 0:
            raise ValidationError(
                "Search radius must be positive", details={"radius_km": radius_km}
            )
        return min(radius_km, self._settings.max_radius_km)
