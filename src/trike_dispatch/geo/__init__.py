from .distance import (
    EARTH_RADIUS_KM,
    great_circle_waypoints,
    haversine_distance_km,
    haversine_distance_m,
    initial_bearing,
    is_within_proximity,
)

__all__ = [
    "EARTH_RADIUS_KM",
    "great_circle_waypoints",
    "haversine_distance_km",
    "haversine_distance_m",
    "initial_bearing",
    "is_within_proximity",
]
