"""Great-circle distance, bearing and interpolation helpers.

All distances are measured over the sphere, never along roads. Trip
distance, fares and the matching radius are all derived from
haversine_distance_km.
"""

from math import asin, atan2, ceil, cos, degrees, radians, sin, sqrt

EARTH_RADIUS_KM = 6371.0
EARTH_RADIUS_M = EARTH_RADIUS_KM * 1000

# degrees of latitude per meter
_LAT_DEGREES_PER_METER: float = 1.0 / 111_320


def haversine_distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Unrounded great-circle distance in meters between two lat/lon points."""
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_M * c


def haversine_distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometers, rounded to 2 decimal places.

    This is the precision stored on trips, so fares and radius checks
    agree with what the passenger was quoted.
    """
    return round(haversine_distance_m(lat1, lon1, lat2, lon2) / 1000.0, 2)


def initial_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compass bearing in [0, 360) from the first point toward the second."""
    phi1, phi2 = radians(lat1), radians(lat2)
    dlon = radians(lon2 - lon1)

    y = sin(dlon) * cos(phi2)
    x = cos(phi1) * sin(phi2) - sin(phi1) * cos(phi2) * cos(dlon)

    return (degrees(atan2(y, x)) + 360.0) % 360.0


def is_within_proximity(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
    threshold_m: float = 50.0,
) -> bool:
    """True if the two points are at most threshold_m meters apart."""
    # Cheap bounding box first, padded 1% so points on the boundary still
    # reach the exact check.
    lat_window = threshold_m * _LAT_DEGREES_PER_METER * 1.01
    if abs(lat2 - lat1) > lat_window:
        return False
    if abs(lon2 - lon1) > lat_window / max(cos(radians(max(abs(lat1), abs(lat2)))), 1e-6):
        return False

    return haversine_distance_m(lat1, lon1, lat2, lon2) <= threshold_m


def great_circle_waypoints(
    start: tuple[float, float],
    end: tuple[float, float],
    max_points: int = 10,
) -> list[tuple[float, float]]:
    """Interpolate points along the great circle from start to end.

    Used for map previews of a trip; it is not a road route. Trips shorter
    than 0.5 km are drawn as a straight segment; longer trips get two
    waypoints per kilometer, between 3 and ``max_points`` segments.

    Returns:
        List of (lat, lon) tuples including both endpoints
    """
    distance_km = haversine_distance_m(start[0], start[1], end[0], end[1]) / 1000.0
    if distance_km < 0.5:
        return [start, end]

    segments = min(max(ceil(distance_km * 2), 3), max_points)
    bearing = radians(initial_bearing(start[0], start[1], end[0], end[1]))
    lat1, lon1 = radians(start[0]), radians(start[1])

    points = [start]
    for i in range(1, segments):
        angular = (distance_km * i / segments) / EARTH_RADIUS_KM
        lat2 = asin(sin(lat1) * cos(angular) + cos(lat1) * sin(angular) * cos(bearing))
        lon2 = lon1 + atan2(
            sin(bearing) * sin(angular) * cos(lat1),
            cos(angular) - sin(lat1) * sin(lat2),
        )
        points.append((degrees(lat2), degrees(lon2)))
    points.append(end)
    return points
