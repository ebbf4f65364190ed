import math
from typing import List, NamedTuple, Tuple

from inkmatch.domain.models.artist import GeoPoint

EARTH_RADIUS_KM = 6371.0
KM_PER_LAT_DEGREE = 111.0

_COMPASS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]


class BoundingBox(NamedTuple):
    south: float
    west: float
    north: float
    east: float

    def longitude_ranges(self) -> List[Tuple[float, float]]:
        """
        Longitude intervals covered by the box; two intervals when the box
        crosses the antimeridian.
        """
        if self.west < -180:
            return [(self.west + 360, 180.0), (-180.0, self.east)]
        if self.east > 180:
            return [(self.west, 180.0), (-180.0, self.east - 360)]
        return [(self.west, self.east)]


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Haversine great-circle distance, rounded to 2 decimals (km)."""
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.latitude)) * math.cos(math.radians(b.latitude)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return round(EARTH_RADIUS_KM * c, 2)


def bearing_deg(a: GeoPoint, b: GeoPoint) -> float:
    """Initial bearing from a to b, degrees clockwise from north in [0, 360)."""
    d_lon = math.radians(b.longitude - a.longitude)
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    y = math.sin(d_lon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(d_lon)
    return (math.degrees(math.atan2(y, x)) + 360) % 360


def bearing_text(bearing: float) -> str:
    return _COMPASS[round(bearing / 45) % 8]


def format_distance(km: float) -> str:
    if km < 1:
        return f"{round(km * 1000)}m"
    if km < 10:
        return f"{km:.1f}km"
    return f"{round(km)}km"


def bounding_box(center: GeoPoint, radius_km: float) -> BoundingBox:
    """
    Flat-earth box around `center` that contains the radius circle.
    Latitude is clamped to the poles; near the poles the box spans every longitude.
    """
    lat_delta = radius_km / KM_PER_LAT_DEGREE
    south = max(-90.0, center.latitude - lat_delta)
    north = min(90.0, center.latitude + lat_delta)

    cos_lat = math.cos(math.radians(center.latitude))
    if cos_lat < 1e-6 or north >= 90.0 or south <= -90.0:
        return BoundingBox(south, -180.0, north, 180.0)

    lon_delta = radius_km / (KM_PER_LAT_DEGREE * cos_lat)
    if lon_delta >= 180:
        return BoundingBox(south, -180.0, north, 180.0)
    return BoundingBox(south, center.longitude - lon_delta, north, center.longitude + lon_delta)
