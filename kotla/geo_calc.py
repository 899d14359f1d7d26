"""Great-circle math for scoring guesses.

Inputs are WGS84 decimal degrees; distances are kilometres on a sphere of
Earth's mean radius.
"""

import math
from typing import NamedTuple, Tuple

from kotla.cities import City

EARTH_RADIUS_KM = 6371.0

# Lat/long bounds of the playable domain (Sabang to Merauke, Rote to Talaud).
DOMAIN_LAT = (-11.0, 6.0)
DOMAIN_LON = (95.0, 141.0)


class Direction(NamedTuple):
    emoji: str
    label: str


# Eight 45 degree sectors, clockwise from north. Sector i is centred on i * 45.
COMPASS_DIRECTIONS: Tuple[Direction, ...] = (
    Direction("⬆️", "north"),
    Direction("↗️", "northeast"),
    Direction("➡️", "east"),
    Direction("↘️", "southeast"),
    Direction("⬇️", "south"),
    Direction("↙️", "southwest"),
    Direction("⬅️", "west"),
    Direction("↖️", "northwest"),
)
SECTOR_DEGREES = 360.0 / len(COMPASS_DIRECTIONS)

AT_TARGET = Direction("📍", "right at the city of the day")


def _haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    rlat1, rlon1 = math.radians(lat1), math.radians(lon1)
    rlat2, rlon2 = math.radians(lat2), math.radians(lon2)
    dlat = rlat2 - rlat1
    dlon = rlon2 - rlon1
    a = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def get_distance(a: City, b: City) -> float:
    """Great-circle distance between two cities in kilometres."""
    return _haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def get_bearing(a: City, b: City) -> float:
    """Initial bearing from ``a`` towards ``b`` in degrees, within [0, 360)."""
    rlat1, rlon1 = math.radians(a.latitude), math.radians(a.longitude)
    rlat2, rlon2 = math.radians(b.latitude), math.radians(b.longitude)
    dlon = rlon2 - rlon1
    y = math.sin(dlon) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(dlon)
    bearing = (math.degrees(math.atan2(y, x)) + 360.0) % 360.0
    # -1e-15 % 360 rounds up to 360.0
    return 0.0 if bearing >= 360.0 else bearing


def get_bearing_direction(bearing: float) -> Direction:
    """Quantize a bearing into one of the compass sectors.

    Sectors are half-open ``[centre - 22.5, centre + 22.5)`` so every value
    lands in exactly one of them; north wraps around 0.
    """
    normalized = bearing % 360.0
    index = int((normalized + SECTOR_DEGREES / 2) // SECTOR_DEGREES) % len(COMPASS_DIRECTIONS)
    return COMPASS_DIRECTIONS[index]


def get_percentage(distance_km: float) -> float:
    """Closeness of a guess, 100 at the target and 0 at the far edge of the domain."""
    percentage = (MAX_DISTANCE_KM - distance_km) * 100 / MAX_DISTANCE_KM
    return min(100.0, max(0.0, percentage))


# Opposite corners of the domain; no two playable cities can be further apart.
MAX_DISTANCE_KM = _haversine_km(DOMAIN_LAT[1], DOMAIN_LON[0], DOMAIN_LAT[0], DOMAIN_LON[1])
