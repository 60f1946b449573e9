"""Great-circle distance and fixed-size grid cell indexing."""

import math
from numbers import Real

EARTH_RADIUS_M = 6_371_000

CellKey = tuple[int, int]


def _is_coord(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in meters between two lat/lon points.

    Any missing or non-finite coordinate yields 0.0 (treated as coincident).
    """
    if not all(_is_coord(v) for v in (lat1, lon1, lat2, lon2)):
        return 0.0
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(dlon / 2) ** 2)
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def is_valid_position(lat, lng) -> bool:
    return _is_coord(lat) and _is_coord(lng)


def cell_key(lat: float, lng: float, size_deg: float) -> CellKey:
    return math.floor(lat / size_deg), math.floor(lng / size_deg)


def cell_center(key: CellKey, size_deg: float) -> tuple[float, float]:
    """(lat, lng) of the midpoint of the cell's span."""
    i, j = key
    return (i + 0.5) * size_deg, (j + 0.5) * size_deg


def neighbor_keys(key: CellKey) -> list[CellKey]:
    """The eight cells surrounding ``key``."""
    i, j = key
    return [
        (i + di, j + dj)
        for di in (-1, 0, 1)
        for dj in (-1, 0, 1)
        if di or dj
    ]


def format_cell_key(key: CellKey) -> str:
    return f"{key[0]}|{key[1]}"
