# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects; depends only on models for the SnappedPoint return type.

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .models import SnappedPoint


EARTH_RADIUS_M = 6_371_000.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Distance in metres.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def normalize_bearing(degrees: float) -> float:
    """Wrap any angle into (-180, 180]."""
    d = degrees % 360.0
    if d > 180.0:
        d -= 360.0
    return d


def angle_difference(a: float, b: float) -> float:
    """Unsigned smallest difference between two bearings, in [0, 180]."""
    return abs(normalize_bearing(a - b))


def calculate_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Initial compass bearing from point 1 to point 2.

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Bearing in degrees, (-180, 180], 0 = north, 90 = east.
    """
    rlat1, rlon1 = math.radians(lat1), math.radians(lon1)
    rlat2, rlon2 = math.radians(lat2), math.radians(lon2)
    d_lon = rlon2 - rlon1
    y = math.sin(d_lon) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(d_lon)
    return normalize_bearing(math.degrees(math.atan2(y, x)))


def segment_bearing(coords: Sequence[Tuple[float, float]], index: int) -> float:
    """Bearing of segment `index` of a (lon, lat) line, clamped to the last segment."""
    index = max(0, min(index, len(coords) - 2))
    (lon1, lat1), (lon2, lat2) = coords[index], coords[index + 1]
    return calculate_bearing(lat1, lon1, lat2, lon2)


def cumulative_lengths_km(coords: Sequence[Tuple[float, float]]) -> List[float]:
    """
    Arc length from the first vertex to every vertex of a (lon, lat) line.

    Returns:
        One value per vertex in kilometres, starting at 0.0.
    """
    arr = np.asarray(coords, dtype=float)
    lon = np.radians(arr[:, 0])
    lat = np.radians(arr[:, 1])
    d_lat = np.diff(lat)
    d_lon = np.diff(lon)
    a = np.sin(d_lat / 2.0) ** 2 + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(d_lon / 2.0) ** 2
    seg_km = EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a)) / 1000.0
    return np.concatenate(([0.0], np.cumsum(seg_km))).tolist()


def _project_fraction(
    lat: float, lon: float,
    lat1: float, lon1: float,
    lat2: float, lon2: float,
    cos_lat: float,
) -> float:
    """
    Clamped projection parameter of a point onto segment 1→2, computed in a
    local equirectangular plane (x: east, y: north).
    """
    vx, vy = (lon2 - lon1) * cos_lat, lat2 - lat1
    wx, wy = (lon - lon1) * cos_lat, lat - lat1
    seg_len2 = vx * vx + vy * vy
    if seg_len2 == 0:
        return 0.0
    t = (vx * wx + vy * wy) / seg_len2
    return max(0.0, min(1.0, t))


def nearest_point_on_line(
    coords: Sequence[Tuple[float, float]],
    lat: float,
    lon: float,
    measures: Optional[Sequence[Optional[float]]] = None,
) -> SnappedPoint:
    """
    Snap a position onto the closest segment of a (lon, lat) line.

    Args:
        coords:   Line vertices in (lon, lat) order, at least two.
        lat, lon: Position to snap.
        measures: Optional per-vertex progress values; the snapped progress
                  is interpolated along the chosen segment.

    Returns:
        SnappedPoint; the first segment wins on equal distance.

    Raises:
        ValueError: If the line has fewer than two vertices.
    """
    if len(coords) < 2:
        raise ValueError("A line needs at least two vertices")

    cos_lat = math.cos(math.radians(lat))
    best: Optional[Tuple[float, int, float, float, float]] = None

    for i, ((lon1, lat1), (lon2, lat2)) in enumerate(zip(coords[:-1], coords[1:])):
        t = _project_fraction(lat, lon, lat1, lon1, lat2, lon2, cos_lat)
        s_lat = lat1 + (lat2 - lat1) * t
        s_lon = lon1 + (lon2 - lon1) * t
        dist = haversine_distance(lat, lon, s_lat, s_lon)

        # The planar projection is approximate; an endpoint is never beaten
        for end_t, e_lat, e_lon in ((0.0, lat1, lon1), (1.0, lat2, lon2)):
            d_end = haversine_distance(lat, lon, e_lat, e_lon)
            if d_end < dist:
                dist, t, s_lat, s_lon = d_end, end_t, e_lat, e_lon

        if best is None or dist < best[0]:
            best = (dist, i, t, s_lat, s_lon)

    dist, index, t, s_lat, s_lon = best
    progress = None
    if measures is not None:
        m1, m2 = measures[index], measures[index + 1]
        if m1 is not None and m2 is not None:
            progress = m1 + (m2 - m1) * t

    return SnappedPoint(
        lat=s_lat,
        lon=s_lon,
        segment_index=index,
        fraction=t,
        distance_m=dist,
        progress=progress,
    )
