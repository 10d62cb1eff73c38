"""
Geospatial primitives: great-circle distance, centroid, planar projection and
per-track summary figures.

All distances are meters on a spherical Earth.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence, Tuple

from trackmerge.core.normalization import parse_timestamp
from trackmerge.model import Point


EARTH_RADIUS_M = 6_371_000.0


def distance(a: Point, b: Point) -> float:
    """
    Haversine great-circle distance between two points, in meters.

    Symmetric; zero iff both points share lat and lon.
    """
    if a.lat == b.lat and a.lon == b.lon:
        return 0.0
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lon - a.lon)

    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    # Clamp: rounding can push h a hair past 1 for antipodal points.
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def centroid(points: Iterable[Point]) -> Tuple[float, float]:
    """
    Center of a point set as (lat, lon): the midpoint of its bounding box.

    Empty input returns (0.0, 0.0).
    """
    pts = list(points)
    if not pts:
        return (0.0, 0.0)
    if len(pts) == 1:
        return (pts[0].lat, pts[0].lon)

    min_lat = max_lat = pts[0].lat
    min_lon = max_lon = pts[0].lon
    for p in pts[1:]:
        min_lat = min(min_lat, p.lat)
        max_lat = max(max_lat, p.lat)
        min_lon = min(min_lon, p.lon)
        max_lon = max(max_lon, p.lon)
    return ((min_lat + max_lat) / 2, (min_lon + max_lon) / 2)


def project(point: Point) -> Tuple[float, float]:
    """
    Local planar approximation (x, y) in meters.

    x = lon * cos(lat) * R, y = lat * R with angles in radians. Good enough for
    comparing distances over short spans.
    """
    lat = math.radians(point.lat)
    lon = math.radians(point.lon)
    return (lon * math.cos(lat) * EARTH_RADIUS_M, lat * EARTH_RADIUS_M)


def total_distance(points: Sequence[Point]) -> float:
    if len(points) < 2:
        return 0.0
    return sum(distance(points[i - 1], points[i]) for i in range(1, len(points)))


def elevation_change(points: Sequence[Point]) -> Tuple[float, float]:
    """
    Return (gain, loss) in meters over the points that carry an elevation.
    """
    elevations: List[float] = [p.elevation for p in points if p.elevation is not None]
    gain = 0.0
    loss = 0.0
    for prev, cur in zip(elevations, elevations[1:]):
        diff = cur - prev
        if diff > 0:
            gain += diff
        else:
            loss += -diff
    return gain, loss


def duration_seconds(points: Sequence[Point]) -> Optional[float]:
    """
    Elapsed time between the first and last point, or None when either lacks a
    parseable timestamp.
    """
    if len(points) < 2:
        return None
    start = parse_timestamp(points[0].timestamp)
    end = parse_timestamp(points[-1].timestamp)
    if start is None or end is None:
        return None
    return (end - start).total_seconds()


def format_distance(meters: float) -> str:
    """
    Example:
        >>> format_distance(512.4)
        '512 m'
        >>> format_distance(1234.0)
        '1.23 km'
    """
    if meters < 1000:
        return f"{round(meters)} m"
    return f"{meters / 1000:.2f} km"


def format_duration(seconds: Optional[float], detailed: bool = False) -> str:
    """
    Format seconds as "2h 30m" (or "02:30:00" when detailed).
    """
    if seconds is None or math.isnan(seconds):
        return "N/A"
    total = int(seconds)
    hours = total // 3600
    minutes = (total % 3600) // 60
    if detailed:
        secs = total % 60
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
