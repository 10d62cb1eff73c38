"""
Douglas-Peucker line simplification.

The algorithm works on index ranges of the input so callers can map surviving
positions back to whatever they attached to each point (merge references,
source metadata) without comparing coordinates.
"""

from __future__ import annotations

import math
from typing import List, Sequence, Tuple

from trackmerge.core.geo import project
from trackmerge.model import Point


def perpendicular_distance(
    p: Tuple[float, float], start: Tuple[float, float], end: Tuple[float, float]
) -> float:
    """
    Distance in projected meters from `p` to the segment `start`-`end`.

    A zero-length segment degrades to point-to-point distance. Projections
    falling outside the segment are measured to the nearer endpoint.
    """
    x, y = p
    x1, y1 = start
    x2, y2 = end
    dx = x2 - x1
    dy = y2 - y1
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(x - x1, y - y1)

    t = ((x - x1) * dx + (y - y1) * dy) / length_sq
    if t < 0:
        return math.hypot(x - x1, y - y1)
    if t > 1:
        return math.hypot(x - x2, y - y2)
    # Cross-product form: exactly 0 for points on an axis-aligned chord.
    return abs(dx * (y1 - y) - (x1 - x) * dy) / math.sqrt(length_sq)


def simplify_indices(points: Sequence[Point], tolerance: float) -> List[int]:
    """
    Run Douglas-Peucker over `points` and return the surviving indices in order.

    Args:
        points: Ordered points to simplify
        tolerance: Maximum allowed deviation in meters (>= 0)

    Returns:
        Sorted indices into `points`. The first and last index are always kept.
        Inputs of two points or fewer are returned whole.

    Raises:
        ValueError: If tolerance is negative

    Notes:
        - A range whose farthest interior point exceeds `tolerance` is split at
          that point; otherwise it collapses to its two endpoints.
        - Ranges are processed from an explicit stack instead of recursive calls,
          so long adversarial inputs cannot hit the interpreter recursion limit.
        - Output length never increases as tolerance increases.
    """
    if tolerance < 0:
        raise ValueError(f"tolerance must be >= 0, got {tolerance}")
    n = len(points)
    if n <= 2:
        return list(range(n))

    xy = [project(p) for p in points]
    keep = [False] * n
    keep[0] = True
    keep[n - 1] = True

    stack: List[Tuple[int, int]] = [(0, n - 1)]
    while stack:
        first, last = stack.pop()
        if last - first < 2:
            continue

        max_dist = 0.0
        index = first
        for i in range(first + 1, last):
            d = perpendicular_distance(xy[i], xy[first], xy[last])
            if d > max_dist:
                max_dist = d
                index = i

        if max_dist > tolerance:
            keep[index] = True
            stack.append((index, last))
            stack.append((first, index))

    return [i for i in range(n) if keep[i]]


def simplify_track(points: Sequence[Point], tolerance: float) -> List[Point]:
    """
    Simplify a point sequence, returning the surviving points.

    Example:
        >>> line = [Point(0.0, float(i) * 0.001) for i in range(5)]
        >>> [p.lon for p in simplify_track(line, 1.0)]
        [0.0, 0.004]
    """
    return [points[i] for i in simplify_indices(points, tolerance)]
