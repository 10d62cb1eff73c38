"""Tests for geospatial primitives."""

import math

import pytest

from trackmerge.core.geo import (
    EARTH_RADIUS_M,
    centroid,
    distance,
    duration_seconds,
    elevation_change,
    format_distance,
    format_duration,
    project,
    total_distance,
)
from trackmerge.model import Point


def test_distance_to_self_is_zero():
    a = Point(45.5, -122.6)
    assert distance(a, a) == 0.0


def test_distance_is_symmetric():
    a = Point(45.5, -122.6)
    b = Point(47.6, -122.3)
    assert distance(a, b) == pytest.approx(distance(b, a))


def test_distance_one_degree_of_latitude():
    d = distance(Point(0.0, 0.0), Point(1.0, 0.0))
    assert d == pytest.approx(EARTH_RADIUS_M * math.pi / 180, rel=1e-9)


def test_distance_nonzero_for_distinct_points():
    assert distance(Point(0.0, 0.0), Point(0.0, 0.00001)) > 0


@pytest.mark.parametrize(
    "a,b,c",
    [
        (Point(0, 0), Point(10, 10), Point(20, 0)),
        (Point(45, -120), Point(-30, 60), Point(10, 170)),
        (Point(89, 0), Point(-89, 180), Point(0, 90)),
        (Point(0, 0), Point(0, 0), Point(0, 1)),
    ],
)
def test_distance_triangle_inequality(a, b, c):
    assert distance(a, c) <= distance(a, b) + distance(b, c) + 1e-6


def test_centroid_empty_is_origin():
    assert centroid([]) == (0.0, 0.0)


def test_centroid_single_point():
    assert centroid([Point(12.5, -3.0)]) == (12.5, -3.0)


def test_centroid_is_bounding_box_midpoint():
    # Mean would be pulled toward the cluster at (0, 0); bbox midpoint is not.
    pts = [Point(0, 0), Point(0, 0), Point(0, 0), Point(10, 20)]
    assert centroid(pts) == (5.0, 10.0)


def test_project_origin():
    assert project(Point(0.0, 0.0)) == (0.0, 0.0)


def test_total_distance_sums_legs():
    pts = [Point(0, 0), Point(0, 1), Point(0, 2)]
    assert total_distance(pts) == pytest.approx(2 * distance(Point(0, 0), Point(0, 1)))
    assert total_distance(pts[:1]) == 0.0


def test_elevation_change_ignores_missing_elevations():
    pts = [Point(0, 0, 100.0), Point(0, 1), Point(0, 2, 150.0), Point(0, 3, 120.0)]
    gain, loss = elevation_change(pts)
    assert gain == 50.0
    assert loss == 30.0


def test_duration_seconds():
    pts = [
        Point(0, 0, timestamp="2024-05-01T07:00:00Z"),
        Point(0, 1, timestamp="2024-05-01T08:30:00Z"),
    ]
    assert duration_seconds(pts) == 5400.0


def test_duration_seconds_requires_timestamps():
    assert duration_seconds([Point(0, 0), Point(0, 1)]) is None
    assert duration_seconds([Point(0, 0, timestamp="2024-05-01T07:00:00Z")]) is None


def test_format_distance():
    assert format_distance(512.4) == "512 m"
    assert format_distance(1234.0) == "1.23 km"


def test_format_duration():
    assert format_duration(5400) == "1h 30m"
    assert format_duration(600) == "10m"
    assert format_duration(3725, detailed=True) == "01:02:05"
    assert format_duration(None) == "N/A"
