import math

import pytest

from Model.coords import GeometryError, Point, clamp, clamp_point, require_in_bounds, to_pixel

SAMPLES = [-1e9, -250.0, -0.0001, 0.0, 0.5, 42.0, 99.999, 100.0, 100.0001, 180.0, 1e9]


@pytest.mark.parametrize("v", SAMPLES)
def test_clamp_stays_in_range_and_is_idempotent(v):
    c = clamp(v)
    assert 0.0 <= c <= 100.0
    assert clamp(c) == c


def test_clamp_keeps_values_inside_range():
    assert clamp(37.25) == 37.25
    assert clamp(-3) == 0.0
    assert clamp(103) == 100.0


def test_clamp_point_clamps_each_axis():
    assert clamp_point((-5, 120)) == Point(0.0, 100.0)
    assert clamp_point(Point(10, 20)) == Point(10, 20)


def test_point_arithmetic_is_vector_not_tuple_concat():
    p = Point(10, 20) + Point(1.5, -2)
    assert p == Point(11.5, 18)
    assert Point(70, 70) - (2, 3) == Point(68, 67)


def test_to_pixel_is_exact():
    assert to_pixel(Point(50, 90), 1000, 1000) == (500.0, 900.0)
    x, y = to_pixel(Point(33.3, 12.5), 640, 480)
    assert math.isclose(x, 213.12)
    assert y == 60.0


@pytest.mark.parametrize("p", [(-0.1, 5), (5, 100.1), (float("nan"), 1)])
def test_require_in_bounds_rejects_points_outside_plane(p):
    with pytest.raises(GeometryError):
        require_in_bounds(p)


def test_require_in_bounds_accepts_borders():
    require_in_bounds((0, 100))
    require_in_bounds(Point(100, 0))
