import math

import pytest

from Controller.enums import Handle
from Model.annotations import AnnotationSet, MeasurementKind
from Model.coords import Point
from Model.measure_ops import (
    distance_to_segment, guide_line, is_horizontal, is_straight, is_vertical,
    midpoint, pick_handle, snap_to_axis, translate_segment,
)


def _length(s, e):
    return math.hypot(e[0] - s[0], e[1] - s[1])


def test_snap_forces_exact_horizontal():
    # other endpoint (20, 50); moved end dragged to (81, 51.4)
    p = snap_to_axis(Point(81, 51.4), Point(20, 50))
    assert p.y == 50
    assert p.x == 81


def test_snap_forces_exact_vertical():
    p = snap_to_axis(Point(10.9, 60), Point(10, 20))
    assert p == Point(10, 60)


def test_snap_leaves_far_points_alone():
    assert snap_to_axis(Point(40, 60), Point(20, 50)) == Point(40, 60)


def test_snap_threshold_is_strict():
    assert snap_to_axis(Point(40, 51.5), Point(20, 50)).y == 51.5


def test_snap_both_axes_when_nearly_coincident():
    assert snap_to_axis(Point(20.4, 50.7), Point(20, 50)) == Point(20, 50)


def test_translate_keeps_displacement_away_from_walls():
    s, e = translate_segment(Point(70, 70), Point(90, 85), Point(48, 47))
    assert s == Point(48, 47)
    assert e == Point(68, 62)


@pytest.mark.parametrize("new_start", [
    Point(90, 50), Point(-15, 50), Point(30, 95), Point(30, -40), Point(150, 150), Point(-50, -50),
])
def test_translate_settles_against_walls_without_shrinking(new_start):
    start, end = Point(20, 40), Point(40, 50)
    s, e = translate_segment(start, end, new_start)
    for v in (*s, *e):
        assert 0.0 <= v <= 100.0
    assert math.isclose(e.x - s.x, 20)
    assert math.isclose(e.y - s.y, 10)
    assert math.isclose(_length(s, e), _length(start, end))


def test_translate_against_right_wall_slides_start_back():
    s, e = translate_segment(Point(20, 90), Point(80, 90), Point(70, 90))
    assert e == Point(100, 90)
    assert s == Point(40, 90)


def test_straightness_uses_tolerance():
    assert is_horizontal(Point(20, 90), Point(80, 90.05))
    assert not is_horizontal(Point(20, 90), Point(80, 90.2))
    assert is_vertical(Point(10, 20), Point(10.09, 80))
    assert is_straight(Point(10, 20), Point(10, 80))
    assert not is_straight(Point(70, 70), Point(90, 85))


def test_guide_line_spans_full_axis():
    assert guide_line(Point(20, 90), Point(80, 90)) == (Point(0, 90), Point(100, 90))
    assert guide_line(Point(10, 20), Point(10, 80)) == (Point(10, 0), Point(10, 100))
    assert guide_line(Point(70, 70), Point(90, 85)) is None


def test_midpoint_and_distance():
    assert midpoint(Point(20, 90), Point(80, 90)) == Point(50, 90)
    assert distance_to_segment(50, 10, (0, 0), (100, 0)) == 10
    assert distance_to_segment(110, 0, (0, 0), (100, 0)) == 10
    assert distance_to_segment(3, 4, (0, 0), (0, 0)) == 5


def _active_set(*kinds):
    ann = AnnotationSet.defaults()
    for k in kinds:
        ann.toggle_active(k)
    return ann


def test_pick_handle_ignores_inactive_measurements():
    ann = AnnotationSet.defaults()
    assert pick_handle(ann, 200, 900, 1000, 1000) is None


def test_pick_handle_prefers_endpoints_over_line():
    ann = _active_set(MeasurementKind.WIDTH)
    assert pick_handle(ann, 203, 898, 1000, 1000) == (MeasurementKind.WIDTH, Handle.START)
    assert pick_handle(ann, 799, 901, 1000, 1000) == (MeasurementKind.WIDTH, Handle.END)
    assert pick_handle(ann, 500, 907, 1000, 1000) == (MeasurementKind.WIDTH, Handle.LINE)
    assert pick_handle(ann, 500, 930, 1000, 1000) is None


def test_pick_handle_labels_grab_the_whole_line():
    ann = _active_set(MeasurementKind.WIDTH)
    ann.set_value(MeasurementKind.WIDTH, "120 cm")
    rects = {MeasurementKind.WIDTH: (460, 880, 80, 40)}
    assert pick_handle(ann, 470, 882, 1000, 1000, label_rects=rects) == (MeasurementKind.WIDTH, Handle.LINE)


def test_pick_handle_later_kind_wins_on_overlap():
    ann = _active_set(MeasurementKind.WIDTH, MeasurementKind.DEPTH)
    ann.set_endpoint(MeasurementKind.DEPTH, Handle.START, Point(20, 90))
    assert pick_handle(ann, 200, 900, 1000, 1000) == (MeasurementKind.DEPTH, Handle.START)
