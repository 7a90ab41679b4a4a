# Model/measure_ops.py
from __future__ import annotations
import math
from typing import Dict, Optional, Tuple

from Controller.enums import Handle
from Model.coords import Point, clamp_point, to_pixel

SNAP_THRESHOLD = 1.5        # percent; endpoint drags snap to the other endpoint's axis below this
STRAIGHT_TOLERANCE = 0.1    # percent; used only for the "straight" indicator and guide line

Rect = Tuple[float, float, float, float]  # (x, y, w, h)


def snap_to_axis(moved, other, threshold: float = SNAP_THRESHOLD) -> Point:
    """
    Aligns the moved endpoint with the other endpoint of the same measurement.
    Each axis is checked on its own, so both apply only when the two points
    (almost) coincide.
    """
    x, y = moved
    ox, oy = other
    if abs(y - oy) < threshold:
        y = oy  # horizontal line
    if abs(x - ox) < threshold:
        x = ox  # vertical line
    return Point(x, y)


def translate_segment(start, end, new_start) -> Tuple[Point, Point]:
    """
    Moves a whole segment so that it starts at new_start and keeps its
    displacement (end - start). When the end runs into the border it is
    clamped first and the start is then recomputed from it, so the segment
    settles against the wall instead of shrinking.
    """
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    s = clamp_point(new_start)
    e = clamp_point((s.x + dx, s.y + dy))
    s = clamp_point((e.x - dx, e.y - dy))
    return s, e


def is_horizontal(start, end, tol: float = STRAIGHT_TOLERANCE) -> bool:
    return abs(start[1] - end[1]) < tol


def is_vertical(start, end, tol: float = STRAIGHT_TOLERANCE) -> bool:
    return abs(start[0] - end[0]) < tol


def is_straight(start, end, tol: float = STRAIGHT_TOLERANCE) -> bool:
    return is_horizontal(start, end, tol) or is_vertical(start, end, tol)


def guide_line(start, end, tol: float = STRAIGHT_TOLERANCE) -> Optional[Tuple[Point, Point]]:
    # Full-axis dashed guide for straight segments, None otherwise
    hor = is_horizontal(start, end, tol)
    ver = is_vertical(start, end, tol)
    if not (hor or ver):
        return None
    x1 = start[0] if ver else 0.0
    y1 = start[1] if hor else 0.0
    x2 = end[0] if ver else 100.0
    y2 = end[1] if hor else 100.0
    return Point(x1, y1), Point(x2, y2)


def midpoint(a, b) -> Point:
    return Point((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)


def distance_to_segment(px: float, py: float, a, b) -> float:
    ax, ay = a
    bx, by = b
    dx, dy = bx - ax, by - ay
    len2 = dx * dx + dy * dy
    if len2 == 0.0:
        return math.hypot(px - ax, py - ay)
    t = ((px - ax) * dx + (py - ay) * dy) / len2
    t = max(0.0, min(1.0, t))
    cx, cy = ax + t * dx, ay + t * dy
    return math.hypot(px - cx, py - cy)


def pick_handle(
    annotations,
    x_px: float,
    y_px: float,
    width_px: float,
    height_px: float,
    handle_radius: float = 8.0,
    corridor: float = 10.0,
    label_rects: Optional[Dict[object, Rect]] = None,
):
    """
    Hit test in display pixels. Returns (kind, handle) or None.

    Priority follows the stacking of the overlay: endpoint handles above
    labels above the invisible line corridor. Within a layer, later kinds
    are painted on top and therefore win.
    """
    active = [m for m in annotations if m.active]
    if not active or width_px <= 0 or height_px <= 0:
        return None

    for m in reversed(active):
        # end is painted after start
        for handle, pt in ((Handle.END, m.end), (Handle.START, m.start)):
            hx, hy = to_pixel(pt, width_px, height_px)
            if math.hypot(x_px - hx, y_px - hy) <= handle_radius:
                return m.kind, handle

    if label_rects:
        for m in reversed(active):
            r = label_rects.get(m.kind)
            if r is None or not m.value:
                continue
            rx, ry, rw, rh = r
            if rx <= x_px <= rx + rw and ry <= y_px <= ry + rh:
                return m.kind, Handle.LINE

    for m in reversed(active):
        a = to_pixel(m.start, width_px, height_px)
        b = to_pixel(m.end, width_px, height_px)
        if distance_to_segment(x_px, y_px, a, b) <= corridor:
            return m.kind, Handle.LINE
    return None
