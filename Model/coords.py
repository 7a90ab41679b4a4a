# Model/coords.py
from __future__ import annotations
import math
from typing import NamedTuple, Tuple

# All overlay coordinates live in percent of the displayed image (0..100), so they
# survive any resize of the widget. Pixels are only used when compositing.
PCT_MIN = 0.0
PCT_MAX = 100.0


class GeometryError(ValueError):
    """A point outside the percent plane reached code that requires clamped input."""


class Point(NamedTuple):
    x: float
    y: float

    def __add__(self, other) -> "Point":
        return Point(self.x + other[0], self.y + other[1])

    def __sub__(self, other) -> "Point":
        return Point(self.x - other[0], self.y - other[1])


def clamp(v: float) -> float:
    return max(PCT_MIN, min(PCT_MAX, v))


def clamp_point(p) -> Point:
    return Point(clamp(p[0]), clamp(p[1]))


def to_pixel(p, width: float, height: float) -> Tuple[float, float]:
    # No rounding: QPainter rasterizes sub-pixel coordinates itself
    return p[0] / 100.0 * width, p[1] / 100.0 * height


def require_in_bounds(p) -> None:
    x, y = p
    for v in (x, y):
        if math.isnan(v) or v < PCT_MIN or v > PCT_MAX:
            raise GeometryError(f"point {tuple(p)!r} is outside [0, 100]")
