# Model/compositor.py
from __future__ import annotations
import logging
import math
from typing import List, Tuple

from PyQt6.QtCore import QPointF, QRectF, Qt
from PyQt6.QtGui import (
    QBrush, QColor, QFont, QFontMetricsF, QImage, QPainter, QPen, QPolygonF, QTextOption,
)

from Model.annotations import AnnotationSet
from Model.coords import GeometryError, require_in_bounds, to_pixel
from Model.image_ops import JPEG_QUALITY, EncodeError, encode_jpeg

logger = logging.getLogger(__name__)

# Style, in pixels of a 1000px image; everything scales with max(w, h) / 1000
LINE_WIDTH = 1.5
FONT_SIZE = 24.0
ARROW_LENGTH = 12.0
LABEL_PADDING = 10.0
ARROW_SPREAD = math.pi / 6  # 30° each side of the shaft
LABEL_BACKGROUND = QColor(255, 255, 255, 230)  # white at 0.9
FONT_FAMILY = "sans-serif"


def arrowhead_points(tip: Tuple[float, float], angle: float, length: float,
                     reverse: bool = False) -> List[Tuple[float, float]]:
    """
    Triangle for an arrowhead sitting on tip. angle is the direction of the
    segment (start -> end). The end arrow points along it, the start arrow
    (reverse=True) points back against it.
    """
    x, y = tip
    sign = 1.0 if reverse else -1.0
    return [
        (x, y),
        (x + sign * length * math.cos(angle - ARROW_SPREAD), y + sign * length * math.sin(angle - ARROW_SPREAD)),
        (x + sign * length * math.cos(angle + ARROW_SPREAD), y + sign * length * math.sin(angle + ARROW_SPREAD)),
    ]


def scale_factor(width: int, height: int) -> float:
    return max(width, height) / 1000.0


def label_font(pixel_size: float) -> QFont:
    font = QFont(FONT_FAMILY)
    font.setStyleHint(QFont.StyleHint.SansSerif)
    font.setBold(True)
    font.setPixelSize(max(1, int(round(pixel_size))))
    return font


def compose(source: QImage, annotations: AnnotationSet) -> QImage:
    """Returns a new raster at the source's native size with the active measurements burned in."""
    if source is None or source.isNull():
        raise EncodeError("no source raster to compose on")

    w, h = source.width(), source.height()
    out = QImage(w, h, QImage.Format.Format_RGB32)
    out.fill(Qt.GlobalColor.white)

    s = scale_factor(w, h)
    line_width = LINE_WIDTH * s
    font_px = FONT_SIZE * s
    arrow_len = ARROW_LENGTH * s
    padding = LABEL_PADDING * s
    font = label_font(font_px)
    metrics = QFontMetricsF(font)

    p = QPainter(out)
    if not p.isActive():
        raise EncodeError(f"could not paint on a {w}x{h} raster")
    try:
        p.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        p.setRenderHint(QPainter.RenderHint.TextAntialiasing, True)
        p.drawImage(0, 0, source)
        p.setFont(font)

        for m in annotations:
            if not m.active:
                continue
            require_in_bounds(m.start)
            require_in_bounds(m.end)

            x1, y1 = to_pixel(m.start, w, h)
            x2, y2 = to_pixel(m.end, w, h)
            angle = math.atan2(y2 - y1, x2 - x1)
            color = QColor(m.color)

            # 1) Shaft
            pen = QPen(color, line_width)
            pen.setCapStyle(Qt.PenCapStyle.FlatCap)
            p.setPen(pen)
            p.setBrush(Qt.BrushStyle.NoBrush)
            p.drawLine(QPointF(x1, y1), QPointF(x2, y2))

            # 2) Arrowheads at both ends
            p.setPen(Qt.PenStyle.NoPen)
            p.setBrush(QBrush(color))
            for tip, reverse in (((x2, y2), False), ((x1, y1), True)):
                tri = arrowhead_points(tip, angle, arrow_len, reverse=reverse)
                p.drawPolygon(QPolygonF([QPointF(px, py) for px, py in tri]))

            # 3) Label, centered on the midpoint
            if m.value:
                mx, my = (x1 + x2) / 2.0, (y1 + y2) / 2.0
                tw = metrics.horizontalAdvance(m.value)
                box = QRectF(mx - tw / 2.0 - padding / 2.0, my - font_px / 2.0 - padding / 2.0,
                             tw + padding, font_px + padding)
                p.fillRect(box, LABEL_BACKGROUND)
                p.setPen(QPen(color))
                p.drawText(box, m.value, QTextOption(Qt.AlignmentFlag.AlignCenter))
    finally:
        p.end()
    return out


def render(source: QImage, annotations: AnnotationSet, quality: int = JPEG_QUALITY) -> bytes:
    """
    compose() + JPEG. Drawing and encoding failures are raised as EncodeError,
    out-of-range points as GeometryError; nothing partial is ever returned.
    """
    try:
        out = compose(source, annotations)
    except (EncodeError, GeometryError):
        raise
    except Exception as e:
        raise EncodeError(f"compositing failed: {e}") from e
    data = encode_jpeg(out, quality)
    logger.info("[SAVE] composited %dx%d -> %d bytes", out.width(), out.height(), len(data))
    return data
