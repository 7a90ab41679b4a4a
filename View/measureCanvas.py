import math
from pathlib import Path

from PyQt6.QtWidgets import QLabel
from PyQt6.QtCore import Qt, pyqtSignal, QPointF, QRectF
from PyQt6.QtGui import QPixmap, QPainter, QPen, QColor, QImage, QBrush, QFont, QFontMetricsF, QPolygonF, QTextOption

from Model.compositor import arrowhead_points
from Model.measure_ops import guide_line, is_straight, midpoint, pick_handle
from View.pointer_guard import PointerGuard

ALLOWED = {".png", ".jpg", ".jpeg", ".bmp", ".webp", ".gif", ".tif", ".tiff"}  # Allowed Image Formats

HANDLE_RADIUS = 8.0      # px, grab radius of an endpoint (drawn 16px wide)
CORRIDOR = 10.0          # px, half width of the invisible line hit area
STRAIGHT_COLOR = QColor(34, 197, 94)


class MeasureCanvas(QLabel):
    # Shows the image aspect-fitted and draws the active measurements on top.
    # All overlay coordinates are percentages of the displayed image, so the
    # controller never sees widget pixels.

    imageDropped = pyqtSignal(str)                       # path of the dropped file
    handlePressed = pyqtSignal(str, str, float, float)   # kind, handle, x%, y%
    pointerMoved = pyqtSignal(float, float)              # x%, y% (may be outside 0..100)
    pointerReleased = pyqtSignal()

    def __init__(self, placeholder: str = "Drag & Drop a product image here"):
        super().__init__(placeholder)
        self.setObjectName("MeasureCanvas")
        self.setAcceptDrops(True)
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setWordWrap(True)
        self.setMouseTracking(True)
        self._placeholder = placeholder

        self._pixmap: QPixmap | None = None
        self._annotations = None

        # Gesture tracking outside the widget
        self._guard = PointerGuard(self)
        self._guard.moved.connect(self._on_global_move)
        self._guard.released.connect(self._on_global_release)

        # Overlay style
        self._line_width = 1.5
        self._arrow_len = 6.0
        self._label_font = QFont()
        self._label_font.setBold(True)
        self._label_font.setPointSize(10)
        self._badge_font = QFont()
        self._badge_font.setBold(True)
        self._badge_font.setPixelSize(10)

    # ---- Mouse events ----
    def mousePressEvent(self, e):
        if not self.has_image or self._annotations is None or e.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(e)
            return

        rect = self.image_rect()
        pos = e.position()
        hit = pick_handle(
            self._annotations,
            pos.x() - rect.x(), pos.y() - rect.y(),
            rect.width(), rect.height(),
            handle_radius=HANDLE_RADIUS,
            corridor=CORRIDOR,
            label_rects=self._label_rects(rect),
        )
        if hit is None:
            super().mousePressEvent(e)
            return

        kind, handle = hit
        x, y = self._widget_to_pct(pos)
        # The receiver calls begin_gesture() if it accepts the press
        self.handlePressed.emit(kind.value, handle.value, x, y)
        if self.gesture_active:
            e.accept()
        else:
            super().mousePressEvent(e)

    def mouseMoveEvent(self, e):
        # While a gesture is active the guard consumes moves before they get here
        if self.has_image and self._annotations is not None:
            rect = self.image_rect()
            pos = e.position()
            hit = pick_handle(self._annotations, pos.x() - rect.x(), pos.y() - rect.y(),
                              rect.width(), rect.height(), HANDLE_RADIUS, CORRIDOR, self._label_rects(rect))
            self.setCursor(Qt.CursorShape.SizeAllCursor if hit else Qt.CursorShape.ArrowCursor)
        super().mouseMoveEvent(e)

    def _on_global_move(self, global_pos: QPointF):
        x, y = self._widget_to_pct(self.mapFromGlobal(global_pos))
        self.pointerMoved.emit(x, y)

    def _on_global_release(self, _global_pos: QPointF):
        self.pointerReleased.emit()

    def begin_gesture(self):
        # released on pointer-up, cancel or hide
        self._guard.acquire()

    def cancel_gesture(self):
        if self._guard.release():
            self.pointerReleased.emit()

    @property
    def gesture_active(self) -> bool:
        return self._guard.active

    def hideEvent(self, e):
        self.cancel_gesture()
        super().hideEvent(e)

    # ---- Paint ----
    def paintEvent(self, e):
        # Show the Drag&Drop placeholder text
        if self._pixmap is None:
            super().paintEvent(e)
            return

        p = QPainter(self)
        p.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, True)
        p.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        rect = self.image_rect()
        p.drawPixmap(rect.toRect(), self._pixmap)

        if self._annotations is not None:
            active = [m for m in self._annotations if m.active]
            # 1) Guides and lines
            for m in active:
                self._draw_measure_line(p, rect, m)
            # 2) Labels and "straight" badges
            for m in active:
                self._draw_label(p, rect, m)
            # 3) Endpoint handles on top
            for m in active:
                self._draw_handles(p, rect, m)
        p.end()

    def _draw_measure_line(self, p: QPainter, rect: QRectF, m):
        guide = guide_line(m.start, m.end)
        if guide is not None:
            pen = QPen(STRAIGHT_COLOR, 1, Qt.PenStyle.CustomDashLine)
            pen.setDashPattern([4, 2])
            p.save()
            p.setOpacity(0.4)
            p.setPen(pen)
            p.drawLine(self._pct_to_widget(guide[0], rect), self._pct_to_widget(guide[1], rect))
            p.restore()

        a = self._pct_to_widget(m.start, rect)
        b = self._pct_to_widget(m.end, rect)
        color = QColor(m.color)
        p.setPen(QPen(color, self._line_width))
        p.drawLine(a, b)

        # Small arrow markers, same geometry as the exported image
        angle = math.atan2(b.y() - a.y(), b.x() - a.x())
        p.setPen(Qt.PenStyle.NoPen)
        p.setBrush(QBrush(color))
        for tip, reverse in (((b.x(), b.y()), False), ((a.x(), a.y()), True)):
            tri = arrowhead_points(tip, angle, self._arrow_len, reverse=reverse)
            p.drawPolygon(QPolygonF([QPointF(x, y) for x, y in tri]))
        p.setBrush(Qt.BrushStyle.NoBrush)

    def _draw_label(self, p: QPainter, rect: QRectF, m):
        mid = self._pct_to_widget(midpoint(m.start, m.end), rect)
        if m.value:
            box = self._label_box(m, rect)
            p.setPen(Qt.PenStyle.NoPen)
            p.setBrush(QBrush(QColor(255, 255, 255, 230)))
            p.drawRoundedRect(box, 4, 4)
            p.setFont(self._label_font)
            p.setPen(QPen(QColor(m.color)))
            p.drawText(box, m.value, QTextOption(Qt.AlignmentFlag.AlignCenter))

        if is_straight(m.start, m.end):
            text = "RECTO"
            fm = QFontMetricsF(self._badge_font)
            w = fm.horizontalAdvance(text) + 8
            h = fm.height() + 2
            top = mid.y() - h - 16  # sits above the label
            badge = QRectF(mid.x() - w / 2.0, top, w, h)
            p.setPen(QPen(QColor(187, 247, 208)))
            p.setBrush(QBrush(QColor(220, 252, 231)))
            p.drawRoundedRect(badge, 3, 3)
            p.setFont(self._badge_font)
            p.setPen(QPen(QColor(21, 128, 61)))
            p.drawText(badge, text, QTextOption(Qt.AlignmentFlag.AlignCenter))

    def _draw_handles(self, p: QPainter, rect: QRectF, m):
        straight = is_straight(m.start, m.end)
        border = STRAIGHT_COLOR if straight else QColor(0, 0, 0, 77)
        dot = STRAIGHT_COLOR if straight else QColor(156, 163, 175)
        for pt in (m.start, m.end):
            c = self._pct_to_widget(pt, rect)
            p.setPen(QPen(border, 1))
            p.setBrush(QBrush(QColor(255, 255, 255)))
            p.drawEllipse(c, HANDLE_RADIUS, HANDLE_RADIUS)
            p.setPen(Qt.PenStyle.NoPen)
            p.setBrush(QBrush(dot))
            p.drawEllipse(c, 3.0, 3.0)

    # ---- Geometry helpers ----
    def image_rect(self) -> QRectF:
        # Aspect fit, centered in the widget
        if not self._pixmap or self.width() <= 0 or self.height() <= 0:
            return QRectF(0, 0, 0, 0)
        iw, ih = self._pixmap.width(), self._pixmap.height()
        s = min(self.width() / iw, self.height() / ih)
        w, h = iw * s, ih * s
        return QRectF((self.width() - w) / 2.0, (self.height() - h) / 2.0, w, h)

    def _widget_to_pct(self, posf, rect: QRectF | None = None) -> tuple[float, float]:
        # Not clamped: the drag machine decides what to do with positions outside the image
        rect = rect or self.image_rect()
        if rect.width() <= 0 or rect.height() <= 0:
            return 0.0, 0.0
        x = (float(posf.x()) - rect.x()) / rect.width() * 100.0
        y = (float(posf.y()) - rect.y()) / rect.height() * 100.0
        return x, y

    def _pct_to_widget(self, pt, rect: QRectF) -> QPointF:
        return QPointF(rect.x() + pt[0] / 100.0 * rect.width(), rect.y() + pt[1] / 100.0 * rect.height())

    def _label_box(self, m, rect: QRectF) -> QRectF:
        fm = QFontMetricsF(self._label_font)
        mid = self._pct_to_widget(midpoint(m.start, m.end), rect)
        w = fm.horizontalAdvance(m.value) + 16
        h = fm.height() + 8
        return QRectF(mid.x() - w / 2.0, mid.y() - h / 2.0, w, h)

    def _label_rects(self, rect: QRectF) -> dict:
        # In image-relative pixels, as pick_handle expects
        out = {}
        for m in self._annotations:
            if m.active and m.value:
                b = self._label_box(m, rect)
                out[m.kind] = (b.x() - rect.x(), b.y() - rect.y(), b.width(), b.height())
        return out

    # ---- Drag & Drop of image files ----
    def dragEnterEvent(self, event):
        if self._has_image_url(event):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragMoveEvent(self, event):
        if self._has_image_url(event):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dropEvent(self, event):
        url = next((u for u in event.mimeData().urls() if u.isLocalFile()), None)
        if not url:
            event.ignore(); return

        path = url.toLocalFile()
        if Path(path).suffix.lower() not in ALLOWED:
            event.ignore(); return

        event.acceptProposedAction()
        self.imageDropped.emit(path)

    def _has_image_url(self, event) -> bool:
        md = event.mimeData()
        if not md.hasUrls():
            return False
        for u in md.urls():
            if u.isLocalFile() and Path(u.toLocalFile()).suffix.lower() in ALLOWED:
                return True
        return False

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self.update()

    # ---- Public API ----
    def show_qimage(self, qimg: QImage):
        if qimg.isNull():
            return
        self._pixmap = QPixmap.fromImage(qimg)
        self.setText("")
        self.update()

    def set_annotations(self, annotations):
        self._annotations = annotations
        self.update()

    def clear_image(self):
        self.cancel_gesture()
        self._pixmap = None  # drops the display copy of the source
        self._annotations = None
        self.setText(self._placeholder)
        self.update()

    @property
    def has_image(self) -> bool:
        return self._pixmap is not None
