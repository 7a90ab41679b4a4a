import logging

from PyQt6.QtCore import QObject, QEvent, QPointF, pyqtSignal
from PyQt6.QtWidgets import QApplication, QWidget

logger = logging.getLogger(__name__)


class PointerGuard(QObject):
    """
    Application-wide pointer tracking for the duration of one drag gesture.

    acquire() installs an event filter on the QApplication so moves and the
    final button release are seen even when the pointer leaves the canvas;
    release() removes it again. Both are idempotent, so every exit path
    (pointer-up, cancel, widget hidden, session closed) can call release().
    """

    moved = pyqtSignal(QPointF)     # global position
    released = pyqtSignal(QPointF)  # global position

    def __init__(self, parent=None):
        super().__init__(parent)
        self._app = None

    @property
    def active(self) -> bool:
        return self._app is not None

    def acquire(self) -> bool:
        if self._app is not None:
            return False
        app = QApplication.instance()
        if app is None:
            return False
        app.installEventFilter(self)
        self._app = app
        logger.debug("[DRAG] pointer guard acquired")
        return True

    def release(self) -> bool:
        if self._app is None:
            return False
        self._app.removeEventFilter(self)
        self._app = None
        logger.debug("[DRAG] pointer guard released")
        return True

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

    def eventFilter(self, obj, event):
        # Each mouse event passes the window first and then the widget; only the
        # widget delivery is used so a gesture is not reported twice.
        if self._app is None or not isinstance(obj, QWidget):
            return False
        t = event.type()
        if t == QEvent.Type.MouseMove:
            self.moved.emit(event.globalPosition())
            return True
        if t == QEvent.Type.MouseButtonRelease:
            pos = event.globalPosition()
            self.release()
            self.released.emit(pos)
            return True
        return False
