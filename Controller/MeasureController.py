from __future__ import annotations
import logging
from pathlib import Path

from PyQt6.QtCore import QObject, pyqtSignal, QThreadPool, QRunnable
from PyQt6.QtGui import QImage

from Controller.drag_machine import DragStateMachine
from Controller.enums import DragMode, Handle, SessionStatus
from Model.annotations import AnnotationSet, MeasurementKind
from Model.compositor import render
from Model.coords import GeometryError, Point
from Model.image_ops import JPEG_QUALITY, DecodeError, EncodeError, convert_to_jpeg, load_source
from Model.image_state import EditorState
from Model.measure_ops import SNAP_THRESHOLD

logger = logging.getLogger(__name__)

JPEG_SUFFIXES = {".jpg", ".jpeg"}

# Worker infrastructure: compositing a large photo takes longer than a frame, so it runs
# on the thread pool and reports back through a queued signal into the GUI thread.

# Carries the result of one render back to the controller, tagged with the save version.
class _ResultSignal(QObject):
    finished = pyqtSignal(int, object)   # version, JPEG bytes
    failed = pyqtSignal(int, str)        # version, message


# One save = one task. It gets its own copy of the source and a snapshot of the
# annotations, so nothing it reads can change while it runs.
# noinspection PyUnresolvedReferences
class _RenderTask(QRunnable):
    def __init__(self, version: int, qimg: QImage, annotations: AnnotationSet, quality: int, sig: _ResultSignal):
        super().__init__()
        self.version = version
        self.qimg = qimg
        self.annotations = annotations
        self.quality = quality
        self.sig = sig

    def run(self):
        try:
            data = render(self.qimg, self.annotations, self.quality)
        except EncodeError as e:
            logger.error("[SAVE] render v%d failed: %s", self.version, e)
            self.sig.failed.emit(self.version, str(e))
            return
        except GeometryError as e:
            # Contract violation: points are clamped on every mutation
            logger.exception("[SAVE] render v%d hit out-of-range geometry", self.version)
            self.sig.failed.emit(self.version, f"internal error: {e}")
            return
        self.sig.finished.emit(self.version, data)


# --- Controller ---
class MeasureController(QObject):
    """
    One measurement-editing session: Loading -> Ready -> Saving -> Ready | Closed.

    Works headless (view=None) or wired to a MeasureEditorGUI. Results leave
    through the saved signal; what happens to the bytes is up to the receiver.
    """

    saved = pyqtSignal(object)          # JPEG bytes of the composited image
    failed = pyqtSignal(str)
    statusChanged = pyqtSignal(object)  # SessionStatus
    annotationsChanged = pyqtSignal()

    def __init__(self, view=None):
        super().__init__()
        self.view = view
        self.pool = QThreadPool.globalInstance()  # Global threadPool for background Jobs

        self.state = EditorState()
        self.drag: DragStateMachine | None = None

        # Parameters
        self.snap_threshold = SNAP_THRESHOLD
        self.jpeg_quality = JPEG_QUALITY

        self.sig = _ResultSignal()
        self.sig.finished.connect(self._on_render_finished)  # "Bridge" from the worker back to the GUI thread
        self.sig.failed.connect(self._on_render_failed)

        if view is not None:
            self._wire_view()

    # Wiring - connecting the view (canvas, panel) with the logic
    def _wire_view(self):
        v = self.view

        v.canvas.imageDropped.connect(self.load_path)
        v.canvas.handlePressed.connect(self.on_press)
        v.canvas.pointerMoved.connect(self.on_move)
        v.canvas.pointerReleased.connect(self.on_release)

        for kind in MeasurementKind:
            v.panel.checkboxes[kind].toggled.connect(lambda checked, k=kind: self.set_active(k, checked))
            # textEdited fires only for user edits, not for setText() during sync
            v.panel.valueEdits[kind].textEdited.connect(lambda text, k=kind: self.set_value(k, text))

        btns = v.panel.toolbarButtons
        btns["Save"].clicked.connect(lambda: self.save())
        btns["Save & Close"].clicked.connect(lambda: self.save(close_after=True))
        btns["Close"].clicked.connect(self.close)

    # ---- Properties ----
    @property
    def status(self) -> SessionStatus:
        return self.state.status

    @property
    def annotations(self) -> AnnotationSet | None:
        return self.state.annotations

    @property
    def drag_mode(self) -> DragMode:
        return self.drag.mode if self.drag is not None else DragMode.IDLE

    # ---- Loading ----
    def load_path(self, path: str):
        p = Path(path)
        try:
            data = p.read_bytes()
        except OSError as e:
            logger.error("[LOAD] could not read %s: %s", path, e)
            self._set_status_text(f"Could not read {path}", kind="error")
            self.failed.emit(str(e))
            return

        # Everything is edited as a white-backed JPEG, like the upload service stores it
        if p.suffix.lower() not in JPEG_SUFFIXES:
            try:
                data, w, h = convert_to_jpeg(data, self.jpeg_quality)
            except DecodeError as e:
                self._load_failed(p.stem, e)
                return
            logger.info("[LOAD] normalized %s to JPEG (%dx%d)", p.name, w, h)

        try:
            self.load(data, name=p.stem)
        except DecodeError:
            # already reported through failed / status line
            return

    def load(self, data: bytes, name: str = "image"):
        if self.state.status is not SessionStatus.CLOSED:
            self.close()
        self._set_status(SessionStatus.LOADING)

        try:
            qimg = load_source(data)
        except DecodeError as e:
            self._load_failed(name, e)
            raise

        st = self.state
        st.source = qimg
        st.name = name
        st.annotations = AnnotationSet.defaults()  # never carried over from a previous session
        st.result = None
        st.close_after_save = False
        self.drag = DragStateMachine(st.annotations, self.snap_threshold)

        logger.info("[LOAD] %s: %dx%d, %d bytes", name, qimg.width(), qimg.height(), len(data))
        self._set_status(SessionStatus.READY)

        if self.view is not None:
            self.view.canvas.show_qimage(qimg)
            self.view.panel.sync(st.annotations)
            self.view.panel.show_preview(None)
            self._set_status_text(f"Loaded {name} ({qimg.width()}x{qimg.height()})")
        self._refresh()

    # ---- Annotation edits (only while Ready) ----
    def _editable(self) -> bool:
        return self.state.status is SessionStatus.READY and self.state.annotations is not None

    def toggle(self, kind):
        if not self._editable():
            return
        self.state.annotations.toggle_active(MeasurementKind(kind))
        self._refresh(sync_panel=True)

    def set_active(self, kind, active: bool):
        if not self._editable():
            return
        kind = MeasurementKind(kind)
        if self.state.annotations[kind].active != bool(active):
            self.state.annotations.toggle_active(kind)
            self._refresh()

    def set_value(self, kind, text: str):
        if not self._editable():
            return
        self.state.annotations.set_value(MeasurementKind(kind), text)
        self._refresh()

    def on_press(self, kind, handle, x: float, y: float) -> bool:
        if not self._editable() or self.drag is None:
            return False
        accepted = self.drag.press(MeasurementKind(kind), Handle(handle), Point(x, y))
        if accepted and self.view is not None:
            # The canvas tracks the pointer app-wide only while a drag context exists
            self.view.canvas.begin_gesture()
        return accepted

    def on_move(self, x: float, y: float):
        if not self._editable() or self.drag is None:
            return
        if self.drag.move(Point(x, y)):
            self._refresh()

    def on_release(self):
        # Always allowed: a gesture must end even if the session changed under it
        if self.drag is not None:
            self.drag.release()

    # ---- Saving ----
    def save(self, close_after: bool = False) -> bool:
        st = self.state
        if st.status is not SessionStatus.READY:
            logger.warning("[SAVE] ignored, session is %s", st.status.name)
            return False

        st.version += 1  # Everything before is thus marked as "old"
        st.close_after_save = close_after
        self._set_status(SessionStatus.SAVING)
        self._set_status_text("Saving...")

        task = _RenderTask(st.version, st.source.copy(), st.annotations.snapshot(), self.jpeg_quality, self.sig)
        self.pool.start(task)
        return True

    def _on_render_finished(self, version: int, data: bytes):
        st = self.state
        # Ignore old updates / jobs
        if version != st.version or st.status is not SessionStatus.SAVING:
            logger.debug("[SAVE] dropping stale result v%d", version)
            return

        st.result = data
        self._supersede_preview(load_source(data))
        logger.info("[SAVE] %s v%d: %d bytes", st.name, version, len(data))

        if st.close_after_save:
            self.close()
        else:
            self._set_status(SessionStatus.READY)
            self._set_status_text("Image saved.", kind="ok")
            self._refresh(sync_panel=True)
        self.saved.emit(data)

    def _on_render_failed(self, version: int, msg: str):
        st = self.state
        if version != st.version or st.status is not SessionStatus.SAVING:
            return
        # Fatal for this save only, the session stays editable
        self._set_status(SessionStatus.READY)
        self._set_status_text(f"Could not save the image: {msg}", kind="error")
        self._refresh(sync_panel=True)
        self.failed.emit(msg)

    # ---- Teardown ----
    def close(self):
        st = self.state
        if st.status is SessionStatus.CLOSED and st.source is None:
            return

        if self.drag is not None:
            self.drag.cancel()
            self.drag = None
        if self.view is not None:
            self.view.canvas.cancel_gesture()
            self.view.canvas.clear_image()
            self.view.panel.show_preview(None)

        if st.source is not None:
            st.source = None
            st.released["source"] += 1
        self._supersede_preview(None)
        st.annotations = None
        st.result = None
        st.version += 1  # a render still in flight is now stale

        logger.info("[CLOSE] %s", st.name)
        self._set_status(SessionStatus.CLOSED)

    # ---- Helpers ----
    def _load_failed(self, name: str, e: Exception):
        logger.error("[LOAD] %s: %s", name, e)
        self.close()  # no-op when nothing is open
        if self.state.status is not SessionStatus.CLOSED:
            self._set_status(SessionStatus.CLOSED)
        self._set_status_text("The file is not a readable image.", kind="error")
        self.failed.emit(str(e))

    def _supersede_preview(self, qimg: QImage | None):
        st = self.state
        if st.preview is not None:
            st.preview = None
            st.released["preview"] += 1
        st.preview = qimg
        if self.view is not None and qimg is not None:
            self.view.panel.show_preview(qimg)

    def _set_status(self, status: SessionStatus):
        self.state.status = status
        if self.view is not None:
            # Widgets take input only in READY
            self.view.panel.set_enabled(status is SessionStatus.READY)
            self.view.panel.set_busy(status is SessionStatus.SAVING)
        self.statusChanged.emit(status)

    def _refresh(self, sync_panel: bool = False):
        if self.view is not None:
            self.view.canvas.set_annotations(self.state.annotations)
            if sync_panel:
                self.view.panel.sync(self.state.annotations)
        self.annotationsChanged.emit()

    def _set_status_text(self, msg: str, *, kind: str = "info"):
        if self.view is None:
            return
        self.view.panel.set_status_text(msg, kind=kind)
