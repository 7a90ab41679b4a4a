import logging
from pathlib import Path

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import QWidget, QVBoxLayout, QSplitter, QFileDialog

from Controller.MeasureController import MeasureController
from .measureCanvas import MeasureCanvas
from .panel import MeasurePanel

logger = logging.getLogger(__name__)


class MeasureEditorGUI(QWidget):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("Measurement Editor")
        self._last_dir = Path.home()
        self._init_ui()
        self.controller = MeasureController(self)
        self.controller.saved.connect(self._export_result)

    def _init_ui(self):
        self.setAutoFillBackground(True)
        self.setMinimumSize(900, 600)

        # Canvas left, controls right
        mainSplitter = QSplitter(Qt.Orientation.Horizontal)
        self.canvas = MeasureCanvas("Drag&Drop a product image here")
        self.panel = MeasurePanel("Measurement Editor")
        mainSplitter.addWidget(self.canvas)
        mainSplitter.addWidget(self.panel)
        mainSplitter.setStretchFactor(0, 1)
        mainSplitter.setStretchFactor(1, 0)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(mainSplitter)

        self.canvas.imageDropped.connect(self._remember_dir)

    def open_path(self, path: str):
        self._remember_dir(path)
        self.controller.load_path(path)

    def _remember_dir(self, path: str):
        self._last_dir = Path(path).resolve().parent

    def _export_result(self, data: bytes):
        # The editor only produces bytes; writing them is this window's job
        default = self._last_dir / f"{self.controller.state.name}-medidas.jpg"
        path, _ = QFileDialog.getSaveFileName(self, "Save annotated image", str(default), "JPEG (*.jpg *.jpeg)")
        if not path:
            return
        try:
            Path(path).write_bytes(data)
        except OSError as e:
            logger.error("[EXPORT] could not write %s: %s", path, e)
            self.panel.set_status_text(f"Could not write {path}", kind="error")
            return
        logger.info("[EXPORT] wrote %s (%d bytes)", path, len(data))
        self.panel.set_status_text(f"Saved to {path}", kind="ok")

    def closeEvent(self, e):
        self.controller.close()
        super().closeEvent(e)
