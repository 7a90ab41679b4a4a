from PyQt6.QtWidgets import (
    QFrame, QWidget, QVBoxLayout, QHBoxLayout, QCheckBox,
    QLabel, QLineEdit, QSizePolicy, QPushButton
)
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QImage, QPixmap

from Model.annotations import MeasurementKind

# Placeholder text per kind, same units the catalog uses
PLACEHOLDERS = {
    MeasurementKind.WIDTH: "e.g. 120 cm",
    MeasurementKind.HEIGHT: "e.g. 85 cm",
    MeasurementKind.DEPTH: "e.g. 40 cm",
}

STATUS_COLORS = {
    "error": "#ff9f1a",
    "info": "#d8d8d8",
    "ok": "#6bd66b",
}


class MeasurePanel(QFrame):
    def __init__(self, title: str = "Measurement Editor"):
        super().__init__()
        self.setFrameShape(QFrame.Shape.StyledPanel)
        self.setFrameShadow(QFrame.Shadow.Raised)
        self.setMinimumWidth(280)
        self.setSizePolicy(QSizePolicy.Policy.Fixed, QSizePolicy.Policy.Expanding)

        # Title
        self.titleLabel = QLabel(title)
        self.titleLabel.setContentsMargins(4, 4, 4, 4)
        self.titleLabel.setFixedHeight(24)
        self.titleLabel.setAlignment(Qt.AlignmentFlag.AlignVCenter | Qt.AlignmentFlag.AlignLeft)

        hint = QLabel("Activate a measurement and drag its circles over the image.\n"
                      "The line snaps straight when it is almost horizontal or vertical.")
        hint.setWordWrap(True)
        hint.setStyleSheet("QLabel { color:#6b7280; font-size:11px; }")

        # One row per measurement kind: checkbox + value field
        self.checkboxes: dict[MeasurementKind, QCheckBox] = {}
        self.valueEdits: dict[MeasurementKind, QLineEdit] = {}
        rows = QWidget()
        rv = QVBoxLayout(rows)
        rv.setContentsMargins(0, 0, 0, 0)
        rv.setSpacing(8)
        for kind in MeasurementKind:
            cb = QCheckBox(kind.value.capitalize())
            edit = QLineEdit()
            edit.setPlaceholderText(PLACEHOLDERS[kind])
            edit.setClearButtonEnabled(True)
            edit.setVisible(False)  # only shown while the measurement is active
            cb.toggled.connect(edit.setVisible)
            rv.addWidget(cb)
            rv.addWidget(edit)
            self.checkboxes[kind] = cb
            self.valueEdits[kind] = edit
        rv.addStretch(1)

        # Preview of the last saved image
        self.previewLabel = QLabel()
        self.previewLabel.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.previewLabel.setFixedHeight(140)
        self.previewLabel.setVisible(False)

        # Toolbar
        self.toolbar = QWidget()
        self._tbLayout = QHBoxLayout(self.toolbar)
        self._tbLayout.setContentsMargins(0, 4, 0, 4)
        self._tbLayout.setSpacing(8)
        self.toolbarButtons: dict[str, QPushButton] = {}
        self.add_toolbar_buttons({
            "Save": self._btn("Save Image"),
            "Save & Close": self._btn("Save && Close"),
            "Close": self._btn("Close"),
        })

        self.statusLine = QLineEdit()
        self.statusLine.setReadOnly(True)
        self.statusLine.setPlaceholderText("Drop an image on the left to start")
        self.statusLine.setFixedHeight(22)
        self.statusLine.setStyleSheet("QLineEdit { background:#1e1e1e; color:#d8d8d8; padding:2px 6px; }")

        # Build the panel layout
        v = QVBoxLayout(self)
        v.setContentsMargins(8, 8, 8, 8)
        v.setSpacing(8)
        v.addWidget(self.titleLabel)
        v.addWidget(hint)
        v.addWidget(rows, 1)
        v.addWidget(self.previewLabel)
        v.addWidget(self.toolbar)
        v.addWidget(self.statusLine)

        self.set_enabled(False)

    # ---------- Public API ---------
    def add_toolbar_buttons(self, buttons: dict[str, QPushButton]):
        for key, btn in buttons.items():
            if btn.minimumHeight() < 36:
                btn.setMinimumHeight(36)
            self._tbLayout.addWidget(btn)
            self.toolbarButtons[key] = btn

    def sync(self, annotations):
        # Mirror the model without feeding the change back into the controller
        for kind in MeasurementKind:
            m = annotations[kind]
            cb = self.checkboxes[kind]
            cb.blockSignals(True)
            cb.setChecked(m.active)
            cb.setText(m.label)
            cb.blockSignals(False)
            self.valueEdits[kind].setVisible(m.active)
            if self.valueEdits[kind].text() != m.value:
                self.valueEdits[kind].setText(m.value)

    def set_enabled(self, on: bool):
        for w in list(self.checkboxes.values()) + list(self.valueEdits.values()):
            w.setEnabled(on)
        for btn in self.toolbarButtons.values():
            btn.setEnabled(on)

    def set_busy(self, busy: bool):
        self.toolbarButtons["Save"].setText("Saving..." if busy else "Save Image")
        if busy:
            # A running save can still be abandoned
            self.toolbarButtons["Close"].setEnabled(True)

    def show_preview(self, qimg: QImage | None):
        if qimg is None or qimg.isNull():
            self.previewLabel.clear()
            self.previewLabel.setVisible(False)
            return
        pm = QPixmap.fromImage(qimg).scaled(
            self.previewLabel.width(), self.previewLabel.height(),
            Qt.AspectRatioMode.KeepAspectRatio, Qt.TransformationMode.SmoothTransformation
        )
        self.previewLabel.setPixmap(pm)
        self.previewLabel.setVisible(True)

    def set_status_text(self, msg: str, *, kind: str = "info"):
        col = STATUS_COLORS.get(kind, STATUS_COLORS["info"])
        self.statusLine.setStyleSheet(f"QLineEdit {{ background:#1e1e1e; color:{col}; padding:2px 6px; }}")
        self.statusLine.setText(msg)

    @staticmethod
    def _btn(text: str) -> QPushButton:
        btn = QPushButton(text)
        btn.setMinimumHeight(36)
        return btn
