import os

# Headless Qt: must be set before the first QApplication exists
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import numpy as np
import pytest
from PyQt6.QtWidgets import QApplication

from Model.image_ops import encode_jpeg, numpy_rgb_to_qimage


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def gray_image(qapp):
    def make(w=1000, h=1000, value=128):
        rgb = np.full((h, w, 3), value, dtype=np.uint8)
        return numpy_rgb_to_qimage(rgb)
    return make


@pytest.fixture
def gray_jpeg(gray_image):
    def make(w=1000, h=1000, value=128):
        return encode_jpeg(gray_image(w, h, value))
    return make
