import logging

import cv2
import numpy as np
from PyQt6.QtCore import QByteArray, QBuffer, QIODevice, Qt
from PyQt6.QtGui import QImage, QImageReader, QPainter

logger = logging.getLogger(__name__)

JPEG_QUALITY = 95  # every JPEG this app writes uses the same setting


class DecodeError(Exception):
    """The bytes could not be decoded into an image."""


class EncodeError(Exception):
    """A raster could not be produced or encoded."""


def numpy_rgb_to_qimage(rgb: np.ndarray) -> QImage:
    rgb = np.ascontiguousarray(rgb, dtype=np.uint8)
    h, w, _ = rgb.shape
    # QImage must not point at transient memory -> copy()
    qimg = QImage(
        rgb.data, w, h, 3 * w,
        QImage.Format.Format_RGB888
    ).copy()
    return qimg


def qimage_to_rgb(qimg: QImage) -> np.ndarray:
    """Returns an owned HxWx3 uint8 array. Alpha is dropped, not blended."""
    src = qimg.convertToFormat(QImage.Format.Format_RGB888)
    w, h = src.width(), src.height()
    bytes_per_line = src.bytesPerLine()

    ptr = src.constBits()
    ptr.setsize(bytes_per_line * h)
    arr = np.frombuffer(ptr, dtype=np.uint8).reshape((h, bytes_per_line))

    # Payload without the row padding: w*3
    return arr[:, :w * 3].reshape((h, w, 3)).copy()


def flatten_on_white(pixels: np.ndarray) -> np.ndarray:
    """
    Brings any decoded cv2 buffer to 8-bit RGB.
    Gray is expanded, 16 bit is reduced, transparency is composited on white
    (a JPEG cannot hold alpha and transparent product shots have a white page).
    """
    arr = pixels
    if arr.dtype == np.uint16:
        arr = (arr >> 8).astype(np.uint8)
    elif arr.dtype != np.uint8:
        arr = np.clip(arr, 0, 255).astype(np.uint8)

    if arr.ndim == 2:
        return cv2.cvtColor(arr, cv2.COLOR_GRAY2RGB)
    if arr.shape[2] == 4:
        bgr = arr[..., :3].astype(np.float32)
        alpha = arr[..., 3:4].astype(np.float32) / 255.0
        bgr = bgr * alpha + 255.0 * (1.0 - alpha)
        return cv2.cvtColor(np.clip(bgr + 0.5, 0, 255).astype(np.uint8), cv2.COLOR_BGR2RGB)
    return cv2.cvtColor(arr, cv2.COLOR_BGR2RGB)


def load_source(data: bytes) -> QImage:
    """
    Decodes raw image bytes into an RGB888 QImage.
    OpenCV is tried first, Qt's reader is the fallback for the formats
    OpenCV does not ship a codec for (e.g. GIF).
    """
    if not data:
        raise DecodeError("empty image data")

    buf = np.frombuffer(data, dtype=np.uint8)
    try:
        pixels = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        logger.debug("[LOAD] cv2.imdecode failed: %r", e)
        pixels = None

    if pixels is not None and pixels.size:
        return numpy_rgb_to_qimage(flatten_on_white(pixels))

    ba = QByteArray(data)
    qbuf = QBuffer(ba)
    qbuf.open(QIODevice.OpenModeFlag.ReadOnly)
    reader = QImageReader(qbuf)
    reader.setAutoTransform(True)
    img = reader.read()
    qbuf.close()
    if img.isNull():
        raise DecodeError(f"not a valid image ({len(data)} bytes): {reader.errorString()}")

    # Alpha -> white, same as the OpenCV path
    if img.hasAlphaChannel():
        flat = QImage(img.size(), QImage.Format.Format_RGB888)
        flat.fill(Qt.GlobalColor.white)
        p = QPainter(flat)
        try:
            p.drawImage(0, 0, img)
        finally:
            p.end()
        img = flat
    return img.convertToFormat(QImage.Format.Format_RGB888)


def encode_jpeg(qimg: QImage, quality: int = JPEG_QUALITY) -> bytes:
    if qimg is None or qimg.isNull():
        raise EncodeError("cannot encode an empty raster")
    rgb = qimage_to_rgb(qimg)
    bgr = cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)
    try:
        ok, out = cv2.imencode(".jpg", bgr, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
    except cv2.error as e:
        raise EncodeError(f"JPEG encoding failed: {e}") from e
    if not ok:
        raise EncodeError("JPEG encoding failed")
    return out.tobytes()


def convert_to_jpeg(data: bytes, quality: int = JPEG_QUALITY) -> tuple[bytes, int, int]:
    """Normalizes any supported input to JPEG. Returns (jpeg_bytes, width, height)."""
    img = load_source(data)
    return encode_jpeg(img, quality), img.width(), img.height()

