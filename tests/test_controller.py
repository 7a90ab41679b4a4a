import cv2
import numpy as np
import pytest

from Controller.MeasureController import MeasureController
from Controller.enums import DragMode, SessionStatus
from Model.annotations import MeasurementKind
from Model.coords import Point
from Model.image_ops import DecodeError, load_source, qimage_to_rgb


def _drain(ctrl, qapp):
    ctrl.pool.waitForDone()
    for _ in range(3):
        qapp.processEvents()


@pytest.fixture
def ctrl(qapp, gray_jpeg):
    c = MeasureController()
    c.load(gray_jpeg(400, 300), name="sofa")
    yield c
    _drain(c, qapp)
    c.close()


@pytest.fixture
def events(ctrl):
    rec = {"saved": [], "failed": [], "status": []}
    ctrl.saved.connect(rec["saved"].append)
    ctrl.failed.connect(rec["failed"].append)
    ctrl.statusChanged.connect(rec["status"].append)
    return rec


def test_load_starts_ready_with_defaults(ctrl):
    assert ctrl.status is SessionStatus.READY
    assert ctrl.drag_mode is DragMode.IDLE
    assert not ctrl.annotations.any_active()
    assert ctrl.annotations[MeasurementKind.WIDTH].start == Point(20, 90)
    assert (ctrl.state.source.width(), ctrl.state.source.height()) == (400, 300)


def test_bad_bytes_end_closed(qapp):
    c = MeasureController()
    failed = []
    c.failed.connect(failed.append)
    with pytest.raises(DecodeError):
        c.load(b"nope")
    assert c.status is SessionStatus.CLOSED
    assert c.annotations is None
    assert failed


def test_reload_resets_annotations(ctrl, gray_jpeg):
    ctrl.toggle(MeasurementKind.WIDTH)
    ctrl.set_value(MeasurementKind.WIDTH, "120 cm")
    ctrl.load(gray_jpeg(10, 10))
    w = ctrl.annotations[MeasurementKind.WIDTH]
    assert not w.active and w.value == ""
    assert ctrl.state.released["source"] == 1


def test_drag_through_controller(ctrl):
    ctrl.toggle("width")
    assert ctrl.on_press("width", "start", 20, 90)
    assert ctrl.drag_mode is DragMode.DRAG_ENDPOINT
    ctrl.on_move(20.3, 91.2)
    ctrl.on_release()
    assert ctrl.drag_mode is DragMode.IDLE
    assert ctrl.annotations[MeasurementKind.WIDTH].start == Point(20.3, 90)


def test_edits_are_ignored_outside_ready(ctrl):
    ctrl.toggle(MeasurementKind.WIDTH)
    assert ctrl.save()
    assert ctrl.status is SessionStatus.SAVING

    ctrl.toggle(MeasurementKind.HEIGHT)
    ctrl.set_value(MeasurementKind.WIDTH, "99")
    assert not ctrl.on_press("width", "end", 80, 90)
    assert not ctrl.annotations[MeasurementKind.HEIGHT].active
    assert ctrl.annotations[MeasurementKind.WIDTH].value == ""


def test_save_requires_ready(qapp):
    c = MeasureController()
    assert c.save() is False


def test_save_produces_jpeg_and_returns_to_ready(ctrl, events, qapp):
    ctrl.toggle(MeasurementKind.WIDTH)
    ctrl.set_value(MeasurementKind.WIDTH, "120 cm")
    assert ctrl.save()
    assert ctrl.save() is False  # one save at a time
    _drain(ctrl, qapp)

    assert ctrl.status is SessionStatus.READY
    assert len(events["saved"]) == 1
    data = events["saved"][0]
    assert data[:2] == b"\xff\xd8"
    img = load_source(data)
    assert (img.width(), img.height()) == (400, 300)
    assert ctrl.state.result == data
    assert ctrl.state.preview is not None
    assert events["status"][:2] == [SessionStatus.SAVING, SessionStatus.READY]


def test_second_save_releases_previous_preview(ctrl, events, qapp):
    ctrl.save()
    _drain(ctrl, qapp)
    assert ctrl.state.released["preview"] == 0
    ctrl.save()
    _drain(ctrl, qapp)
    assert ctrl.state.released["preview"] == 1
    assert len(events["saved"]) == 2


def test_save_and_close(ctrl, events, qapp):
    ctrl.save(close_after=True)
    _drain(ctrl, qapp)
    assert len(events["saved"]) == 1
    assert ctrl.status is SessionStatus.CLOSED
    assert ctrl.state.source is None and ctrl.state.preview is None
    assert ctrl.state.released == {"source": 1, "preview": 1}


def test_close_during_save_drops_the_result(ctrl, events, qapp):
    ctrl.save()
    ctrl.close()
    _drain(ctrl, qapp)
    assert events["saved"] == []
    assert ctrl.status is SessionStatus.CLOSED


def test_stale_version_is_ignored(ctrl, events):
    ctrl.save()
    old = ctrl.state.version - 1
    ctrl._on_render_finished(old, b"\xff\xd8stale")
    ctrl._on_render_failed(old, "stale")
    assert ctrl.status is SessionStatus.SAVING
    assert events["saved"] == [] and events["failed"] == []


def test_render_failure_keeps_session_editable(ctrl, events):
    ctrl.save()
    ctrl._on_render_failed(ctrl.state.version, "disk on fire")
    assert ctrl.status is SessionStatus.READY
    assert events["failed"] == ["disk on fire"]
    ctrl.toggle(MeasurementKind.DEPTH)
    assert ctrl.annotations[MeasurementKind.DEPTH].active


def test_close_is_idempotent(ctrl, events):
    ctrl.on_press("height", "line", 10, 50)
    ctrl.close()
    ctrl.close()
    assert ctrl.status is SessionStatus.CLOSED
    assert ctrl.drag_mode is DragMode.IDLE
    assert ctrl.state.released["source"] == 1
    assert events["status"].count(SessionStatus.CLOSED) == 1


def test_release_after_close_is_harmless(ctrl):
    ctrl.on_press("height", "line", 10, 50)
    ctrl.close()
    ctrl.on_release()
    ctrl.on_move(5, 5)
    assert ctrl.drag_mode is DragMode.IDLE


def test_load_path_reports_missing_file(qapp, tmp_path):
    c = MeasureController()
    failed = []
    c.failed.connect(failed.append)
    c.load_path(str(tmp_path / "missing.jpg"))
    assert c.status is SessionStatus.CLOSED
    assert len(failed) == 1


def test_load_path_reads_file(qapp, tmp_path, gray_jpeg):
    p = tmp_path / "chair.jpg"
    p.write_bytes(gray_jpeg(30, 20))
    c = MeasureController()
    c.load_path(str(p))
    assert c.status is SessionStatus.READY
    assert c.state.name == "chair"
    c.close()


def test_load_path_normalizes_png_to_jpeg_on_white(qapp, tmp_path):
    bgra = np.zeros((20, 40, 4), dtype=np.uint8)  # fully transparent
    ok, buf = cv2.imencode(".png", bgra)
    assert ok
    p = tmp_path / "lamp.png"
    p.write_bytes(buf.tobytes())

    c = MeasureController()
    c.load_path(str(p))
    assert c.status is SessionStatus.READY
    assert c.state.name == "lamp"
    assert (c.state.source.width(), c.state.source.height()) == (40, 20)
    assert qimage_to_rgb(c.state.source).min() >= 250
    c.close()


def test_unreadable_png_closes_the_open_session(ctrl, events, tmp_path):
    p = tmp_path / "broken.png"
    p.write_bytes(b"\x89PNG not really")
    ctrl.load_path(str(p))
    assert ctrl.status is SessionStatus.CLOSED
    assert ctrl.state.released["source"] == 1
    assert len(events["failed"]) == 1
