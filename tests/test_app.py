import base64
import threading

import numpy as np
import pytest
from PIL import Image

from app import AttendanceApp
from attendance import ATTENDANCE_CHANGED
from errors import DecodeError
from models import VerificationStatus
from registry import REFERENCES_CHANGED
from storage import JsonFileBackend

from conftest import png_bytes, solid_bgr


def test_register_then_verify_same_image_matches(app, face_bgr):
    app.register("Aman", face_bgr)
    res = app.verify(face_bgr)
    assert res.status is VerificationStatus.MATCHED
    assert res.ok
    assert res.name == "Aman"
    assert res.distance == 0
    assert res.timestamp == 1_700_000_000_000
    assert [(e.name, e.timestamp) for e in app.history()] == [("Aman", 1_700_000_000_000)]


def test_register_and_verify_across_source_types(app, tmp_path, face_bgr):
    data = png_bytes(face_bgr)
    path = tmp_path / "aman.png"
    path.write_bytes(data)
    url = "data:image/png;base64," + base64.b64encode(data).decode("ascii")

    app.register_file("Aman", path)
    assert app.verify_data_url(url).name == "Aman"
    assert app.verify_file(path).distance == 0
    assert app.verify(data).ok
    assert len(app.history()) == 3


def test_verify_with_empty_store(app, face_bgr):
    res = app.verify(face_bgr)
    assert res.status is VerificationStatus.NO_REFERENCES
    assert not res.ok
    assert app.history() == []


def test_verify_just_above_threshold_is_rejected(backend, fixed_clock):
    app = AttendanceApp(backend=backend, threshold=55, clock=fixed_clock)
    app.register("A", solid_bgr(56))
    before = len(app.history())
    res = app.verify(solid_bgr(0))
    assert res.status is VerificationStatus.REJECTED
    assert res.candidate == "A"
    assert res.distance == pytest.approx(56.0)
    assert len(app.history()) == before


def test_verify_at_threshold_is_accepted(backend, fixed_clock):
    app = AttendanceApp(backend=backend, threshold=55, clock=fixed_clock)
    app.register("A", solid_bgr(55))
    res = app.verify(solid_bgr(0))
    assert res.status is VerificationStatus.MATCHED
    assert res.distance == pytest.approx(55.0)


def test_verify_picks_nearest_reference(app):
    app.register("dark", solid_bgr(10))
    app.register("light", solid_bgr(240))
    res = app.verify(solid_bgr(230))
    assert res.name == "light"
    assert res.distance == pytest.approx(10.0)


def test_verify_undecodable_probe(app):
    app.register("A", solid_bgr(0))
    res = app.verify(b"garbage")
    assert res.status is VerificationStatus.DECODE_ERROR
    assert res.error
    assert app.history() == []


def test_verify_with_corrupt_stored_reference(app, backend):
    backend.set(app.reg.key, '[{"name": "bad", "dataURL": "data:image/png;base64,AAAA"}]')
    res = app.verify(solid_bgr(0))
    assert res.status is VerificationStatus.DECODE_ERROR


def test_register_undecodable_image_raises(app):
    with pytest.raises(DecodeError):
        app.register("A", b"garbage")
    assert app.references() == []


def test_delete_unknown_name_keeps_store(app):
    app.register("A", solid_bgr(1))
    assert app.delete("never-registered") == 0
    assert len(app.references()) == 1


def test_delete_removes_every_duplicate(app):
    app.register("A", solid_bgr(1))
    app.register("B", solid_bgr(2))
    app.register("A", solid_bgr(3))
    assert app.delete("A") == 2
    assert [r.name for r in app.references()] == ["B"]


def test_delete_does_not_touch_history(app):
    app.register("A", solid_bgr(1))
    app.verify(solid_bgr(1))
    app.delete("A")
    assert [e.name for e in app.history()] == ["A"]
    assert app.verify(solid_bgr(1)).status is VerificationStatus.NO_REFERENCES


def test_repeated_verification_appends_each_time(app):
    app.register("A", solid_bgr(100))
    for _ in range(3):
        assert app.verify(solid_bgr(100)).ok
    assert [e.timestamp for e in app.history()] == [
        1_700_000_000_000, 1_700_000_001_000, 1_700_000_002_000]
    assert app.last_seen() == {"A": 1_700_000_002_000}


def test_pil_probe_matches_bgr_registration(app):
    app.register("A", solid_bgr(80))
    probe = Image.new("RGB", (300, 200), (80, 80, 80))
    assert app.verify(probe).ok


def test_subscribe_receives_both_streams(app):
    events = []
    unsubscribe = app.subscribe(lambda event, payload: events.append(event))
    app.register("A", solid_bgr(0))
    app.verify(solid_bgr(0))
    app.delete("A")
    unsubscribe()
    app.register("B", solid_bgr(0))
    assert events == [REFERENCES_CHANGED, ATTENDANCE_CHANGED, REFERENCES_CHANGED]


def test_state_survives_restart(tmp_path, face_bgr):
    first = AttendanceApp(backend=JsonFileBackend(tmp_path), clock=lambda: 42)
    first.register("Aman", face_bgr)
    first.verify(face_bgr)

    second = AttendanceApp(backend=JsonFileBackend(tmp_path))
    assert [r.name for r in second.references()] == ["Aman"]
    assert [(e.name, e.timestamp) for e in second.history()] == [("Aman", 42)]
    assert second.verify(face_bgr).distance == 0


def test_concurrent_verifications_keep_every_entry(backend):
    app = AttendanceApp(backend=backend)
    app.register("A", solid_bgr(50))
    threads = [threading.Thread(target=app.verify, args=(solid_bgr(50),)) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(app.history()) == 8


def test_custom_target_size(backend):
    app = AttendanceApp(backend=backend, target_size=32)
    ref = app.register("A", np.zeros((100, 50, 3), dtype=np.uint8))
    assert ref.image.shape == (32, 32, 4)
    assert app.verify(np.zeros((10, 10, 3), dtype=np.uint8)).ok


def test_non_utf8_store_files_read_as_empty(tmp_path, face_bgr):
    backend = JsonFileBackend(tmp_path)
    app = AttendanceApp(backend=backend)
    (tmp_path / f"{app.reg.key}.json").write_bytes(b"\xff\xfe[garbage")
    (tmp_path / f"{app.ledger.key}.json").write_bytes(b"\xff\xfe[garbage")
    assert app.references() == []
    assert app.history() == []
    assert app.verify(face_bgr).status is VerificationStatus.NO_REFERENCES
    app.register("Aman", face_bgr)
    assert app.verify(face_bgr).ok
    assert [e.name for e in app.history()] == ["Aman"]


def test_accepted_match_over_corrupt_history_row(app, backend):
    backend.set(app.ledger.key, '[{"name": "old", "time": NaN}]')
    app.register("A", solid_bgr(0))
    res = app.verify(solid_bgr(0))
    assert res.ok
    assert [e.name for e in app.history()] == ["A"]
