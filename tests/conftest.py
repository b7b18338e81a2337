import cv2
import numpy as np
import pytest

from app import AttendanceApp
from storage import MemoryBackend


def solid_bgr(value, size=(160, 160)):
    h, w = size
    return np.full((h, w, 3), value, dtype=np.uint8)


def png_bytes(bgr):
    ok, buf = cv2.imencode(".png", bgr)
    assert ok
    return buf.tobytes()


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def fixed_clock():
    ticks = iter(range(1_700_000_000_000, 1_700_000_000_000 + 10_000, 1000))
    return lambda: next(ticks)


@pytest.fixture
def app(backend, fixed_clock):
    return AttendanceApp(backend=backend, clock=fixed_clock)


@pytest.fixture
def face_bgr():
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, size=(240, 180, 3), dtype=np.uint8)
