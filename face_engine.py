# face_engine.py
"""
Image decoding and normalization.

Every image entering the core (registration or probe) is decoded to an RGBA
array and cover-fitted onto a TARGET_SIZE x TARGET_SIZE canvas, so that any
two fingerprints can be compared pixel by pixel.
"""
import base64
import binascii
import logging
from pathlib import Path

import cv2
import numpy as np
from PIL import Image

from config import TARGET_SIZE, REF_IMAGE_MIME
from errors import DecodeError

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:"


def _to_uint8(arr: np.ndarray) -> np.ndarray:
    if arr.dtype == np.uint8:
        return arr
    if arr.dtype == np.uint16:
        return (arr >> 8).astype(np.uint8)
    raise DecodeError(f"unsupported pixel type {arr.dtype}")


def bgr_to_rgba(arr: np.ndarray) -> np.ndarray:
    """Convert an OpenCV-ordered array (gray, BGR or BGRA) to RGBA uint8."""
    if arr is None or arr.size == 0:
        raise DecodeError("empty image")
    arr = _to_uint8(arr)
    if arr.ndim == 3 and arr.shape[2] == 1:
        arr = arr[:, :, 0]
    if arr.ndim == 2:
        return cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
    if arr.ndim == 3 and arr.shape[2] == 3:
        return cv2.cvtColor(arr, cv2.COLOR_BGR2RGBA)
    if arr.ndim == 3 and arr.shape[2] == 4:
        return cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)
    raise DecodeError(f"unsupported image shape {arr.shape}")


def decode_bytes(data: bytes) -> np.ndarray:
    """Decode encoded file contents (PNG, JPEG, ...) to RGBA."""
    if not data:
        raise DecodeError("no image data")
    buf = np.frombuffer(bytes(data), dtype=np.uint8)
    try:
        arr = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        raise DecodeError(f"could not decode image: {e}") from e
    if arr is None:
        raise DecodeError("could not decode image data")
    return bgr_to_rgba(arr)


def decode_data_url(data_url: str) -> np.ndarray:
    """Decode a base64 data URI (e.g. 'data:image/jpeg;base64,...') to RGBA."""
    if not data_url.startswith(DATA_URL_PREFIX) or "," not in data_url:
        raise DecodeError("not a data URL")
    header, payload = data_url.split(",", 1)
    if ";base64" not in header:
        raise DecodeError("only base64 data URLs are supported")
    try:
        raw = base64.b64decode(payload)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"invalid base64 payload: {e}") from e
    return decode_bytes(raw)


def load_image(source) -> np.ndarray:
    """
    Decode any supported image source to an (H,W,4) RGBA uint8 array.

    Accepts a PIL image, an OpenCV ndarray (gray/BGR/BGRA, as read from a camera
    or cv2.imread), encoded bytes, a data URI string, or a file path.
    """
    if isinstance(source, Image.Image):
        try:
            return np.asarray(source.convert("RGBA"), dtype=np.uint8).copy()
        except (OSError, ValueError) as e:
            raise DecodeError(f"could not read PIL image: {e}") from e
    if isinstance(source, np.ndarray):
        return bgr_to_rgba(source)
    if isinstance(source, (bytes, bytearray, memoryview)):
        return decode_bytes(bytes(source))
    if isinstance(source, str) and source.startswith(DATA_URL_PREFIX):
        return decode_data_url(source)
    if isinstance(source, (str, Path)):
        try:
            data = Path(source).read_bytes()
        except OSError as e:
            raise DecodeError(f"could not read image file {source}: {e}") from e
        return decode_bytes(data)
    raise DecodeError(f"unsupported image source type {type(source).__name__}")


def normalize(image: np.ndarray, target_size: int = TARGET_SIZE) -> np.ndarray:
    """
    Cover-fit an RGBA image onto a target_size x target_size canvas.

    The scale is max(S/w, S/h) so the canvas is filled with no borders; the
    scaled image is centered, so the longer side is cropped evenly.
    """
    if target_size < 1:
        raise ValueError("target_size must be >= 1")
    if image is None or image.ndim != 3 or image.shape[2] != 4:
        raise DecodeError("normalize expects an RGBA image; use load_image first")
    h, w = image.shape[:2]
    if h < 1 or w < 1:
        raise DecodeError("image has no pixels")

    if (w, h) == (target_size, target_size):
        return np.ascontiguousarray(image, dtype=np.uint8).copy()

    ratio = max(target_size / w, target_size / h)
    if ratio < 1:
        # area averaging on shrink; the fitted side lands exactly on target_size
        sw = max(target_size, int(round(w * ratio)))
        sh = max(target_size, int(round(h * ratio)))
        scaled = cv2.resize(np.ascontiguousarray(image), (sw, sh), interpolation=cv2.INTER_AREA)
        x0 = (sw - target_size) // 2
        y0 = (sh - target_size) // 2
        return scaled[y0:y0 + target_size, x0:x0 + target_size].copy()

    dx = (target_size - w * ratio) / 2
    dy = (target_size - h * ratio) / 2
    # align scaled pixel edges (not centres) with dx, dy; edges clamp
    # since cover-fit never leaves the canvas uncovered
    M = np.float32([
        [ratio, 0, dx + 0.5 * ratio - 0.5],
        [0, ratio, dy + 0.5 * ratio - 0.5],
    ])
    out = cv2.warpAffine(
        np.ascontiguousarray(image), M, (target_size, target_size),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_REPLICATE,
    )
    return out


def encode_png(image: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA))
    if not ok:
        raise ValueError("PNG encoding failed")
    return buf.tobytes()


def to_data_url(image: np.ndarray) -> str:
    """Encode a normalized RGBA buffer as a compact, lossless PNG data URI."""
    b64 = base64.b64encode(encode_png(image)).decode("ascii")
    return f"data:{REF_IMAGE_MIME};base64,{b64}"


class FaceEngine:
    """Turns any image source into a fixed-size fingerprint."""

    def __init__(self, target_size: int = TARGET_SIZE):
        self.target_size = int(target_size)

    def fingerprint(self, source) -> np.ndarray:
        """Return the (S,S,4) RGBA fingerprint of source; raises DecodeError."""
        rgba = load_image(source)
        logger.debug("Normalizing %dx%d image to %d", rgba.shape[1], rgba.shape[0], self.target_size)
        return normalize(rgba, self.target_size)
