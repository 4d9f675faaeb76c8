from __future__ import annotations

import io
from pathlib import Path

import numpy as np
from PIL import Image

from projalign.errors import CaptureError


def decode_gray_u8(data: bytes) -> np.ndarray:
    """
    Decode an encoded photo (png/jpg/webp...) to grayscale uint8 (H,W).

    Detection runs on luminance only, so colour is dropped here.
    """
    try:
        with Image.open(io.BytesIO(data)) as im:
            return np.asarray(im.convert("L"), dtype=np.uint8)
    except (OSError, Image.DecompressionBombError) as e:
        raise CaptureError(f"could not decode photo ({len(data)} bytes): {e}") from e


def load_gray_u8(path: str | Path) -> np.ndarray:
    p = Path(path)
    try:
        data = p.read_bytes()
    except OSError as e:
        raise CaptureError(f"could not read photo {p}: {e}") from e
    return decode_gray_u8(data)


def encode_png(image: np.ndarray) -> bytes:
    arr = np.asarray(image, dtype=np.uint8)
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format="PNG")
    return buf.getvalue()
