from __future__ import annotations

import logging
import math
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from projalign.errors import InputFormatError

logger = logging.getLogger(__name__)


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise InputFormatError(msg)


@dataclass(frozen=True)
class CameraIntrinsics:
    """
    Intrinsic calibration of the physical camera.

    `fov` is the vertical field of view in degrees, derived once from the
    camera matrix: fov = 2 * atan(height / (2 * fy)).
    """

    camera_matrix: np.ndarray  # (3,3)
    distortion_coefficients: np.ndarray  # (N,)
    image_width: int
    image_height: int
    fov: float
    fov_horizontal: float

    @classmethod
    def from_matrix(
        cls,
        camera_matrix: np.ndarray,
        distortion_coefficients: np.ndarray,
        *,
        image_width: int,
        image_height: int,
    ) -> "CameraIntrinsics":
        K = np.asarray(camera_matrix, dtype=np.float64).reshape(3, 3)
        dist = np.asarray(distortion_coefficients, dtype=np.float64).reshape(-1)
        _require(int(image_width) > 0 and int(image_height) > 0, "image_width and image_height must be > 0")
        fx, fy = float(K[0, 0]), float(K[1, 1])
        _require(fx > 0.0 and fy > 0.0, "camera_matrix focal lengths must be > 0")
        K.setflags(write=False)
        dist.setflags(write=False)
        return cls(
            camera_matrix=K,
            distortion_coefficients=dist,
            image_width=int(image_width),
            image_height=int(image_height),
            fov=math.degrees(2.0 * math.atan2(int(image_height), 2.0 * fy)),
            fov_horizontal=math.degrees(2.0 * math.atan2(int(image_width), 2.0 * fx)),
        )


def _child_text(root: ET.Element, path: str) -> str:
    node = root.find(path)
    _require(node is not None, f"can't find {path} element")
    text = (node.text or "").strip()
    _require(bool(text), f"{path} element is empty")
    return text


def _floats(root: ET.Element, path: str) -> list[float]:
    text = _child_text(root, path)
    try:
        return [float(w) for w in text.split()]
    except ValueError as e:
        raise InputFormatError(f"{path} must contain whitespace-separated numbers: {e}") from e


def _int(root: ET.Element, path: str) -> int:
    text = _child_text(root, path)
    try:
        return int(text)
    except ValueError as e:
        raise InputFormatError(f"{path} must be an integer, got {text!r}") from e


def parse_calibration_xml(text: str) -> CameraIntrinsics:
    """
    Parse an OpenCV-style calibration document:

      camera_matrix/data            9 floats, row-major 3x3
      distortion_coefficients/data  N floats
      image_width, image_height     integers
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise InputFormatError(f"calibration XML is not well formed: {e}") from e

    matrix = _floats(root, "camera_matrix/data")
    _require(len(matrix) == 9, f"camera_matrix/data must hold 9 values, got {len(matrix)}")
    dist = _floats(root, "distortion_coefficients/data")

    return CameraIntrinsics.from_matrix(
        np.asarray(matrix, dtype=np.float64).reshape(3, 3),
        np.asarray(dist, dtype=np.float64),
        image_width=_int(root, "image_width"),
        image_height=_int(root, "image_height"),
    )


def load_calibration_xml(path: str | Path) -> CameraIntrinsics:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise InputFormatError(f"can't read calibration file {p}: {e}") from e
    intrinsics = parse_calibration_xml(text)
    logger.info("camera matrix and distortion coefficients loaded from %s", p)
    logger.info("physical camera field of view calculated as %.4f degrees", intrinsics.fov)
    return intrinsics
