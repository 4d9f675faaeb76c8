from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np

from projalign.errors import InputFormatError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhysicalCameraPose:
    """
    Pose of the physical camera in scene space.

    `direction` is handed to look_at() as its target, so it need not be unit length.
    """

    position: tuple[float, float, float]
    direction: tuple[float, float, float]
    up: tuple[float, float, float]

    @classmethod
    def from_vectors(cls, position, direction, up) -> "PhysicalCameraPose":
        return cls(position=_as_tuple3(position), direction=_as_tuple3(direction), up=_as_tuple3(up))


DOME_CAMERA_POSE = PhysicalCameraPose(position=(0.0, 0.0, 0.0), direction=(0.0, 1.0, 0.0), up=(0.0, 0.0, 1.0))
WALL_CAMERA_POSE = PhysicalCameraPose(position=(0.0, 0.0, 2.0), direction=(0.0, 0.0, 0.0), up=(0.0, 0.0, 1.0))


def _as_tuple3(v) -> tuple[float, float, float]:
    arr = np.asarray(v, dtype=np.float64).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"expected a 3-vector, got {v!r}")
    return float(arr[0]), float(arr[1]), float(arr[2])


def _vector_field(data: dict[str, Any], key: str) -> tuple[float, float, float]:
    if key not in data:
        raise InputFormatError(f"camera location is missing {key!r}")
    value = data[key]
    if not isinstance(value, (list, tuple)) or len(value) != 3:
        raise InputFormatError(f"camera location {key!r} must be [x,y,z]")
    try:
        return _as_tuple3([float(c) for c in value])
    except (TypeError, ValueError) as e:
        raise InputFormatError(f"camera location {key!r} must hold numbers: {e}") from e


def parse_camera_location(data: Any) -> PhysicalCameraPose:
    if not isinstance(data, dict):
        raise InputFormatError("camera location must be a JSON object")
    pose = PhysicalCameraPose(
        position=_vector_field(data, "position"),
        direction=_vector_field(data, "direction"),
        up=_vector_field(data, "up"),
    )
    if "fov" in data:
        try:
            float(data["fov"])
        except (TypeError, ValueError) as e:
            raise InputFormatError(f"camera location 'fov' must be a number: {e}") from e
    return pose


def load_camera_location(path: str | Path) -> PhysicalCameraPose:
    """Read a camera-location document written by `projalign locate-camera`."""
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except OSError as e:
        raise InputFormatError(f"can't read camera location file {p}: {e}") from e
    except json.JSONDecodeError as e:
        raise InputFormatError(f"{p} is not valid JSON: {e}") from e
    pose = parse_camera_location(data)
    logger.info("physical camera location loaded from %s: position=%s direction=%s up=%s", p, pose.position, pose.direction, pose.up)
    return pose
