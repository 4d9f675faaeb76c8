from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from projalign.core.transforms import look_at, perspective, vec3
from projalign.errors import GeometryError

logger = logging.getLogger(__name__)

# Half-angle inflation: every point stays strictly inside the frustum.
FOV_MARGIN = 1.05
WARP_NEAR = 0.1
WARP_FAR = 100.0
# A perspective frustum cannot open to a half-space or wider.
MAX_FOV = 180.0

_DEPTH_EPS = 1e-12


@dataclass(frozen=True)
class UnframedCamera:
    """
    Virtual (rendering) camera before framing: only eye and up are known.

    `frame()` is the only way to obtain a `FramedCamera`, which is the only type
    that can project.
    """

    eye: tuple[float, float, float]
    up: tuple[float, float, float] = (0.0, 1.0, 0.0)

    def frame(self, scene_points: np.ndarray) -> "FramedCamera":
        return frame_virtual_camera(self, scene_points)


@dataclass(frozen=True)
class FramedCamera:
    eye: tuple[float, float, float]
    look_at: tuple[float, float, float]
    up: tuple[float, float, float]
    fov: float  # vertical, degrees

    def view_matrix(self) -> np.ndarray:
        return look_at(self.eye, self.look_at, self.up)

    def projection_matrix(self, aspect_ratio: float) -> np.ndarray:
        return perspective(math.radians(self.fov), float(aspect_ratio), WARP_NEAR, WARP_FAR)


def _tuple3(v) -> tuple[float, float, float]:
    v = vec3(v)
    return float(v[0]), float(v[1]), float(v[2])


def frame_virtual_camera(camera: UnframedCamera, scene_points: np.ndarray) -> FramedCamera:
    """
    Aim the camera at the centroid of `scene_points` and pick the smallest vertical
    FOV that contains them all, plus a 5% margin on each side.

    The centroid is a plain mean, not a geometric median. Point sets that need
    a FOV of 180 degrees or more raise GeometryError.
    """
    pts = np.asarray(scene_points, dtype=np.float64).reshape(-1, 3)
    if pts.shape[0] == 0:
        raise GeometryError("cannot frame the virtual camera on an empty point set")

    target = pts.mean(axis=0)
    view = look_at(camera.eye, target, camera.up)

    hom = np.concatenate([pts, np.ones((pts.shape[0], 1))], axis=1)
    eye_space = (view @ hom.T).T[:, :3]
    abs_y = np.abs(eye_space[:, 1])
    abs_z = np.abs(eye_space[:, 2])

    flat = np.flatnonzero(abs_z < _DEPTH_EPS)
    if flat.size:
        i = int(flat[0])
        raise GeometryError(
            f"scene point {i} {pts[i].tolist()} has zero depth in eye space, the vertical FOV is unbounded"
        )

    max_rad = float(np.max(np.arctan(abs_y / abs_z)))
    fov = math.degrees(max_rad) * 2.0 * FOV_MARGIN
    if fov >= MAX_FOV:
        raise GeometryError(
            f"pattern too wide to frame: vertical FOV {fov:.2f} deg >= {MAX_FOV:.0f} deg (look at {target.tolist()})"
        )

    framed = FramedCamera(eye=_tuple3(camera.eye), look_at=_tuple3(target), up=_tuple3(camera.up), fov=fov)
    logger.info("eyePoint = %s lookAt = %s fovY = %.4f", framed.eye, framed.look_at, framed.fov)
    return framed
