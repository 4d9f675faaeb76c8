from __future__ import annotations

import logging

import numpy as np

from projalign.core.framing import FramedCamera
from projalign.core.transforms import project

logger = logging.getLogger(__name__)

UNIT_VIEWPORT = (0.0, 0.0, 1.0, 1.0)


def project_scene_points(camera: FramedCamera, scene_points: np.ndarray, aspect_ratio: float) -> np.ndarray:
    """
    Normalized screen position (N,2) of each scene point as rendered by `camera`.

    Row i of the result is the render-buffer UV that must be warped onto pattern
    corner i. Points landing off screen are reported and kept as they are.
    """
    if not isinstance(camera, FramedCamera):
        raise TypeError(f"scene points can only be projected with a FramedCamera, got {type(camera).__name__}")

    pts = np.asarray(scene_points, dtype=np.float64).reshape(-1, 3)
    win = project(pts, camera.view_matrix(), camera.projection_matrix(aspect_ratio), UNIT_VIEWPORT)
    uv = win[:, :2].copy()

    off = np.flatnonzero(np.any((uv < 0.0) | (uv > 1.0), axis=1))
    for i in off.tolist():
        logger.warning("scene point %d projected off screen at uv=(%.4f, %.4f)", i, uv[i, 0], uv[i, 1])
    return uv
