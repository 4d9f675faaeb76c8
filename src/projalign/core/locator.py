from __future__ import annotations

import logging

import numpy as np

from projalign.core.intrinsics import CameraIntrinsics
from projalign.core.pose import PhysicalCameraPose
from projalign.core.surfaces import SurfaceGeometry
from projalign.errors import DetectionError, GeometryError

logger = logging.getLogger(__name__)


def locate_scene_points(
    image_points: np.ndarray,
    *,
    surface: SurfaceGeometry,
    pose: PhysicalCameraPose,
    intrinsics: CameraIntrinsics,
    image_size: tuple[int, int],
    expected_count: int | None = None,
) -> np.ndarray:
    """
    Map detected pattern corners (N,2) in camera pixels to scene points (N,3).

    Order is preserved. The first point that cannot be mapped aborts the batch.
    """
    pts = np.asarray(image_points, dtype=np.float64).reshape(-1, 2)
    if expected_count is not None and pts.shape[0] != int(expected_count):
        raise DetectionError(f"expected {int(expected_count)} pattern corners, got {pts.shape[0]}")
    if pts.shape[0] == 0:
        raise DetectionError("no pattern corners to locate")

    w, h = int(image_size[0]), int(image_size[1])
    scene = np.empty((pts.shape[0], 3), dtype=np.float64)
    for i, p in enumerate(pts):
        try:
            scene[i] = surface.camera_to_scene(pose, intrinsics, p, w, h)
        except GeometryError as e:
            raise GeometryError(f"pattern corner {i} at ({p[0]:.2f}, {p[1]:.2f}): {e}") from e
        logger.debug("corner %d (%.2f, %.2f) -> scene %s", i, p[0], p[1], scene[i])
    return scene
