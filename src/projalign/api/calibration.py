from __future__ import annotations

import numpy as np

from projalign.api.documents import CalibrationOutput, LocationOutput, build_calibration_output
from projalign.config import VIRTUAL_CAMERA_UP, Resolution
from projalign.core.framing import UnframedCamera
from projalign.core.intrinsics import CameraIntrinsics
from projalign.core.locator import locate_scene_points
from projalign.core.marker import locate_single_marker
from projalign.core.pose import PhysicalCameraPose
from projalign.core.surfaces import SurfaceGeometry
from projalign.core.warp import project_scene_points


def compute_calibration(
    image_points: np.ndarray,
    *,
    surface: SurfaceGeometry,
    pose: PhysicalCameraPose,
    intrinsics: CameraIntrinsics,
    image_size: tuple[int, int],
    pattern: Resolution,
    projector: Resolution,
    eye: tuple[float, float, float] = (0.0, 0.0, 0.0),
    up: tuple[float, float, float] = VIRTUAL_CAMERA_UP,
) -> CalibrationOutput:
    """
    Detected pattern corners (row-major, pattern.width*pattern.height of them)
    -> framed virtual camera + warp table.
    """
    scene = locate_scene_points(
        image_points,
        surface=surface,
        pose=pose,
        intrinsics=intrinsics,
        image_size=image_size,
        expected_count=pattern.count,
    )
    camera = UnframedCamera(eye=eye, up=up).frame(scene)
    uv = project_scene_points(camera, scene, projector.aspect_ratio)
    return build_calibration_output(camera, uv, pattern.width, pattern.height)


def compute_camera_location(rvecs: np.ndarray, tvecs: np.ndarray, intrinsics: CameraIntrinsics) -> LocationOutput:
    """Camera location from the marker poses found in one photo (exactly one marker)."""
    return LocationOutput.from_marker_pose(locate_single_marker(rvecs, tvecs), intrinsics.fov)
