from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from projalign.core.transforms import rotation_from_rvec, vec3
from projalign.errors import DetectionError

logger = logging.getLogger(__name__)

# Detector camera space (x right, y down, looking down +z) -> scene camera space
# (x right, y up, looking down -z).
_CV_TO_GL = np.array([1.0, -1.0, -1.0], dtype=np.float64)

# The marker detector reports the pose rotated 180 degrees about X compared with
# the chessboard pose convention. Kept as a literal matrix.
MARKER_POSE_FIXUP = np.diag([1.0, -1.0, -1.0, 1.0])


@dataclass(frozen=True)
class MarkerCameraPose:
    """Physical camera pose in the marker frame (marker at the origin facing +Z)."""

    position: tuple[float, float, float]
    direction: tuple[float, float, float]
    up: tuple[float, float, float]


def marker_modelview(rvec, tvec) -> np.ndarray:
    """
    4x4 model-view of the marker from a detector pose (axis-angle `rvec`, `tvec`),
    converted to scene axes and with the 180 degree fixup applied last.
    """
    r = vec3(rvec) * _CV_TO_GL
    t = vec3(tvec) * _CV_TO_GL

    m = np.eye(4, dtype=np.float64)
    m[:3, :3] = rotation_from_rvec(r)
    m[:3, 3] = t
    return m @ MARKER_POSE_FIXUP


def camera_pose_from_marker(rvec, tvec) -> MarkerCameraPose:
    """
    Invert the marker model-view to place the camera in the marker's frame.

    The rotation block is orthonormal, so its inverse is its transpose.
    """
    m = marker_modelview(rvec, tvec)
    inv_rotation = m[:3, :3].T
    translation = m[:3, 3]

    position = inv_rotation @ (-translation)
    direction = inv_rotation @ np.array([0.0, 0.0, -1.0])
    up = inv_rotation @ np.array([0.0, 1.0, 0.0])
    return MarkerCameraPose(
        position=tuple(float(c) for c in position),
        direction=tuple(float(c) for c in direction),
        up=tuple(float(c) for c in up),
    )


def locate_single_marker(rvecs, tvecs) -> MarkerCameraPose:
    """
    Camera pose from a detection that must contain exactly one marker.

    No averaging or selection is attempted when several markers are visible.
    """
    rvecs = np.asarray(rvecs, dtype=np.float64).reshape(-1, 3)
    tvecs = np.asarray(tvecs, dtype=np.float64).reshape(-1, 3)
    if rvecs.shape[0] != tvecs.shape[0]:
        raise ValueError("rvecs and tvecs must have the same length")
    if rvecs.shape[0] == 0:
        raise DetectionError("No markers detected. Stopping.")
    if rvecs.shape[0] > 1:
        raise DetectionError(f"Multiple markers detected ({rvecs.shape[0]}). Stopping.")

    pose = camera_pose_from_marker(rvecs[0], tvecs[0])
    logger.info("camera located at %s looking along %s (up %s)", pose.position, pose.direction, pose.up)
    return pose
