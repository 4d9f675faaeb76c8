from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from projalign.api.calibration import compute_calibration
from projalign.api.documents import CalibrationOutput
from projalign.config import VIRTUAL_CAMERA_UP, Resolution
from projalign.core.intrinsics import CameraIntrinsics
from projalign.core.pose import DOME_CAMERA_POSE, WALL_CAMERA_POSE, PhysicalCameraPose, load_camera_location
from projalign.core.surfaces import Dome, SurfaceGeometry
from projalign.devices.control import ProjectorControl, post_json
from projalign.devices.photo import PhotoSource
from projalign.vision.chessboard import chessboard_image, find_pattern_corners, undistort
from projalign.vision.image_io import encode_png

logger = logging.getLogger(__name__)


def resolve_camera_pose(surface: SurfaceGeometry, camera_location_json: Path | None) -> PhysicalCameraPose:
    """Dome runs always use a camera at the dome centre; wall runs may load a located pose."""
    if isinstance(surface, Dome):
        if camera_location_json is not None:
            logger.warning("ignoring %s: the camera is assumed to be at the centre of the dome", camera_location_json)
        return DOME_CAMERA_POSE
    if camera_location_json is None:
        return WALL_CAMERA_POSE
    return load_camera_location(camera_location_json)


def _wait_for_operator(prompt: Callable[[str], str]) -> None:
    logger.info("Please display the full-screen chessboard pattern on the projector and press enter")
    prompt("")
    logger.info("Continuing...")


def run_generate_warp(
    *,
    surface: SurfaceGeometry,
    intrinsics: CameraIntrinsics,
    photo_source: PhotoSource,
    pose: PhysicalCameraPose,
    pattern: Resolution,
    projector: Resolution,
    eye: tuple[float, float, float] = (0.0, 0.0, 0.0),
    control: ProjectorControl | None = None,
    out_json: Path | None = None,
    post_to_url: str | None = None,
    prompt: Callable[[str], str] | None = input,
) -> CalibrationOutput:
    """
    Show the chessboard, photograph it and turn the detected corners into a
    calibration for one projector.

    Without a control client the operator is asked to put the pattern up, unless
    `prompt` is None (pattern already displayed).

    The calibration goes to the projector (`set_calibration`) when a control
    client is given, to `out_json` and `post_to_url` when set, and to stdout
    otherwise.
    """
    logger.info("building warp for %s...", type(surface).__name__.lower())
    board = chessboard_image(pattern.width, pattern.height)
    if control is not None:
        control.show_image(encode_png(board), "png")
    elif prompt is not None:
        _wait_for_operator(prompt)

    photo = photo_source.capture()
    rectified = undistort(photo, intrinsics)
    corners = find_pattern_corners(rectified, pattern.width, pattern.height)

    calibration = compute_calibration(
        corners,
        surface=surface,
        pose=pose,
        intrinsics=intrinsics,
        image_size=(int(photo.shape[1]), int(photo.shape[0])),
        pattern=pattern,
        projector=projector,
        eye=eye,
        up=VIRTUAL_CAMERA_UP,
    )

    if control is not None:
        control.send_command("set_calibration", calibration.to_dict())
    if out_json is not None:
        calibration.save(out_json)
        logger.info("calibration written to %s", out_json)
    if post_to_url is not None:
        post_json(post_to_url, calibration.to_dict())
    if control is None and out_json is None and post_to_url is None:
        print(calibration.to_json())
    return calibration
