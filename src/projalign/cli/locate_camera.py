from __future__ import annotations

import logging
from pathlib import Path

from projalign.api.calibration import compute_camera_location
from projalign.api.documents import LocationOutput
from projalign.core.intrinsics import CameraIntrinsics
from projalign.devices.photo import PhotoSource
from projalign.vision.aruco import DEFAULT_DICTIONARY, detect_markers

logger = logging.getLogger(__name__)


def run_locate_camera(
    *,
    intrinsics: CameraIntrinsics,
    photo_source: PhotoSource,
    marker_size: float,
    dictionary: str = DEFAULT_DICTIONARY,
    out_json: Path | None = None,
) -> LocationOutput:
    """
    Locate the physical camera relative to a single ArUco marker placed at the
    scene origin, facing +Z.
    """
    if not float(marker_size) > 0.0:
        raise ValueError(f"marker size must be > 0 (got {marker_size})")

    photo = photo_source.capture()
    detections = detect_markers(photo, intrinsics, marker_size, dictionary=dictionary)
    location = compute_camera_location(detections.rvecs, detections.tvecs, intrinsics)

    if out_json is not None:
        location.save(out_json)
        logger.info("camera location written to %s", out_json)
    else:
        print(location.to_json())
    return location
