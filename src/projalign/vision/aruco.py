from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from projalign.core.intrinsics import CameraIntrinsics
from projalign.errors import DetectionError

logger = logging.getLogger(__name__)

DEFAULT_DICTIONARY = "DICT_6X6_250"


@dataclass(frozen=True)
class MarkerDetections:
    """
    Markers found in one photo.

    Poses are in OpenCV camera space (x right, y down, looking down +z).
    """

    ids: np.ndarray  # (M,)
    corners: list[np.ndarray]  # list of (4,2)
    rvecs: np.ndarray  # (M,3)
    tvecs: np.ndarray  # (M,3)

    def __len__(self) -> int:
        return int(self.ids.shape[0])


def marker_object_points(marker_size: float) -> np.ndarray:
    """Marker corners in the marker frame, in the order ArUco reports image corners."""
    h = 0.5 * float(marker_size)
    return np.array([[-h, h, 0.0], [h, h, 0.0], [h, -h, 0.0], [-h, -h, 0.0]], dtype=np.float64)


def _build_detector(dictionary: str):
    import cv2  # type: ignore
    import cv2.aruco as aruco  # type: ignore

    dict_id = getattr(aruco, dictionary, None)
    if dict_id is None:
        raise ValueError(f"Unknown aruco dictionary: {dictionary}")
    aruco_dict = aruco.getPredefinedDictionary(dict_id)
    params = aruco.DetectorParameters()
    if hasattr(aruco, "CORNER_REFINE_SUBPIX"):
        params.cornerRefinementMethod = aruco.CORNER_REFINE_SUBPIX

    if hasattr(aruco, "ArucoDetector"):
        detector = aruco.ArucoDetector(aruco_dict, params)
        return cv2, detector.detectMarkers
    return cv2, lambda img: aruco.detectMarkers(img, aruco_dict, parameters=params)  # pragma: no cover


def detect_markers(
    gray: np.ndarray,
    intrinsics: CameraIntrinsics,
    marker_size: float,
    dictionary: str = DEFAULT_DICTIONARY,
) -> MarkerDetections:
    """
    Detect ArUco markers and estimate each one's pose.

    Works on the raw (distorted) photo; lens distortion is handled by the pose solver.
    Raises DetectionError when the pose of any detected marker cannot be solved.
    """
    cv2, detect = _build_detector(dictionary)
    corners, ids, _rejected = detect(np.asarray(gray, dtype=np.uint8))

    if ids is None or len(ids) == 0:
        logger.info("no markers found")
        return MarkerDetections(
            ids=np.zeros((0,), dtype=np.int32),
            corners=[],
            rvecs=np.zeros((0, 3), dtype=np.float64),
            tvecs=np.zeros((0, 3), dtype=np.float64),
        )

    K = np.asarray(intrinsics.camera_matrix, dtype=np.float64)
    dist = np.asarray(intrinsics.distortion_coefficients, dtype=np.float64)
    obj = marker_object_points(marker_size)

    ids_out: list[int] = []
    corners_out: list[np.ndarray] = []
    rvecs: list[np.ndarray] = []
    tvecs: list[np.ndarray] = []
    for marker_id, c in zip(np.asarray(ids).reshape(-1).tolist(), corners):
        img_pts = np.asarray(c, dtype=np.float64).reshape(4, 2)
        ok, rvec, tvec = cv2.solvePnP(obj, img_pts, K, dist, flags=cv2.SOLVEPNP_IPPE_SQUARE)
        if not ok:
            raise DetectionError(f"Pose of marker {int(marker_id)} could not be estimated. Stopping.")
        ids_out.append(int(marker_id))
        corners_out.append(img_pts)
        rvecs.append(np.asarray(rvec, dtype=np.float64).reshape(3))
        tvecs.append(np.asarray(tvec, dtype=np.float64).reshape(3))

    ids_arr = np.asarray(ids_out, dtype=np.int32)
    logger.info("found %d marker(s): ids %s", len(corners_out), ids_arr.tolist())
    return MarkerDetections(
        ids=ids_arr,
        corners=corners_out,
        rvecs=np.asarray(rvecs, dtype=np.float64).reshape(-1, 3),
        tvecs=np.asarray(tvecs, dtype=np.float64).reshape(-1, 3),
    )
