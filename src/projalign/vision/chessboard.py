from __future__ import annotations

import logging

import numpy as np

from projalign.core.intrinsics import CameraIntrinsics
from projalign.errors import ConfigError, DetectionError

logger = logging.getLogger(__name__)

SUBPIX_WINDOW = (11, 11)
SUBPIX_ITERATIONS = 30
SUBPIX_EPS = 0.1


def chessboard_image(nx: int, ny: int, square_px: int = 50) -> np.ndarray:
    """
    Chessboard with `nx` x `ny` interior corners as uint8 (H,W,3), top-left square white.

    `nx` must be odd and `ny` even so the board has no 180 degree symmetry and
    the corner order found by the detector is unambiguous.
    """
    nx, ny, square_px = int(nx), int(ny), int(square_px)
    if nx < 1 or ny < 1 or square_px < 1:
        raise ConfigError("chessboard corner counts and square size must be >= 1")
    if nx % 2 == 0 or ny % 2 == 1:
        raise ConfigError(f"chessboard width must be odd, height even (got {nx}x{ny})")

    cols = np.arange(nx + 1)
    rows = np.arange(ny + 1)
    white = (rows[:, None] + cols[None, :]) % 2 == 0
    board = np.where(white, 255, 0).astype(np.uint8)
    board = np.repeat(np.repeat(board, square_px, axis=0), square_px, axis=1)
    return np.repeat(board[:, :, None], 3, axis=2)


def undistort(image: np.ndarray, intrinsics: CameraIntrinsics) -> np.ndarray:
    import cv2  # type: ignore

    K = np.asarray(intrinsics.camera_matrix, dtype=np.float64)
    dist = np.asarray(intrinsics.distortion_coefficients, dtype=np.float64)
    return cv2.undistort(image, K, dist, None, K)


def find_pattern_corners(gray: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Interior corners (width*height, 2) of the projected chessboard, row-major.

    The pattern is displayed inverted, so the photo is inverted back before
    detection.
    """
    import cv2  # type: ignore

    img = np.asarray(gray, dtype=np.uint8)
    if img.ndim == 3:
        img = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
    inverted = cv2.bitwise_not(img)

    board_size = (int(width), int(height))
    found, corners = cv2.findChessboardCorners(inverted, board_size, flags=cv2.CALIB_CB_ADAPTIVE_THRESH)
    if not found or corners is None:
        raise DetectionError(f"No chessboard corners detected for a {width}x{height} pattern")

    criteria = (cv2.TERM_CRITERIA_COUNT + cv2.TERM_CRITERIA_EPS, SUBPIX_ITERATIONS, SUBPIX_EPS)
    corners = cv2.cornerSubPix(inverted, np.asarray(corners, dtype=np.float32), SUBPIX_WINDOW, (-1, -1), criteria)

    pts = np.asarray(corners, dtype=np.float64).reshape(-1, 2)
    if pts.shape[0] != board_size[0] * board_size[1]:
        raise DetectionError(f"expected {board_size[0] * board_size[1]} chessboard corners, found {pts.shape[0]}")
    logger.info("found %d chessboard corners", pts.shape[0])
    return pts
