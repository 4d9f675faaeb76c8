from __future__ import annotations

import numpy as np
import pytest

from projalign.core.intrinsics import CameraIntrinsics

CALIBRATION_XML = """<?xml version="1.0"?>
<opencv_storage>
<image_width>640</image_width>
<image_height>480</image_height>
<camera_matrix type_id="opencv-matrix">
  <rows>3</rows>
  <cols>3</cols>
  <dt>d</dt>
  <data>
    1000. 0. 320.
    0. 1000. 240.
    0. 0. 1.</data></camera_matrix>
<distortion_coefficients type_id="opencv-matrix">
  <rows>5</rows>
  <cols>1</cols>
  <dt>d</dt>
  <data>
    0. 0. 0. 0. 0.</data></distortion_coefficients>
</opencv_storage>
"""


@pytest.fixture
def calibration_xml() -> str:
    return CALIBRATION_XML


@pytest.fixture
def intrinsics() -> CameraIntrinsics:
    K = np.array([[1000.0, 0.0, 320.0], [0.0, 1000.0, 240.0], [0.0, 0.0, 1.0]], dtype=np.float64)
    return CameraIntrinsics.from_matrix(K, np.zeros(5), image_width=640, image_height=480)
