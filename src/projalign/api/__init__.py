from projalign.api.calibration import compute_calibration, compute_camera_location
from projalign.api.documents import CalibrationOutput, LocationOutput, build_calibration_output

__all__ = [
    "CalibrationOutput",
    "LocationOutput",
    "build_calibration_output",
    "compute_calibration",
    "compute_camera_location",
]
