from projalign import config
from projalign.api import (
    CalibrationOutput,
    LocationOutput,
    build_calibration_output,
    compute_calibration,
    compute_camera_location,
)
from projalign.core.surfaces import Dome, SurfaceGeometry, Wall
from projalign.errors import AlignerError, CaptureError, ConfigError, DetectionError, GeometryError, InputFormatError

__all__ = [
    "config",
    "AlignerError",
    "CalibrationOutput",
    "CaptureError",
    "ConfigError",
    "DetectionError",
    "Dome",
    "GeometryError",
    "InputFormatError",
    "LocationOutput",
    "SurfaceGeometry",
    "Wall",
    "build_calibration_output",
    "compute_calibration",
    "compute_camera_location",
]
