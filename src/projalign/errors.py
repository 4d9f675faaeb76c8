from __future__ import annotations


class AlignerError(Exception):
    """Base class for every failure the calibration tools report to the user."""


class GeometryError(AlignerError):
    """A point cannot be mapped: outside the dome, singular unprojection, zero eye-space depth."""


class InputFormatError(AlignerError, ValueError):
    """Malformed or incomplete calibration XML / camera-location JSON."""


class DetectionError(AlignerError):
    """Incomplete chessboard corner set, or not exactly one marker in frame."""


class ConfigError(AlignerError, ValueError):
    """Malformed resolution, vector or surface options."""


class CaptureError(AlignerError):
    """A photo could not be acquired from the configured source."""
