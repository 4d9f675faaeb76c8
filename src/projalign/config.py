from __future__ import annotations

import re
from dataclasses import dataclass

from projalign.core.surfaces import Dome, SurfaceGeometry, Wall
from projalign.errors import ConfigError

_RESOLUTION_RE = re.compile(r"\s*(?P<width>\d+)\s*x\s*(?P<height>\d+)\s*")

DEFAULT_PATTERN_SIZE = "25x16"
DEFAULT_PROJECTOR_RESOLUTION = "1024x768"
DEFAULT_EYE = "0,0,0"
DEFAULT_DOME_RADIUS = 5.0
VIRTUAL_CAMERA_UP = (0.0, 1.0, 0.0)


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)


@dataclass(frozen=True)
class Resolution:
    """
    A `width x height` pair.

    Used both for the chessboard pattern (interior corner counts) and for the
    projector output (pixels).
    """

    width: int
    height: int

    @property
    def count(self) -> int:
        return self.width * self.height

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


def parse_resolution(text: str) -> Resolution:
    m = _RESOLUTION_RE.fullmatch(str(text))
    _require(m is not None, f"invalid resolution {text!r}, expected <width>x<height> e.g. 25x16")
    width, height = int(m["width"]), int(m["height"])
    _require(width > 0 and height > 0, f"resolution {text!r} must have width and height > 0")
    return Resolution(width=width, height=height)


def parse_vec3(text: str) -> tuple[float, float, float]:
    words = [w.strip() for w in str(text).split(",")]
    _require(len(words) == 3, f"invalid 3D vector {text!r}, expected x,y,z")
    try:
        x, y, z = (float(w) for w in words)
    except ValueError as e:
        raise ConfigError(f"invalid 3D vector {text!r}: {e}") from e
    return x, y, z


def parse_surface(kind: str, radius: float = DEFAULT_DOME_RADIUS) -> SurfaceGeometry:
    if kind == "dome":
        _require(float(radius) > 0.0, f"dome radius must be > 0 (got {radius})")
        return Dome(radius=float(radius))
    if kind == "wall":
        return Wall()
    raise ConfigError(f"unknown surface type {kind!r}, expected 'dome' or 'wall'")
