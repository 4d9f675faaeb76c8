from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np

from projalign.core.framing import FramedCamera
from projalign.core.marker import MarkerCameraPose


def _to_finite_array(x, shape: tuple[int, ...], what: str) -> np.ndarray:
    x = np.asarray(x, dtype=np.float64).reshape(shape)
    if not np.all(np.isfinite(x)):
        raise ValueError(f"{what} contains non-finite values")
    return x


@dataclass(frozen=True)
class CalibrationOutput:
    """
    Calibration handed to the renderer: the virtual camera plus the warp table.

    `warp_res_x`/`warp_res_y` are the pattern's interior corner counts; `warp`
    holds one UV per corner in row-major pattern order.
    """

    fov: float
    eye: tuple[float, float, float]
    look_at: tuple[float, float, float]
    up: tuple[float, float, float]
    warp_res_x: int
    warp_res_y: int
    warp: np.ndarray  # (warp_res_x * warp_res_y, 2)

    def to_dict(self) -> dict[str, Any]:
        # Key names and order are read by the renderer.
        return {
            "fov": float(self.fov),
            "eye": [float(c) for c in self.eye],
            "lookAt": [float(c) for c in self.look_at],
            "up": [float(c) for c in self.up],
            "warpResX": int(self.warp_res_x),
            "warpResY": int(self.warp_res_y),
            "warp": np.asarray(self.warp, dtype=np.float64).reshape(-1, 2).tolist(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: Path) -> Path:
        path = Path(path)
        path.write_text(self.to_json() + "\n", encoding="utf-8")
        return path


def build_calibration_output(camera: FramedCamera, warp: np.ndarray, warp_res_x: int, warp_res_y: int) -> CalibrationOutput:
    n = int(warp_res_x) * int(warp_res_y)
    uv = _to_finite_array(warp, (-1, 2), "warp")
    if uv.shape[0] != n:
        raise ValueError(f"warp must hold warpResX*warpResY = {n} entries, got {uv.shape[0]}")
    return CalibrationOutput(
        fov=float(camera.fov),
        eye=camera.eye,
        look_at=camera.look_at,
        up=camera.up,
        warp_res_x=int(warp_res_x),
        warp_res_y=int(warp_res_y),
        warp=uv,
    )


@dataclass(frozen=True)
class LocationOutput:
    """Physical camera location found by `locate-camera`, reusable as a wall-run pose."""

    position: tuple[float, float, float]
    direction: tuple[float, float, float]
    up: tuple[float, float, float]
    fov: float

    @classmethod
    def from_marker_pose(cls, pose: MarkerCameraPose, fov: float) -> "LocationOutput":
        return cls(position=pose.position, direction=pose.direction, up=pose.up, fov=float(fov))

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": [float(c) for c in self.position],
            "direction": [float(c) for c in self.direction],
            "up": [float(c) for c in self.up],
            "fov": float(self.fov),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: Path) -> Path:
        path = Path(path)
        path.write_text(self.to_json() + "\n", encoding="utf-8")
        return path
