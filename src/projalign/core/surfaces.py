from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Union

import numpy as np

from projalign.core.intrinsics import CameraIntrinsics
from projalign.core.pose import PhysicalCameraPose
from projalign.core.transforms import look_at, perspective, unproject
from projalign.errors import ConfigError, GeometryError

WALL_Z = 0.0
WALL_NEAR = 0.1
WALL_FAR = 1000.0


@dataclass(frozen=True)
class Dome:
    """
    Hemispherical dome of `radius` centred on the scene origin, apex on +Y.

    The camera is a fisheye at the dome centre pointing at the apex, its circular
    image filling a square frame.
    """

    radius: float

    def __post_init__(self) -> None:
        if not float(self.radius) > 0.0:
            raise ConfigError(f"dome radius must be > 0 (got {self.radius})")

    def camera_to_scene(
        self,
        pose: PhysicalCameraPose,
        intrinsics: CameraIntrinsics,
        point,
        image_width: int,
        image_height: int,
    ) -> np.ndarray:
        half_w = 0.5 * float(image_width)
        half_h = 0.5 * float(image_height)
        x = (float(point[0]) - half_w) / half_w
        y = (float(point[1]) - half_h) / half_h

        # Radial distance in the fisheye image is proportional to the angle away from +Y.
        v = math.sqrt(x * x + y * y)
        if v > 1.0:
            raise GeometryError(
                f"point ({point[0]:.2f}, {point[1]:.2f}) seems to lie outside of the dome (normalized radius {v:.4f} > 1)"
            )

        elevation = 0.5 * math.pi * (1.0 - v)
        real_y = math.sin(elevation)
        real_v = math.cos(elevation)

        azimuth = math.atan2(x, y)
        real_x = math.cos(azimuth) * real_v
        real_z = math.sin(azimuth) * real_v
        return np.array([real_x, real_y, real_z], dtype=np.float64) * float(self.radius)


@dataclass(frozen=True)
class Wall:
    """Flat wall in the world plane z = 0, seen by a pinhole camera at a known pose."""

    def camera_to_scene(
        self,
        pose: PhysicalCameraPose,
        intrinsics: CameraIntrinsics,
        point,
        image_width: int,
        image_height: int,
    ) -> np.ndarray:
        position = np.asarray(pose.position, dtype=np.float64)
        view = look_at(position, pose.direction, pose.up)
        proj = perspective(
            math.radians(intrinsics.fov), float(image_width) / float(image_height), WALL_NEAR, WALL_FAR
        )

        # Image y grows downwards, the viewport's upwards. Depth 1 is the far plane.
        window = (float(point[0]), float(image_height) - float(point[1]), 1.0)
        far_pt = unproject(window, view, proj, (0.0, 0.0, float(image_width), float(image_height)))

        dz = abs(far_pt[2] - position[2])
        if dz == 0.0:
            raise GeometryError(
                f"ray through pixel ({point[0]:.2f}, {point[1]:.2f}) runs parallel to the wall and never meets it"
            )
        return position + (far_pt - position) * (abs(WALL_Z - position[2]) / dz)


SurfaceGeometry = Union[Dome, Wall]
