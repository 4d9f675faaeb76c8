import math

import numpy as np
import pytest

from projalign.core.transforms import look_at, perspective, project, rotation_from_rvec, unproject
from projalign.errors import GeometryError


def test_look_at_maps_eye_to_origin_and_center_down_negative_z():
    eye = np.array([1.0, 2.0, 3.0])
    center = np.array([1.0, 2.0, -7.0])
    view = look_at(eye, center, (0.0, 1.0, 0.0))
    assert np.allclose(view @ np.append(eye, 1.0), [0.0, 0.0, 0.0, 1.0])
    assert np.allclose(view @ np.append(center, 1.0), [0.0, 0.0, -10.0, 1.0])
    assert np.allclose(view[:3, :3] @ view[:3, :3].T, np.eye(3))


def test_look_at_with_up_parallel_to_view_direction_stays_finite():
    view = look_at((0.0, 0.0, 2.0), (0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
    assert np.all(np.isfinite(view))
    assert np.allclose(view @ np.array([0.0, 0.0, 0.0, 1.0]), [0.0, 0.0, -2.0, 1.0])


def test_look_at_rejects_coincident_eye_and_center():
    with pytest.raises(GeometryError):
        look_at((1.0, 1.0, 1.0), (1.0, 1.0, 1.0), (0.0, 1.0, 0.0))


def test_project_unproject_roundtrip():
    view = look_at((0.0, 0.0, 5.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
    proj = perspective(math.radians(60.0), 16.0 / 9.0, 0.1, 100.0)
    viewport = (0.0, 0.0, 1920.0, 1080.0)
    rng = np.random.default_rng(0)
    pts = rng.uniform(-1.0, 1.0, size=(50, 3))
    win = project(pts, view, proj, viewport)
    back = unproject(win, view, proj, viewport)
    assert np.max(np.abs(back - pts)) < 1e-9


def test_project_view_axis_lands_on_viewport_centre():
    view = look_at((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), (0.0, 1.0, 0.0))
    proj = perspective(math.radians(45.0), 1.0, 0.1, 100.0)
    win = project((0.0, 0.0, -10.0), view, proj, (10.0, 20.0, 200.0, 100.0))
    assert win.shape == (3,)
    assert win[0] == pytest.approx(110.0)
    assert win[1] == pytest.approx(70.0)


def test_unproject_singular_matrix_raises():
    with pytest.raises(GeometryError):
        unproject((0.5, 0.5, 1.0), np.zeros((4, 4)), np.eye(4), (0.0, 0.0, 1.0, 1.0))



def test_rotation_from_rvec_zero_is_identity():
    assert np.array_equal(rotation_from_rvec((0.0, 0.0, 0.0)), np.eye(3))
    r = rotation_from_rvec((0.0, 0.0, math.pi / 2))
    assert np.allclose(r @ np.array([1.0, 0.0, 0.0]), [0.0, 1.0, 0.0])
