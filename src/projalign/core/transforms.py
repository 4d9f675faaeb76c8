from __future__ import annotations

import numpy as np
from scipy.spatial.transform import Rotation

from projalign.errors import GeometryError

# Conventions follow OpenGL/GLM: right-handed world, column vectors (M @ p),
# clip-space depth in [-1, 1], window origin at the bottom-left.

_PARALLEL_EPS = 1e-9


def vec3(v) -> np.ndarray:
    v = np.asarray(v, dtype=np.float64).reshape(-1)
    if v.shape != (3,):
        raise ValueError(f"expected a 3-vector, got shape {v.shape}")
    return v


def normalize(v: np.ndarray) -> np.ndarray:
    return v / np.linalg.norm(v)


def look_at(eye, center, up) -> np.ndarray:
    """
    Right-handed view matrix (4,4) placing `eye` at the origin looking at `center`.

    If `up` is parallel to the viewing direction the roll is undefined; the world
    axis least aligned with the viewing direction is used as `up` instead.
    """
    eye = vec3(eye)
    center = vec3(center)
    up = vec3(up)

    f = center - eye
    if np.linalg.norm(f) < _PARALLEL_EPS:
        raise GeometryError("look_at: eye and center coincide, viewing direction is undefined")
    f = normalize(f)

    s = np.cross(f, up)
    if np.linalg.norm(s) < _PARALLEL_EPS:
        up = np.eye(3)[int(np.argmin(np.abs(f)))]
        s = np.cross(f, up)
    s = normalize(s)
    u = np.cross(s, f)

    m = np.eye(4, dtype=np.float64)
    m[0, :3] = s
    m[1, :3] = u
    m[2, :3] = -f
    m[0, 3] = -np.dot(s, eye)
    m[1, 3] = -np.dot(u, eye)
    m[2, 3] = np.dot(f, eye)
    return m


def perspective(fovy_rad: float, aspect: float, near: float, far: float) -> np.ndarray:
    """Right-handed perspective projection (4,4) with OpenGL depth range [-1, 1]."""
    t = np.tan(0.5 * float(fovy_rad))
    if not np.isfinite(t) or t <= 0.0 or aspect <= 0.0:
        raise GeometryError(f"invalid perspective: fovy={np.degrees(fovy_rad):.4f} deg, aspect={aspect}")
    m = np.zeros((4, 4), dtype=np.float64)
    m[0, 0] = 1.0 / (aspect * t)
    m[1, 1] = 1.0 / t
    m[2, 2] = -(far + near) / (far - near)
    m[2, 3] = -(2.0 * far * near) / (far - near)
    m[3, 2] = -1.0
    return m


def rotation_from_rvec(rvec) -> np.ndarray:
    """
    Axis-angle vector -> rotation matrix (3,3) (Rodrigues).

    The zero vector maps to the identity.
    """
    return Rotation.from_rotvec(vec3(rvec)).as_matrix()


def project(obj, model: np.ndarray, proj: np.ndarray, viewport) -> np.ndarray:
    """
    Object coordinates -> window coordinates, as gluProject.

    `obj` may be a single point (3,) or a batch (N,3); the result has the same
    shape. `viewport` is (x0, y0, width, height).
    """
    obj = np.asarray(obj, dtype=np.float64)
    pts = obj.reshape(-1, 3)
    vp = np.asarray(viewport, dtype=np.float64).reshape(4)

    hom = np.concatenate([pts, np.ones((pts.shape[0], 1))], axis=1)
    clip = (proj @ model @ hom.T).T
    w = clip[:, 3:4]
    if np.any(w == 0.0):
        raise GeometryError("project failed, point lies in the eye plane (w == 0)")
    ndc = clip[:, :3] / w

    win = ndc * 0.5 + 0.5
    win[:, 0] = win[:, 0] * vp[2] + vp[0]
    win[:, 1] = win[:, 1] * vp[3] + vp[1]
    return win.reshape(obj.shape)


def unproject(win, model: np.ndarray, proj: np.ndarray, viewport) -> np.ndarray:
    """
    Window coordinates -> object coordinates, as gluUnProject.

    Raises GeometryError when the combined matrix is singular or the point
    resolves to w == 0.
    """
    win = np.asarray(win, dtype=np.float64)
    pts = win.reshape(-1, 3)
    vp = np.asarray(viewport, dtype=np.float64).reshape(4)

    try:
        inverse = np.linalg.inv(proj @ model)
    except np.linalg.LinAlgError as e:
        raise GeometryError("un_project failed, projection matrix is singular") from e

    tmp = np.concatenate([pts, np.ones((pts.shape[0], 1))], axis=1)
    tmp[:, 0] = (tmp[:, 0] - vp[0]) / vp[2]
    tmp[:, 1] = (tmp[:, 1] - vp[1]) / vp[3]
    tmp = tmp * 2.0 - 1.0

    obj = (inverse @ tmp.T).T
    w = obj[:, 3:4]
    if np.any(w == 0.0):
        raise GeometryError("un_project failed, point not within screen bounds?")
    return (obj[:, :3] / w).reshape(win.shape)
