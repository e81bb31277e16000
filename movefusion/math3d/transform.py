"""4x4 affine helpers and OpenGL matrix layout.

Matrices are row-major float64 (4, 4) arrays acting on column vectors
(p' = M @ p). OpenGL expects the flat column-major order produced by
mat4_to_gl, the layout glLoadMatrix reads.
"""

from __future__ import annotations

import math

import numpy as np

from .quaternion import q_to_rotmat


def identity4() -> np.ndarray:
    return np.eye(4, dtype=np.float64)


def translation4(p: np.ndarray) -> np.ndarray:
    m = identity4()
    m[:3, 3] = np.asarray(p, dtype=np.float64).reshape(3)
    return m


def scale4(s: np.ndarray) -> np.ndarray:
    m = identity4()
    m[:3, :3] = np.diag(np.asarray(s, dtype=np.float64).reshape(3))
    return m


def rotation4(q: np.ndarray) -> np.ndarray:
    m = identity4()
    m[:3, :3] = q_to_rotmat(q)
    return m


def compose_trs(pos: np.ndarray, quat: np.ndarray, scale: np.ndarray) -> np.ndarray:
    """Scale first, then rotate, then translate."""
    return translation4(pos) @ rotation4(quat) @ scale4(scale)


def perspective(fov_y_rad: float, aspect: float, z_near: float, z_far: float) -> np.ndarray:
    """gluPerspective style projection (camera looks down -z)."""
    f = 1.0 / math.tan(fov_y_rad / 2.0)
    dz = z_near - z_far
    return np.array(
        [
            [f / aspect, 0.0, 0.0, 0.0],
            [0.0, f, 0.0, 0.0],
            [0.0, 0.0, (z_far + z_near) / dz, 2.0 * z_far * z_near / dz],
            [0.0, 0.0, -1.0, 0.0],
        ],
        dtype=np.float64,
    )


def transform_point(m: np.ndarray, p: np.ndarray) -> np.ndarray:
    p = np.asarray(p, dtype=np.float64).reshape(3)
    return (np.asarray(m, dtype=np.float64) @ np.append(p, 1.0))[:3]


def mat4_to_gl(m: np.ndarray) -> np.ndarray:
    return np.asarray(m, dtype=np.float64).reshape(4, 4).reshape(16, order="F")


def mat4_from_gl(flat) -> np.ndarray:
    return np.asarray(flat, dtype=np.float64).reshape(4, 4, order="F")


def as_mat4(value) -> np.ndarray:
    """Accept a (4, 4) matrix or a flat 16-element OpenGL array."""
    m = np.asarray(value, dtype=np.float64)
    if m.shape == (4, 4):
        return m.copy()
    if m.size == 16 and m.ndim == 1:
        return mat4_from_gl(m)
    raise ValueError(f"Expected 4x4 matrix or 16 OpenGL values, got shape {m.shape}")
