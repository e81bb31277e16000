"""Quaternion utilities for controller orientation.

Quaternions are float64 arrays ordered [w, x, y, z].

Two rotation conventions meet here:
- native: q rotates v counterclockwise as q*(0,v)*q^{-1}
  (q_to_rotmat / rotmat_to_q, used for OpenGL style matrices)
- clockwise: the public convention of quat_angle_axis,
  vector_clockwise_rotate and the *_clockwise_* matrix conversions,
  which apply the conjugate of the native rotation.
"""

from __future__ import annotations

import math

import numpy as np

EPSILON = 1e-6
POLE_THRESHOLD = 0.499

QUAT_ZERO = np.zeros(4, dtype=np.float64)
QUAT_ZERO.setflags(write=False)

QUAT_IDENTITY = np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float64)
QUAT_IDENTITY.setflags(write=False)


def q_norm(q: np.ndarray) -> float:
    return float(np.linalg.norm(np.asarray(q, dtype=np.float64)))


def q_conj(q: np.ndarray) -> np.ndarray:
    return np.array([q[0], -q[1], -q[2], -q[3]], dtype=np.float64)


def q_mul(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    aw, ax, ay, az = a
    bw, bx, by, bz = b
    return np.array(
        [
            aw * bw - ax * bx - ay * by - az * bz,
            aw * bx + ax * bw + ay * bz - az * by,
            aw * by - ax * bz + ay * bw + az * bx,
            aw * bz + ax * by - ay * bx + az * bw,
        ],
        dtype=np.float64,
    )


def q_rotate_vec(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Rotate vector v by unit quaternion q: v' = q*(0,v)*q^{-1}."""
    vq = np.array([0.0, float(v[0]), float(v[1]), float(v[2])], dtype=np.float64)
    return q_mul(q_mul(q, vq), q_conj(q))[1:]


def q_to_rotmat(q: np.ndarray) -> np.ndarray:
    """Convert unit quaternion [w, x, y, z] to the native 3x3 rotation matrix."""
    w, x, y, z = (float(c) for c in q)
    return np.array(
        [
            [1.0 - 2.0 * (y * y + z * z), 2.0 * (x * y - z * w), 2.0 * (x * z + y * w)],
            [2.0 * (x * y + z * w), 1.0 - 2.0 * (x * x + z * z), 2.0 * (y * z - x * w)],
            [2.0 * (x * z - y * w), 2.0 * (y * z + x * w), 1.0 - 2.0 * (x * x + y * y)],
        ],
        dtype=np.float64,
    )


def rotmat_to_q(R: np.ndarray) -> np.ndarray:
    """Convert 3x3 rotation matrix to unit quaternion [w, x, y, z]."""
    R = np.asarray(R, dtype=np.float64)
    if R.shape != (3, 3):
        raise ValueError(f"Expected 3x3 rotation matrix, got {R.shape}")

    trace = float(R[0, 0] + R[1, 1] + R[2, 2])
    if trace > 0.0:
        s = math.sqrt(trace + 1.0) * 2.0
        qw = 0.25 * s
        qx = (R[2, 1] - R[1, 2]) / s
        qy = (R[0, 2] - R[2, 0]) / s
        qz = (R[1, 0] - R[0, 1]) / s
    elif R[0, 0] > R[1, 1] and R[0, 0] > R[2, 2]:
        s = math.sqrt(1.0 + R[0, 0] - R[1, 1] - R[2, 2]) * 2.0
        qw = (R[2, 1] - R[1, 2]) / s
        qx = 0.25 * s
        qy = (R[0, 1] + R[1, 0]) / s
        qz = (R[0, 2] + R[2, 0]) / s
    elif R[1, 1] > R[2, 2]:
        s = math.sqrt(1.0 + R[1, 1] - R[0, 0] - R[2, 2]) * 2.0
        qw = (R[0, 2] - R[2, 0]) / s
        qx = (R[0, 1] + R[1, 0]) / s
        qy = 0.25 * s
        qz = (R[1, 2] + R[2, 1]) / s
    else:
        s = math.sqrt(1.0 + R[2, 2] - R[0, 0] - R[1, 1]) * 2.0
        qw = (R[1, 0] - R[0, 1]) / s
        qx = (R[0, 2] + R[2, 0]) / s
        qy = (R[1, 2] + R[2, 1]) / s
        qz = 0.25 * s

    q, _ = quat_safe_normalize(np.array([qw, qx, qy, qz], dtype=np.float64), QUAT_ZERO)
    return q


def quat_from_yaw_pitch_roll(yaw: float, pitch: float, roll: float) -> np.ndarray:
    """
    Angles in radians, axes:
      x: pitch, y: yaw, z: roll
    The half-angle product of unit quaternions is already unit length.
    """
    cx = math.cos(pitch / 2.0)
    sx = math.sin(pitch / 2.0)
    cy = math.cos(yaw / 2.0)
    sy = math.sin(yaw / 2.0)
    cz = math.cos(roll / 2.0)
    sz = math.sin(roll / 2.0)
    return np.array(
        [
            cx * cy * cz + sx * sy * sz,
            sx * cy * cz - cx * sy * sz,
            cx * sy * cz + sx * cy * sz,
            cx * cy * sz - sx * sy * cz,
        ],
        dtype=np.float64,
    )


def quat_to_yaw_pitch_roll(q: np.ndarray) -> tuple[float, float, float]:
    """Return (yaw, pitch, roll) in radians.

    Within POLE_THRESHOLD of +/-0.5 the controller is pointing at a pole:
    pitch collapses to 0 and roll is pinned to +/-pi/2.
    """
    w, x, y, z = (float(c) for c in q)
    test = x * y + z * w

    if test > POLE_THRESHOLD:
        # north pole
        return 2.0 * math.atan2(x, w), 0.0, math.pi / 2.0
    if test < -POLE_THRESHOLD:
        # south pole
        return -2.0 * math.atan2(x, w), 0.0, -math.pi / 2.0

    sqx = x * x
    sqy = y * y
    sqz = z * z
    yaw = math.atan2(2.0 * y * w - 2.0 * x * z, 1.0 - 2.0 * sqy - 2.0 * sqz)
    roll = math.asin(2.0 * test)
    pitch = math.atan2(2.0 * x * w - 2.0 * y * z, 1.0 - 2.0 * sqx - 2.0 * sqz)
    return yaw, pitch, roll


def quat_angle_axis(radians: float, axis: np.ndarray) -> np.ndarray:
    """Quaternion rotating clockwise about axis for a positive angle.

    The clockwise sense comes out of vector_clockwise_rotate, which applies
    the conjugate. The axis is used as given; pass a unit axis.
    """
    axis = np.asarray(axis, dtype=np.float64).reshape(3)
    s = math.sin(radians / 2.0)
    return np.array(
        [math.cos(radians / 2.0), axis[0] * s, axis[1] * s, axis[2] * s],
        dtype=np.float64,
    )


def quat_normalized_lerp(a: np.ndarray, b: np.ndarray, u: float) -> np.ndarray:
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    q = a * (1.0 - u) + b * u
    return q / np.linalg.norm(q)


def quat_safe_divide(q: np.ndarray, divisor: float, default: np.ndarray) -> np.ndarray:
    if abs(divisor) <= EPSILON:
        return np.array(default, dtype=np.float64)
    return np.asarray(q, dtype=np.float64) / divisor


def quat_safe_normalize(q: np.ndarray, default: np.ndarray) -> tuple[np.ndarray, float]:
    """Normalize q, falling back to default when its norm is ~0.

    Returns (quaternion, magnitude); a magnitude <= EPSILON means the
    default was substituted.
    """
    magnitude = q_norm(q)
    return quat_safe_divide(q, magnitude, default), magnitude


def quat_is_valid(q: np.ndarray) -> bool:
    return bool(np.isfinite(np.asarray(q, dtype=np.float64)).all())


def _assert_normalized(q: np.ndarray) -> None:
    assert abs(q_norm(q) - 1.0) < 1e-3, f"quaternion is not normalized: {q!r}"


def vector_clockwise_rotate(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Rotate v by q clockwise: v' = q^{-1}*(0,v)*q."""
    _assert_normalized(q)
    return q_rotate_vec(q_conj(q), v)


def quat_to_clockwise_matrix3(q: np.ndarray) -> np.ndarray:
    return q_to_rotmat(q_conj(q))


def matrix3_to_clockwise_quat(m: np.ndarray) -> np.ndarray:
    return q_conj(rotmat_to_q(m))
