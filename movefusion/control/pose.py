"""Pose data structures for tracked motion controllers."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(slots=True)
class ControllerPose:
    """Controller pose in camera space.

    position:
      Sphere center [x, y, z] from the primary estimator.
    quaternion:
      Orientation quaternion [w, x, y, z], unit length.
    location:
      Sphere center [x, y, z] from the secondary estimator.
    """

    position: np.ndarray
    quaternion: np.ndarray
    location: np.ndarray


def identity_pose() -> ControllerPose:
    return ControllerPose(
        position=np.zeros(3, dtype=np.float64),
        quaternion=np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float64),
        location=np.zeros(3, dtype=np.float64),
    )
