"""Tracker query interface consumed by the fusion engine."""

from __future__ import annotations

import math
from collections.abc import Hashable
from dataclasses import dataclass

import numpy as np

# PS Eye with the lens ring on the blue dot.
PSEYE_FOV_DEG = 75.0
PSEYE_WIDTH = 640
PSEYE_HEIGHT = 480


@dataclass(frozen=True, slots=True)
class CameraIntrinsics:
    """Field of view (vertical, degrees) and frame size of the tracking camera."""

    fov_deg: float = PSEYE_FOV_DEG
    width: int = PSEYE_WIDTH
    height: int = PSEYE_HEIGHT

    @property
    def aspect(self) -> float:
        return float(self.width) / float(self.height)

    @property
    def fov_rad(self) -> float:
        return math.radians(self.fov_deg)


class Tracker:
    """Base interface for controller trackers.

    Implementations own the vision pipeline; the fusion engine only queries
    camera-space results. Queries must be side-effect free.
    """

    def get_primary_position(self, controller: Hashable) -> np.ndarray:
        """Camera-space sphere center [x, y, z] from the primary estimator."""
        raise NotImplementedError

    def get_secondary_position(self, controller: Hashable) -> np.ndarray:
        """Camera-space sphere center from the alternate estimator.

        Defaults to the primary estimate for trackers with a single algorithm.
        """
        return self.get_primary_position(controller)

    def get_orientation(self, controller: Hashable) -> np.ndarray:
        """Controller orientation quaternion [w, x, y, z]."""
        raise NotImplementedError

    def get_camera_intrinsics(self) -> CameraIntrinsics:
        raise NotImplementedError

    def has_tracking(self, controller: Hashable) -> bool:  # noqa: ARG002
        """Whether the current sample for controller comes from valid tracking."""
        return True

    def poll(self) -> None:
        """Pull pending samples from the pipeline. Optional hook."""
        pass

    def close(self) -> None:
        pass
