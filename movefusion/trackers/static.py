"""Fixed-pose tracker for debugging without a camera."""

from __future__ import annotations

import math
from collections.abc import Hashable

import numpy as np

from ..control.pose import ControllerPose, identity_pose
from ..control.tracker import CameraIntrinsics, Tracker
from ..math3d.quaternion import quat_from_yaw_pitch_roll


class StaticTracker(Tracker):
    """Reports whatever pose was last set for each controller.

    Unknown controllers sit at the camera origin with identity orientation.
    """

    def __init__(self, intrinsics: CameraIntrinsics | None = None):
        self.intrinsics = intrinsics or CameraIntrinsics()
        self._poses: dict[Hashable, ControllerPose] = {}

    def set_pose(
        self,
        controller: Hashable,
        position: np.ndarray,
        quaternion: np.ndarray,
        location: np.ndarray | None = None,
    ) -> None:
        p = np.array(position, dtype=np.float64).reshape(3)
        loc = p.copy() if location is None else np.array(location, dtype=np.float64).reshape(3)
        self._poses[controller] = ControllerPose(
            position=p,
            quaternion=np.array(quaternion, dtype=np.float64).reshape(4),
            location=loc,
        )

    def set_pose_euler_deg(
        self,
        controller: Hashable,
        position: np.ndarray,
        yaw_deg: float,
        pitch_deg: float,
        roll_deg: float,
    ) -> None:
        q = quat_from_yaw_pitch_roll(
            math.radians(yaw_deg), math.radians(pitch_deg), math.radians(roll_deg)
        )
        self.set_pose(controller, position, q)

    def _pose(self, controller: Hashable) -> ControllerPose:
        pose = self._poses.get(controller)
        return identity_pose() if pose is None else pose

    def get_primary_position(self, controller: Hashable) -> np.ndarray:
        return self._pose(controller).position.copy()

    def get_secondary_position(self, controller: Hashable) -> np.ndarray:
        return self._pose(controller).location.copy()

    def get_orientation(self, controller: Hashable) -> np.ndarray:
        return self._pose(controller).quaternion.copy()

    def get_camera_intrinsics(self) -> CameraIntrinsics:
        return self.intrinsics

    def has_tracking(self, controller: Hashable) -> bool:
        return controller in self._poses
