"""Fusion of tracker output with camera projection and user transforms.

Coordinate pipeline:
  camera space --user_xf--> offset camera space --physical_xf--> world
  total_xf = physical_xf @ user_xf

Matrix getters return flat, read-only, column-major (OpenGL) views into the
engine's own storage. Updates write into that storage in place, so a view
follows later updates; copy it to keep a snapshot. Views must not be used
after close().

An engine is not thread safe: serialize updates and queries externally.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable

import numpy as np

from ..math3d.quaternion import QUAT_IDENTITY, quat_safe_normalize
from ..math3d.transform import (
    as_mat4,
    compose_trs,
    identity4,
    perspective,
    rotation4,
    transform_point,
    translation4,
)
from .tracker import Tracker

logger = logging.getLogger(__name__)


class FusionError(ValueError):
    """Raised when a fusion engine cannot be constructed."""


def _validate_clip_planes(z_near: float, z_far: float) -> None:
    if not (0.0 < z_near < z_far):
        raise FusionError(
            f"clip planes must satisfy 0 < z_near < z_far, got z_near={z_near}, z_far={z_far}"
        )


def _gl_storage() -> tuple[np.ndarray, np.ndarray]:
    """Identity matrix in column-major memory plus its read-only flat view."""
    m = np.asfortranarray(identity4())
    view = m.reshape(16, order="F")
    view.flags.writeable = False
    return m, view


class FusionEngine:
    def __init__(self, tracker: Tracker, z_near: float, z_far: float):
        if tracker is None:
            raise FusionError("tracker is required")
        _validate_clip_planes(z_near, z_far)

        self.tracker = tracker
        self.z_near = float(z_near)
        self.z_far = float(z_far)
        self._closed = False

        self._projection, self._projection_view = _gl_storage()
        self._modelview, self._modelview_view = _gl_storage()
        self._physical_xf, self._physical_xf_view = _gl_storage()
        self._total_xf, self._total_xf_view = _gl_storage()
        self._user_xf = identity4()

        self.refresh_projection()

    def __enter__(self) -> FusionEngine:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("fusion engine is closed")

    def _recompute_total(self) -> None:
        self._total_xf[...] = self._physical_xf @ self._user_xf

    def refresh_projection(self) -> None:
        """Rebuild the projection from the tracker's camera and the clip planes."""
        self._check_open()
        intrinsics = self.tracker.get_camera_intrinsics()
        self._projection[...] = perspective(
            intrinsics.fov_rad, intrinsics.aspect, self.z_near, self.z_far
        )
        logger.debug(
            "[FUSION] projection fov=%.1fdeg aspect=%.3f near=%.3f far=%.3f",
            intrinsics.fov_deg,
            intrinsics.aspect,
            self.z_near,
            self.z_far,
        )

    def set_clip_planes(self, z_near: float, z_far: float) -> None:
        self._check_open()
        _validate_clip_planes(z_near, z_far)
        self.z_near = float(z_near)
        self.z_far = float(z_far)
        self.refresh_projection()

    def update_transform(self, pos, quat, scale) -> None:
        """Set the user transform from translation, rotation and scale.

        quat is [w, x, y, z]; a zero or non-finite quaternion falls back to
        the identity rotation.
        """
        self._check_open()
        q = np.asarray(quat, dtype=np.float64).reshape(4)
        q, magnitude = quat_safe_normalize(q, QUAT_IDENTITY)
        if not np.isfinite(magnitude):
            q = np.array(QUAT_IDENTITY)
        self._user_xf = compose_trs(pos, q, scale)
        self._recompute_total()

    def update_transform_matrix(self, mat) -> None:
        """Set the user transform from a 4x4 matrix or 16 OpenGL values."""
        self._check_open()
        self._user_xf = as_mat4(mat)
        self._recompute_total()

    def set_physical_transform(self, mat) -> None:
        """Install the camera-to-world coregistration matrix."""
        self._check_open()
        self._physical_xf[...] = as_mat4(mat)
        self._recompute_total()
        logger.info("[FUSION] physical transform updated")

    def reset_transform(self) -> None:
        """Reset physical and total transforms to identity.

        The user transform is kept; the next update_transform* call composes
        it with the (now identity) physical transform again.
        """
        self._check_open()
        self._physical_xf[...] = identity4()
        self._total_xf[...] = identity4()

    def get_projection_matrix(self) -> np.ndarray:
        self._check_open()
        return self._projection_view

    def get_modelview_matrix(self, controller: Hashable) -> np.ndarray:
        """Matrix with its origin at the sphere center, aligned with the controller."""
        self._check_open()
        position = self.get_position(controller)
        quat = np.asarray(self.tracker.get_orientation(controller), dtype=np.float64)
        self._modelview[...] = translation4(position) @ rotation4(quat)
        return self._modelview_view

    def get_coregistration_matrix(self) -> np.ndarray:
        self._check_open()
        return self._physical_xf_view

    def get_transform_matrix(self) -> np.ndarray:
        self._check_open()
        return self._total_xf_view

    def get_position(self, controller: Hashable) -> np.ndarray:
        """Camera-space position from the tracker's primary estimator."""
        self._check_open()
        return np.asarray(
            self.tracker.get_primary_position(controller), dtype=np.float64
        ).reshape(3)

    def get_location(self, controller: Hashable) -> np.ndarray:
        """Camera-space position from the tracker's secondary estimator."""
        self._check_open()
        return np.asarray(
            self.tracker.get_secondary_position(controller), dtype=np.float64
        ).reshape(3)

    def get_transformed_location(self, controller: Hashable) -> np.ndarray:
        location = self.get_location(controller)
        return transform_point(self._total_xf, location)

    def close(self) -> None:
        """Release cached matrices. The tracker is not closed."""
        if self._closed:
            return
        self._closed = True
        self._projection = self._modelview = None
        self._physical_xf = self._total_xf = self._user_xf = None
        self._projection_view = self._modelview_view = None
        self._physical_xf_view = self._total_xf_view = None


def create_fusion(tracker: Tracker | None, z_near: float, z_far: float) -> FusionEngine | None:
    """Return a new engine, or None when the tracker or clip planes are invalid."""
    try:
        engine = FusionEngine(tracker, z_near, z_far)
    except FusionError as exc:
        logger.warning("[FUSION] cannot create engine: %s", exc)
        return None
    logger.info("[FUSION] engine created (near=%.3f, far=%.3f)", z_near, z_far)
    return engine
