"""Tracker fed by an external vision pipeline via a UDP bridge.

The camera pipeline (blob detection, distance and orientation estimation)
runs in its own process and streams per-controller samples as localhost
UDP JSON packets. This module only keeps the latest sample per controller.
"""

from __future__ import annotations

import json
import logging
import socket
import time
from collections.abc import Hashable
from typing import Optional

import numpy as np

from ..control.pose import ControllerPose, identity_pose
from ..control.tracker import CameraIntrinsics, Tracker
from ..math3d.quaternion import (
    EPSILON,
    QUAT_ZERO,
    quat_is_valid,
    quat_normalized_lerp,
    quat_safe_normalize,
)

logger = logging.getLogger(__name__)


def _parse_controller_payload(payload: dict) -> Optional[tuple[Hashable, ControllerPose, bool]]:
    controller = payload.get("controller")
    if controller is None or isinstance(controller, (list, dict)):
        return None
    tracked = bool(payload.get("tracked", True))
    position = payload.get("position")
    quaternion = payload.get("quaternion_wxyz", payload.get("quaternion"))
    if position is None or quaternion is None:
        return None
    location = payload.get("location", position)

    try:
        p = np.asarray(position, dtype=np.float64).reshape(-1)
        loc = np.asarray(location, dtype=np.float64).reshape(-1)
        q = np.asarray(quaternion, dtype=np.float64).reshape(-1)
    except (TypeError, ValueError):
        return None
    if p.size != 3 or loc.size != 3 or q.size != 4:
        return None
    if not np.isfinite(p).all() or not np.isfinite(loc).all() or not quat_is_valid(q):
        return None

    q, magnitude = quat_safe_normalize(q, QUAT_ZERO)
    if magnitude <= EPSILON:
        return None

    return controller, ControllerPose(position=p, quaternion=q, location=loc), tracked


def _parse_controller_packet(data: bytes) -> Optional[tuple[Hashable, ControllerPose, bool]]:
    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    return _parse_controller_payload(payload)


class _UdpSampleReceiver:
    def __init__(self, host: str, port: int):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind((host, int(port)))
        self.sock.setblocking(False)

    def recv_all(self) -> list[tuple[Hashable, ControllerPose, bool]]:
        samples = []
        while True:
            try:
                data, _ = self.sock.recvfrom(65535)
            except BlockingIOError:
                break
            except OSError:
                break
            parsed = _parse_controller_packet(data)
            if parsed is not None:
                samples.append(parsed)
        return samples

    def close(self) -> None:
        self.sock.close()


class BridgeTracker(Tracker):
    """Tracker backed by bridge messages over UDP.

    Expected JSON packet schema:
    {
      "controller": "00:06:f7:c9:a1:fb",
      "tracked": true,
      "position": [x, y, z],
      "location": [x, y, z],
      "quaternion_wxyz": [w, x, y, z]
    }

    "location" is the secondary estimator's result and defaults to
    "position" when the pipeline only runs one estimator.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 24568,
        intrinsics: CameraIntrinsics | None = None,
        smoothing: float = 1.0,
    ):
        self.host = str(host)
        self.port = int(port)
        self.intrinsics = intrinsics or CameraIntrinsics()
        self.smoothing = float(max(0.01, min(1.0, smoothing)))

        self._receiver = _UdpSampleReceiver(self.host, self.port)
        self._closed = False
        self._poses: dict[Hashable, ControllerPose] = {}
        self._tracked: dict[Hashable, bool] = {}
        self._last_recv_t = 0.0
        self._last_warn_t = 0.0

        logger.info(
            "[TRACKER] provider=bridge (host=%s, port=%s, smoothing=%.2f, fov=%.1fdeg, size=%dx%d)",
            self.host,
            self.port,
            self.smoothing,
            self.intrinsics.fov_deg,
            self.intrinsics.width,
            self.intrinsics.height,
        )

    def _update_pose(self, controller: Hashable, sample: ControllerPose) -> None:
        prev = self._poses.get(controller)
        q = sample.quaternion
        if prev is not None:
            if float(np.dot(prev.quaternion, q)) < 0.0:
                q = -q
            if self.smoothing < 1.0:
                q = quat_normalized_lerp(prev.quaternion, q, self.smoothing)
        self._poses[controller] = ControllerPose(
            position=sample.position,
            quaternion=q,
            location=sample.location,
        )

    def poll(self) -> None:
        if self._closed:
            return
        samples = self._receiver.recv_all()
        now = time.time()
        if not samples:
            # Only log if nothing has arrived recently.
            if (now - self._last_recv_t) > 2.0 and (now - self._last_warn_t) > 2.0:
                logger.info(
                    "[TRACKER] waiting for bridge packets on %s:%s",
                    self.host,
                    self.port,
                )
                self._last_warn_t = now
            return

        self._last_recv_t = now
        for controller, sample, tracked in samples:
            if controller not in self._tracked:
                logger.info("[TRACKER] first packet for controller %s", controller)
            self._tracked[controller] = tracked
            if tracked:
                self._update_pose(controller, sample)

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
        return bool(self._tracked.get(controller, False))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._receiver.close()
        except OSError:
            pass
