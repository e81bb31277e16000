import json
import socket
import time

import numpy as np
import pytest

from movefusion.control.tracker import CameraIntrinsics
from movefusion.trackers.bridge import (
    BridgeTracker,
    _parse_controller_packet,
    _parse_controller_payload,
)


def test_parse_payload_accepts_valid_schema():
    parsed = _parse_controller_payload(
        {
            "controller": "move0",
            "tracked": True,
            "position": [0.1, -0.2, 1.5],
            "location": [0.1, -0.2, 1.6],
            "quaternion_wxyz": [2.0, 0.0, 0.0, 0.0],
        }
    )
    assert parsed is not None
    controller, pose, tracked = parsed
    assert controller == "move0"
    np.testing.assert_allclose(pose.position, np.array([0.1, -0.2, 1.5], dtype=np.float64))
    np.testing.assert_allclose(pose.location, np.array([0.1, -0.2, 1.6], dtype=np.float64))
    np.testing.assert_allclose(pose.quaternion, np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float64))
    assert tracked is True


def test_parse_payload_location_defaults_to_position():
    parsed = _parse_controller_payload(
        {"controller": 1, "position": [1.0, 2.0, 3.0], "quaternion": [1.0, 0.0, 0.0, 0.0]}
    )
    assert parsed is not None
    _, pose, _ = parsed
    np.testing.assert_allclose(pose.location, pose.position)


def test_parse_packet_rejects_invalid_json():
    assert _parse_controller_packet(b"{not-json") is None
    assert _parse_controller_packet(b"[1, 2, 3]") is None


def test_parse_payload_rejects_bad_vector_lengths():
    assert (
        _parse_controller_payload(
            {"controller": "a", "position": [0.0, 1.0], "quaternion_wxyz": [1.0, 0.0, 0.0, 0.0]}
        )
        is None
    )
    assert (
        _parse_controller_payload(
            {"controller": "a", "position": [0.0, 1.0, 2.0], "quaternion_wxyz": [1.0, 0.0, 0.0]}
        )
        is None
    )


def test_parse_payload_rejects_degenerate_values():
    base = {"controller": "a", "position": [0.0, 1.0, 2.0]}
    assert _parse_controller_payload({**base, "quaternion_wxyz": [0.0, 0.0, 0.0, 0.0]}) is None
    assert (
        _parse_controller_payload({**base, "quaternion_wxyz": [float("nan"), 0.0, 0.0, 1.0]})
        is None
    )
    assert (
        _parse_controller_payload(
            {"controller": "a", "position": [0.0, float("inf"), 2.0], "quaternion_wxyz": [1, 0, 0, 0]}
        )
        is None
    )


def test_parse_payload_requires_controller_id():
    assert (
        _parse_controller_payload(
            {"position": [0.0, 1.0, 2.0], "quaternion_wxyz": [1.0, 0.0, 0.0, 0.0]}
        )
        is None
    )


@pytest.fixture
def bridge():
    tracker = BridgeTracker(host="127.0.0.1", port=0, intrinsics=CameraIntrinsics(60.0, 320, 240))
    yield tracker
    tracker.close()


def _send(tracker: BridgeTracker, payload: dict) -> None:
    addr = tracker._receiver.sock.getsockname()
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.sendto(json.dumps(payload).encode("utf-8"), addr)


def _poll_until_tracked(tracker: BridgeTracker, controller, timeout_s: float = 1.0) -> None:
    deadline = time.time() + timeout_s
    while time.time() < deadline:
        tracker.poll()
        if tracker.has_tracking(controller):
            return
        time.sleep(0.005)


def test_bridge_unknown_controller_reports_identity_pose(bridge):
    np.testing.assert_allclose(bridge.get_primary_position("nope"), np.zeros(3))
    np.testing.assert_allclose(bridge.get_orientation("nope"), np.array([1.0, 0.0, 0.0, 0.0]))
    assert bridge.has_tracking("nope") is False
    assert bridge.get_camera_intrinsics().aspect == pytest.approx(320.0 / 240.0)


def test_bridge_poll_stores_latest_sample(bridge):
    _send(
        bridge,
        {
            "controller": "move0",
            "position": [1.0, 2.0, -30.0],
            "location": [1.1, 2.1, -31.0],
            "quaternion_wxyz": [0.0, 1.0, 0.0, 0.0],
        },
    )
    _poll_until_tracked(bridge, "move0")
    assert bridge.has_tracking("move0")
    np.testing.assert_allclose(bridge.get_primary_position("move0"), np.array([1.0, 2.0, -30.0]))
    np.testing.assert_allclose(bridge.get_secondary_position("move0"), np.array([1.1, 2.1, -31.0]))
    np.testing.assert_allclose(bridge.get_orientation("move0"), np.array([0.0, 1.0, 0.0, 0.0]))


def test_bridge_smoothing_keeps_sign_continuity():
    tracker = BridgeTracker(host="127.0.0.1", port=0, smoothing=0.5)
    try:
        first = {
            "controller": "m",
            "position": [0.0, 0.0, 0.0],
            "quaternion_wxyz": [1.0, 0.0, 0.0, 0.0],
        }
        flipped = {**first, "quaternion_wxyz": [-1.0, 0.0, 0.0, 0.0]}
        _, pose0, _ = _parse_controller_payload(first)
        _, pose1, _ = _parse_controller_payload(flipped)
        tracker._update_pose("m", pose0)
        tracker._update_pose("m", pose1)
        np.testing.assert_allclose(tracker.get_orientation("m"), np.array([1.0, 0.0, 0.0, 0.0]))
    finally:
        tracker.close()
