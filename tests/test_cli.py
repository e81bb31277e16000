import logging

import numpy as np
import pytest

from movefusion.cli import apply_user_transform, build_tracker, format_pose_line, main, run
from movefusion.config import AppConfig
from movefusion.control.fusion import FusionEngine
from movefusion.trackers.static import StaticTracker


def test_build_tracker_static_uses_configured_pose():
    cfg = AppConfig(static_x=1.0, static_y=2.0, static_z=-40.0, camera_fov_deg=60.0)
    tracker = build_tracker(cfg)
    assert isinstance(tracker, StaticTracker)
    np.testing.assert_allclose(tracker.get_primary_position("0"), np.array([1.0, 2.0, -40.0]))
    assert tracker.get_camera_intrinsics().fov_deg == 60.0


def test_apply_user_transform_moves_location():
    cfg = AppConfig(static_z=-10.0, transform_x=5.0, transform_scale_z=2.0)
    tracker = build_tracker(cfg)
    with FusionEngine(tracker, cfg.z_near, cfg.z_far) as engine:
        apply_user_transform(cfg, engine)
        np.testing.assert_allclose(
            engine.get_transformed_location(cfg.controller), np.array([5.0, 0.0, -20.0])
        )


def test_format_pose_line_reports_camera_and_world():
    cfg = AppConfig(static_z=-10.0, transform_y=1.0)
    tracker = build_tracker(cfg)
    with FusionEngine(tracker, cfg.z_near, cfg.z_far) as engine:
        apply_user_transform(cfg, engine)
        line = format_pose_line(engine, cfg.controller)
    assert "camera=[0.000, 0.000, -10.000]" in line
    assert "world=[0.000, 1.000, -10.000]" in line
    assert "tracked=yes" in line


def test_run_stops_after_frames():
    cfg = AppConfig(frames=3, poll_ms=1, display_hz=0.0)
    tracker = build_tracker(cfg)
    with FusionEngine(tracker, cfg.z_near, cfg.z_far) as engine:
        assert run(cfg, tracker, engine) == 3


def test_main_runs_static_tracker(caplog):
    caplog.set_level(logging.INFO)
    main(["--frames", "1", "--poll-ms", "1", "--display-hz", "100", "--static-z", "-5"])
    assert any("world=[0.000, 0.000, -5.000]" in r.getMessage() for r in caplog.records)


def test_main_rejects_invalid_clip_planes():
    with pytest.raises(SystemExit):
        main(["--z-near", "5", "--z-far", "1"])
