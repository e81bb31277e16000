"""
Controller pose fusion demo:
- Tracker backend (static debug pose or UDP bridge from the vision pipeline)
- Fusion engine: camera projection, coregistration and user transform
- Logs camera-space and transformed controller positions plus Euler angles
"""

from __future__ import annotations

import logging
import math
import time

import numpy as np

from .config import AppConfig, parse_args
from .control.fusion import FusionEngine, create_fusion
from .control.tracker import CameraIntrinsics, Tracker
from .math3d.quaternion import quat_from_yaw_pitch_roll, quat_to_yaw_pitch_roll
from .trackers.bridge import BridgeTracker
from .trackers.static import StaticTracker

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_tracker(cfg: AppConfig) -> Tracker:
    intrinsics = CameraIntrinsics(
        fov_deg=cfg.camera_fov_deg,
        width=cfg.camera_width,
        height=cfg.camera_height,
    )
    if cfg.tracker == "static":
        tracker = StaticTracker(intrinsics)
        tracker.set_pose_euler_deg(
            cfg.controller,
            np.array([cfg.static_x, cfg.static_y, cfg.static_z], dtype=np.float64),
            cfg.static_yaw_deg,
            cfg.static_pitch_deg,
            cfg.static_roll_deg,
        )
        logger.info("[CLI] tracker=static controller=%s", cfg.controller)
        return tracker

    if cfg.tracker == "bridge":
        return BridgeTracker(
            host=cfg.bridge_host,
            port=cfg.bridge_port,
            intrinsics=intrinsics,
            smoothing=cfg.orientation_smoothing,
        )

    raise RuntimeError(f"Unsupported tracker: {cfg.tracker}")


def apply_user_transform(cfg: AppConfig, engine: FusionEngine) -> None:
    pos = np.array([cfg.transform_x, cfg.transform_y, cfg.transform_z], dtype=np.float64)
    quat = quat_from_yaw_pitch_roll(
        math.radians(cfg.transform_yaw_deg),
        math.radians(cfg.transform_pitch_deg),
        math.radians(cfg.transform_roll_deg),
    )
    scale = np.array(
        [cfg.transform_scale_x, cfg.transform_scale_y, cfg.transform_scale_z],
        dtype=np.float64,
    )
    engine.update_transform(pos, quat, scale)
    logger.info(
        "[CLI] user transform pos=[%.3f, %.3f, %.3f] ypr=[%.1f, %.1f, %.1f]deg "
        "scale=[%.3f, %.3f, %.3f]",
        pos[0],
        pos[1],
        pos[2],
        cfg.transform_yaw_deg,
        cfg.transform_pitch_deg,
        cfg.transform_roll_deg,
        scale[0],
        scale[1],
        scale[2],
    )


def format_pose_line(engine: FusionEngine, controller: str) -> str:
    p = engine.get_position(controller)
    t = engine.get_transformed_location(controller)
    yaw, pitch, roll = quat_to_yaw_pitch_roll(engine.tracker.get_orientation(controller))
    tracked = "yes" if engine.tracker.has_tracking(controller) else "no"
    return (
        f"controller={controller} tracked={tracked} "
        f"camera=[{p[0]:.3f}, {p[1]:.3f}, {p[2]:.3f}] "
        f"world=[{t[0]:.3f}, {t[1]:.3f}, {t[2]:.3f}] "
        f"ypr=[{math.degrees(yaw):.1f}, {math.degrees(pitch):.1f}, {math.degrees(roll):.1f}]deg"
    )


def run(cfg: AppConfig, tracker: Tracker, engine: FusionEngine) -> int:
    """Poll the tracker and log fused poses; returns the number of frames run."""
    poll_s = max(0.001, cfg.poll_ms / 1000.0)
    display_interval = (1.0 / cfg.display_hz) if cfg.display_hz > 0.0 else 0.0
    last_display_t = 0.0
    frame = 0
    while cfg.frames <= 0 or frame < cfg.frames:
        tracker.poll()
        now = time.time()
        if display_interval > 0.0 and (now - last_display_t) >= display_interval:
            logger.info("[CLI] %s", format_pose_line(engine, cfg.controller))
            last_display_t = now
        frame += 1
        if cfg.frames <= 0 or frame < cfg.frames:
            time.sleep(poll_s)
    return frame


def main(argv=None):
    cfg = parse_args(argv)
    configure_logging(cfg.log_level)

    tracker = build_tracker(cfg)
    try:
        engine = create_fusion(tracker, cfg.z_near, cfg.z_far)
        if engine is None:
            raise SystemExit("failed to create fusion engine")
        with engine:
            apply_user_transform(cfg, engine)
            try:
                run(cfg, tracker, engine)
            except KeyboardInterrupt:
                logger.info("[CLI] interrupted")
    finally:
        tracker.close()


if __name__ == "__main__":
    main()
