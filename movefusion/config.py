"""CLI config and defaults."""

from __future__ import annotations

import argparse
import math
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass(frozen=True)
class AppConfig:
    tracker: str = "static"
    controller: str = "0"
    z_near: float = 1.0
    z_far: float = 1000.0
    camera_fov_deg: float = 75.0
    camera_width: int = 640
    camera_height: int = 480
    bridge_host: str = "127.0.0.1"
    bridge_port: int = 24568
    orientation_smoothing: float = 1.0
    poll_ms: int = 16
    frames: int = 0
    display_hz: float = 5.0
    log_level: str = "info"
    transform_x: float = 0.0
    transform_y: float = 0.0
    transform_z: float = 0.0
    transform_yaw_deg: float = 0.0
    transform_pitch_deg: float = 0.0
    transform_roll_deg: float = 0.0
    transform_scale_x: float = 1.0
    transform_scale_y: float = 1.0
    transform_scale_z: float = 1.0
    static_x: float = 0.0
    static_y: float = 0.0
    static_z: float = -30.0
    static_yaw_deg: float = 0.0
    static_pitch_deg: float = 0.0
    static_roll_deg: float = 0.0


_APP_CONFIG_FIELDS = {f.name for f in fields(AppConfig)}
_INT_FIELDS = {
    "camera_width",
    "camera_height",
    "bridge_port",
    "poll_ms",
    "frames",
}
_FLOAT_FIELDS = {
    "z_near",
    "z_far",
    "camera_fov_deg",
    "orientation_smoothing",
    "display_hz",
    "transform_x",
    "transform_y",
    "transform_z",
    "transform_yaw_deg",
    "transform_pitch_deg",
    "transform_roll_deg",
    "transform_scale_x",
    "transform_scale_y",
    "transform_scale_z",
    "static_x",
    "static_y",
    "static_z",
    "static_yaw_deg",
    "static_pitch_deg",
    "static_roll_deg",
}
_STRING_FIELDS = {
    "tracker",
    "controller",
    "bridge_host",
    "log_level",
}


def _coerce_config_value(key: str, value: Any) -> Any:
    try:
        if key in _INT_FIELDS:
            return int(value)
        if key in _FLOAT_FIELDS:
            return float(value)
        if key in _STRING_FIELDS:
            return "" if value is None else str(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid value for config key '{key}': {value!r}") from exc
    raise ValueError(f"unsupported config key '{key}'")


def _normalize_config_key(raw_key: Any) -> str:
    if not isinstance(raw_key, str):
        raise ValueError(f"config key must be string, got {type(raw_key).__name__}")
    key = raw_key.strip().replace("-", "_")
    if not key:
        raise ValueError("config key cannot be empty")
    return key


def _load_yaml_config(path: str) -> dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise ValueError(f"--config file not found: {p}")
    if not p.is_file():
        raise ValueError(f"--config must point to a file: {p}")

    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"failed to read --config file {p}: {exc}") from exc
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"failed to parse YAML config {p}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"--config root must be a mapping/object, got {type(loaded).__name__}")

    normalized: dict[str, Any] = {}
    for raw_key, raw_value in loaded.items():
        key = _normalize_config_key(raw_key)
        if key not in _APP_CONFIG_FIELDS:
            raise ValueError(f"unknown config key in {p}: {raw_key!r}")
        normalized[key] = _coerce_config_value(key, raw_value)
    return normalized


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="movefusion")
    ap.add_argument(
        "--config",
        type=str,
        default="",
        help="YAML config file path. CLI args override YAML values.",
    )
    ap.add_argument(
        "--tracker",
        choices=["static", "bridge"],
        default="static",
        help="Tracker backend: fixed debug pose or UDP bridge from the vision pipeline.",
    )
    ap.add_argument(
        "--controller",
        type=str,
        default="0",
        help="Controller id to query (bridge packets carry it in 'controller').",
    )
    ap.add_argument("--z-near", type=float, default=1.0, help="Near clipping plane.")
    ap.add_argument("--z-far", type=float, default=1000.0, help="Far clipping plane.")
    ap.add_argument(
        "--camera-fov-deg",
        type=float,
        default=75.0,
        help="Vertical camera field of view in degrees.",
    )
    ap.add_argument("--camera-width", type=int, default=640, help="Camera frame width.")
    ap.add_argument("--camera-height", type=int, default=480, help="Camera frame height.")
    ap.add_argument(
        "--bridge-host",
        type=str,
        default="127.0.0.1",
        help="Host for the tracker bridge UDP stream.",
    )
    ap.add_argument(
        "--bridge-port",
        type=int,
        default=24568,
        help="Port for the tracker bridge UDP stream.",
    )
    ap.add_argument(
        "--orientation-smoothing",
        type=float,
        default=1.0,
        help="Bridge orientation smoothing factor in [0.01,1]. 1 disables smoothing.",
    )
    ap.add_argument(
        "--poll-ms",
        type=int,
        default=16,
        help="Tracker polling sleep in milliseconds.",
    )
    ap.add_argument(
        "--frames",
        type=int,
        default=0,
        help="Number of frames to run (0 runs until interrupted).",
    )
    ap.add_argument(
        "--display-hz",
        type=float,
        default=5.0,
        help="Pose log rate in Hz (0 disables pose logging).",
    )
    ap.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="info",
        help="Global log level.",
    )

    for axis in ("x", "y", "z"):
        ap.add_argument(
            f"--transform-{axis}",
            type=float,
            default=0.0,
            help=f"User transform translation {axis}.",
        )
    for angle in ("yaw", "pitch", "roll"):
        ap.add_argument(
            f"--transform-{angle}-deg",
            type=float,
            default=0.0,
            help=f"User transform {angle} in degrees.",
        )
    for axis in ("x", "y", "z"):
        ap.add_argument(
            f"--transform-scale-{axis}",
            type=float,
            default=1.0,
            help=f"User transform scale along {axis}.",
        )

    ap.add_argument("--static-x", type=float, default=0.0, help="Static tracker x.")
    ap.add_argument("--static-y", type=float, default=0.0, help="Static tracker y.")
    ap.add_argument("--static-z", type=float, default=-30.0, help="Static tracker z.")
    for angle in ("yaw", "pitch", "roll"):
        ap.add_argument(
            f"--static-{angle}-deg",
            type=float,
            default=0.0,
            help=f"Static tracker {angle} in degrees.",
        )

    return ap


def validate_config(cfg: AppConfig) -> None:
    if cfg.tracker not in {"static", "bridge"}:
        raise ValueError(f"--tracker must be one of static|bridge, got {cfg.tracker}")
    if not str(cfg.controller).strip():
        raise ValueError("--controller must be non-empty")
    if not (math.isfinite(cfg.z_near) and math.isfinite(cfg.z_far)):
        raise ValueError("--z-near/--z-far must be finite numbers")
    if not (0.0 < cfg.z_near < cfg.z_far):
        raise ValueError(
            f"--z-near/--z-far must satisfy 0 < near < far, got {cfg.z_near}, {cfg.z_far}"
        )
    if not (0.0 < cfg.camera_fov_deg < 180.0):
        raise ValueError(f"--camera-fov-deg must be in (0,180), got {cfg.camera_fov_deg}")
    if cfg.camera_width <= 0:
        raise ValueError(f"--camera-width must be > 0, got {cfg.camera_width}")
    if cfg.camera_height <= 0:
        raise ValueError(f"--camera-height must be > 0, got {cfg.camera_height}")
    if not cfg.bridge_host.strip():
        raise ValueError("--bridge-host must be non-empty")
    if not (1 <= cfg.bridge_port <= 65535):
        raise ValueError(f"--bridge-port must be in [1,65535], got {cfg.bridge_port}")
    if not (0.01 <= cfg.orientation_smoothing <= 1.0):
        raise ValueError(
            f"--orientation-smoothing must be in [0.01,1.0], got {cfg.orientation_smoothing}"
        )
    if cfg.poll_ms <= 0:
        raise ValueError(f"--poll-ms must be > 0, got {cfg.poll_ms}")
    if cfg.frames < 0:
        raise ValueError(f"--frames must be >= 0, got {cfg.frames}")
    if cfg.display_hz < 0.0:
        raise ValueError(f"--display-hz must be >= 0, got {cfg.display_hz}")
    if cfg.log_level not in {"debug", "info", "warning", "error"}:
        raise ValueError(
            f"--log-level must be one of debug|info|warning|error, got {cfg.log_level}"
        )

    transform = (
        cfg.transform_x,
        cfg.transform_y,
        cfg.transform_z,
        cfg.transform_yaw_deg,
        cfg.transform_pitch_deg,
        cfg.transform_roll_deg,
    )
    if not all(math.isfinite(v) for v in transform):
        raise ValueError("--transform-* values must be finite numbers")
    scale = (cfg.transform_scale_x, cfg.transform_scale_y, cfg.transform_scale_z)
    if not all(math.isfinite(v) and v != 0.0 for v in scale):
        raise ValueError("--transform-scale-x/y/z must be finite and non-zero")


def parse_args(argv=None) -> AppConfig:
    bootstrap = argparse.ArgumentParser(add_help=False)
    bootstrap.add_argument("--config", type=str, default="")
    bootstrap_ns, _ = bootstrap.parse_known_args(argv)

    yaml_cfg: dict[str, Any] = {}
    yaml_error: Optional[str] = None
    if bootstrap_ns.config:
        try:
            yaml_cfg = _load_yaml_config(bootstrap_ns.config)
        except ValueError as exc:
            yaml_error = str(exc)

    ap = build_arg_parser()
    if yaml_error is not None:
        ap.error(yaml_error)
    if yaml_cfg:
        ap.set_defaults(**yaml_cfg)
    args = ap.parse_args(argv)

    values = {name: getattr(args, name) for name in _APP_CONFIG_FIELDS}
    cfg = AppConfig(**values)
    try:
        validate_config(cfg)
    except ValueError as exc:
        ap.error(str(exc))
    return cfg
