import pytest

from movefusion.config import AppConfig, parse_args, validate_config


def test_validate_config_accepts_defaults():
    cfg = AppConfig()
    validate_config(cfg)


def test_validate_config_rejects_far_before_near():
    cfg = AppConfig(z_near=10.0, z_far=5.0)
    with pytest.raises(ValueError, match="--z-near"):
        validate_config(cfg)


def test_validate_config_rejects_non_positive_near():
    cfg = AppConfig(z_near=0.0)
    with pytest.raises(ValueError, match="--z-near"):
        validate_config(cfg)


def test_validate_config_rejects_invalid_tracker():
    cfg = AppConfig(tracker="bad")
    with pytest.raises(ValueError, match="--tracker"):
        validate_config(cfg)


def test_validate_config_rejects_invalid_fov():
    cfg = AppConfig(camera_fov_deg=180.0)
    with pytest.raises(ValueError, match="--camera-fov-deg"):
        validate_config(cfg)


def test_validate_config_rejects_invalid_bridge_port():
    cfg = AppConfig(bridge_port=70000)
    with pytest.raises(ValueError, match="--bridge-port"):
        validate_config(cfg)


def test_validate_config_rejects_zero_scale():
    cfg = AppConfig(transform_scale_y=0.0)
    with pytest.raises(ValueError, match="--transform-scale"):
        validate_config(cfg)


def test_validate_config_rejects_invalid_smoothing():
    cfg = AppConfig(orientation_smoothing=0.0)
    with pytest.raises(ValueError, match="--orientation-smoothing"):
        validate_config(cfg)


def test_parse_args_defaults():
    cfg = parse_args([])
    assert cfg == AppConfig()


def test_parse_args_reads_yaml_config(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(
        "\n".join(
            [
                "tracker: bridge",
                "controller: 3",
                "z-near: 0.5",
                "z_far: 250",
                "bridge_port: 30000",
                "transform_yaw_deg: 45",
                "transform_scale_z: -1",
            ]
        ),
        encoding="utf-8",
    )
    cfg = parse_args(["--config", str(cfg_path)])
    assert cfg.tracker == "bridge"
    assert cfg.controller == "3"
    assert cfg.z_near == 0.5
    assert cfg.z_far == 250.0
    assert cfg.bridge_port == 30000
    assert cfg.transform_yaw_deg == 45.0
    assert cfg.transform_scale_z == -1.0


def test_parse_args_cli_overrides_yaml(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(
        "\n".join(
            [
                "z_near: 2",
                "z_far: 60",
            ]
        ),
        encoding="utf-8",
    )
    cfg = parse_args(["--config", str(cfg_path), "--z-far", "80"])
    assert cfg.z_near == 2.0
    assert cfg.z_far == 80.0


def test_parse_args_rejects_unknown_yaml_key(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("z_near: 1\nbad_key: 1\n", encoding="utf-8")
    with pytest.raises(SystemExit):
        parse_args(["--config", str(cfg_path)])


def test_parse_args_rejects_invalid_clip_planes():
    with pytest.raises(SystemExit):
        parse_args(["--z-near", "10", "--z-far", "5"])


def test_parse_args_rejects_missing_config_file(tmp_path):
    with pytest.raises(SystemExit):
        parse_args(["--config", str(tmp_path / "missing.yaml")])
