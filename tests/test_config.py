"""Tests for YAML config loading, local overlays and env overrides."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest
import yaml

from bandcombo import config as config_module
from bandcombo.config import AppConfig, coerce_env_value, load_config, save_config
from bandcombo.encoder import GroupingStrategy
from bandcombo.validation import DeviceProfile


def test_missing_file_gives_defaults() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        cfg = load_config(str(Path(tmpdir) / "absent.yaml"))
    assert cfg.server.port == 8088
    assert cfg.encoder.strategy == "auto"
    assert cfg.limits.max_dl_cc == 5
    assert cfg.profiles == {}


def test_load_config_overlays_local_file() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        base_path = Path(tmpdir) / "bandcombo.yaml"
        local_path = Path(tmpdir) / "bandcombo.local.yaml"
        base_path.write_text(
            yaml.safe_dump(
                {"server": {"port": 9000}, "encoder": {"strategy": "fixed", "descriptor_type": 137}}
            ),
            encoding="utf-8",
        )
        local_path.write_text(
            yaml.safe_dump({"encoder": {"compress": True}, "limits": {"max_dl_cc": 3}}),
            encoding="utf-8",
        )

        cfg = load_config(str(base_path))

    assert cfg.server.port == 9000
    assert cfg.encoder.strategy == "fixed"
    assert cfg.encoder.descriptor_type == 137
    assert cfg.encoder.compress is True
    assert cfg.limits.max_dl_cc == 3


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        config_module,
        "os_environ_items",
        lambda: [
            ("BANDCOMBO__SERVER__PORT", "8100"),
            ("BANDCOMBO__ENCODER__COMPRESS", "true"),
            ("BANDCOMBO__LOGGING__LEVEL", "debug"),
            ("BANDCOMBO__BOGUS", "ignored"),
            ("OTHER__SERVER__PORT", "1"),
        ],
    )
    with tempfile.TemporaryDirectory() as tmpdir:
        cfg = load_config(str(Path(tmpdir) / "bandcombo.yaml"))
    assert cfg.server.port == 8100
    assert cfg.encoder.compress is True
    assert cfg.logging.level == "debug"


def test_unknown_strategy_rejected() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "bandcombo.yaml"
        path.write_text(yaml.safe_dump({"encoder": {"strategy": "best"}}), encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(str(path))


def test_non_mapping_root_rejected() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "bandcombo.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(str(path))


def test_custom_profiles_shadow_builtins() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "bandcombo.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "profiles": {
                        "generic-cat6": {"name": "Patched", "max_dl_cc": 3},
                        "lab": {"supported_bands": [3, 7], "band_mimo": {3: [4]}},
                    }
                }
            ),
            encoding="utf-8",
        )
        cfg = load_config(str(path))

    profiles = cfg.all_profiles()
    assert profiles["generic-cat6"].name == "Patched"
    assert profiles["generic-cat6"].max_dl_cc == 3
    assert profiles["lab"].name == "lab"
    assert profiles["lab"].band_mimo == {3: (4,)}
    assert "generic-cat20" in profiles


def test_to_options_and_limits() -> None:
    cfg = AppConfig()
    cfg.encoder.strategy = "preserve"
    options = cfg.encoder.to_options(cfg.limits.to_limits())
    assert options.strategy is GroupingStrategy.PRESERVE
    assert options.limits is not None
    assert options.limits.max_total_ul == 2


def test_save_config_round_trip_and_backup() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "nested" / "bandcombo.yaml"
        cfg = AppConfig()
        cfg.server.auth_token = "secret"
        cfg.encoder.compress = True
        cfg.profiles["lab"] = DeviceProfile("Lab", 3, 0, 1, supported_bands=(3, 7))
        save_config(cfg, str(path))

        loaded = load_config(str(path))
        assert loaded.server.auth_token == "secret"
        assert loaded.encoder.compress is True
        assert loaded.profiles["lab"].supported_bands == (3, 7)

        save_config(loaded, str(path))
        assert path.with_suffix(".yaml.bak").exists()


def test_save_config_keeps_unknown_sections() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "bandcombo.yaml"
        path.write_text(yaml.safe_dump({"notes": {"owner": "lab"}}), encoding="utf-8")
        save_config(AppConfig(), str(path))
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert data["notes"] == {"owner": "lab"}
    assert list(data)[:1] == ["notes"]


def test_coerce_env_value() -> None:
    assert coerce_env_value("TRUE") is True
    assert coerce_env_value("false") is False
    assert coerce_env_value("42") == 42
    assert coerce_env_value("abc") == "abc"


def test_sample_config_loads() -> None:
    sample = Path(__file__).resolve().parent.parent / "config" / "bandcombo.yaml"
    cfg = load_config(str(sample))
    assert cfg.encoder.strategy == "auto"
    assert "hotspot-b66" in cfg.profiles
    assert cfg.profiles["hotspot-b66"].band_mimo[66] == (2, 4)
