from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml

from .encoder import EncodeOptions, GroupingStrategy
from .validation import DEVICE_PROFILES, ComboLimits, DeviceProfile

logger = logging.getLogger(__name__)

ENV_PREFIX = "BANDCOMBO__"
_ENV_SECTIONS = ("server", "encoder", "limits", "logging")

StrategyName = Literal["preserve", "auto", "fixed"]


@dataclass
class ServerConfig:
    bind_address: str = "127.0.0.1"
    port: int = 8088
    auth_token: str | None = None
    # Largest request body accepted by the decode endpoints
    max_upload_bytes: int = 4 * 1024 * 1024


@dataclass
class EncoderConfig:
    format_version: int = 7
    strategy: StrategyName = "auto"
    # Only used by the fixed strategy
    descriptor_type: int = 201
    optimize_grouping: bool = True
    compress: bool = False

    def to_options(self, limits: ComboLimits | None = None) -> EncodeOptions:
        return EncodeOptions(
            format_version=self.format_version,
            strategy=GroupingStrategy(self.strategy),
            descriptor_type=self.descriptor_type,
            optimize_grouping=self.optimize_grouping,
            compress=self.compress,
            limits=limits,
        )


@dataclass
class LimitsConfig:
    max_cc: int = 6
    max_dl_cc: int = 5
    max_ul_scell: int = 1
    max_total_ul: int = 2
    allow_fdd_tdd_mix: bool = False

    def to_limits(self) -> ComboLimits:
        return ComboLimits(
            max_cc=self.max_cc,
            max_dl_cc=self.max_dl_cc,
            max_ul_scell=self.max_ul_scell,
            max_total_ul=self.max_total_ul,
            allow_fdd_tdd_mix=self.allow_fdd_tdd_mix,
        )


@dataclass
class LoggingConfig:
    level: str = "INFO"
    # Optional rotating log file; None logs to the console only
    file: str | None = None


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    encoder: EncoderConfig = field(default_factory=EncoderConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    # Custom device profiles; keys shadow the built-in profiles
    profiles: dict[str, DeviceProfile] = field(default_factory=dict)

    def all_profiles(self) -> dict[str, DeviceProfile]:
        merged = dict(DEVICE_PROFILES)
        merged.update(self.profiles)
        return merged


def default_config_path() -> str:
    """config/bandcombo.local.yaml if present, else config/bandcombo.yaml."""
    base = Path.cwd() / "config"
    local = base / "bandcombo.local.yaml"
    if local.exists():
        return str(local)
    return str(base / "bandcombo.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError("Config root must be a mapping")
        return data


def _overlay(dst: dict[str, Any], src: dict[str, Any]) -> dict[str, Any]:
    for k, v in src.items():
        if isinstance(v, dict) and isinstance(dst.get(k), dict):
            _overlay(dst[k], v)
        else:
            dst[k] = v
    return dst


def _local_overlay_path(path: Path) -> Path | None:
    if path.name.endswith(".local.yaml"):
        return None
    return path.with_name(f"{path.stem}.local{path.suffix}")


def _parse_profile(key: str, data: dict[str, Any]) -> DeviceProfile:
    band_mimo_raw = data.get("band_mimo", {}) or {}
    if not isinstance(band_mimo_raw, dict):
        raise ValueError(f"Profile {key}: band_mimo must be a mapping")
    return DeviceProfile(
        name=str(data.get("name", key)),
        max_dl_cc=int(data.get("max_dl_cc", 5)),
        max_ul_scell=int(data.get("max_ul_scell", 1)),
        max_total_ul=int(data.get("max_total_ul", 2)),
        supported_bands=tuple(int(b) for b in data.get("supported_bands", []) or []),
        band_mimo={int(b): tuple(int(m) for m in mimos) for b, mimos in band_mimo_raw.items()},
    )


def load_config(path_str: str) -> AppConfig:
    path = Path(path_str)
    raw: dict[str, Any] = _read_yaml(path)
    local = _local_overlay_path(path)
    if local is not None and local.exists():
        _overlay(raw, _read_yaml(local))
        logger.debug("Applied local config overlay %s", local)

    # Environment overrides (prefix BANDCOMBO__SECTION__KEY)
    # Example: BANDCOMBO__SERVER__PORT=8089
    for k, v in os_environ_items():
        if not k.startswith(ENV_PREFIX):
            continue
        parts = k[len(ENV_PREFIX) :].split("__")
        if len(parts) != 2:
            continue
        section, key = parts
        section = section.lower()
        key = key.lower()
        raw.setdefault(section, {})
        if section in _ENV_SECTIONS and isinstance(raw[section], dict):
            raw[section][key] = coerce_env_value(v)

    server = ServerConfig(**raw.get("server", {}))
    encoder = EncoderConfig(**raw.get("encoder", {}))
    limits = LimitsConfig(**raw.get("limits", {}))
    logging_cfg = LoggingConfig(**raw.get("logging", {}))

    if encoder.strategy not in ("preserve", "auto", "fixed"):
        raise ValueError(f"Unknown encoder strategy: {encoder.strategy}")

    profiles: dict[str, DeviceProfile] = {}
    profiles_raw = raw.get("profiles", {})
    if isinstance(profiles_raw, dict):
        for key, profile_data in profiles_raw.items():
            if isinstance(profile_data, dict):
                profiles[str(key)] = _parse_profile(str(key), profile_data)

    return AppConfig(
        server=server,
        encoder=encoder,
        limits=limits,
        logging=logging_cfg,
        profiles=profiles,
    )


def coerce_env_value(val: str) -> Any:
    # Basic bool/int coercion for convenience
    lower = val.lower()
    if lower in {"true", "false"}:
        return lower == "true"
    try:
        return int(val)
    except ValueError:
        return val


def os_environ_items() -> list[tuple[str, str]]:
    # Wrapped for testability
    from os import environ

    return [(k, v) for k, v in environ.items()]


def _profile_to_yaml(profile: DeviceProfile) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": profile.name,
        "max_dl_cc": profile.max_dl_cc,
        "max_ul_scell": profile.max_ul_scell,
        "max_total_ul": profile.max_total_ul,
    }
    if profile.supported_bands:
        data["supported_bands"] = list(profile.supported_bands)
    if profile.band_mimo:
        data["band_mimo"] = {b: list(m) for b, m in profile.band_mimo.items()}
    return data


def save_config(config: AppConfig, path_str: str) -> None:
    """Write the AppConfig to YAML, keeping unknown top-level sections of an existing file."""
    path = Path(path_str)

    existing_data: dict[str, Any] = _read_yaml(path) if path.exists() else {}
    if path.exists():
        backup_path = path.with_suffix(path.suffix + ".bak")
        try:
            shutil.copy2(path, backup_path)
        except OSError as exc:
            logger.warning("Failed to write config backup to %s: %s", backup_path, exc)

    server_data: dict[str, Any] = {
        "bind_address": config.server.bind_address,
        "port": config.server.port,
        "max_upload_bytes": config.server.max_upload_bytes,
    }
    if config.server.auth_token is not None:
        server_data["auth_token"] = config.server.auth_token
    existing_data["server"] = server_data

    existing_data["encoder"] = {
        "format_version": config.encoder.format_version,
        "strategy": config.encoder.strategy,
        "descriptor_type": config.encoder.descriptor_type,
        "optimize_grouping": config.encoder.optimize_grouping,
        "compress": config.encoder.compress,
    }

    existing_data["limits"] = {
        "max_cc": config.limits.max_cc,
        "max_dl_cc": config.limits.max_dl_cc,
        "max_ul_scell": config.limits.max_ul_scell,
        "max_total_ul": config.limits.max_total_ul,
        "allow_fdd_tdd_mix": config.limits.allow_fdd_tdd_mix,
    }

    logging_data: dict[str, Any] = {"level": config.logging.level}
    if config.logging.file is not None:
        logging_data["file"] = config.logging.file
    existing_data["logging"] = logging_data

    if config.profiles:
        existing_data["profiles"] = {
            key: _profile_to_yaml(profile) for key, profile in config.profiles.items()
        }

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.dump(existing_data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
