from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .config import AppConfig
from .encoder import EncodeOptions
from .validation import ComboLimits, DeviceProfile, resolve_profile

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """Per-application settings shared by the HTTP handlers.

    Holds no per-request data; every decode and encode runs on its own
    buffers.
    """

    config: AppConfig
    config_path: str | None = None
    profiles: dict[str, DeviceProfile] = field(default_factory=dict)

    @classmethod
    def from_config(cls, cfg: AppConfig, config_path: str | None = None) -> AppState:
        profiles = cfg.all_profiles()
        logger.debug("Loaded %d device profiles", len(profiles))
        return cls(config=cfg, config_path=config_path, profiles=profiles)

    @property
    def limits(self) -> ComboLimits:
        return self.config.limits.to_limits()

    def encode_options(self) -> EncodeOptions:
        return self.config.encoder.to_options(self.limits)

    def profile(self, key: str | None) -> DeviceProfile | None:
        return resolve_profile(key, self.profiles)
