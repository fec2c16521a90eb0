"""Configuration file loading and defaults."""

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class OSCConfig:
    host: str = "127.0.0.1"
    port: int = 9000


@dataclass
class BLEConfig:
    scan_window: float = 1.0
    poll_interval: float = 1.0
    scanning_mode: str = "active"


@dataclass
class Config:
    osc: OSCConfig = field(default_factory=OSCConfig)
    ble: BLEConfig = field(default_factory=BLEConfig)
    log_level: str = "INFO"


def _config_paths() -> list[Path]:
    """Candidate config files, highest priority first."""
    return [
        Path("./config.toml"),
        Path.home() / ".config" / "pulse-osc" / "config.toml",
    ]


def load_config() -> Config:
    """Load the first config file found, falling back to defaults."""
    path = next((p for p in _config_paths() if p.exists()), None)
    if path is None:
        return Config()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        logger.warning("Failed to parse config '%s': %s. Using defaults.", path, e)
        return Config()

    logger.debug("Loaded config from %s", path)
    return _parse_config(data)


def _parse_config(data: dict) -> Config:
    """Build Config from a TOML dict; missing keys keep dataclass defaults."""
    return Config(
        osc=OSCConfig(**data.get("osc", {})),
        ble=BLEConfig(**data.get("ble", {})),
        log_level=data.get("log_level", "INFO"),
    )
