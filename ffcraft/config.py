"""Configuration module for ffcraft."""

import json
import os
import logging
from dataclasses import dataclass
from typing import Optional

DEFAULT_CONFIG_PATH = "./config/config.json"


@dataclass
class Config:
    """Main application configuration."""

    ffmpeg_path: str = "ffmpeg"  # Bare names are looked up in common install dirs
    ffprobe_path: str = "ffprobe"
    host: str = "127.0.0.1"
    port: int = 5101
    log_level: str = "INFO"  # Application log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    secret_key: Optional[str] = None  # Flask session secret key
    default_preset: str = "h264"  # Preset used when a request does not name one
    stop_timeout: float = 5.0  # Seconds to wait after SIGTERM before killing ffmpeg


def _config_path(config_path: Optional[str]) -> str:
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH)
    return config_path


def load_config(config_path: str = None) -> Config:
    """Load configuration from a JSON file, falling back to defaults."""
    config_path = _config_path(config_path)
    defaults = Config()

    if not os.path.exists(config_path):
        logging.warning(
            f"Config file not found at {config_path}, using default configuration"
        )
        return defaults

    with open(config_path, "r") as f:
        config_data = json.load(f)

    return Config(
        ffmpeg_path=config_data.get("ffmpeg_path") or defaults.ffmpeg_path,
        ffprobe_path=config_data.get("ffprobe_path") or defaults.ffprobe_path,
        host=config_data.get("host", defaults.host),
        port=int(config_data.get("port", defaults.port)),
        log_level=config_data.get("log_level", defaults.log_level),
        secret_key=config_data.get("secret_key"),
        default_preset=config_data.get("default_preset", defaults.default_preset),
        stop_timeout=float(config_data.get("stop_timeout", defaults.stop_timeout)),
    )


def save_config(config: Config, config_path: str = None) -> None:
    """Save configuration to a JSON file."""
    config_path = _config_path(config_path)

    # Generate a secret key if one doesn't exist
    if not config.secret_key:
        import secrets
        config.secret_key = secrets.token_hex(32)
        logging.info("Generated new Flask secret key")

    config_dir = os.path.dirname(config_path)
    if config_dir:
        os.makedirs(config_dir, exist_ok=True)

    config_data = {
        "ffmpeg_path": config.ffmpeg_path,
        "ffprobe_path": config.ffprobe_path,
        "host": config.host,
        "port": config.port,
        "log_level": config.log_level,
        "secret_key": config.secret_key,
        "default_preset": config.default_preset,
        "stop_timeout": config.stop_timeout,
    }

    with open(config_path, "w") as f:
        json.dump(config_data, f, indent=2)
