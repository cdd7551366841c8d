"""Configuration management for ww."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml


DEFAULT_SIGNAL_SERVER = "https://wrmhl.link/"

DEFAULT_STUN_SERVERS = [
    "stun:stun.l.google.com:19302",
    "stun:stun.cloudflare.com:3478",
]


@dataclass
class Config:
    """Client configuration."""

    signal_server: str = DEFAULT_SIGNAL_SERVER
    secret_length: int = 2  # bytes of pairing secret, one word per byte
    verbose: bool = False
    log_level: str = "WARNING"
    log_file: str | None = None
    stun_servers: list[str] = field(default_factory=lambda: DEFAULT_STUN_SERVERS.copy())
    dial_timeout: float = 60.0  # seconds


def get_config_path(custom_path: Path | None = None) -> Path:
    """Get the configuration file path.

    Args:
        custom_path: Override path. If None, returns default.

    Returns:
        Path to config file.
    """
    if custom_path is not None:
        return custom_path
    return Path.home() / ".config" / "ww" / "config.yaml"


def _default_file_reader(path: Path) -> dict[str, Any] | None:
    """Default file reader that loads YAML from disk."""
    if not path.exists():
        return None
    try:
        content = path.read_text()
        if not content.strip():
            return None
        data = yaml.safe_load(content)
    except yaml.YAMLError:
        return None
    return data if isinstance(data, dict) else None


def _coerce(data: dict[str, Any], key: str, convert: Callable[[Any], Any], default: Any) -> Any:
    """Convert a config value, falling back to the default if it does not fit."""
    if key not in data:
        return default
    try:
        return convert(data[key])
    except (TypeError, ValueError):
        return default


def load_config(
    path: Path | None = None,
    file_reader: Callable[[Path], dict[str, Any] | None] | None = None,
) -> Config:
    """Load configuration from file.

    Args:
        path: Path to config file. If None, uses default path.
        file_reader: Injectable file reader for testing.

    Returns:
        Config object with values from file or defaults.
    """
    config_path = get_config_path(path)
    reader = file_reader or _default_file_reader

    data = reader(config_path)

    if data is None:
        return Config()

    return Config(
        signal_server=data.get("signal_server", Config.signal_server),
        secret_length=_coerce(data, "secret_length", int, Config.secret_length),
        verbose=bool(data.get("verbose", Config.verbose)),
        log_level=data.get("log_level", Config.log_level),
        log_file=data.get("log_file", Config.log_file),
        stun_servers=data.get("stun_servers", DEFAULT_STUN_SERVERS.copy()),
        dial_timeout=_coerce(data, "dial_timeout", float, Config.dial_timeout),
    )
