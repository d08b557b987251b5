"""
Configuration management for quick-cli.

Handles loading and defaulting the line-oriented key=value configuration
file (~/.quick-cli.conf by default).
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "QUICK_CLI_CONFIG"
DEFAULT_SPICE_PORT = 5930


class Platform(str, Enum):
    """Host platform families with distinct viewer tooling."""

    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"


def detect_platform() -> Platform:
    """Return the platform quick-cli is running on."""
    if sys.platform.startswith("win"):
        return Platform.WINDOWS
    if sys.platform == "darwin":
        return Platform.MACOS
    return Platform.LINUX


def default_remote_app(platform: Platform) -> str:
    """
    Get the generic remote-access client for a platform.

    Args:
        platform: Host platform

    Returns:
        Command name of the platform's default remote client
    """
    if platform == Platform.WINDOWS:
        return "mstsc.exe"
    if platform == Platform.MACOS:
        return "open"
    return "remmina"


def default_config_path() -> Path:
    """Path of the configuration file, honouring QUICK_CLI_CONFIG."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".quick-cli.conf"


@dataclass
class Config:
    """Runtime settings for quick-cli."""

    remote_app: str
    quickemu_dir: Path
    default_spice_port: int = DEFAULT_SPICE_PORT
    os_type: Platform = Platform.LINUX
    profile_dir: Path = field(
        default_factory=lambda: Path.home() / ".local" / "share" / "remmina"
    )
    # Keys are lower-cased VM names, values are profile paths
    overrides: dict[str, str] = field(default_factory=dict)

    @classmethod
    def defaults(cls, platform: Platform | None = None) -> "Config":
        """Build a configuration with the defaults for a platform."""
        platform = platform or detect_platform()
        return cls(
            remote_app=default_remote_app(platform),
            quickemu_dir=Path.home() / ".quickemu",
            os_type=platform,
        )


def _render_default_config(config: Config) -> str:
    return (
        f"remote_app={config.remote_app}\n"
        f"quickemu_dir={config.quickemu_dir}\n"
        f"default_spice_port={config.default_spice_port}\n"
        f"os_type={config.os_type.value}\n"
    )


def parse_config(text: str, config: Config) -> Config:
    """
    Apply key=value lines on top of an existing configuration.

    Unknown keys are ignored, and malformed values leave the prior
    setting in place.

    Args:
        text: Contents of a configuration file
        config: Configuration to update in place

    Returns:
        The updated configuration
    """
    for line in text.splitlines():
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()

        if key == "remote_app":
            config.remote_app = value
        elif key == "quickemu_dir":
            config.quickemu_dir = Path(value).expanduser()
        elif key == "profile_dir":
            config.profile_dir = Path(value).expanduser()
        elif key == "default_spice_port":
            try:
                port = int(value)
            except ValueError:
                logger.debug("Ignoring malformed default_spice_port: %r", value)
                continue
            if 0 <= port <= 65535:
                config.default_spice_port = port
            else:
                logger.debug("Ignoring out-of-range default_spice_port: %d", port)
        elif key == "os_type":
            try:
                config.os_type = Platform(value.lower())
            except ValueError:
                logger.debug("Ignoring unknown os_type: %r", value)
        elif key == "override":
            # Format: override=vm_stem, /path/to/profile.remmina
            parts = [part.strip() for part in value.split(",")]
            if len(parts) == 2 and all(parts):
                config.overrides[parts[0].lower()] = parts[1]
            else:
                logger.debug("Ignoring malformed override: %r", value)

    return config


def load_config(path: Path | None = None) -> Config:
    """
    Load configuration from the quick-cli config file.

    When the file does not exist, a default one is written so the
    operator has something to edit. Failing to write it is not an error.

    Args:
        path: Configuration file to read (defaults to default_config_path())

    Returns:
        Config populated from defaults and the file's contents
    """
    path = path or default_config_path()
    config = Config.defaults()

    if not path.exists():
        try:
            path.write_text(_render_default_config(config))
        except OSError as e:
            logger.debug("Could not write default config %s: %s", path, e)
        return config

    try:
        text = path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Could not read config %s: %s", path, e)
        return config

    return parse_config(text, config)
