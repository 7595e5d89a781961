"""Configuration file handling."""

import os
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tomlkit

from .models import BridgeConfig

# Constants
APP_NAME = "modpack-bridge"
CONFIG_FILE_NAME = "config.toml"


@dataclass
class ValidationError:
    """A single validation error."""

    field: str
    message: str


class ConfigValidationError(Exception):
    """Configuration validation failed."""

    def __init__(self, message: str, errors: list[ValidationError] | None = None):
        super().__init__(message)
        self.errors = errors or []


def get_config_dir() -> Path:
    """Get the per-user config directory.

    Returns:
        Path to config directory (%APPDATA%/modpack-bridge on Windows,
        XDG_CONFIG_HOME/modpack-bridge or ~/.config/modpack-bridge elsewhere)
    """
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA", "").strip()
        base = Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
        return base / APP_NAME

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", "").strip()
    if xdg_config_home:
        return Path(xdg_config_home) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def get_default_config_path() -> Path:
    """Get default path for config.toml.

    Returns:
        Path to config.toml in config directory
    """
    return get_config_dir() / CONFIG_FILE_NAME


def resolve_path(path: str | Path) -> Path:
    """Expand ~ and relative paths to absolute.

    Args:
        path: Path string or Path object

    Returns:
        Absolute Path object
    """
    return Path(path).expanduser().resolve()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigValidationError(f"Invalid value: [{name}] must be a table")
    return section


def load_config(path: Path | None = None) -> BridgeConfig:
    """Load config.toml and return BridgeConfig.

    A missing file is not an error: the bridge runs on defaults.

    Args:
        path: Path to config file (defaults to the config directory)

    Returns:
        BridgeConfig instance

    Raises:
        ConfigValidationError: If config is invalid
    """
    config_path = path or get_default_config_path()

    if not config_path.exists():
        return BridgeConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigValidationError(f"Invalid TOML: {e}") from e

    server = _section(data, "server")
    install = _section(data, "install")
    paths = _section(data, "paths")

    values: dict[str, object] = {}
    for key in ("host", "port", "allowed_origins"):
        if key in server:
            values[key] = server[key]
    for key in ("max_concurrent", "timeout", "terminate_delay"):
        if key in install:
            values[key] = install[key]
    minecraft_dir = paths.get("minecraft_dir")
    if minecraft_dir and not isinstance(minecraft_dir, str):
        raise ConfigValidationError("Invalid value: minecraft_dir must be a string")
    if minecraft_dir:
        values["minecraft_dir"] = resolve_path(minecraft_dir)

    try:
        return BridgeConfig.model_validate(values)
    except ValueError as e:
        raise ConfigValidationError(f"Invalid value: {e}") from e


def generate_config(
    path: Path | None = None,
    minecraft_dir: Path | None = None,
    force: bool = False,
) -> Path:
    """Generate config.toml populated with defaults.

    Args:
        path: Output path (defaults to the config directory)
        minecraft_dir: Optional override for the Minecraft directory
        force: Overwrite existing file

    Returns:
        Path to created config file

    Raises:
        FileExistsError: If file exists and force=False
    """
    config_path = path or get_default_config_path()

    if config_path.exists() and not force:
        raise FileExistsError(f"Config file already exists: {config_path}")

    config_path.parent.mkdir(parents=True, exist_ok=True)
    defaults = BridgeConfig()

    doc = tomlkit.document()

    server = tomlkit.table()
    server.add("host", defaults.host)
    server.add("port", defaults.port)
    server.add("allowed_origins", defaults.allowed_origins)
    doc.add("server", server)

    install = tomlkit.table()
    install.add("max_concurrent", defaults.max_concurrent)
    install.add("timeout", defaults.timeout)
    install.add("terminate_delay", defaults.terminate_delay)
    doc.add("install", install)

    paths = tomlkit.table()
    if minecraft_dir is not None:
        paths.add("minecraft_dir", str(minecraft_dir))
    else:
        paths.add(tomlkit.comment('minecraft_dir = "~/.minecraft"'))
    doc.add("paths", paths)

    with open(config_path, "w", encoding="utf-8") as f:
        f.write(tomlkit.dumps(doc))

    return config_path


def validate_config(config: BridgeConfig) -> list[ValidationError]:
    """Validate BridgeConfig values.

    Args:
        config: BridgeConfig instance to validate

    Returns:
        List of ValidationError (empty if valid)
    """
    errors: list[ValidationError] = []

    if not 0 < config.port < 65536:
        errors.append(
            ValidationError(field="port", message=f"Invalid port: {config.port}")
        )

    if config.max_concurrent < 1:
        errors.append(
            ValidationError(
                field="max_concurrent",
                message=f"Must be a positive integer: {config.max_concurrent}",
            )
        )

    if config.timeout <= 0:
        errors.append(
            ValidationError(
                field="timeout", message=f"Must be positive: {config.timeout}"
            )
        )

    if config.minecraft_dir is not None and not config.minecraft_dir.exists():
        errors.append(
            ValidationError(
                field="minecraft_dir",
                message=f"Directory does not exist: {config.minecraft_dir}",
            )
        )

    return errors
