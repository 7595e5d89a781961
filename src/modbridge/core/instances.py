"""Discovery of Minecraft instances on this machine."""

import logging
import os
import re
import sys
from collections.abc import Mapping
from pathlib import Path

from modbridge import __version__
from modbridge.core.exceptions import UnsupportedPlatformError
from modbridge.core.models import (
    DeviceIdentity,
    Instance,
    InstanceKind,
    StatusReport,
)

logger = logging.getLogger(__name__)

DEFAULT_INSTANCE_ID = "default"
VERSIONS_DIR_NAME = "versions"
_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def get_minecraft_dir(
    platform: str | None = None,
    env: Mapping[str, str] | None = None,
    home: Path | None = None,
) -> Path:
    """Get the platform-standard .minecraft directory.

    Args:
        platform: Platform identifier (defaults to sys.platform)
        env: Environment variables (defaults to os.environ)
        home: Home directory (defaults to Path.home())

    Returns:
        Path to the Minecraft directory (not necessarily existing)

    Raises:
        UnsupportedPlatformError: If the platform is not Windows, macOS or Linux
    """
    platform = platform or sys.platform
    env = os.environ if env is None else env
    home = home or Path.home()

    if platform == "win32":
        appdata = env.get("APPDATA")
        base = Path(appdata) if appdata else home / "AppData" / "Roaming"
        return base / ".minecraft"
    if platform == "darwin":
        return home / "Library" / "Application Support" / "minecraft"
    if platform.startswith("linux"):
        return home / ".minecraft"
    raise UnsupportedPlatformError(platform)


def sanitize_instance_id(folder_name: str) -> str:
    """Turn a version folder name into an instance id.

    Different folder names may map to the same id; such collisions are
    reported as-is.

    Args:
        folder_name: Name of the folder under versions/

    Returns:
        Id of the form ver_<name> containing only [A-Za-z0-9_-]
    """
    return f"ver_{_UNSAFE_ID_CHARS.sub('_', folder_name)}"


class InstanceLocator:
    """Finds the instances that an install may target."""

    def __init__(
        self,
        minecraft_dir: Path | None = None,
        platform: str | None = None,
    ) -> None:
        """Initialize the locator.

        Args:
            minecraft_dir: Override for the platform-standard directory
            platform: Platform identifier (defaults to sys.platform)
        """
        self._minecraft_dir = minecraft_dir
        self._platform = platform

    @property
    def platform(self) -> str:
        """Platform identifier discovery runs for."""
        return self._platform or sys.platform

    def base_path(self) -> Path:
        """Get the base Minecraft directory.

        Raises:
            UnsupportedPlatformError: If no override is set and the OS is unknown
        """
        if self._minecraft_dir is not None:
            return self._minecraft_dir
        return get_minecraft_dir(self.platform)

    def list_instances(self) -> list[Instance]:
        """Discover instances, default first.

        Returns:
            Freshly discovered instances (empty on an unsupported OS)
        """
        try:
            base = self.base_path()
        except UnsupportedPlatformError as e:
            logger.warning("Cannot discover instances: %s", e)
            return []

        instances = [
            Instance(
                id=DEFAULT_INSTANCE_ID,
                display_name=".minecraft (Default)",
                root_path=base,
                kind=InstanceKind.DEFAULT,
            )
        ]

        versions_dir = base / VERSIONS_DIR_NAME
        try:
            folders = sorted(p for p in versions_dir.iterdir() if p.is_dir())
        except OSError:
            # No versions/ folder yet
            return instances

        for folder in folders:
            instances.append(
                Instance(
                    id=sanitize_instance_id(folder.name),
                    display_name=f"{folder.name} (Version Folder)",
                    root_path=folder,
                    kind=InstanceKind.VERSIONED,
                    version_folder=folder.name,
                )
            )
        return instances

    def resolve(
        self,
        instance_id: str | None = None,
        game_dir: Path | None = None,
    ) -> Path:
        """Resolve the root directory an install should write into.

        Args:
            instance_id: Id of the wanted instance
            game_dir: Explicit root, used when given (a leading ~ is expanded)

        Returns:
            Root directory for mods/, config/ and resourcepacks/

        Raises:
            UnsupportedPlatformError: If nothing could be resolved
        """
        if game_dir is not None:
            return game_dir.expanduser()

        instances = self.list_instances()
        target = (
            next((i for i in instances if i.id == instance_id), None)
            or next((i for i in instances if i.id == DEFAULT_INSTANCE_ID), None)
            or next(iter(instances), None)
        )
        if target is None:
            return self.base_path()
        if instance_id and target.id != instance_id:
            logger.warning(
                "Instance '%s' not found, using '%s'", instance_id, target.id
            )
        return target.root_path


def build_status_report(
    locator: InstanceLocator,
    identity: DeviceIdentity,
) -> StatusReport:
    """Collect the status shown to the web application.

    Args:
        locator: Instance locator
        identity: This device's identity

    Returns:
        StatusReport; mc_path is empty when the OS is not supported
    """
    try:
        mc_path = str(locator.base_path())
    except UnsupportedPlatformError:
        mc_path = ""

    return StatusReport(
        version=__version__,
        token=identity.token,
        os=locator.platform,
        mc_path=mc_path,
        instances=locator.list_instances(),
    )
