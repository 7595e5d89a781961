"""Data models for modbridge."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modbridge.core.exceptions import RequestValidationError

# Characters that would let a file name escape its target directory
_FORBIDDEN_NAME_CHARS = ("/", "\\", "\0")


class InstanceKind(str, Enum):
    """Kinds of game instance."""

    DEFAULT = "default"
    VERSIONED = "version"


class ItemType(str, Enum):
    """Types of installable item."""

    MOD = "mod"
    RESOURCEPACK = "resourcepack"
    CONFIG = "config"

    @property
    def subdirectory(self) -> str:
        """Name of the instance subdirectory this item type lives in."""
        return _SUBDIRECTORIES[self]


_SUBDIRECTORIES = {
    ItemType.MOD: "mods",
    ItemType.RESOURCEPACK: "resourcepacks",
    ItemType.CONFIG: "config",
}


class InstallMode(str, Enum):
    """Installation modes."""

    PATCH = "patch"
    FULL = "full"


def _coerce_enum(enum_type: type[Enum], value: Any, default: Enum) -> Enum:
    """Map a raw value onto an enum member, falling back to default."""
    try:
        return enum_type(value)
    except ValueError:
        return default


# Local data models


class Instance(BaseModel):
    """A game installation target."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    display_name: str = Field(alias="name")
    root_path: Path = Field(alias="path")
    kind: InstanceKind
    version_folder: str | None = Field(default=None, alias="versionFolder")


class DeviceIdentity(BaseModel):
    """Persisted token identifying this machine to the web application."""

    token: str
    created_at: datetime


class BridgeConfig(BaseModel):
    """Application configuration from config.toml."""

    host: str = "127.0.0.1"
    port: int = 35555
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"])
    max_concurrent: int = 4
    timeout: float = 300.0
    terminate_delay: float = 1.0
    minecraft_dir: Path | None = None


# Request/response models


class InstallItem(BaseModel):
    """One file to place into an instance."""

    model_config = ConfigDict(populate_by_name=True)

    item_type: ItemType = Field(default=ItemType.MOD, alias="type")
    url: str | None = None
    file_name: str | None = Field(default=None, alias="fileName")

    @field_validator("item_type", mode="before")
    @classmethod
    def _default_item_type(cls, value: Any) -> ItemType:
        return _coerce_enum(ItemType, value, ItemType.MOD)

    @field_validator("url", "file_name", mode="before")
    @classmethod
    def _non_string_to_none(cls, value: Any) -> str | None:
        return value if isinstance(value, str) else None

    @property
    def is_usable(self) -> bool:
        """Whether the item has a URL and a file name safe to place."""
        if not self.url or not self.url.strip():
            return False
        name = self.file_name
        if not name or not name.strip() or name in (".", ".."):
            return False
        return not any(char in name for char in _FORBIDDEN_NAME_CHARS)


class InstallRequest(BaseModel):
    """A per-file installation request."""

    model_config = ConfigDict(populate_by_name=True)

    mode: InstallMode = InstallMode.PATCH
    auto_terminate: bool = Field(default=False, alias="autoTerminate")
    instance_id: str | None = Field(default=None, alias="instanceId")
    game_dir: Path | None = Field(default=None, alias="gameDir")
    items: list[InstallItem | None]

    @field_validator("mode", mode="before")
    @classmethod
    def _default_mode(cls, value: Any) -> InstallMode:
        return _coerce_enum(InstallMode, value, InstallMode.PATCH)

    @field_validator("game_dir", "instance_id", mode="before")
    @classmethod
    def _empty_to_none(cls, value: Any) -> Any:
        return value or None

    @field_validator("items", mode="before")
    @classmethod
    def _drop_non_objects(cls, value: Any) -> Any:
        # Entries that are not objects are kept as holes and skipped later
        if isinstance(value, list):
            return [
                entry if isinstance(entry, dict | InstallItem) else None
                for entry in value
            ]
        return value

    @classmethod
    def from_payload(cls, payload: Any) -> "InstallRequest":
        """Build a request from a decoded JSON body.

        Args:
            payload: Decoded request body

        Returns:
            InstallRequest instance

        Raises:
            RequestValidationError: If the body is not a valid request
        """
        if not isinstance(payload, dict) or not isinstance(
            payload.get("items"), list
        ):
            raise RequestValidationError("No items to install.")
        try:
            return cls.model_validate(payload)
        except ValueError as e:
            raise RequestValidationError(f"Invalid install request: {e}") from e


class ArchiveInstallRequest(BaseModel):
    """A legacy whole-archive installation request."""

    model_config = ConfigDict(populate_by_name=True)

    url: str
    mode: InstallMode = InstallMode.PATCH
    auto_terminate: bool = Field(default=False, alias="autoTerminate")

    @field_validator("mode", mode="before")
    @classmethod
    def _default_mode(cls, value: Any) -> InstallMode:
        return _coerce_enum(InstallMode, value, InstallMode.PATCH)

    @classmethod
    def from_payload(cls, payload: Any) -> "ArchiveInstallRequest":
        """Build a request from a decoded JSON body.

        Raises:
            RequestValidationError: If the body has no archive URL
        """
        if not isinstance(payload, dict) or not payload.get("url"):
            raise RequestValidationError("No archive URL given.")
        try:
            return cls.model_validate(payload)
        except ValueError as e:
            raise RequestValidationError(f"Invalid install request: {e}") from e


class InstallResult(BaseModel):
    """Outcome of an installation."""

    success: bool
    error: str | None = None
    root: Path | None = None
    installed: list[Path] = Field(default_factory=list)
    removed: list[Path] = Field(default_factory=list)
    skipped: int = 0

    def to_response(self) -> dict[str, Any]:
        """Wire representation sent back to the web client."""
        if self.success:
            return {"success": True}
        return {"success": False, "error": self.error or "Unknown error"}


class StatusReport(BaseModel):
    """Bridge status shown by the web application."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = "ready"
    version: str
    token: str
    os: str
    mc_path: str = Field(alias="mcPath")
    instances: list[Instance]
