"""Persisted device identity."""

import json
import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path

from modbridge.core.config import get_config_dir
from modbridge.core.models import DeviceIdentity

logger = logging.getLogger(__name__)

IDENTITY_FILE_NAME = "device_token.json"


def get_default_identity_path() -> Path:
    """Get default path for the device identity file."""
    return get_config_dir() / IDENTITY_FILE_NAME


def read_identity(path: Path) -> DeviceIdentity | None:
    """Read a stored identity.

    Args:
        path: Identity file path

    Returns:
        DeviceIdentity, or None if the file is missing, corrupt or has no
        token. An unparseable created_at does not discard the token.
    """
    if not path.exists():
        return None

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable identity file %s: %s", path, e)
        return None

    if not isinstance(data, dict) or not data.get("token"):
        logger.warning("Ignoring identity file without token: %s", path)
        return None

    token = str(data["token"])
    try:
        return DeviceIdentity(
            token=token, created_at=data.get("created_at") or datetime.now(UTC)
        )
    except ValueError as e:
        logger.warning("Invalid created_at in identity file %s: %s", path, e)
        return DeviceIdentity(token=token, created_at=datetime.now(UTC))


def write_identity(identity: DeviceIdentity, path: Path) -> None:
    """Write identity to disk.

    Args:
        identity: Identity to store
        path: Identity file path

    Raises:
        OSError: If the file cannot be written
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(identity.model_dump(mode="json"), f, indent=2)


def load_or_create_identity(path: Path | None = None) -> DeviceIdentity:
    """Return the stored device identity, creating it on first use.

    Args:
        path: Identity file path (defaults to the config directory)

    Returns:
        The persisted identity, or a fresh one if none could be read
    """
    identity_path = path or get_default_identity_path()

    identity = read_identity(identity_path)
    if identity is not None:
        return identity

    identity = DeviceIdentity(token=str(uuid.uuid4()), created_at=datetime.now(UTC))
    try:
        write_identity(identity, identity_path)
        logger.info("Created device identity at %s", identity_path)
    except OSError as e:
        # The token is still usable for this process, it just won't persist
        logger.warning("Failed to save device identity to %s: %s", identity_path, e)
    return identity
