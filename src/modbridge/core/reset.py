"""Clearing of managed instance subdirectories before a full install."""

import logging
import shutil
from pathlib import Path

from modbridge.core.models import InstallMode

logger = logging.getLogger(__name__)

MANAGED_SUBDIRECTORIES = ("mods", "config", "resourcepacks")


def apply_reset(root: Path, mode: InstallMode) -> list[Path]:
    """Remove the managed subdirectories of root when mode is full.

    Failures are logged and do not stop the remaining removals.

    Args:
        root: Instance root directory
        mode: Installation mode; patch never deletes anything

    Returns:
        Paths that were removed
    """
    if mode is not InstallMode.FULL:
        return []

    removed: list[Path] = []
    for name in MANAGED_SUBDIRECTORIES:
        target = root / name
        if not target.exists() and not target.is_symlink():
            continue
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        except OSError as e:
            logger.warning("Failed to remove %s: %s", target, e)
            continue
        logger.info("Removed %s", target)
        removed.append(target)
    return removed
