"""Installation orchestration."""

import asyncio
import logging
import weakref
import zipfile
from pathlib import Path
from typing import Self

from modbridge.core.exceptions import (
    BridgeError,
    FilesystemError,
    RequestValidationError,
)
from modbridge.core.fetcher import FetcherConfig, FetchTask, FileFetcher, discard_file
from modbridge.core.instances import InstanceLocator
from modbridge.core.models import (
    ArchiveInstallRequest,
    BridgeConfig,
    InstallItem,
    InstallMode,
    InstallRequest,
    InstallResult,
)
from modbridge.core.reset import apply_reset

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> None:
    """Create a directory and its parents.

    Raises:
        FilesystemError: If the directory cannot be created
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Failed to create directory: {e}", path=path) from e


def extract_archive(archive: Path, dest: Path) -> list[Path]:
    """Extract every member of a zip archive into dest, overwriting.

    Args:
        archive: Zip file
        dest: Directory to extract into

    Returns:
        Extracted file paths

    Raises:
        FilesystemError: If the archive is invalid, has a member outside
            dest, or extraction fails
    """
    base = dest.resolve()
    try:
        with zipfile.ZipFile(archive) as zf:
            members = zf.infolist()
            for member in members:
                target = (base / member.filename).resolve()
                if not target.is_relative_to(base):
                    raise FilesystemError(
                        f"Archive entry escapes target directory: {member.filename}",
                        path=archive,
                    )
            zf.extractall(base)
    except zipfile.BadZipFile as e:
        raise FilesystemError(f"Invalid archive: {e}", path=archive) from e
    except OSError as e:
        raise FilesystemError(f"Failed to extract archive: {e}", path=archive) from e

    return [base / m.filename for m in members if not m.is_dir()]


class InstallOrchestrator:
    """Resolves the target instance and places requested files into it."""

    ARCHIVE_TEMP_NAME = "temp_modpack.zip"

    def __init__(
        self,
        config: BridgeConfig | None = None,
        locator: InstanceLocator | None = None,
        fetcher: FileFetcher | None = None,
    ) -> None:
        """Initialize InstallOrchestrator.

        Args:
            config: Application configuration
            locator: Optional instance locator for dependency injection
            fetcher: Optional fetcher for dependency injection
        """
        self._config = config or BridgeConfig()
        self._locator = locator or InstanceLocator(
            minecraft_dir=self._config.minecraft_dir
        )
        self._fetcher = fetcher
        self._owns_fetcher = fetcher is None
        self._root_locks: weakref.WeakValueDictionary[Path, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        if self._fetcher is None:
            self._fetcher = FileFetcher(
                config=FetcherConfig(
                    max_concurrent=self._config.max_concurrent,
                    timeout=self._config.timeout,
                )
            )
            await self._fetcher.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        if self._owns_fetcher and self._fetcher:
            try:
                await self._fetcher.__aexit__(exc_type, exc_val, exc_tb)
            except Exception as e:
                logger.error("Failed to cleanup fetcher: %s", e)
            self._fetcher = None

    @property
    def locator(self) -> InstanceLocator:
        """Instance locator used to resolve install targets."""
        return self._locator

    def _require_fetcher(self) -> FileFetcher:
        if self._fetcher is None:
            msg = "Fetcher not initialized. Use async context manager."
            raise RuntimeError(msg)
        return self._fetcher

    def _lock_for(self, root: Path) -> asyncio.Lock:
        """Lock serializing installs into one root.

        Locks are dropped once no install holds or awaits them.
        """
        key = root.resolve()
        lock = self._root_locks.get(key)
        if lock is None:
            lock = self._root_locks[key] = asyncio.Lock()
        return lock

    @staticmethod
    def _failed(
        root: Path,
        mode: InstallMode,
        error: str,
        removed: list[Path],
    ) -> InstallResult:
        if mode is InstallMode.FULL and removed:
            logger.warning(
                "Install into %s failed after clearing %d folder(s); "
                "previous files were not restored",
                root,
                len(removed),
            )
        return InstallResult(success=False, error=error, root=root, removed=removed)

    def plan_items(
        self,
        root: Path,
        items: list[InstallItem | None],
    ) -> tuple[list[FetchTask], int]:
        """Map request items to fetch tasks under root.

        Unusable items are skipped. When several items share a destination
        only the last one is kept, as it would win a sequential install.

        Args:
            root: Instance root directory
            items: Items in request order

        Returns:
            Tuple of (fetch tasks, number of skipped items)
        """
        planned: dict[Path, FetchTask] = {}
        skipped = 0
        for item in items:
            if item is None or not item.is_usable:
                skipped += 1
                continue
            dest = root / item.item_type.subdirectory / str(item.file_name)
            if dest in planned:
                logger.debug("Later item replaces earlier one for %s", dest)
                del planned[dest]
            planned[dest] = FetchTask(url=str(item.url), dest=dest)
        return list(planned.values()), skipped

    async def install_files(self, request: InstallRequest) -> InstallResult:
        """Install individual files into an instance.

        Args:
            request: Per-file install request

        Returns:
            InstallResult; success is False if any fetch failed

        Raises:
            RequestValidationError: If the request has no items
        """
        if not request.items:
            raise RequestValidationError("No items to install.")
        fetcher = self._require_fetcher()

        try:
            root = self._locator.resolve(request.instance_id, request.game_dir)
        except BridgeError as e:
            logger.error("Cannot resolve install target: %s", e)
            return InstallResult(success=False, error=str(e))

        async with self._lock_for(root):
            return await self._install_into(root, request, fetcher)

    async def _install_into(
        self,
        root: Path,
        request: InstallRequest,
        fetcher: FileFetcher,
    ) -> InstallResult:
        removed: list[Path] = []
        try:
            ensure_dir(root)
            removed = await asyncio.to_thread(apply_reset, root, request.mode)

            tasks, skipped = self.plan_items(root, request.items)
            if skipped:
                logger.warning("Skipped %d unusable item(s)", skipped)
            for task in tasks:
                logger.info("[INSTALL] %s -> %s", task.url, task.dest)

            installed = await fetcher.fetch_all(tasks)
        except BridgeError as e:
            logger.error("Install into %s failed: %s", root, e)
            return self._failed(root, request.mode, str(e), removed)
        except Exception as e:
            logger.exception("Unexpected error during install into %s", root)
            return self._failed(root, request.mode, f"Unexpected error: {e}", removed)

        logger.info("Installed %d file(s) into %s", len(installed), root)
        return InstallResult(
            success=True,
            root=root,
            installed=installed,
            removed=removed,
            skipped=skipped,
        )

    async def install_archive(self, request: ArchiveInstallRequest) -> InstallResult:
        """Download a whole modpack archive and extract it into .minecraft.

        Args:
            request: Archive install request

        Returns:
            InstallResult
        """
        fetcher = self._require_fetcher()

        try:
            base = self._locator.base_path()
        except BridgeError as e:
            logger.error("Cannot resolve install target: %s", e)
            return InstallResult(success=False, error=str(e))

        async with self._lock_for(base):
            archive = base / self.ARCHIVE_TEMP_NAME
            removed: list[Path] = []
            try:
                ensure_dir(base)
                await fetcher.fetch(request.url, archive)
                removed = await asyncio.to_thread(apply_reset, base, request.mode)
                installed = await asyncio.to_thread(extract_archive, archive, base)
            except BridgeError as e:
                logger.error("Archive install into %s failed: %s", base, e)
                return self._failed(base, request.mode, str(e), removed)
            except Exception as e:
                logger.exception("Unexpected error during archive install")
                return self._failed(
                    base, request.mode, f"Unexpected error: {e}", removed
                )
            finally:
                discard_file(archive)

        logger.info("Extracted %d file(s) into %s", len(installed), base)
        return InstallResult(
            success=True, root=base, installed=installed, removed=removed
        )
