"""Streaming file fetcher."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Self

import httpx

from modbridge import __version__
from modbridge.core.exceptions import FetchError

logger = logging.getLogger(__name__)


# === Configuration ===


@dataclass
class FetcherConfig:
    """Configuration for the FileFetcher."""

    max_concurrent: int = 4
    chunk_size: int = 65536
    timeout: float = 300.0  # 5 minutes per request


@dataclass
class FetchTask:
    """A file to retrieve."""

    url: str
    dest: Path


def discard_file(path: Path) -> None:
    """Remove a file best-effort, logging instead of raising."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Failed to remove %s: %s", path, e)


# === Fetcher ===


class FileFetcher:
    """Async HTTP(S) fetcher that streams responses to disk."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        config: FetcherConfig | None = None,
    ) -> None:
        """Initialize the FileFetcher.

        Args:
            client: Optional httpx.AsyncClient for dependency injection.
            config: Fetcher configuration.
        """
        self._injected_client = client
        self._client: httpx.AsyncClient | None = None
        self._config = config or FetcherConfig()

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        if self._injected_client is not None:
            self._client = self._injected_client
        else:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout,
                follow_redirects=True,
                headers={"User-Agent": f"modbridge/{__version__}"},
            )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Async context manager exit."""
        if self._injected_client is None and self._client is not None:
            await self._client.aclose()

    async def fetch(self, url: str, dest: Path) -> Path:
        """Stream a single URL to a file.

        Args:
            url: http:// or https:// URL
            dest: Destination file; missing parents are created

        Returns:
            The destination path, fully written and closed

        Raises:
            FetchError: On a non-200 status, transport or I/O error
        """
        if self._client is None:
            msg = "Client not initialized. Use 'async with' context manager."
            raise RuntimeError(msg)

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FetchError(f"I/O error: {e}", url=url) from e

        file_created = False
        try:
            async with self._client.stream("GET", url) as response:
                status = response.status_code
                if status != httpx.codes.OK:
                    discard_file(dest)
                    raise FetchError(
                        f"Download failed with status code: {status}",
                        url=url,
                        status_code=status,
                    )

                with open(dest, "wb") as f:
                    file_created = True
                    async for chunk in response.aiter_bytes(self._config.chunk_size):
                        f.write(chunk)

        except (httpx.HTTPError, httpx.InvalidURL) as e:
            if file_created:
                discard_file(dest)
            raise FetchError(f"HTTP error: {e}", url=url) from e
        except OSError as e:
            if file_created:
                discard_file(dest)
            raise FetchError(f"I/O error: {e}", url=url) from e
        except asyncio.CancelledError:
            if file_created:
                discard_file(dest)
            raise

        logger.debug("Fetched %s -> %s", url, dest)
        return dest

    async def fetch_all(self, tasks: list[FetchTask]) -> list[Path]:
        """Fetch several files with bounded concurrency.

        The first failure cancels the fetches still in flight and is
        re-raised; files already completed are left in place.

        Args:
            tasks: Files to fetch

        Returns:
            Destination paths in the same order as tasks

        Raises:
            FetchError: The first fetch that failed
        """
        semaphore = asyncio.Semaphore(self._config.max_concurrent)
        failed = asyncio.Event()

        async def fetch_with_semaphore(task: FetchTask) -> Path:
            async with semaphore:
                # A waiter may be woken by a failing fetch before the group
                # gets to cancel it
                if failed.is_set():
                    raise asyncio.CancelledError
                try:
                    return await self.fetch(task.url, task.dest)
                except Exception:
                    failed.set()
                    raise

        try:
            async with asyncio.TaskGroup() as group:
                running = [
                    group.create_task(fetch_with_semaphore(task)) for task in tasks
                ]
        except ExceptionGroup as eg:
            first = next(
                (e for e in eg.exceptions if isinstance(e, FetchError)),
                eg.exceptions[0],
            )
            raise first

        return [task.result() for task in running]
