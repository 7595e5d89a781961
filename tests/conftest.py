"""Shared test fixtures."""

import io
import zipfile
from collections.abc import AsyncIterator, Callable
from pathlib import Path

import httpx
import pytest

from modbridge.core.fetcher import FetcherConfig, FileFetcher
from modbridge.core.instances import InstanceLocator


@pytest.fixture
def minecraft_dir(tmp_path: Path) -> Path:
    """Return a .minecraft directory with two version folders."""
    root = tmp_path / ".minecraft"
    (root / "versions" / "1.21.4").mkdir(parents=True)
    (root / "versions" / "fabric-loader 0.16").mkdir(parents=True)
    return root


@pytest.fixture
def locator(minecraft_dir: Path) -> InstanceLocator:
    """Return an InstanceLocator rooted at the test .minecraft directory."""
    return InstanceLocator(minecraft_dir=minecraft_dir)


@pytest.fixture
async def fetcher() -> AsyncIterator[FileFetcher]:
    """Return an entered FileFetcher with an injected client."""
    async with httpx.AsyncClient() as client:
        async with FileFetcher(client=client) as f:
            yield f


@pytest.fixture
async def sequential_fetcher() -> AsyncIterator[FileFetcher]:
    """Return an entered FileFetcher that fetches one file at a time."""
    async with httpx.AsyncClient() as client:
        async with FileFetcher(
            client=client, config=FetcherConfig(max_concurrent=1)
        ) as f:
            yield f


def _build_zip(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def make_zip() -> Callable[[dict[str, bytes]], bytes]:
    """Return a helper building an in-memory zip archive."""
    return _build_zip
