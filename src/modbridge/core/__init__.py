"""Core business logic for modbridge."""

from modbridge.core.exceptions import (
    BridgeError,
    FetchError,
    FilesystemError,
    RequestValidationError,
    UnsupportedPlatformError,
)
from modbridge.core.fetcher import FetcherConfig, FileFetcher
from modbridge.core.installer import InstallOrchestrator
from modbridge.core.instances import InstanceLocator

__all__ = [
    "BridgeError",
    "FetchError",
    "FetcherConfig",
    "FileFetcher",
    "FilesystemError",
    "InstallOrchestrator",
    "InstanceLocator",
    "RequestValidationError",
    "UnsupportedPlatformError",
]
