"""Exceptions for modbridge."""

from pathlib import Path


class BridgeError(Exception):
    """Base exception for all modbridge errors."""


class RequestValidationError(BridgeError):
    """Install request is malformed or empty."""


class FetchError(BridgeError):
    """Error while retrieving a remote file."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialize FetchError.

        Args:
            message: Error message
            url: URL that caused the error
            status_code: HTTP status code if the server answered
        """
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class FilesystemError(BridgeError):
    """Error creating, removing or extracting files."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        """Initialize FilesystemError.

        Args:
            message: Error message
            path: Path that caused the error
        """
        super().__init__(message)
        self.path = path


class UnsupportedPlatformError(BridgeError):
    """The Minecraft directory cannot be determined on this OS."""

    def __init__(self, platform: str) -> None:
        """Initialize UnsupportedPlatformError.

        Args:
            platform: Platform identifier (as in sys.platform)
        """
        super().__init__(f"Unsupported OS: {platform}")
        self.platform = platform
