"""
Exception hierarchy for the artifact cache.

All exceptions inherit from CacheError, which carries optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any


class CacheError(Exception):
    """Base exception for all artifact cache errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(CacheError):
    """Raised when a cache component is constructed with invalid settings.

    Examples:
        - Target free space ratio outside [0, 1]
        - Missing delegate loader
        - Download directory that cannot be written
        - Location with an unregistered scheme
    """

    pass


class FetchError(CacheError):
    """Raised when downloading a remote artifact fails.

    Context should include:
        - url: The URL that was being fetched
        - status_code: HTTP status code if applicable
        - error: The underlying error message otherwise
    """

    pass


class NotFileBackedError(CacheError):
    """Raised by Resource.as_file() when there is no local file behind it."""

    pass
