"""Error kinds raised across the Redash Slack bot."""
from __future__ import annotations


class RedashBotError(Exception):
    """Base class for bot errors."""


class ConfigurationError(RedashBotError):
    """Missing or malformed startup configuration. Fatal."""


class FetchError(RedashBotError):
    """Redash API call failed or returned an unexpected payload."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class RenderError(RedashBotError):
    """Headless browser or filesystem failure while taking a screenshot."""


class UploadError(RedashBotError):
    """Slack rejected a file upload."""


class ParseError(RedashBotError):
    """Chat input could not be parsed (e.g. a malformed mailto mention)."""


__all__ = [
    "RedashBotError",
    "ConfigurationError",
    "FetchError",
    "RenderError",
    "UploadError",
    "ParseError",
]
