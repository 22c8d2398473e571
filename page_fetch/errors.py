"""Exception types raised across the fetch pipeline."""

from __future__ import annotations


class PageFetchError(Exception):
    """Base class for all page-fetch errors."""


class ConfigurationError(PageFetchError):
    """Raised when the supplied options contradict each other."""


class SessionError(PageFetchError):
    """A browser session failed to navigate or evaluate for a job."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(message)
        self.url = url


class BodyFetchError(PageFetchError):
    """The response body of a paused request could not be retrieved."""


class PersistenceError(PageFetchError):
    """Writing a response body or its metadata to disk failed."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(message)
        self.url = url


class ReleaseError(PageFetchError):
    """The continue command for a paused request failed."""
