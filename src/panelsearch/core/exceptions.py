"""
panelsearch exception hierarchy.

All panelsearch exceptions inherit from PanelSearchError, making it easy for
consumers to catch library-level errors while still distinguishing specific
failure modes.
"""


class PanelSearchError(Exception):
    """Base exception class for all panelsearch errors."""


class ConfigurationError(PanelSearchError):
    """Raised for configuration errors (missing keys, invalid values)."""


class NetworkFailure(PanelSearchError):
    """Raised when a remote location rejects a request or returns a non-success status."""

    def __init__(self, location: str, reason: str):
        super().__init__(f"{location}: {reason}")
        self.location = location
        self.reason = reason


class ParseFailure(NetworkFailure):
    """Raised when a fetched artifact is malformed. Handled like a network failure."""


class CacheWriteFailure(PanelSearchError):
    """Raised when persisting an artifact to the local cache fails."""


class EngineUnavailable(PanelSearchError):
    """Raised when every remote location failed and no cached copy exists."""


class InvalidQuery(PanelSearchError, ValueError):
    """Raised for programming errors such as searching before the index is loaded."""
