# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Custom exception hierarchy for gwebrisk."""


class GWebRiskError(Exception):
    """Base exception for all gwebrisk errors."""


class ConfigurationError(GWebRiskError):
    """Invalid or missing configuration."""


class InvalidURLError(GWebRiskError):
    """A URL could not be parsed or canonicalized."""


class StorageError(GWebRiskError):
    """Reading or writing the local threat database failed."""


class ChecksumMismatchError(GWebRiskError):
    """A threat list diff did not produce the checksum declared by the server."""


class DatabaseStaleError(GWebRiskError):
    """The local threat database has not been synchronized recently enough."""


class TransportError(GWebRiskError):
    """A call to the remote Web Risk service failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(TransportError):
    """Raised when the API returns 429 Too Many Requests."""
