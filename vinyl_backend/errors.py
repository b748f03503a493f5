"""Exception hierarchy for the vinyl backend."""

from __future__ import annotations

from typing import Any


class VinylBackendError(Exception):
    """Base vinyl backend error."""


class AuthError(VinylBackendError):
    """Raised when the eBay access token cannot be renewed."""

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.detail = detail


class UpstreamError(VinylBackendError):
    """Raised when an eBay endpoint returns a non-success response."""

    def __init__(self, message: str, status: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class ValidationError(VinylBackendError):
    """Raised when a required request parameter is missing or invalid."""
