"""Error types shared by adapters, services and routes.

Routes translate these into ``{"error": message}`` JSON bodies; nothing here
is meant to escape a single request.
"""

from __future__ import annotations


class MiraverseError(Exception):
    """Base class for every domain error."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ProviderError(MiraverseError):
    """Upstream model provider failed (network error, 4xx/5xx, bad payload)."""

    status_code = 502


class MissingCredentialsError(ProviderError):
    """The provider API key is not configured."""

    status_code = 500


class EmptyResponseError(ProviderError):
    """Provider answered but returned no candidates or no inline data."""


class IngestError(MiraverseError):
    """A source could not be fetched or decoded."""

    status_code = 400
