"""Error types raised by the Knative catalog providers.

Startup errors (``ConfigurationError``) are fatal and never retried.
Per-cycle errors (``RemoteFetchError``, ``MappingError``, ``SubmissionError``)
are absorbed at the scheduled task boundary and retried implicitly by the
next tick.
"""

from __future__ import annotations

from typing import Optional


class ProviderError(Exception):
    """Base class for all provider errors."""


class ConfigurationError(ProviderError):
    """Invalid or incomplete provider configuration."""


class NotInitializedError(ProviderError):
    """A provider was run before being connected to the catalog."""

    def __init__(self, provider_name: str):
        super().__init__(f"Provider {provider_name} is not initialized, call connect() first")
        self.provider_name = provider_name


class RemoteFetchError(ProviderError):
    """Transport failure or non-success HTTP response from the remote source."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MappingError(ProviderError):
    """A raw record could not be mapped into a catalog entity."""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class SubmissionError(ProviderError):
    """The catalog connection rejected a mutation."""


__all__ = [
    "ProviderError",
    "ConfigurationError",
    "NotInitializedError",
    "RemoteFetchError",
    "MappingError",
    "SubmissionError",
]
