"""Typed provider failures.

Every failure a :class:`~tradewizard.providers.client.ProviderClient` can
produce is a :class:`ProviderError`; services catch this base class at their
boundary and switch to deterministic fallback data.
"""

from __future__ import annotations

from typing import Optional


class ProviderError(Exception):
    """Base class for upstream provider failures."""

    retryable = False

    def __init__(self, provider: str, message: str, status: Optional[int] = None) -> None:
        super().__init__(f"[{provider}] {message}" + (f" (status {status})" if status else ""))
        self.provider = provider
        self.message = message
        self.status = status


class TransportError(ProviderError):
    """Network failure or timeout before a response was received."""

    retryable = True


class ServerError(ProviderError):
    """5xx response."""

    retryable = True


class RateLimitError(ProviderError):
    """429 response."""

    retryable = True


class AuthError(ProviderError):
    """401/403 response."""


class ClientError(ProviderError):
    """Any other 4xx response."""


class MalformedResponseError(ProviderError):
    """Response body was not JSON or failed schema validation."""


class ProviderUnavailable(ProviderError):
    """The provider has no credential configured; no call was attempted."""


def error_for_status(provider: str, status: int, message: str) -> ProviderError:
    if status in (401, 403):
        return AuthError(provider, message, status)
    if status == 429:
        return RateLimitError(provider, message, status)
    if status >= 500:
        return ServerError(provider, message, status)
    return ClientError(provider, message, status)
