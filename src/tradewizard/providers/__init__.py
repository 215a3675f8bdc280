"""Upstream provider clients, error taxonomy and fallback helpers."""

from tradewizard.providers.client import ProviderClient, backoff_delay
from tradewizard.providers.errors import (
    AuthError,
    ClientError,
    MalformedResponseError,
    ProviderError,
    ProviderUnavailable,
    RateLimitError,
    ServerError,
    TransportError,
)
from tradewizard.providers.fallback import Outcome, first_available
from tradewizard.providers.sources import (
    ClassificationProvider,
    LLMProvider,
    MarketDataProvider,
    VerificationProvider,
)

__all__ = [
    "AuthError",
    "ClassificationProvider",
    "ClientError",
    "LLMProvider",
    "MalformedResponseError",
    "MarketDataProvider",
    "Outcome",
    "ProviderClient",
    "ProviderError",
    "ProviderUnavailable",
    "RateLimitError",
    "ServerError",
    "TransportError",
    "VerificationProvider",
    "backoff_delay",
    "first_available",
]
