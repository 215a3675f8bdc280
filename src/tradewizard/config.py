"""Explicit configuration objects for provider clients and core services.

Nothing here is a process-wide singleton: callers build a
:class:`TradeIntelConfig` (usually via :meth:`TradeIntelConfig.from_env`) and
hand the per-provider :class:`ProviderConfig` to each client they create.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Literal, Mapping, Optional

AuthScheme = Literal["bearer", "header"]

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_CACHE_TTL_SECONDS = 3600.0
DEFAULT_CACHE_MAX_ENTRIES = 100

DEFAULT_HS_CODE_API_URL = "https://wits.worldbank.org/API/V1"
DEFAULT_MARKET_API_URL = "https://wits.worldbank.org/API/V1"
DEFAULT_OPENAI_API_URL = "https://api.openai.com/v1"
DEFAULT_OPENAI_MODEL = "gpt-4"
DEFAULT_VERIFICATION_ENDPOINT = "https://api.perplexity.ai"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ProviderConfig:
    """Connection settings for one upstream data source."""

    name: str
    base_url: str
    api_key: Optional[str] = None
    auth_scheme: AuthScheme = "bearer"
    header_name: str = "Subscription-Key"
    alternate_auth: bool = False
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    backoff_base: float = 1.0
    backoff_cap: float = 30.0
    extra_headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def auth_headers(self, scheme: AuthScheme | None = None) -> Dict[str, str]:
        """Return authentication headers for ``scheme`` (defaults to the configured one)."""

        if not self.api_key:
            return {}
        active = scheme or self.auth_scheme
        if active == "bearer":
            return {"Authorization": f"Bearer {self.api_key}"}
        return {self.header_name: self.api_key}


def _env(name: str, *fallbacks: str) -> Optional[str]:
    for key in (name, *fallbacks):
        value = os.getenv(key)
        if value:
            return value.strip()
    return None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class TradeIntelConfig:
    """Top-level configuration for the aggregation core."""

    classification: ProviderConfig
    market_data: ProviderConfig
    llm: ProviderConfig
    verification: ProviderConfig
    llm_model: str = DEFAULT_OPENAI_MODEL
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    force_simulated_verification: bool = False

    @classmethod
    def from_env(cls) -> "TradeIntelConfig":
        """Build configuration from environment variables.

        Credentials that are absent leave the corresponding provider
        unconfigured; the services then run on their deterministic fallbacks.
        """

        timeout = _env_float("TW_PROVIDER_TIMEOUT", DEFAULT_TIMEOUT_SECONDS)
        retries = max(0, _env_int("TW_PROVIDER_MAX_RETRIES", DEFAULT_MAX_RETRIES))

        classification = ProviderConfig(
            name="hs-code",
            base_url=_env("HS_CODE_API_URL") or DEFAULT_HS_CODE_API_URL,
            api_key=_env("HS_CODE_API_KEY", "WITS_API_KEY", "UN_COMTRADE_API_KEY"),
            auth_scheme="header",
            header_name="Subscription-Key",
            alternate_auth=True,
            timeout=timeout,
            max_retries=retries,
        )
        market_data = ProviderConfig(
            name="wits",
            base_url=_env("WITS_API_URL") or DEFAULT_MARKET_API_URL,
            api_key=_env("WITS_API_KEY", "UN_COMTRADE_API_KEY"),
            auth_scheme="header",
            header_name="Subscription-Key",
            alternate_auth=True,
            timeout=timeout,
            max_retries=retries,
        )

        openai_key = _env("OPENAI_API_KEY")
        project_id = _env("OPENAI_PROJECT_ID")
        is_project_key = bool(openai_key and openai_key.startswith("sk-proj-"))
        llm = ProviderConfig(
            name="openai",
            base_url=_env("OPENAI_API_URL") or DEFAULT_OPENAI_API_URL,
            api_key=openai_key,
            auth_scheme="header" if is_project_key else "bearer",
            header_name="OpenAI-Project-Key",
            alternate_auth=is_project_key,
            timeout=timeout,
            max_retries=retries,
            extra_headers={"OpenAI-Project": project_id} if project_id else {},
        )
        verification = ProviderConfig(
            name="perplexity",
            base_url=_env("PERPLEXITY_API_ENDPOINT", "PERPLEXITY_API_URL") or DEFAULT_VERIFICATION_ENDPOINT,
            api_key=_env("PERPLEXITY_API_KEY"),
            auth_scheme="bearer",
            timeout=timeout,
            max_retries=retries,
        )

        forced = (os.getenv("TW_FORCE_SIMULATED_VERIFICATION") or "").strip().lower() in _TRUTHY
        return cls(
            classification=classification,
            market_data=market_data,
            llm=llm,
            verification=verification,
            llm_model=_env("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL,
            cache_ttl_seconds=_env_float("TW_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS),
            cache_max_entries=max(1, _env_int("TW_CACHE_MAX_ENTRIES", DEFAULT_CACHE_MAX_ENTRIES)),
            force_simulated_verification=forced,
        )
