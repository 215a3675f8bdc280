"""Wire providers, caches and services from a :class:`TradeIntelConfig`."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import httpx

from tradewizard.caching import TTLCache
from tradewizard.classification.engine import HSClassificationEngine
from tradewizard.compliance.service import ComplianceService
from tradewizard.config import ProviderConfig, TradeIntelConfig
from tradewizard.market.aggregator import MarketAggregator
from tradewizard.observability import redact_api_key
from tradewizard.providers.client import ProviderClient
from tradewizard.providers.sources import (
    ClassificationProvider,
    LLMProvider,
    MarketDataProvider,
    VerificationProvider,
)
from tradewizard.report.assembler import ReportAssembler
from tradewizard.verification.service import VerificationPass
from tradewizard.verification.simulated import SimulatedVerifier

logger = logging.getLogger(__name__)


@dataclass
class TradeIntelServices:
    config: TradeIntelConfig
    cache: TTLCache
    classification: HSClassificationEngine
    aggregator: MarketAggregator
    compliance: ComplianceService
    verification: VerificationPass
    assembler: ReportAssembler
    clients: List[ProviderClient] = field(default_factory=list)

    def provider_status(self) -> Dict[str, bool]:
        return {
            cfg.name: cfg.configured
            for cfg in (
                self.config.classification,
                self.config.market_data,
                self.config.llm,
                self.config.verification,
            )
        }

    async def aclose(self) -> None:
        for client in self.clients:
            await client.aclose()


def build_services(
    config: Optional[TradeIntelConfig] = None,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
    rng: Optional[random.Random] = None,
) -> TradeIntelServices:
    """Construct every core service.

    Providers without a credential are left out entirely, so the services
    run on their deterministic fallbacks without attempting network calls.
    """

    config = config or TradeIntelConfig.from_env()
    clients: List[ProviderClient] = []

    def _client(provider: ProviderConfig) -> Optional[ProviderClient]:
        if not provider.configured:
            logger.info("Provider %s not configured; using fallback data", provider.name)
            return None
        logger.info(
            "Provider %s configured at %s (key %s)",
            provider.name,
            provider.base_url,
            redact_api_key(provider.api_key),
        )
        client = ProviderClient(provider, http_client=http_client)
        clients.append(client)
        return client

    classification_client = _client(config.classification)
    market_client = _client(config.market_data)
    llm_client = _client(config.llm)
    verification_client = _client(config.verification)

    classification_provider = ClassificationProvider(classification_client) if classification_client else None
    market_provider = MarketDataProvider(market_client) if market_client else None
    llm_provider = LLMProvider(llm_client, model=config.llm_model) if llm_client else None
    verification_provider = VerificationProvider(verification_client) if verification_client else None

    cache: TTLCache = TTLCache(ttl_seconds=config.cache_ttl_seconds, max_entries=config.cache_max_entries)
    classification = HSClassificationEngine(classification_provider, llm_provider, cache)
    aggregator = MarketAggregator(market_provider, llm_provider, cache)
    compliance = ComplianceService(market_provider)
    verification = VerificationPass(
        verification_provider,
        SimulatedVerifier(rng),
        force_simulated=config.force_simulated_verification,
    )
    return TradeIntelServices(
        config=config,
        cache=cache,
        classification=classification,
        aggregator=aggregator,
        compliance=compliance,
        verification=verification,
        assembler=ReportAssembler(aggregator, compliance, verification),
        clients=clients,
    )
