"""Per-market aggregation of size, competition, barriers, tariffs and insights."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from tradewizard.caching import TTLCache
from tradewizard.errors import InvalidInputError
from tradewizard.market import fallback_data
from tradewizard.market.insights import GeneratedInsights, llm_insights, rule_based_insights
from tradewizard.market.models import (
    BusinessProfile,
    Competitor,
    INSIGHT_FIELDS,
    FieldSource,
    MarketInsight,
    MarketSize,
    TariffInfo,
)
from tradewizard.market.tariffs import derive_tariffs
from tradewizard.observability import log_fallback
from tradewizard.providers.fallback import Tier, first_available
from tradewizard.providers.models import CompetitorWire
from tradewizard.providers.sources import LLMProvider, MarketDataProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MARKET_CODE_RE = re.compile(r"^[A-Z]{2}$")


def normalize_markets(markets: Iterable[str]) -> List[str]:
    """Upper-case, validate and de-duplicate ISO alpha-2 market codes."""

    codes: List[str] = []
    for raw in markets:
        code = (raw or "").strip().upper()
        if not _MARKET_CODE_RE.match(code):
            raise InvalidInputError(f"Invalid market code {raw!r}; expected ISO 3166 alpha-2")
        if code not in codes:
            codes.append(code)
    if not codes:
        raise InvalidInputError("At least one target market is required")
    return codes


def normalize_categories(categories: Iterable[str]) -> List[str]:
    rows: List[str] = []
    for raw in categories or ():
        name = (raw or "").strip()
        if name and name not in rows:
            rows.append(name)
    return rows


def _ranked_competitors(items: Iterable[CompetitorWire]) -> List[Competitor]:
    rows = [
        Competitor(
            name=item.name,
            market_share=min(item.market_share, 100.0),
            country=item.country,
            strengths=list(item.strengths),
            weaknesses=list(item.weaknesses),
        )
        for item in items
    ]
    return sorted(rows, key=lambda item: (-item.market_share, item.name))


class MarketAggregator:
    """Build one :class:`MarketInsight` per target market.

    Markets are processed concurrently and independently. Within a market
    each fetch has its own fallback boundary, so a failed tariff lookup keeps
    a successfully fetched market size; ``MarketInsight.sources`` tells the
    caller which field groups were substituted.
    """

    def __init__(
        self,
        market_provider: MarketDataProvider | None = None,
        enrichment_provider: LLMProvider | None = None,
        cache: TTLCache | None = None,
    ) -> None:
        self.market_provider = market_provider
        self.enrichment_provider = enrichment_provider
        self.cache = cache if cache is not None else TTLCache()

    async def get_insights(
        self,
        markets: Sequence[str],
        categories: Sequence[str] = (),
        business_profile: Optional[BusinessProfile] = None,
    ) -> Dict[str, MarketInsight]:
        codes = normalize_markets(markets)
        category_names = normalize_categories(categories)
        profile = business_profile or BusinessProfile()

        results = await asyncio.gather(
            *(self.get_market_insight(code, category_names, profile) for code in codes),
            return_exceptions=True,
        )
        insights: Dict[str, MarketInsight] = {}
        for code, result in zip(codes, results):
            if isinstance(result, Exception):
                logger.error("Market pipeline for %s failed", code, exc_info=result)
                log_fallback("market-aggregator", f"insights.{code}", result)
                insights[code] = self.fallback_insight(code, category_names, profile)
            elif isinstance(result, BaseException):
                raise result
            else:
                insights[code] = result
        return insights

    async def get_market_insight(
        self,
        market: str,
        categories: Sequence[str],
        profile: BusinessProfile,
    ) -> MarketInsight:
        sources: Dict[str, FieldSource] = {}
        provider = self.market_provider
        category_key = ",".join(categories)

        async def _size() -> MarketSize:
            wire = await provider.market_size(market, categories)
            return MarketSize(
                value=wire.value, currency=wire.currency, year=wire.year, growth_rate=wire.growth_rate
            )

        async def _competitors() -> List[Competitor]:
            return _ranked_competitors(await provider.competitors(market, categories))

        async def _barriers() -> List[str]:
            return [item.strip() for item in await provider.barriers(market, categories) if item.strip()]

        async def _tariffs() -> Dict[str, TariffInfo]:
            base = await provider.base_tariff(market)
            return derive_tariffs(base.base_rate, categories, tariff_type=base.type, conditions=base.conditions)

        market_size = await self._fetch(
            f"market:{market}:size:{category_key}", "market_size", _size,
            lambda: fallback_data.fallback_market_size(market), sources,
        )
        competitors = await self._fetch(
            f"market:{market}:competitors:{category_key}", "competitors", _competitors,
            lambda: fallback_data.fallback_competitors(market), sources,
        )
        barriers = await self._fetch(
            f"market:{market}:barriers:{category_key}", "entry_barriers", _barriers,
            lambda: fallback_data.fallback_barriers(market), sources,
        )
        tariffs = await self._fetch(
            f"market:{market}:tariffs:{category_key}", "tariffs", _tariffs,
            lambda: derive_tariffs(fallback_data.fallback_base_tariff(market), categories), sources,
        )

        generated = await self._generate_insights(
            market, market_size, competitors, barriers, tariffs, profile, sources
        )
        return MarketInsight(
            market=market,
            market_size=market_size,
            competitors=competitors,
            entry_barriers=barriers,
            tariffs=tariffs,
            opportunities=generated.opportunities,
            risks=generated.risks,
            recommendations=generated.recommendations,
            sources=sources,
        )

    async def _fetch(
        self,
        key: str,
        field: str,
        call: Callable[[], Awaitable[T]],
        fallback: Callable[[], T],
        sources: Dict[str, FieldSource],
    ) -> T:
        cached = self.cache.get(key)
        if cached is not None:
            sources[field] = "provider"
            return cached

        tiers: List[Tier[T]] = []
        if self.market_provider is not None:
            tiers.append((self.market_provider.name, call))
        outcome = await first_available(f"market.{field}", tiers, fallback)
        sources[field] = outcome.source
        if outcome.source == "provider":
            self.cache.set(key, outcome.value)
        return outcome.value

    async def _generate_insights(
        self,
        market: str,
        market_size: MarketSize,
        competitors: List[Competitor],
        barriers: List[str],
        tariffs: Dict[str, TariffInfo],
        profile: BusinessProfile,
        sources: Dict[str, FieldSource],
    ) -> GeneratedInsights:
        tiers: List[Tier[GeneratedInsights]] = []
        llm = self.enrichment_provider
        if llm is not None:

            async def _synthesize() -> GeneratedInsights:
                return await llm_insights(llm, market, market_size, competitors, barriers, tariffs, profile)

            tiers.append((llm.name, _synthesize))

        outcome = await first_available(
            "market.insights",
            tiers,
            lambda: rule_based_insights(market, market_size, competitors, barriers, tariffs, profile),
        )
        sources["insights"] = outcome.source
        return outcome.value

    def fallback_insight(
        self,
        market: str,
        categories: Sequence[str],
        profile: BusinessProfile,
    ) -> MarketInsight:
        """Fully deterministic insight record for ``market``."""

        market_size = fallback_data.fallback_market_size(market)
        competitors = fallback_data.fallback_competitors(market)
        barriers = fallback_data.fallback_barriers(market)
        tariffs = derive_tariffs(fallback_data.fallback_base_tariff(market), categories)
        generated = rule_based_insights(market, market_size, competitors, barriers, tariffs, profile)
        return MarketInsight(
            market=market,
            market_size=market_size,
            competitors=competitors,
            entry_barriers=barriers,
            tariffs=tariffs,
            opportunities=generated.opportunities,
            risks=generated.risks,
            recommendations=generated.recommendations,
            sources={name: "fallback" for name in INSIGHT_FIELDS},
        )
