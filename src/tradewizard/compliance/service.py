from __future__ import annotations

import asyncio
import logging
import math
from typing import Dict, Iterable, List, Optional, Sequence

from tradewizard.compliance.catalogue import fallback_requirements
from tradewizard.compliance.models import ComplianceAssessment, ComplianceRequirement, CostRange
from tradewizard.market.aggregator import normalize_categories, normalize_markets
from tradewizard.market.models import BusinessProfile, FieldSource
from tradewizard.providers.fallback import Tier, first_available
from tradewizard.providers.models import ComplianceRequirementWire
from tradewizard.providers.sources import MarketDataProvider

logger = logging.getLogger(__name__)

# Share of each non-longest requirement's duration added to the longest one.
TIMELINE_OVERLAP_FACTOR = 0.25


def total_cost(requirements: Iterable[ComplianceRequirement], currency: str = "USD") -> CostRange:
    low = high = 0.0
    for item in requirements:
        if item.estimated_cost is not None:
            low += item.estimated_cost.min
            high += item.estimated_cost.max
    return CostRange(min=low, max=high, currency=currency)


def total_timeline(requirements: Iterable[ComplianceRequirement]) -> int:
    """Longest requirement plus a quarter of every other requirement, rounded half up."""

    durations = sorted(
        (item.estimated_timeline_days for item in requirements if item.estimated_timeline_days),
        reverse=True,
    )
    if not durations:
        return 0
    days = durations[0] + sum(value * TIMELINE_OVERLAP_FACTOR for value in durations[1:])
    return int(math.floor(days + 0.5))


def _from_wire(market: str, item: ComplianceRequirementWire) -> ComplianceRequirement:
    return ComplianceRequirement(
        id=item.id,
        name=item.name,
        description=item.description,
        is_required=item.is_required,
        estimated_cost=(
            CostRange(min=item.estimated_cost.min, max=item.estimated_cost.max, currency=item.estimated_cost.currency)
            if item.estimated_cost is not None
            else None
        ),
        estimated_timeline_days=item.estimated_timeline_days,
        country_code=market,
        regulatory_body=item.regulatory_body,
        product_categories=list(item.product_categories),
        documentation_needed=list(item.documentation_needed),
    )


class ComplianceService:
    """Collect compliance requirements for every target market."""

    def __init__(self, market_provider: MarketDataProvider | None = None) -> None:
        self.market_provider = market_provider

    async def get_requirements(
        self,
        markets: Sequence[str],
        categories: Sequence[str] = (),
        business_profile: Optional[BusinessProfile] = None,
    ) -> ComplianceAssessment:
        codes = normalize_markets(markets)
        category_names = normalize_categories(categories)

        per_market = await asyncio.gather(*(self._market_requirements(code, category_names) for code in codes))

        requirements: List[ComplianceRequirement] = []
        sources: Dict[str, FieldSource] = {}
        for code, (rows, source) in zip(codes, per_market):
            sources[code] = source
            requirements.extend(rows)

        if business_profile is not None and business_profile.certifications:
            held = {name.lower() for name in business_profile.certifications}
            requirements = [item for item in requirements if item.name.lower() not in held]

        return ComplianceAssessment(
            requirements=requirements,
            total_estimated_cost=total_cost(requirements),
            total_timeline_days=total_timeline(requirements),
            sources=sources,
        )

    async def _market_requirements(
        self, market: str, categories: List[str]
    ) -> tuple[List[ComplianceRequirement], FieldSource]:
        tiers: List[Tier[List[ComplianceRequirement]]] = []
        provider = self.market_provider
        if provider is not None:

            async def _fetch() -> List[ComplianceRequirement]:
                return [_from_wire(market, item) for item in await provider.requirements(market, categories)]

            tiers.append((provider.name, _fetch))
        outcome = await first_available(
            f"compliance.{market}", tiers, lambda: fallback_requirements(market, categories)
        )
        return outcome.value, outcome.source
