"""Opportunity, risk and recommendation synthesis for a market."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence

from tradewizard.market.models import BusinessProfile, Competitor, MarketSize, TariffInfo
from tradewizard.providers.errors import MalformedResponseError
from tradewizard.providers.sources import LLMProvider

HIGH_GROWTH_RATE = 4.0
DOMINANT_SHARE = 25.0
HIGH_TARIFF_RATE = 10.0
LOW_TARIFF_RATE = 2.0
MAX_BARRIER_BULLETS = 3

_EXPERIENCE_RECOMMENDATIONS = {
    "none": "Enter through an experienced local distributor or agent before building a direct presence",
    "some": "Expand existing distributor relationships and add targeted trade-show participation",
    "extensive": "Consider a local subsidiary or direct-to-retail channel to capture more margin",
}


@dataclass(frozen=True)
class GeneratedInsights:
    opportunities: List[str]
    risks: List[str]
    recommendations: List[str]


def rule_based_insights(
    market: str,
    market_size: MarketSize,
    competitors: Sequence[Competitor],
    barriers: Sequence[str],
    tariffs: Mapping[str, TariffInfo],
    profile: BusinessProfile,
) -> GeneratedInsights:
    """Derive insight bullets from already fetched structured data."""

    opportunities: List[str] = []
    risks: List[str] = []
    recommendations: List[str] = []

    growth = market_size.growth_rate
    if growth > HIGH_GROWTH_RATE:
        opportunities.append(f"High market growth of {growth:.1f}% per year in {market} favours new entrants")
    elif growth <= 0:
        risks.append(f"Flat or shrinking demand in {market} ({growth:.1f}% growth)")

    for competitor in competitors:
        if competitor.weaknesses:
            weakness = competitor.weaknesses[0]
            opportunities.append(f"Counter-position against {competitor.name} on {weakness.lower()}")

    if competitors:
        leader = max(competitors, key=lambda item: item.market_share)
        if leader.market_share >= DOMINANT_SHARE:
            risks.append(f"{leader.name} holds {leader.market_share:.0f}% market share")

    for barrier in list(barriers)[:MAX_BARRIER_BULLETS]:
        risks.append(f"Entry barrier: {barrier}")
        recommendations.append(f"Budget time and cost for {barrier} before the first shipment")

    if tariffs:
        category, highest = max(tariffs.items(), key=lambda item: item[1].rate)
        lowest = min(info.rate for info in tariffs.values())
        if highest.rate >= HIGH_TARIFF_RATE:
            risks.append(f"Tariff of {highest.rate:.2f}% on {category} reduces price competitiveness")
            recommendations.append("Check preferential origin rules and free trade agreement eligibility")
        elif lowest <= LOW_TARIFF_RATE:
            opportunities.append(f"Low import tariffs ({lowest:.2f}%) in {market}")

    recommendations.append(_EXPERIENCE_RECOMMENDATIONS[profile.export_experience])

    if not opportunities:
        opportunities.append(f"Steady demand of {growth:.1f}% annual growth supports a focused test launch in {market}")
    if not risks:
        risks.append("Currency fluctuations may affect export margins")
    return GeneratedInsights(opportunities=opportunities, risks=risks, recommendations=recommendations)


def _string_list(provider: str, payload: Dict[str, Any], key: str) -> List[str]:
    value = payload.get(key)
    if not isinstance(value, list):
        raise MalformedResponseError(provider, f"insight JSON field {key!r} is not a list")
    items = [str(item).strip() for item in value if str(item).strip()]
    if not items:
        raise MalformedResponseError(provider, f"insight JSON field {key!r} is empty")
    return items


async def llm_insights(
    llm: LLMProvider,
    market: str,
    market_size: MarketSize,
    competitors: Sequence[Competitor],
    barriers: Sequence[str],
    tariffs: Mapping[str, TariffInfo],
    profile: BusinessProfile,
) -> GeneratedInsights:
    """Ask the enrichment provider to synthesize insight bullets.

    Any missing or empty list is treated as a malformed response so the
    caller can fall back to :func:`rule_based_insights`.
    """

    facts = {
        "market": market,
        "marketSize": market_size.model_dump(),
        "competitors": [item.model_dump() for item in competitors],
        "entryBarriers": list(barriers),
        "tariffs": {name: info.model_dump() for name, info in tariffs.items()},
        "exportExperience": profile.export_experience,
        "industry": profile.industry,
    }
    payload = await llm.complete_json(
        [
            {
                "role": "system",
                "content": "You are a market entry analyst. Respond only with a JSON object.",
            },
            {
                "role": "user",
                "content": (
                    "Using the market data below, respond with JSON "
                    '{"opportunities": [...], "risks": [...], "recommendations": [...]} '
                    "of short bullet points.\n\n" + json.dumps(facts, sort_keys=True)
                ),
            },
        ],
        temperature=0.2,
    )
    return GeneratedInsights(
        opportunities=_string_list(llm.name, payload, "opportunities"),
        risks=_string_list(llm.name, payload, "risks"),
        recommendations=_string_list(llm.name, payload, "recommendations"),
    )
