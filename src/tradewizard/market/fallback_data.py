"""Deterministic market data used when the market data provider misses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from tradewizard.market.models import Competitor, MarketSize

FALLBACK_YEAR = 2024


@dataclass(frozen=True)
class MarketProfile:
    size_usd_bn: float
    growth_rate: float
    base_tariff: float
    competitors: Tuple[Tuple[str, float, str, Tuple[str, ...], Tuple[str, ...]], ...]
    barriers: Tuple[str, ...]


_PROFILES: Dict[str, MarketProfile] = {
    "US": MarketProfile(
        size_usd_bn=320.0,
        growth_rate=3.2,
        base_tariff=3.5,
        competitors=(
            ("Domestic market leaders", 28.0, "US", ("Distribution reach", "Brand recognition"), ("Higher price points",)),
            ("Mexican exporters", 14.0, "MX", ("Proximity", "USMCA access"), ("Limited premium range",)),
            ("Chinese exporters", 12.0, "CN", ("Low cost",), ("Quality perception", "Section 301 duties")),
        ),
        barriers=("FDA/CPSC product regulations", "State-level labelling rules", "High marketing costs"),
    ),
    "GB": MarketProfile(
        size_usd_bn=85.0,
        growth_rate=2.1,
        base_tariff=4.0,
        competitors=(
            ("EU suppliers", 31.0, "EU", ("Established supply chains",), ("Post-Brexit border friction",)),
            ("Domestic brands", 22.0, "GB", ("Retail relationships",), ("Limited capacity",)),
        ),
        barriers=("UKCA marking", "Customs declarations after Brexit"),
    ),
    "DE": MarketProfile(
        size_usd_bn=140.0,
        growth_rate=1.8,
        base_tariff=4.2,
        competitors=(
            ("German manufacturers", 35.0, "DE", ("Engineering reputation", "Quality"), ("High labour costs",)),
            ("Polish and Czech suppliers", 15.0, "PL", ("Cost advantage",), ("Smaller brands",)),
        ),
        barriers=("CE marking", "Packaging take-back obligations", "German-language documentation"),
    ),
    "CN": MarketProfile(
        size_usd_bn=410.0,
        growth_rate=5.6,
        base_tariff=7.5,
        competitors=(
            ("State-owned enterprises", 30.0, "CN", ("Scale", "Government relationships"), ("Slow innovation",)),
            ("Private domestic champions", 24.0, "CN", ("Speed to market",), ("Price wars",)),
            ("Japanese and Korean brands", 11.0, "JP", ("Premium perception",), ("Political sensitivity",)),
        ),
        barriers=("CCC certification", "Cross-border e-commerce rules", "Local partner requirements"),
    ),
    "JP": MarketProfile(
        size_usd_bn=150.0,
        growth_rate=1.2,
        base_tariff=4.5,
        competitors=(
            ("Japanese incumbents", 40.0, "JP", ("Customer loyalty", "Quality"), ("Ageing product lines",)),
            ("Korean suppliers", 12.0, "KR", ("Design",), ("Distribution gaps",)),
        ),
        barriers=("Strict quality expectations", "Complex distribution networks", "Japanese labelling"),
    ),
    "AE": MarketProfile(
        size_usd_bn=28.0,
        growth_rate=4.8,
        base_tariff=5.0,
        competitors=(
            ("Regional distributors", 26.0, "AE", ("Re-export hubs",), ("Thin margins",)),
            ("Indian exporters", 18.0, "IN", ("Cost", "Diaspora networks"), ("Inconsistent quality",)),
            ("European brands", 15.0, "EU", ("Premium positioning",), ("High prices",)),
        ),
        barriers=("Halal certification for food", "Arabic labelling", "Emirates Conformity Assessment"),
    ),
    "ZA": MarketProfile(
        size_usd_bn=18.0,
        growth_rate=2.4,
        base_tariff=9.0,
        competitors=(
            ("Local producers", 33.0, "ZA", ("Local sourcing",), ("Power supply disruptions",)),
            ("Chinese exporters", 20.0, "CN", ("Low cost",), ("After-sales support",)),
        ),
        barriers=("NRCS compulsory specifications", "Port congestion"),
    ),
}

_DEFAULT_PROFILE = MarketProfile(
    size_usd_bn=50.0,
    growth_rate=3.0,
    base_tariff=5.0,
    competitors=(
        ("Local market leaders", 25.0, "", ("Established distribution",), ("Limited international reach",)),
        ("International brands", 18.0, "", ("Brand recognition",), ("Higher price points",)),
    ),
    barriers=("Product registration requirements", "Import documentation", "Local distribution access"),
)


def profile_for(market: str) -> MarketProfile:
    return _PROFILES.get(market, _DEFAULT_PROFILE)


def fallback_market_size(market: str) -> MarketSize:
    profile = profile_for(market)
    return MarketSize(
        value=profile.size_usd_bn * 1_000_000_000,
        currency="USD",
        year=FALLBACK_YEAR,
        growth_rate=profile.growth_rate,
    )


def fallback_competitors(market: str) -> List[Competitor]:
    return [
        Competitor(
            name=name,
            market_share=share,
            country=country or market,
            strengths=list(strengths),
            weaknesses=list(weaknesses),
        )
        for name, share, country, strengths, weaknesses in profile_for(market).competitors
    ]


def fallback_barriers(market: str) -> List[str]:
    return list(profile_for(market).barriers)


def fallback_base_tariff(market: str) -> float:
    return profile_for(market).base_tariff
