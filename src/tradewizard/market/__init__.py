"""Market insight aggregation."""

from tradewizard.market.aggregator import MarketAggregator, normalize_markets
from tradewizard.market.models import BusinessProfile, Competitor, MarketInsight, MarketSize, TariffInfo
from tradewizard.market.tariffs import category_multiplier, derive_tariffs

__all__ = [
    "BusinessProfile",
    "Competitor",
    "MarketAggregator",
    "MarketInsight",
    "MarketSize",
    "TariffInfo",
    "category_multiplier",
    "derive_tariffs",
    "normalize_markets",
]
