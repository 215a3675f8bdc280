"""Category-adjusted tariff derivation.

Rates are derived from a market's base rate with fixed multipliers; no
provider is involved so the transform is reproducible.
"""

from __future__ import annotations

from typing import Dict, Iterable, Sequence, Tuple

from tradewizard.market.models import TariffInfo

GENERAL_CATEGORY = "general"

_MULTIPLIERS: Tuple[Tuple[Tuple[str, ...], float], ...] = (
    (("agricultural", "agriculture", "food", "beverage"), 1.5),
    (("electronics", "electronic", "electrical"), 0.8),
    (("luxury", "jewelry", "jewellery"), 2.0),
)


def category_multiplier(category: str) -> float:
    lowered = category.lower()
    for keywords, multiplier in _MULTIPLIERS:
        if any(keyword in lowered for keyword in keywords):
            return multiplier
    return 1.0


def derive_rate(base_rate: float, category: str) -> float:
    return round(base_rate * category_multiplier(category), 2)


def derive_tariffs(
    base_rate: float,
    categories: Sequence[str],
    *,
    tariff_type: str = "ad valorem",
    conditions: Iterable[str] = (),
) -> Dict[str, TariffInfo]:
    """Return a tariff table keyed by product category.

    An empty category list yields a single ``"general"`` row at the base rate.
    """

    rows = list(conditions)
    names = list(categories) or [GENERAL_CATEGORY]
    return {
        name: TariffInfo(rate=derive_rate(base_rate, name), type=tariff_type, conditions=list(rows))
        for name in names
    }
