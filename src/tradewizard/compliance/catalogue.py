"""Deterministic compliance requirement catalogue."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from tradewizard.compliance.models import ComplianceRequirement, CostRange

_FOOD_KEYWORDS = ("food", "beverage", "agricultural")
_ELECTRONICS_KEYWORDS = ("electronics", "electrical")
_TEXTILE_KEYWORDS = ("textile", "apparel", "clothing")


def _requirement(
    market: str,
    suffix: str,
    name: str,
    description: str,
    cost: Tuple[float, float],
    days: int,
    body: str,
    documents: Sequence[str],
    categories: Sequence[str] = (),
) -> ComplianceRequirement:
    return ComplianceRequirement(
        id=f"cr-{market}-{suffix}",
        name=name,
        description=description,
        is_required=True,
        estimated_cost=CostRange(min=cost[0], max=cost[1]),
        estimated_timeline_days=days,
        country_code=market,
        regulatory_body=body,
        product_categories=list(categories),
        documentation_needed=list(documents),
    )


def common_requirements(market: str) -> List[ComplianceRequirement]:
    return [
        _requirement(
            market,
            "001",
            "Registration as Exporter",
            "Business must be registered as an exporter with the local export authority.",
            (200, 500),
            30,
            "Department of Trade and Industry",
            ("Business registration", "Tax clearance certificate"),
        ),
        _requirement(
            market,
            "002",
            "Export Permit",
            "An export permit specific to the product category.",
            (100, 300),
            14,
            "Customs Authority",
            ("Product specification sheets", "Origin certificate"),
        ),
    ]


def category_requirements(market: str, category: str) -> List[ComplianceRequirement]:
    lowered = category.lower()
    rows: List[ComplianceRequirement] = []
    if any(keyword in lowered for keyword in _FOOD_KEYWORDS):
        rows.append(
            _requirement(
                market,
                "food-001",
                "Food Safety Certification",
                "Products must meet food safety standards and have appropriate certification.",
                (1000, 5000),
                90,
                "Food Safety Authority",
                ("Lab test results", "Production facility inspection report"),
                (category,),
            )
        )
        rows.append(
            _requirement(
                market,
                "food-002",
                "Packaging and Labeling Requirements",
                "Food products must meet labeling requirements including ingredients, "
                "nutritional information and allergen warnings.",
                (500, 2000),
                45,
                "Food and Drug Administration",
                ("Label designs", "Packaging specifications"),
                (category,),
            )
        )
    if any(keyword in lowered for keyword in _ELECTRONICS_KEYWORDS):
        rows.append(
            _requirement(
                market,
                "elec-001",
                "Electrical Safety Certification",
                "Electronic products must meet safety standards and have appropriate certification.",
                (2000, 7000),
                60,
                "Electrical Safety Authority",
                ("Technical specifications", "Safety test results"),
                (category,),
            )
        )
    if any(keyword in lowered for keyword in _TEXTILE_KEYWORDS):
        rows.append(
            _requirement(
                market,
                "text-001",
                "Textile Labeling Requirements",
                "Textile products must meet labeling requirements including fiber content and care instructions.",
                (300, 1000),
                30,
                "Consumer Protection Agency",
                ("Fiber content analysis", "Label samples"),
                (category,),
            )
        )
    return rows


def fallback_requirements(market: str, categories: Sequence[str]) -> List[ComplianceRequirement]:
    """Common requirements plus category specifics, de-duplicated by id."""

    rows = common_requirements(market)
    seen = {item.id for item in rows}
    for category in categories:
        for item in category_requirements(market, category):
            if item.id not in seen:
                seen.add(item.id)
                rows.append(item)
    return rows
