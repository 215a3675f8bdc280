from __future__ import annotations

import pytest

from tradewizard.market.tariffs import category_multiplier, derive_rate, derive_tariffs


@pytest.mark.parametrize(
    "category,multiplier",
    [
        ("Agricultural products", 1.5),
        ("food", 1.5),
        ("Consumer Electronics", 0.8),
        ("luxury goods", 2.0),
        ("Jewellery", 2.0),
        ("furniture", 1.0),
    ],
)
def test_category_multipliers(category, multiplier):
    assert category_multiplier(category) == multiplier


def test_derived_rates_are_rounded_to_two_places():
    assert derive_rate(3.33, "electronics") == 2.66
    assert derive_rate(4.1, "food") == 6.15
    assert derive_rate(0.0, "luxury") == 0.0


def test_tariff_table_keyed_by_category():
    table = derive_tariffs(10.0, ["electronics", "toys"], tariff_type="specific", conditions=["quota"])

    assert set(table) == {"electronics", "toys"}
    assert table["electronics"].rate == 8.0
    assert table["toys"].rate == 10.0
    assert table["toys"].type == "specific"
    assert table["toys"].conditions == ["quota"]


def test_no_categories_yields_general_row():
    table = derive_tariffs(4.5, [])
    assert list(table) == ["general"]
    assert table["general"].rate == 4.5
    assert table["general"].type == "ad valorem"
