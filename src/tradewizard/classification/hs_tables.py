"""Built-in HS nomenclature used when the classification provider misses.

The tables are deliberately small: a representative set of chapters, the
headings and subheadings most often needed by the guided flow, and a keyword
map for free-text descriptions. Anything not listed is synthesized as
numbered placeholders by :func:`placeholder_children`.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from tradewizard.classification.models import ProductExample

CHAPTERS: Dict[str, str] = {
    "01": "Live animals",
    "02": "Meat and edible meat offal",
    "03": "Fish and crustaceans, molluscs and other aquatic invertebrates",
    "04": "Dairy produce; birds' eggs; natural honey",
    "07": "Edible vegetables and certain roots and tubers",
    "08": "Edible fruit and nuts; peel of citrus fruit or melons",
    "09": "Coffee, tea, mate and spices",
    "16": "Preparations of meat, of fish or of crustaceans",
    "19": "Preparations of cereals, flour, starch or milk; pastrycooks' products",
    "20": "Preparations of vegetables, fruit, nuts or other parts of plants",
    "21": "Miscellaneous edible preparations",
    "22": "Beverages, spirits and vinegar",
    "33": "Essential oils and resinoids; perfumery, cosmetic or toilet preparations",
    "34": "Soap, organic surface-active agents, washing preparations, waxes and candles",
    "61": "Articles of apparel and clothing accessories, knitted or crocheted",
    "62": "Articles of apparel and clothing accessories, not knitted or crocheted",
    "84": "Nuclear reactors, boilers, machinery and mechanical appliances; parts thereof",
    "85": "Electrical machinery and equipment and parts thereof",
    "94": "Furniture; bedding, mattresses, cushions; lamps and lighting fittings",
    "95": "Toys, games and sports requisites; parts and accessories thereof",
    "96": "Miscellaneous manufactured articles",
}

HEADINGS: Dict[str, Dict[str, str]] = {
    "08": {
        "0801": "Coconuts, Brazil nuts and cashew nuts, fresh or dried",
        "0802": "Other nuts, fresh or dried, whether or not shelled or peeled",
        "0803": "Bananas, including plantains, fresh or dried",
        "0804": "Dates, figs, pineapples, avocados, guavas, mangoes and mangosteens",
        "0805": "Citrus fruit, fresh or dried",
    },
    "22": {
        "2201": "Waters, including natural or artificial mineral waters, not sweetened",
        "2202": "Waters with added sugar or flavoured; other non-alcoholic beverages",
        "2203": "Beer made from malt",
        "2204": "Wine of fresh grapes, including fortified wines; grape must",
        "2205": "Vermouth and other wine of fresh grapes flavoured with plants",
    },
    "16": {"1601": "Sausages and similar products, of meat, meat offal or blood"},
    "33": {"3303": "Perfumes and toilet waters"},
    "61": {"6101": "Men's or boys' overcoats, anoraks and similar articles, knitted"},
    "84": {"8471": "Automatic data processing machines and units thereof"},
    "85": {
        "8517": "Telephone sets, including smartphones; apparatus for transmission of voice, images or data",
    },
    "94": {"9401": "Seats and parts thereof"},
    "95": {"9503": "Tricycles, scooters, dolls and other toys; puzzles"},
    "96": {"9602": "Worked vegetable or mineral carving material and articles thereof"},
}

SUBHEADINGS: Dict[str, Dict[str, str]] = {
    "0802": {
        "080211": "Almonds, in shell",
        "080212": "Almonds, shelled",
        "080221": "Hazelnuts, in shell",
        "080222": "Hazelnuts, shelled",
        "080231": "Walnuts, in shell",
        "080232": "Walnuts, shelled",
        "080241": "Chestnuts, in shell",
        "080242": "Chestnuts, shelled",
        "080251": "Pistachios, in shell",
        "080252": "Pistachios, shelled",
        "080261": "Macadamia nuts, in shell",
        "080262": "Macadamia nuts, shelled",
    },
    "2204": {
        "220410": "Sparkling wine",
        "220421": "Wine in containers holding 2 l or less",
        "220422": "Wine in containers holding more than 2 l but not more than 10 l",
        "220429": "Wine in other containers",
        "220430": "Other grape must",
    },
    "8471": {
        "847130": "Portable automatic data processing machines, weighing not more than 10 kg",
        "847141": "Other machines comprising a processing unit and an input and output unit",
        "847150": "Processing units other than those of subheading 8471.41 or 8471.49",
    },
    "8517": {
        "851711": "Line telephone sets with cordless handsets",
        "851713": "Smartphones",
        "851714": "Other telephones for cellular networks or other wireless networks",
        "851762": "Machines for the reception, conversion and transmission of voice, images or data",
    },
}

EXAMPLES: Dict[str, List[Tuple[str, str]]] = {
    "080212": [("Shelled almonds", "Raw whole almonds without shell, bulk packed")],
    "080232": [("Walnut kernels", "Light halves and pieces, vacuum packed")],
    "220421": [
        ("Bottled red wine", "Still red wine in 750 ml glass bottles"),
        ("Boxed white wine", "Still white wine in 1.5 l bag-in-box"),
    ],
    "220410": [("Sparkling wine", "Traditional method sparkling wine, 750 ml")],
    "847130": [("Laptop computer", "Notebook computer with 14 inch display, 1.4 kg")],
    "851713": [("Smartphone", "5G mobile phone with touchscreen and camera")],
    "6101": [("Men's knitted anorak", "Cotton knit hooded jacket")],
    "9401": [("Office chair", "Swivel chair with adjustable height")],
    "9503": [("Jigsaw puzzle", "1000-piece cardboard puzzle")],
    "3303": [("Eau de parfum", "50 ml spray perfume")],
    "1601": [("Pork sausages", "Smoked pork sausages, vacuum packed")],
}

# Keyword groups mapped to the heading used by the free-text fallback; the
# group key is the category name.
KEYWORD_HEADINGS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "electronics": ("8471", ("electronics", "electronic", "computer", "laptop", "tablet")),
    "clothing": ("6101", ("clothing", "apparel", "garment", "jacket", "shirt")),
    "food": ("1601", ("food", "sausage", "meat")),
    "furniture": ("9401", ("furniture", "chair", "sofa", "seat")),
    "toys": ("9503", ("toys", "toy", "puzzle", "doll")),
    "cosmetics": ("3303", ("cosmetics", "cosmetic", "perfume", "fragrance")),
}

UNCLASSIFIED_CODE = "9602"
UNCLASSIFIED_DESCRIPTION = "Miscellaneous manufactured articles"
KEYWORD_FALLBACK_CONFIDENCE = 0.30
UNCLASSIFIED_CONFIDENCE = 0.15

PLACEHOLDER_COUNT = 3


def heading_name(code: str) -> Optional[str]:
    return HEADINGS.get(code[:2], {}).get(code)


def subheading_name(code: str) -> Optional[str]:
    return SUBHEADINGS.get(code[:4], {}).get(code)


def name_for(code: str) -> Optional[str]:
    if len(code) == 2:
        return CHAPTERS.get(code)
    if len(code) == 4:
        return heading_name(code)
    if len(code) == 6:
        return subheading_name(code)
    return None


def known_children(parent_code: str) -> Dict[str, str]:
    if not parent_code:
        return dict(CHAPTERS)
    if len(parent_code) == 2:
        return dict(HEADINGS.get(parent_code, {}))
    if len(parent_code) == 4:
        return dict(SUBHEADINGS.get(parent_code, {}))
    return {}


def placeholder_children(parent_code: str, count: int = PLACEHOLDER_COUNT) -> Dict[str, str]:
    """Numbered child codes ``<parent>01``, ``<parent>02``, ... for unknown parents."""

    label = "Heading" if len(parent_code) == 2 else "Subheading"
    return {
        f"{parent_code}{index:02d}": f"{label} {parent_code}{index:02d}"
        for index in range(1, count + 1)
    }


def match_keyword(description: str) -> Optional[Tuple[str, str]]:
    """Return ``(category, heading_code)`` for the first keyword group found."""

    lowered = description.lower()
    tokens = set(lowered.replace("-", " ").split())
    for category, (code, keywords) in KEYWORD_HEADINGS.items():
        if category in lowered or tokens.intersection(keywords):
            return category, code
    return None


def examples_for(code: str) -> List[ProductExample]:
    rows: List[ProductExample] = []
    for example_code, items in sorted(EXAMPLES.items()):
        if not example_code.startswith(code):
            continue
        for name, description in items:
            rows.append(ProductExample(name=name, description=description, hs_code=example_code))
    return rows
