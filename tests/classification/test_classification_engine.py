from __future__ import annotations

import asyncio

import pytest

from tests.helpers.provider_stubs import json_response, routed_handler
from tradewizard.classification import HSClassificationEngine, HSLevel
from tradewizard.errors import HierarchyError, InvalidInputError
from tradewizard.providers import ClassificationProvider, LLMProvider


def _engine(make_client, routes=None, calls=None, llm_routes=None, **kwargs) -> HSClassificationEngine:
    provider = None
    llm = None
    if routes is not None:
        provider = ClassificationProvider(make_client(routed_handler(routes, calls), name="hs-code", max_retries=0))
    if llm_routes is not None:
        llm = LLMProvider(make_client(routed_handler(llm_routes), name="openai", max_retries=0))
    return HSClassificationEngine(provider, llm, **kwargs)


def _search(*rows):
    return {"results": [{"hsCode": code, "description": desc, "confidence": conf} for code, desc, conf in rows]}


def test_provider_match_classifies_and_builds_path(make_client):
    engine = _engine(
        make_client,
        routes={"/nomenclature/search": _search(("8517.12", "Telephones for cellular networks", 95))},
    )

    candidates = asyncio.run(engine.classify("iPhone"))

    assert len(candidates) == 1
    assert candidates[0].code == "851712"
    assert candidates[0].confidence == pytest.approx(0.95)
    assert candidates[0].source == "provider"
    assert engine.should_auto_advance(candidates[0])

    path = engine.get_hs_code_path("851712")
    assert [item.code for item in path] == ["85", "8517", "851712"]
    assert [item.level for item in path] == [HSLevel.CHAPTER, HSLevel.HEADING, HSLevel.SUBHEADING]
    assert path[0].name == "Electrical machinery and equipment and parts thereof"
    assert path[2].name == "Telephones for cellular networks"


def test_unknown_description_returns_single_low_confidence_fallback():
    engine = HSClassificationEngine()

    candidates = asyncio.run(engine.classify("qzx unknown gizmo"))

    assert len(candidates) == 1
    assert candidates[0].source == "fallback"
    assert candidates[0].code == "9602"
    assert candidates[0].confidence < 0.5
    assert not engine.should_auto_advance(candidates[0])


def test_keyword_fallback_when_provider_fails(make_client):
    engine = _engine(make_client, routes={"/nomenclature/search": json_response({"message": "down"}, 503)})

    candidates = asyncio.run(engine.classify("Refurbished laptop computer"))

    assert [(item.code, item.source) for item in candidates] == [("8471", "fallback")]
    assert candidates[0].confidence == pytest.approx(0.30)


def test_llm_tier_used_when_provider_misses(make_client):
    completion = {
        "choices": [
            {
                "message": {
                    "role": "assistant",
                    "content": 'Result: {"hsCode": {"code": "2204.21", "description": "Wine"}, "confidence": 88}',
                }
            }
        ]
    }
    engine = _engine(
        make_client,
        routes={"/nomenclature/search": {"results": []}},
        llm_routes={"/chat/completions": completion},
    )

    candidates = asyncio.run(engine.classify("Bottled red wine"))

    assert [(item.code, item.description, item.source) for item in candidates] == [("220421", "Wine", "provider")]
    assert candidates[0].confidence == pytest.approx(0.88)


def test_unparseable_llm_output_falls_back(make_client):
    completion = {"choices": [{"message": {"content": "I am not sure."}}]}
    engine = _engine(make_client, llm_routes={"/chat/completions": completion})

    candidates = asyncio.run(engine.classify("cotton shirt"))

    assert candidates[0].source == "fallback"
    assert candidates[0].code == "6101"


def test_threshold_filters_and_preserves_order(make_client):
    engine = _engine(
        make_client,
        routes={
            "/nomenclature/search": _search(
                ("220421", "Wine", 0.7),
                ("851713", "Smartphones", 0.9),
                ("080212", "Almonds", 0.4),
            )
        },
    )

    candidates = asyncio.run(engine.classify("mixed", confidence_threshold=0.6))

    assert [item.code for item in candidates] == ["851713", "220421"]


def test_max_results_truncates_after_ranking(make_client):
    rows = [(f"2204{n}0", f"Row {n}", 0.5 + n / 10) for n in range(1, 5)]
    rows.append(("220421", "Row 5", 0.2))
    engine = _engine(make_client, routes={"/nomenclature/search": _search(*rows)})

    candidates = asyncio.run(engine.classify("wine", max_results=3))

    assert [item.code for item in candidates] == ["220440", "220430", "220420"]
    confidences = [item.confidence for item in candidates]
    assert confidences == sorted(confidences, reverse=True)


def test_threshold_leaving_nothing_returns_fallback(make_client):
    engine = _engine(make_client, routes={"/nomenclature/search": _search(("851713", "Smartphones", 0.4))})

    candidates = asyncio.run(engine.classify("smartphone", confidence_threshold=0.9))

    assert len(candidates) == 1
    assert candidates[0].source == "fallback"
    assert candidates[0].confidence < 0.9


def test_provider_results_are_cached(make_client):
    calls = []
    engine = _engine(
        make_client,
        routes={"/nomenclature/search": _search(("851713", "Smartphones", 0.9))},
        calls=calls,
    )

    async def scenario():
        await engine.classify("Smartphone")
        await engine.classify("  smartphone ")
        await engine.classify("smartphone", use_cache=False)

    asyncio.run(scenario())
    assert len(calls) == 2


def test_fallback_results_are_not_cached(make_client):
    calls = []
    engine = _engine(
        make_client,
        routes={"/nomenclature/search": json_response({"message": "down"}, 500)},
        calls=calls,
    )

    async def scenario():
        await engine.classify("toy robot")
        await engine.classify("toy robot")

    asyncio.run(scenario())
    assert len(calls) == 2


def test_invalid_classify_arguments():
    engine = HSClassificationEngine()
    with pytest.raises(InvalidInputError):
        asyncio.run(engine.classify("   "))
    with pytest.raises(InvalidInputError):
        asyncio.run(engine.classify("wine", confidence_threshold=1.5))
    with pytest.raises(InvalidInputError):
        asyncio.run(engine.classify("wine", max_results=0))


def test_search_returns_top_candidate(make_client):
    engine = _engine(
        make_client,
        routes={"/nomenclature/search": _search(("220421", "Wine", 0.6), ("220410", "Sparkling", 0.8))},
    )
    assert asyncio.run(engine.search("wine")).code == "220410"


def test_child_options_validate_parent_and_level():
    engine = HSClassificationEngine()
    with pytest.raises(HierarchyError):
        asyncio.run(engine.get_child_options("8", 2))
    with pytest.raises(HierarchyError):
        asyncio.run(engine.get_child_options("22", 3))
    with pytest.raises(InvalidInputError):
        asyncio.run(engine.get_child_options("2204", 4))
    with pytest.raises(InvalidInputError):
        asyncio.run(engine.get_child_options("22", None))


def test_child_options_from_tables_and_placeholders():
    engine = HSClassificationEngine()

    async def scenario():
        return (
            await engine.get_chapters(),
            await engine.get_child_options("22", 2),
            await engine.get_child_options("99", 2),
            await engine.get_child_options("2204", 3),
        )

    chapters, wine_headings, unknown, wine_subheadings = asyncio.run(scenario())

    assert all(len(item.code) == 2 for item in chapters)
    assert [item.code for item in wine_headings] == ["2201", "2202", "2203", "2204", "2205"]
    assert [item.code for item in unknown] == ["9901", "9902", "9903"]
    assert unknown[0].description == "Heading 9901"
    assert all(item.code.startswith("2204") for item in wine_subheadings)
    assert all(item.source == "fallback" for item in chapters + wine_headings + unknown)


def test_provider_listing_filtered_to_parent(make_client):
    engine = _engine(
        make_client,
        routes={
            "/nomenclature/headings": {
                "headings": [
                    {"code": "2204", "name": "Wine", "confidence": 0.7},
                    {"code": "8517", "name": "Phones", "confidence": 0.99},
                    {"code": "2203", "name": "Beer"},
                ]
            }
        },
    )

    options = asyncio.run(engine.get_child_options("22", 2))

    assert [(item.code, item.confidence) for item in options] == [("2204", 0.7), ("2203", 0.0)]
    assert all(item.source == "provider" for item in options)


def test_fallback_confidence_stays_below_auto_advance(make_client):
    engine = _engine(
        make_client,
        routes={
            "/nomenclature/search": _search(("220421", "Wine", 0.97)),
            "/nomenclature/headings": json_response({"message": "down"}, 503),
        },
    )

    async def scenario():
        await engine.classify("wine")
        return await engine.get_child_options("22", 2)

    options = asyncio.run(scenario())

    assert options[0].code == "2204"
    assert options[0].source == "fallback"
    assert options[0].confidence == pytest.approx(0.84)
    assert not engine.should_auto_advance(options[0])


def test_examples_are_prefix_filtered(make_client):
    engine = _engine(
        make_client,
        routes={
            "/nomenclature/examples": {
                "examples": [
                    {"name": "Phone", "description": "5G handset", "hsCode": "851713"},
                    {"name": "Wine", "description": "Red", "hsCode": "220421"},
                ]
            }
        },
    )

    examples = asyncio.run(engine.get_examples("8517"))

    assert [(item.name, item.hs_code) for item in examples] == [("Phone", "851713")]


def test_fallback_examples():
    engine = HSClassificationEngine()

    wine = asyncio.run(engine.get_examples("2204"))
    unknown = asyncio.run(engine.get_examples("99"))

    assert len(wine) == 3
    assert all(item.hs_code.startswith("2204") for item in wine)
    assert len(unknown) == 1
    assert unknown[0].hs_code == "99"


def test_path_rejects_malformed_codes():
    engine = HSClassificationEngine()
    with pytest.raises(HierarchyError):
        engine.get_hs_code_path("123")
    assert [item.name for item in engine.get_hs_code_path("9901")] == ["Chapter 99", "Heading 9901"]
