from __future__ import annotations

import asyncio

import pytest
from pydantic import ValidationError

from tests.helpers.provider_stubs import routed_handler
from tradewizard.classification import (
    ClassificationCandidate,
    ClassificationSession,
    HSClassificationEngine,
    HSSelection,
    SessionState,
)
from tradewizard.errors import HierarchyError, InvalidTransitionError
from tradewizard.providers import ClassificationProvider


def candidate(code: str, confidence: float = 0.5, source: str = "provider") -> ClassificationCandidate:
    return ClassificationCandidate(code=code, description=f"HS {code}", confidence=confidence, source=source)


def _listing_engine(make_client, chapters, headings, subheadings) -> HSClassificationEngine:
    routes = {
        "/nomenclature/chapters": {"results": chapters},
        "/nomenclature/headings": {"results": headings},
        "/nomenclature/subheadings": {"results": subheadings},
    }
    return HSClassificationEngine(ClassificationProvider(make_client(routed_handler(routes), max_retries=0)))


def test_manual_walk_to_completion():
    session = ClassificationSession(HSClassificationEngine())

    async def scenario():
        chapters = await session.begin()
        headings = await session.choose(next(item for item in chapters if item.code == "22"))
        subheadings = await session.choose(next(item for item in headings if item.code == "2204"))
        leftover = await session.choose(next(item for item in subheadings if item.code == "220421"))
        return chapters, headings, subheadings, leftover

    chapters, headings, subheadings, leftover = asyncio.run(scenario())

    assert len(chapters) > 10
    assert all(item.code.startswith("22") for item in headings)
    assert all(item.code.startswith("2204") for item in subheadings)
    assert leftover == []
    assert session.state is SessionState.SUBHEADING_SELECTED

    selection = session.complete()
    assert session.state is SessionState.COMPLETE
    assert selection.code == "220421"
    assert selection.is_complete


def test_selecting_ancestor_clears_descendants():
    session = ClassificationSession(HSClassificationEngine())
    session.select(candidate("22"))
    session.select(candidate("2204"))
    session.select(candidate("220421"))

    selection = session.select(candidate("08"))

    assert selection.chapter.code == "08"
    assert selection.heading is None
    assert selection.subheading is None
    assert session.state is SessionState.CHAPTER_SELECTED

    session.select(candidate("0802"))
    session.select(candidate("080212"))
    selection = session.select(candidate("0803"))
    assert selection.heading.code == "0803"
    assert selection.subheading is None
    assert session.state is SessionState.HEADING_SELECTED


def test_hierarchy_is_enforced():
    session = ClassificationSession(HSClassificationEngine())
    with pytest.raises(InvalidTransitionError):
        session.select(candidate("2204"))

    session.select(candidate("22"))
    with pytest.raises(HierarchyError):
        session.select(candidate("8517"))
    with pytest.raises(InvalidTransitionError):
        session.select(candidate("220421"))

    session.select(candidate("2204"))
    with pytest.raises(HierarchyError):
        session.select(candidate("220321"))
    assert session.selection.code == "2204"


def test_complete_is_terminal_until_reset():
    session = ClassificationSession(HSClassificationEngine())
    with pytest.raises(InvalidTransitionError):
        session.complete()

    for code in ("22", "2204", "220421"):
        session.select(candidate(code))
    session.complete()

    with pytest.raises(InvalidTransitionError) as excinfo:
        session.select(candidate("08"))
    assert "complete" in str(excinfo.value)
    with pytest.raises(InvalidTransitionError):
        session.complete()

    session.reset()
    assert session.state is SessionState.UNSTARTED
    assert session.selection.code is None
    session.select(candidate("08"))


def test_begin_only_once():
    session = ClassificationSession(HSClassificationEngine(), auto_advance=False)
    asyncio.run(session.begin())
    with pytest.raises(InvalidTransitionError):
        asyncio.run(session.begin())

    session.reset()
    assert asyncio.run(session.begin())


def test_auto_advance_follows_strong_matches(make_client):
    engine = _listing_engine(
        make_client,
        chapters=[{"code": "85", "confidence": 0.95}, {"code": "84", "confidence": 0.2}],
        headings=[{"code": "8517", "confidence": 0.9}],
        subheadings=[{"code": "851713", "confidence": 0.6}, {"code": "851714", "confidence": 0.3}],
    )
    advanced = []
    session = ClassificationSession(engine, on_auto_advance=lambda item: advanced.append(item.code))

    options = asyncio.run(session.begin())

    assert advanced == ["85", "8517"]
    assert session.state is SessionState.HEADING_SELECTED
    assert [item.code for item in options] == ["851713", "851714"]


def test_auto_advance_stops_before_completion(make_client):
    engine = _listing_engine(
        make_client,
        chapters=[{"code": "85", "confidence": 0.99}],
        headings=[{"code": "8517", "confidence": 0.99}],
        subheadings=[{"code": "851713", "confidence": 0.99}],
    )
    session = ClassificationSession(engine)

    asyncio.run(session.begin())

    assert session.state is SessionState.SUBHEADING_SELECTED
    assert session.selection.code == "851713"
    assert session.options == []


def test_auto_advance_can_be_disabled(make_client):
    engine = _listing_engine(
        make_client,
        chapters=[{"code": "85", "confidence": 0.95}],
        headings=[{"code": "8517", "confidence": 0.9}],
        subheadings=[],
    )
    session = ClassificationSession(engine, auto_advance=False)

    options = asyncio.run(session.begin())

    assert session.state is SessionState.UNSTARTED
    assert [item.code for item in options] == ["85"]


def test_fallback_options_never_auto_advance():
    engine = HSClassificationEngine()
    session = ClassificationSession(engine)

    asyncio.run(session.begin())

    assert session.state is SessionState.UNSTARTED
    assert all(item.source == "fallback" for item in session.options)


def test_search_result_fills_every_level():
    session = ClassificationSession(HSClassificationEngine())
    result = candidate("220421", confidence=0.3, source="fallback")

    selection = asyncio.run(session.apply_search_result(result))

    assert [selection.chapter.code, selection.heading.code, selection.subheading.code] == ["22", "2204", "220421"]
    assert selection.heading.description == "Wine of fresh grapes, including fortified wines; grape must"
    assert selection.subheading == result
    assert session.state is SessionState.SUBHEADING_SELECTED


def test_selection_model_rejects_broken_hierarchy():
    with pytest.raises(ValidationError):
        HSSelection(heading=candidate("2204"))
    with pytest.raises(ValidationError):
        HSSelection(chapter=candidate("22"), heading=candidate("8517"))
    with pytest.raises(ValidationError):
        HSSelection(chapter=candidate("2204"))
    assert HSSelection(chapter=candidate("22"), heading=candidate("2204")).code == "2204"
