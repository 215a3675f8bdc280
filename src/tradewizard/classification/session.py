"""Guided classification session: one chapter → heading → subheading walk."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional

from tradewizard.classification.engine import HSClassificationEngine
from tradewizard.classification.models import ClassificationCandidate, HSLevel, HSSelection
from tradewizard.errors import HierarchyError, InvalidTransitionError

logger = logging.getLogger(__name__)

AutoAdvanceCallback = Callable[[ClassificationCandidate], None]


class SessionState(str, Enum):
    UNSTARTED = "unstarted"
    CHAPTER_SELECTED = "chapter_selected"
    HEADING_SELECTED = "heading_selected"
    SUBHEADING_SELECTED = "subheading_selected"
    COMPLETE = "complete"


_STATE_FOR_LEVEL = {
    HSLevel.CHAPTER: SessionState.CHAPTER_SELECTED,
    HSLevel.HEADING: SessionState.HEADING_SELECTED,
    HSLevel.SUBHEADING: SessionState.SUBHEADING_SELECTED,
}


class ClassificationSession:
    """State machine over a single HS selection.

    Selecting an ancestor clears every descendant. ``COMPLETE`` is terminal:
    every selection is rejected until :meth:`reset`. When ``auto_advance`` is
    on, a provider-sourced child option at or above the engine's threshold is
    selected automatically and reported through ``on_auto_advance``; the walk
    never auto-completes.
    """

    def __init__(
        self,
        engine: HSClassificationEngine,
        *,
        auto_advance: bool = True,
        on_auto_advance: Optional[AutoAdvanceCallback] = None,
    ) -> None:
        self.engine = engine
        self.auto_advance = auto_advance
        self.on_auto_advance = on_auto_advance
        self._selection = HSSelection()
        self._state = SessionState.UNSTARTED
        self._options: List[ClassificationCandidate] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def selection(self) -> HSSelection:
        return self._selection

    @property
    def options(self) -> List[ClassificationCandidate]:
        """Options for the next level below the current selection."""

        return list(self._options)

    # -------------------------------------------------------------------------
    # Synchronous transitions
    # -------------------------------------------------------------------------

    def select(self, candidate: ClassificationCandidate) -> HSSelection:
        """Select ``candidate`` at its own level, clearing deeper selections."""

        if self._state is SessionState.COMPLETE:
            raise InvalidTransitionError(self._state.value, f"select {candidate.code}")

        level = candidate.level
        current = self._selection
        if level is HSLevel.CHAPTER:
            updated = HSSelection(chapter=candidate)
        elif level is HSLevel.HEADING:
            if current.chapter is None:
                raise InvalidTransitionError(self._state.value, "select a heading before a chapter")
            if candidate.code[:2] != current.chapter.code:
                raise HierarchyError(f"heading {candidate.code} is not under chapter {current.chapter.code}")
            updated = HSSelection(chapter=current.chapter, heading=candidate)
        else:
            if current.heading is None:
                raise InvalidTransitionError(self._state.value, "select a subheading before a heading")
            if candidate.code[:4] != current.heading.code:
                raise HierarchyError(f"subheading {candidate.code} is not under heading {current.heading.code}")
            updated = HSSelection(chapter=current.chapter, heading=current.heading, subheading=candidate)

        self._selection = updated
        self._state = _STATE_FOR_LEVEL[level]
        self._options = []
        return updated

    def complete(self) -> HSSelection:
        if self._state is not SessionState.SUBHEADING_SELECTED:
            raise InvalidTransitionError(self._state.value, "complete")
        self._state = SessionState.COMPLETE
        return self._selection

    def reset(self) -> None:
        self._selection = HSSelection()
        self._state = SessionState.UNSTARTED
        self._options = []

    # -------------------------------------------------------------------------
    # Provider-backed navigation
    # -------------------------------------------------------------------------

    async def begin(self) -> List[ClassificationCandidate]:
        """Load chapter options (and auto-advance when a chapter is a strong match)."""

        if self._state is not SessionState.UNSTARTED or self._options:
            raise InvalidTransitionError(self._state.value, "begin")
        self._options = await self.engine.get_chapters()
        await self._maybe_auto_advance()
        return self.options

    async def choose(self, candidate: ClassificationCandidate) -> List[ClassificationCandidate]:
        """Select ``candidate`` and load the next level's options."""

        self.select(candidate)
        await self._load_children()
        await self._maybe_auto_advance()
        return self.options

    async def apply_search_result(self, candidate: ClassificationCandidate) -> HSSelection:
        """Fill every level down to ``candidate`` from a search-mode result.

        Ancestors inherit the candidate's confidence and source; names come
        from the engine's path lookup.
        """

        if self._state is SessionState.COMPLETE:
            raise InvalidTransitionError(self._state.value, f"select {candidate.code}")
        for item in self.engine.get_hs_code_path(candidate.code):
            if item.code == candidate.code:
                node = candidate
            else:
                node = ClassificationCandidate(
                    code=item.code,
                    description=item.name,
                    confidence=candidate.confidence,
                    source=candidate.source,
                )
            self.select(node)
        await self._load_children()
        return self._selection

    async def _load_children(self) -> None:
        deepest = self._selection.deepest
        if deepest is None or deepest.level is HSLevel.SUBHEADING:
            self._options = []
            return
        self._options = await self.engine.get_child_options(deepest.code, deepest.level + 1)

    async def _maybe_auto_advance(self) -> None:
        while self.auto_advance and self._options and self._state is not SessionState.SUBHEADING_SELECTED:
            top = self._options[0]
            if not self.engine.should_auto_advance(top):
                return
            logger.info("Auto-advancing HS selection to %s (confidence %.2f)", top.code, top.confidence)
            self.select(top)
            if self.on_auto_advance is not None:
                self.on_auto_advance(top)
            await self._load_children()
