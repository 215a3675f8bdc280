"""HS classification engine with provider, LLM and keyword fallback tiers."""

from __future__ import annotations

import logging
import re
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from tradewizard.caching import TTLCache
from tradewizard.classification import hs_tables
from tradewizard.classification.models import (
    ClassificationCandidate,
    HSCodePathItem,
    HSLevel,
    ProductExample,
)
from tradewizard.errors import HierarchyError, InvalidInputError
from tradewizard.observability import log_fallback
from tradewizard.providers.errors import MalformedResponseError
from tradewizard.providers.fallback import Tier, first_available
from tradewizard.providers.models import HSListingItem, HSMatch, ProductExampleWire
from tradewizard.providers.sources import ClassificationProvider, LLMProvider

logger = logging.getLogger(__name__)

_DIGIT_RE = re.compile(r"\D")
_SPACE_RE = re.compile(r"\s+")

DEFAULT_AUTO_ADVANCE_THRESHOLD = 0.85

_LLM_SYSTEM_PROMPT = (
    "You are an expert in Harmonized System (HS) product classification. "
    "Respond only with a JSON object."
)
_LLM_USER_PROMPT = (
    "Classify the following product and respond with JSON of the form "
    '{{"hsCode": {{"code": "6-digit code", "description": "...", "chapter": "..", "heading": "...."}}, '
    '"confidence": 0-100, "category": "...", "subcategory": "..."}}.\n\nProduct: {description}'
)


def normalize_description(description: str) -> str:
    return _SPACE_RE.sub(" ", (description or "").strip().lower())


def normalize_code(raw: Any) -> str:
    """Reduce a provider code such as ``"8517.12.00"`` to at most six digits of even length."""

    digits = _DIGIT_RE.sub("", str(raw or ""))[:6]
    return digits[: len(digits) - len(digits) % 2]


def normalize_confidence(raw: Any) -> float:
    """Map provider confidences (fractions or percentages) into [0, 1]."""

    value = float(raw or 0.0)
    if value > 1.0:
        value = value / 100.0
    return max(0.0, min(1.0, value))


def rank(candidates: Iterable[ClassificationCandidate]) -> List[ClassificationCandidate]:
    best: Dict[str, ClassificationCandidate] = {}
    for candidate in candidates:
        current = best.get(candidate.code)
        if current is None or candidate.confidence > current.confidence:
            best[candidate.code] = candidate
    return sorted(best.values(), key=lambda item: (-item.confidence, item.code))


class HSClassificationEngine:
    """Map product descriptions onto the chapter/heading/subheading hierarchy.

    Lookups go to the classification provider first, then (for free-text
    classification) to the LLM provider, and finally to the built-in tables
    in :mod:`tradewizard.classification.hs_tables`. Fallback results are
    tagged ``source="fallback"`` and never reach the auto-advance threshold.
    """

    def __init__(
        self,
        classification_provider: ClassificationProvider | None = None,
        llm_provider: LLMProvider | None = None,
        cache: TTLCache | None = None,
        *,
        auto_advance_threshold: float = DEFAULT_AUTO_ADVANCE_THRESHOLD,
    ) -> None:
        if not 0.0 < auto_advance_threshold <= 1.0:
            raise ValueError("auto_advance_threshold must be in (0, 1]")
        self.classification_provider = classification_provider
        self.llm_provider = llm_provider
        self.cache = cache if cache is not None else TTLCache()
        self.auto_advance_threshold = auto_advance_threshold
        self._known_confidence: Dict[str, float] = {}
        self._known_names: Dict[str, str] = {}

    # -------------------------------------------------------------------------
    # Free-text classification
    # -------------------------------------------------------------------------

    async def classify(
        self,
        description: str,
        *,
        confidence_threshold: float = 0.0,
        max_results: Optional[int] = None,
        use_cache: bool = True,
    ) -> List[ClassificationCandidate]:
        """Return ranked candidates for ``description``.

        Candidates below ``confidence_threshold`` are dropped and the rest are
        truncated to ``max_results`` in descending-confidence order. The result
        is never empty: when nothing survives, the keyword fallback candidate
        is returned instead, even though its confidence may sit below
        ``confidence_threshold``.
        """

        normalized = normalize_description(description)
        if not normalized:
            raise InvalidInputError("Product description must not be empty")
        if not 0.0 <= confidence_threshold <= 1.0:
            raise InvalidInputError("confidence_threshold must be between 0 and 1")
        if max_results is not None and max_results < 1:
            raise InvalidInputError("max_results must be at least 1")

        key = f"hs:classify:{normalized}"
        candidates: Optional[List[ClassificationCandidate]] = self.cache.get(key) if use_cache else None
        if candidates is None:
            outcome = await first_available(
                "classify",
                self._classify_tiers(description.strip()),
                lambda: [self._fallback_candidate(normalized)],
            )
            candidates = outcome.value
            if outcome.source == "provider":
                self._remember(candidates)
                if use_cache:
                    self.cache.set(key, candidates)

        filtered = [item for item in candidates if item.confidence >= confidence_threshold]
        if max_results is not None:
            filtered = filtered[:max_results]
        if not filtered:
            log_fallback("hs-classification", "classify.threshold")
            filtered = [self._fallback_candidate(normalized)]
        return filtered

    async def search(self, query: str) -> ClassificationCandidate:
        """Direct free-text lookup returning the single best-matching code."""

        results = await self.classify(query, max_results=1)
        return results[0]

    def _classify_tiers(self, description: str) -> List[Tier[List[ClassificationCandidate]]]:
        tiers: List[Tier[List[ClassificationCandidate]]] = []
        provider = self.classification_provider
        llm = self.llm_provider
        if provider is not None:

            async def _provider_search() -> List[ClassificationCandidate]:
                return self._from_matches(await provider.search(description))

            tiers.append((provider.name, _provider_search))
        if llm is not None:

            async def _llm_classify() -> List[ClassificationCandidate]:
                return [await self._llm_candidate(llm, description)]

            tiers.append((llm.name, _llm_classify))
        return tiers

    def _from_matches(self, matches: Iterable[HSMatch]) -> List[ClassificationCandidate]:
        rows: List[ClassificationCandidate] = []
        for match in matches:
            code = normalize_code(match.hs_code)
            if not code:
                continue
            if match.metadata is not None:
                for level in (match.metadata.chapter, match.metadata.heading, match.metadata.subheading):
                    if level is not None and (level.name or level.description):
                        self._known_names[normalize_code(level.code)] = level.name or level.description or ""
            description = match.description or hs_tables.name_for(code) or f"HS {code}"
            rows.append(
                ClassificationCandidate(
                    code=code,
                    description=description,
                    confidence=normalize_confidence(match.confidence),
                    source="provider",
                )
            )
        return rank(rows)

    async def _llm_candidate(self, llm: LLMProvider, description: str) -> ClassificationCandidate:
        payload = await llm.complete_json(
            [
                {"role": "system", "content": _LLM_SYSTEM_PROMPT},
                {"role": "user", "content": _LLM_USER_PROMPT.format(description=description)},
            ]
        )
        hs_code = payload.get("hsCode")
        raw_code = hs_code.get("code") if isinstance(hs_code, dict) else hs_code
        code = normalize_code(raw_code)
        confidence = payload.get("confidence")
        if not code or not isinstance(confidence, (int, float)):
            raise MalformedResponseError(llm.name, "classification JSON lacks hsCode.code or confidence")
        text = hs_code.get("description") if isinstance(hs_code, dict) else None
        return ClassificationCandidate(
            code=code,
            description=text or hs_tables.name_for(code) or f"HS {code}",
            confidence=normalize_confidence(confidence),
            source="provider",
        )

    def _fallback_candidate(self, normalized_description: str) -> ClassificationCandidate:
        matched = hs_tables.match_keyword(normalized_description)
        if matched is None:
            return ClassificationCandidate(
                code=hs_tables.UNCLASSIFIED_CODE,
                description=hs_tables.UNCLASSIFIED_DESCRIPTION,
                confidence=hs_tables.UNCLASSIFIED_CONFIDENCE,
                source="fallback",
            )
        category, code = matched
        return ClassificationCandidate(
            code=code,
            description=hs_tables.name_for(code) or category.title(),
            confidence=hs_tables.KEYWORD_FALLBACK_CONFIDENCE,
            source="fallback",
        )

    def _remember(self, candidates: Iterable[ClassificationCandidate]) -> None:
        for candidate in candidates:
            for size in (2, 4, 6):
                if len(candidate.code) < size:
                    break
                prefix = candidate.code[:size]
                self._known_confidence[prefix] = max(self._known_confidence.get(prefix, 0.0), candidate.confidence)
            self._known_names.setdefault(candidate.code, candidate.description)

    # -------------------------------------------------------------------------
    # Guided (level by level) navigation
    # -------------------------------------------------------------------------

    async def get_chapters(self) -> List[ClassificationCandidate]:
        return await self.get_child_options("", HSLevel.CHAPTER)

    async def get_child_options(self, parent_code: str, level: int) -> List[ClassificationCandidate]:
        """Return the options one level below ``parent_code``.

        Args:
            parent_code: ``""`` for chapters, a 2-digit chapter for headings or
                a 4-digit heading for subheadings
            level: Level of the requested options (1, 2 or 3)

        Returns:
            Ranked candidates whose codes all extend ``parent_code``. Never
            empty; unknown parents yield numbered placeholder codes.
        """

        try:
            target = HSLevel(int(level))
        except (TypeError, ValueError) as exc:
            raise InvalidInputError(f"level must be 1, 2 or 3, got {level!r}") from exc
        parent = (parent_code or "").strip()
        expected = target.digits - 2
        if len(parent) != expected or (parent and not parent.isdigit()):
            raise HierarchyError(
                f"{target.name.lower()} options need a {expected}-digit parent code, got {parent_code!r}"
            )

        key = f"hs:children:{int(target)}:{parent}"
        cached = self.cache.get(key)
        if cached is not None:
            return list(cached)

        tiers: List[Tier[List[ClassificationCandidate]]] = []
        provider = self.classification_provider
        if provider is not None:
            listing = self._listing_call(provider, target, parent)

            async def _provider_listing() -> List[ClassificationCandidate]:
                return self._from_listing(await listing(), target, parent)

            tiers.append((provider.name, _provider_listing))

        outcome = await first_available(
            f"children.{target.name.lower()}",
            tiers,
            lambda: self._fallback_children(parent),
        )
        if outcome.source == "provider":
            self.cache.set(key, outcome.value)
        return outcome.value

    @staticmethod
    def _listing_call(
        provider: ClassificationProvider, level: HSLevel, parent: str
    ) -> Callable[[], Awaitable[List[HSListingItem]]]:
        if level == HSLevel.CHAPTER:
            return provider.chapters
        if level == HSLevel.HEADING:
            return lambda: provider.headings(parent)
        return lambda: provider.subheadings(parent)

    def _from_listing(
        self, items: Iterable[HSListingItem], level: HSLevel, parent: str
    ) -> List[ClassificationCandidate]:
        rows: List[ClassificationCandidate] = []
        for item in items:
            code = normalize_code(item.code)
            if len(code) != level.digits or not code.startswith(parent):
                continue
            description = item.description or item.name or hs_tables.name_for(code) or f"HS {code}"
            self._known_names.setdefault(code, description)
            confidence = (
                normalize_confidence(item.confidence)
                if item.confidence is not None
                else self._known_confidence.get(code, 0.0)
            )
            rows.append(
                ClassificationCandidate(code=code, description=description, confidence=confidence, source="provider")
            )
        return rank(rows)

    def _fallback_children(self, parent: str) -> List[ClassificationCandidate]:
        children = hs_tables.known_children(parent) or hs_tables.placeholder_children(parent)
        return rank(
            ClassificationCandidate(
                code=code,
                description=name,
                confidence=self._fallback_confidence(code),
                source="fallback",
            )
            for code, name in children.items()
        )

    def _fallback_confidence(self, code: str) -> float:
        """Last known provider confidence for ``code``, kept below the auto-advance threshold."""

        known = self._known_confidence.get(code, 0.0)
        ceiling = round(self.auto_advance_threshold - 0.01, 2)
        return max(0.0, min(known, ceiling))

    def should_auto_advance(self, candidate: ClassificationCandidate) -> bool:
        return candidate.source == "provider" and candidate.confidence >= self.auto_advance_threshold

    # -------------------------------------------------------------------------
    # Examples and paths
    # -------------------------------------------------------------------------

    async def get_examples(self, code: str) -> List[ProductExample]:
        """Illustrative products for ``code``; every example code starts with ``code``."""

        normalized = _validated_code(code)
        key = f"hs:examples:{normalized}"
        cached = self.cache.get(key)
        if cached is not None:
            return list(cached)

        tiers: List[Tier[List[ProductExample]]] = []
        provider = self.classification_provider
        if provider is not None:

            async def _provider_examples() -> List[ProductExample]:
                return self._from_examples(await provider.examples(normalized), normalized)

            tiers.append((provider.name, _provider_examples))

        outcome = await first_available("examples", tiers, lambda: self._fallback_examples(normalized))
        if outcome.source == "provider":
            self.cache.set(key, outcome.value)
        return outcome.value

    @staticmethod
    def _from_examples(items: Iterable[ProductExampleWire], code: str) -> List[ProductExample]:
        rows = []
        for item in items:
            item_code = normalize_code(item.hs_code)
            if not item_code.startswith(code):
                continue
            rows.append(
                ProductExample(
                    name=item.name,
                    description=item.description,
                    hs_code=item_code,
                    image_url=item.image_url,
                )
            )
        return rows

    def _fallback_examples(self, code: str) -> List[ProductExample]:
        rows = hs_tables.examples_for(code)
        if rows:
            return rows
        return [
            ProductExample(
                name=f"Products classified under {code}",
                description=self._name_for(code),
                hs_code=code,
            )
        ]

    def get_hs_code_path(self, code: str) -> List[HSCodePathItem]:
        """Return the chapter → heading → subheading path ending at ``code``."""

        normalized = _validated_code(code)
        return [
            HSCodePathItem(code=normalized[:size], name=self._name_for(normalized[:size]), level=HSLevel(size // 2))
            for size in range(2, len(normalized) + 1, 2)
        ]

    def _name_for(self, code: str) -> str:
        name = self._known_names.get(code) or hs_tables.name_for(code)
        if name:
            return name
        label = {2: "Chapter", 4: "Heading", 6: "Subheading"}[len(code)]
        return f"{label} {code}"

    def clear_caches(self) -> None:
        self.cache.clear()
        self._known_confidence.clear()
        self._known_names.clear()


def _validated_code(code: str) -> str:
    normalized = _DIGIT_RE.sub("", code or "")
    if len(normalized) not in (2, 4, 6):
        raise HierarchyError(f"HS code must have 2, 4 or 6 digits, got {code!r}")
    return normalized
