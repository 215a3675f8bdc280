"""Confidence-scored verification of generated trade data."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel, ValidationError

from tradewizard.classification.models import HSSelection
from tradewizard.compliance.models import ComplianceAssessment, ComplianceRequirement
from tradewizard.market.models import MarketInsight
from tradewizard.observability import log_fallback
from tradewizard.providers.errors import ProviderError
from tradewizard.providers.sources import VerificationProvider
from tradewizard.verification.models import NEUTRAL_CONFIDENCE, DataType, VerificationResult
from tradewizard.verification.simulated import SimulatedVerifier

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=Union[BaseModel, Mapping[str, Any]])

_DATA_TYPES = ("compliance", "market", "product")


def _normalize_confidence(value: float) -> float:
    if value > 1.0:
        value = value / 100.0
    return max(0.0, min(1.0, float(value)))


def _serialize(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    if isinstance(payload, Mapping):
        return {key: _serialize(value) for key, value in payload.items()}
    if isinstance(payload, (list, tuple)):
        return [_serialize(item) for item in payload]
    return payload


def apply_result(payload: PayloadT, result: VerificationResult) -> PayloadT:
    """Merge a verification result into ``payload`` as ``confidence_score``.

    Verified payloads keep their data. Unverified payloads with corrected
    data are replaced by the correction; anything else gets the neutral
    confidence.
    """

    if result.verified:
        return _with_score(payload, result.confidence)
    if isinstance(result.corrected_data, Mapping):
        corrected = _with_correction(payload, result.corrected_data, result.confidence)
        if corrected is not None:
            return corrected
    return _with_score(payload, NEUTRAL_CONFIDENCE)


def _with_score(payload: PayloadT, score: float) -> PayloadT:
    if isinstance(payload, BaseModel):
        return payload.model_copy(update={"confidence_score": score})
    return {**payload, "confidence_score": score}  # type: ignore[return-value]


def _with_correction(payload: PayloadT, correction: Mapping[str, Any], score: float) -> Optional[PayloadT]:
    if not isinstance(payload, BaseModel):
        return {**correction, "confidence_score": score}  # type: ignore[return-value]
    merged = {**payload.model_dump(), **correction, "confidence_score": score}
    try:
        return type(payload).model_validate(merged)
    except ValidationError as exc:
        logger.warning(
            "Discarding corrected %s that failed validation: %s error(s)",
            type(payload).__name__,
            exc.error_count(),
        )
        return None


class VerificationPass:
    """Obtain independent confidence assessments for generated data.

    Without a configured provider, or with ``force_simulated``, every call
    goes to :class:`SimulatedVerifier`. A single :meth:`verify` whose
    provider call fails also falls back to the simulated verifier; inside
    batches a failing item gets the neutral 0.5 confidence instead.
    """

    def __init__(
        self,
        provider: VerificationProvider | None = None,
        simulated: SimulatedVerifier | None = None,
        *,
        force_simulated: bool = False,
    ) -> None:
        self.provider = provider
        self.simulated = simulated or SimulatedVerifier()
        self.force_simulated = force_simulated

    @property
    def uses_provider(self) -> bool:
        return (
            not self.force_simulated
            and self.provider is not None
            and self.provider.client.configured
        )

    async def verify(
        self,
        payload: Any,
        data_type: DataType,
        context: Optional[Mapping[str, Any]] = None,
    ) -> VerificationResult:
        if data_type not in _DATA_TYPES:
            raise ValueError(f"Unknown verification data type {data_type!r}")
        if not self.uses_provider:
            return self.simulated.verify(data_type)
        result = await self._from_provider(payload, data_type, context or {})
        return result if result is not None else self.simulated.verify(data_type)

    async def _from_provider(
        self, payload: Any, data_type: DataType, context: Mapping[str, Any]
    ) -> Optional[VerificationResult]:
        provider = self.provider
        if provider is None:
            return None
        try:
            response = await provider.verify(_serialize(payload), data_type, _serialize(context))
        except ProviderError as exc:
            log_fallback(provider.name, f"verify.{data_type}", exc)
            return None
        return VerificationResult(
            verified=response.verified,
            confidence=_normalize_confidence(response.confidence),
            corrected_data=response.corrected_data,
            explanation=response.explanation,
            source="provider",
        )

    async def _verify_item(self, payload: Any, data_type: DataType, context: Mapping[str, Any]) -> VerificationResult:
        if not self.uses_provider:
            return self.simulated.verify(data_type)
        result = await self._from_provider(payload, data_type, context)
        return result if result is not None else VerificationResult.neutral()

    async def _verify_batch(
        self, payloads: Sequence[Any], data_type: DataType, contexts: Sequence[Mapping[str, Any]]
    ) -> List[VerificationResult]:
        outcomes = await asyncio.gather(
            *(self._verify_item(payload, data_type, context) for payload, context in zip(payloads, contexts)),
            return_exceptions=True,
        )
        results: List[VerificationResult] = []
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                logger.error("Verification item failed", exc_info=outcome)
                results.append(VerificationResult.neutral())
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results.append(outcome)
        return results

    # -------------------------------------------------------------------------
    # Batch helpers
    # -------------------------------------------------------------------------

    async def verify_compliance_requirements(
        self,
        requirements: Sequence[ComplianceRequirement],
        context: Optional[Mapping[str, Any]] = None,
    ) -> List[ComplianceRequirement]:
        """Return the requirements, in input order, each with a ``confidence_score``."""

        shared = dict(context or {})
        results = await self._verify_batch(requirements, "compliance", [shared] * len(requirements))
        return [apply_result(item, result) for item, result in zip(requirements, results)]

    async def verify_assessment(
        self,
        assessment: ComplianceAssessment,
        context: Optional[Mapping[str, Any]] = None,
    ) -> ComplianceAssessment:
        verified = await self.verify_compliance_requirements(assessment.requirements, context)
        return assessment.model_copy(update={"requirements": verified})

    async def verify_market_insights(
        self,
        insights: Mapping[str, MarketInsight],
        context: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, MarketInsight]:
        """Return new insight records keyed by market code with ``confidence_score`` set."""

        codes = list(insights)
        base = dict(context or {})
        contexts = [{**base, "markets": [code]} for code in codes]
        results = await self._verify_batch([insights[code] for code in codes], "market", contexts)
        return {code: apply_result(insights[code], result) for code, result in zip(codes, results)}

    async def verify_products(
        self,
        products: Sequence[PayloadT],
        context: Optional[Mapping[str, Any]] = None,
    ) -> List[PayloadT]:
        shared = dict(context or {})
        results = await self._verify_batch(products, "product", [shared] * len(products))
        return [apply_result(item, result) for item, result in zip(products, results)]

    async def verify_classification(
        self,
        selection: HSSelection,
        context: Optional[Mapping[str, Any]] = None,
    ) -> VerificationResult:
        """Verify a final HS selection; a provider failure yields the neutral result."""

        results = await self._verify_batch([selection], "product", [dict(context or {})])
        return results[0]
