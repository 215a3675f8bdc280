"""Thin consumer that bundles core outputs into an export readiness report."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from tradewizard.classification.models import HSSelection
from tradewizard.classification.session import ClassificationSession, SessionState
from tradewizard.compliance.models import ComplianceAssessment
from tradewizard.compliance.service import ComplianceService
from tradewizard.errors import InvalidInputError
from tradewizard.market.aggregator import MarketAggregator
from tradewizard.market.models import BusinessProfile, MarketInsight
from tradewizard.observability import log_event
from tradewizard.verification.models import VerificationResult
from tradewizard.verification.service import VerificationPass

logger = logging.getLogger(__name__)


class ExportReadinessReport(BaseModel):
    hs_selection: HSSelection
    classification_verification: VerificationResult
    market_insights: Dict[str, MarketInsight]
    compliance: ComplianceAssessment
    generated_at: datetime
    degraded: bool = Field(description="True when any section was built from fallback data")

    model_config = ConfigDict(extra="forbid", frozen=True)


class ReportAssembler:
    def __init__(
        self,
        aggregator: MarketAggregator,
        compliance: ComplianceService,
        verification: VerificationPass,
    ) -> None:
        self.aggregator = aggregator
        self.compliance = compliance
        self.verification = verification

    async def assemble(
        self,
        source: Union[ClassificationSession, HSSelection],
        markets: Sequence[str],
        categories: Sequence[str] = (),
        business_profile: Optional[BusinessProfile] = None,
    ) -> ExportReadinessReport:
        """Gather insights and compliance for a finished classification.

        Only a session in ``COMPLETE`` state (or a selection with all three
        levels filled) is accepted.
        """

        selection = _final_selection(source)
        profile = business_profile or BusinessProfile()

        insights, assessment = await asyncio.gather(
            self.aggregator.get_insights(markets, categories, profile),
            self.compliance.get_requirements(markets, categories, profile),
        )
        context = {
            "products": [{"hsCode": selection.code, "description": selection.subheading.description}],
            "businessProfile": profile,
            "markets": list(insights),
        }
        classification_result, verified_insights, verified_assessment = await asyncio.gather(
            self.verification.verify_classification(selection, context),
            self.verification.verify_market_insights(insights, context),
            self.verification.verify_assessment(assessment, context),
        )

        degraded = (
            any(item.degraded for item in verified_insights.values())
            or verified_assessment.degraded
            or selection.subheading.source == "fallback"
        )
        log_event(
            "report.assembled",
            hs_code=selection.code,
            markets=list(verified_insights),
            degraded=degraded,
        )
        return ExportReadinessReport(
            hs_selection=selection,
            classification_verification=classification_result,
            market_insights=verified_insights,
            compliance=verified_assessment,
            generated_at=datetime.now(timezone.utc),
            degraded=degraded,
        )


def _final_selection(source: Union[ClassificationSession, HSSelection]) -> HSSelection:
    if isinstance(source, ClassificationSession):
        if source.state is not SessionState.COMPLETE:
            raise InvalidInputError(f"Classification session is {source.state.value}, expected complete")
        return source.selection
    if not source.is_complete:
        raise InvalidInputError("HS selection must include chapter, heading and subheading")
    return source
