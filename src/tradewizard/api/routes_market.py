from __future__ import annotations

from typing import Dict

from fastapi import APIRouter, Depends

from tradewizard.api.deps import get_services
from tradewizard.api.schemas import MarketRequestModel, VerifyRequestModel
from tradewizard.api.security import require_api_key
from tradewizard.bootstrap import TradeIntelServices
from tradewizard.compliance.models import ComplianceAssessment
from tradewizard.market.models import MarketInsight
from tradewizard.verification.models import VerificationResult

router = APIRouter(
    prefix="/api",
    tags=["market"],
    dependencies=[Depends(require_api_key)],
)


def _context(request: MarketRequestModel) -> dict:
    return {
        "markets": request.markets,
        "categories": request.categories,
        "businessProfile": request.business_profile,
    }


@router.post("/market-intelligence", response_model=Dict[str, MarketInsight])
async def market_intelligence(
    request: MarketRequestModel,
    services: TradeIntelServices = Depends(get_services),
) -> Dict[str, MarketInsight]:
    """Aggregate market insights per target market, optionally verified."""

    insights = await services.aggregator.get_insights(
        request.markets, request.categories, request.business_profile
    )
    if request.verify:
        insights = await services.verification.verify_market_insights(insights, _context(request))
    return insights


@router.post("/compliance", response_model=ComplianceAssessment)
async def compliance_requirements(
    request: MarketRequestModel,
    services: TradeIntelServices = Depends(get_services),
) -> ComplianceAssessment:
    assessment = await services.compliance.get_requirements(
        request.markets, request.categories, request.business_profile
    )
    if request.verify:
        assessment = await services.verification.verify_assessment(assessment, _context(request))
    return assessment


@router.post("/verify", response_model=VerificationResult)
async def verify_payload(
    request: VerifyRequestModel,
    services: TradeIntelServices = Depends(get_services),
) -> VerificationResult:
    return await services.verification.verify(request.data, request.data_type, request.context)
