from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query

from tradewizard.api.deps import get_services
from tradewizard.api.schemas import ClassifyRequestModel, ClassifyResponseModel
from tradewizard.api.security import require_api_key
from tradewizard.bootstrap import TradeIntelServices
from tradewizard.classification.models import ClassificationCandidate, HSCodePathItem, ProductExample

router = APIRouter(
    prefix="/api",
    tags=["classification"],
    dependencies=[Depends(require_api_key)],
)


@router.post("/classify", response_model=ClassifyResponseModel)
async def classify_product(
    request: ClassifyRequestModel,
    services: TradeIntelServices = Depends(get_services),
) -> ClassifyResponseModel:
    """Classify a product description into ranked HS code candidates."""

    engine = services.classification
    candidates = await engine.classify(
        request.description,
        confidence_threshold=request.confidence_threshold,
        max_results=request.max_results,
        use_cache=request.use_cache,
    )
    top = candidates[0]
    return ClassifyResponseModel(
        candidates=candidates,
        auto_select=top if engine.should_auto_advance(top) else None,
    )


@router.get("/hs-codes/children", response_model=List[ClassificationCandidate])
async def child_options(
    level: int = Query(..., ge=1, le=3),
    parent_code: str = Query(default=""),
    services: TradeIntelServices = Depends(get_services),
) -> List[ClassificationCandidate]:
    return await services.classification.get_child_options(parent_code, level)


@router.get("/hs-codes/{code}/path", response_model=List[HSCodePathItem])
def hs_code_path(code: str, services: TradeIntelServices = Depends(get_services)) -> List[HSCodePathItem]:
    return services.classification.get_hs_code_path(code)


@router.get("/hs-codes/{code}/examples", response_model=List[ProductExample])
async def hs_code_examples(code: str, services: TradeIntelServices = Depends(get_services)) -> List[ProductExample]:
    return await services.classification.get_examples(code)
