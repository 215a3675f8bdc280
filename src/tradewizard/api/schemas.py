from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from tradewizard.classification.models import ClassificationCandidate
from tradewizard.market.models import BusinessProfile
from tradewizard.verification.models import DataType


class ClassifyRequestModel(BaseModel):
    """Free-text classification request."""

    description: str = Field(min_length=1)
    confidence_threshold: float = Field(default=0.0, ge=0.0, le=1.0)
    max_results: Optional[int] = Field(default=None, ge=1)
    use_cache: bool = True

    model_config = ConfigDict(extra="forbid")


class ClassifyResponseModel(BaseModel):
    candidates: List[ClassificationCandidate]
    auto_select: Optional[ClassificationCandidate] = Field(
        default=None, description="Top candidate when it is strong enough to select without confirmation"
    )


class MarketRequestModel(BaseModel):
    """Target markets and product categories for insight or compliance lookups."""

    markets: List[str] = Field(min_length=1)
    categories: List[str] = Field(default_factory=list)
    business_profile: Optional[BusinessProfile] = None
    verify: bool = True

    model_config = ConfigDict(extra="forbid")


class VerifyRequestModel(BaseModel):
    data: Any
    data_type: DataType
    context: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")
