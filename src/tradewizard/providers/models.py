"""Wire-format models for upstream provider responses.

Providers use camelCase keys; fields carry aliases and unknown keys are
ignored so additive upstream changes do not break validation.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# -----------------------------------------------------------------------------
# Classification provider
# -----------------------------------------------------------------------------


class HSLevelMetadata(_WireModel):
    code: str
    name: Optional[str] = None
    description: Optional[str] = None


class HSMatchMetadata(_WireModel):
    chapter: Optional[HSLevelMetadata] = None
    heading: Optional[HSLevelMetadata] = None
    subheading: Optional[HSLevelMetadata] = None


class HSMatch(_WireModel):
    hs_code: str = Field(validation_alias=AliasChoices("hsCode", "hs_code", "code"))
    description: str = ""
    confidence: float = Field(ge=0.0)
    metadata: Optional[HSMatchMetadata] = None


class HSSearchResponse(_WireModel):
    results: List[HSMatch] = Field(default_factory=list)


class HSListingItem(_WireModel):
    code: str = Field(validation_alias=AliasChoices("code", "hsCode", "hs_code"))
    name: Optional[str] = None
    description: str = ""
    confidence: Optional[float] = Field(default=None, ge=0.0)


class HSListingResponse(_WireModel):
    results: List[HSListingItem] = Field(
        default_factory=list,
        validation_alias=AliasChoices("results", "chapters", "headings", "subheadings"),
    )


class ProductExampleWire(_WireModel):
    name: str
    description: str = ""
    hs_code: str = Field(validation_alias=AliasChoices("hsCode", "hs_code"))
    image_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("imageUrl", "image_url"))


class ProductExamplesResponse(_WireModel):
    examples: List[ProductExampleWire] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Market data provider
# -----------------------------------------------------------------------------


class MarketSizeWire(_WireModel):
    value: float = Field(ge=0.0)
    currency: str = "USD"
    year: int
    growth_rate: float = Field(validation_alias=AliasChoices("growthRate", "growth_rate"))


class CompetitorWire(_WireModel):
    name: str
    market_share: float = Field(ge=0.0, validation_alias=AliasChoices("marketShare", "market_share"))
    country: str = ""
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)


class CompetitorsResponse(_WireModel):
    competitors: List[CompetitorWire] = Field(default_factory=list)


class BarriersResponse(_WireModel):
    barriers: List[str] = Field(default_factory=list, validation_alias=AliasChoices("barriers", "entryBarriers"))


class BaseTariffResponse(_WireModel):
    base_rate: float = Field(ge=0.0, validation_alias=AliasChoices("baseRate", "base_rate", "rate"))
    type: str = "ad valorem"
    conditions: List[str] = Field(default_factory=list)


class CostRangeWire(_WireModel):
    min: float = Field(ge=0.0)
    max: float = Field(ge=0.0)
    currency: str = "USD"


class ComplianceRequirementWire(_WireModel):
    id: str
    name: str
    description: str = ""
    is_required: bool = Field(default=True, validation_alias=AliasChoices("isRequired", "is_required"))
    estimated_cost: Optional[CostRangeWire] = Field(
        default=None, validation_alias=AliasChoices("estimatedCost", "estimated_cost")
    )
    estimated_timeline_days: Optional[int] = Field(
        default=None, ge=0, validation_alias=AliasChoices("estimatedTimeline", "estimated_timeline_days")
    )
    regulatory_body: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("regulatoryBody", "regulatory_body")
    )
    product_categories: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("productCategories", "product_categories")
    )
    documentation_needed: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("documentationNeeded", "documentation_needed")
    )


class RequirementsResponse(_WireModel):
    requirements: List[ComplianceRequirementWire] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# LLM provider
# -----------------------------------------------------------------------------


class ChatMessage(_WireModel):
    role: str = "assistant"
    content: str


class ChatChoice(_WireModel):
    message: ChatMessage


class ChatCompletionResponse(_WireModel):
    choices: List[ChatChoice] = Field(min_length=1)


# -----------------------------------------------------------------------------
# Verification provider
# -----------------------------------------------------------------------------


class VerificationResponse(_WireModel):
    verified: StrictBool
    confidence: float = Field(strict=True)
    corrected_data: Optional[Any] = Field(
        default=None, validation_alias=AliasChoices("correctedData", "corrected_data")
    )
    explanation: Optional[str] = None

