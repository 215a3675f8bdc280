from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from tradewizard.market.models import FieldSource


class CostRange(BaseModel):
    min: float = Field(ge=0.0)
    max: float = Field(ge=0.0)
    currency: str = "USD"

    model_config = ConfigDict(extra="forbid", frozen=True)


class ComplianceRequirement(BaseModel):
    """A regulatory step an exporter must complete for one market."""

    id: str
    name: str
    description: str = ""
    is_required: bool = True
    estimated_cost: Optional[CostRange] = None
    estimated_timeline_days: Optional[int] = Field(default=None, ge=0)
    country_code: str
    regulatory_body: Optional[str] = None
    product_categories: List[str] = Field(default_factory=list)
    documentation_needed: List[str] = Field(default_factory=list)
    confidence_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    model_config = ConfigDict(extra="forbid", frozen=True)


class ComplianceAssessment(BaseModel):
    requirements: List[ComplianceRequirement]
    total_estimated_cost: CostRange
    total_timeline_days: int = Field(ge=0)
    sources: Dict[str, FieldSource] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def degraded(self) -> bool:
        return any(source == "fallback" for source in self.sources.values())
