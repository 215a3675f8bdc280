from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

FieldSource = Literal["provider", "fallback"]
ExportExperience = Literal["none", "some", "extensive"]

INSIGHT_FIELDS = ("market_size", "competitors", "entry_barriers", "tariffs", "insights")


class BusinessProfile(BaseModel):
    """Exporter details used to tailor generated recommendations."""

    name: str = ""
    industry: str = ""
    export_experience: ExportExperience = "none"
    employee_count: Optional[int] = Field(default=None, ge=0)
    certifications: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)


class MarketSize(BaseModel):
    value: float = Field(ge=0.0)
    currency: str = "USD"
    year: int
    growth_rate: float

    model_config = ConfigDict(extra="forbid", frozen=True)


class Competitor(BaseModel):
    name: str
    market_share: float = Field(ge=0.0, le=100.0)
    country: str = ""
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)


class TariffInfo(BaseModel):
    rate: float = Field(ge=0.0)
    type: str = "ad valorem"
    conditions: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)


class MarketInsight(BaseModel):
    """Aggregated view of one target market.

    ``sources`` records, per field group in :data:`INSIGHT_FIELDS`, whether
    the data came from a live provider or from the deterministic fallback.
    ``confidence_score`` is attached only by the verification pass, which
    returns a new record rather than editing this one.
    """

    market: str
    market_size: MarketSize
    competitors: List[Competitor]
    entry_barriers: List[str]
    tariffs: Dict[str, TariffInfo]
    opportunities: List[str]
    risks: List[str]
    recommendations: List[str]
    sources: Dict[str, FieldSource] = Field(default_factory=dict)
    confidence_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def degraded(self) -> bool:
        return any(source == "fallback" for source in self.sources.values())

    @property
    def fallback_fields(self) -> List[str]:
        return [name for name in INSIGHT_FIELDS if self.sources.get(name) == "fallback"]
