from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DataType = Literal["compliance", "market", "product"]
VerificationSource = Literal["provider", "simulated", "neutral"]

NEUTRAL_CONFIDENCE = 0.5


class VerificationResult(BaseModel):
    """Independent assessment of one payload.

    ``source`` is ``"neutral"`` when the provider failed for this item inside
    a batch and the fixed :data:`NEUTRAL_CONFIDENCE` was assigned instead.
    """

    verified: bool
    confidence: float = Field(ge=0.0, le=1.0)
    corrected_data: Optional[Any] = None
    explanation: Optional[str] = None
    source: VerificationSource = "provider"

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def neutral(cls, explanation: str = "Verification unavailable for this item.") -> "VerificationResult":
        return cls(verified=False, confidence=NEUTRAL_CONFIDENCE, explanation=explanation, source="neutral")
