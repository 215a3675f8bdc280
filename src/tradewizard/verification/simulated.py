"""Simulated verifier used when no verification provider is available."""

from __future__ import annotations

import random
from typing import Dict, Optional, Tuple

from tradewizard.verification.models import DataType, VerificationResult

# data type -> (baseline, spread, ceiling); confidence = min(baseline + r * spread, ceiling)
CONFIDENCE_BANDS: Dict[str, Tuple[float, float, float]] = {
    "compliance": (0.85, 0.15, 0.97),
    "market": (0.70, 0.25, 0.93),
    "product": (0.80, 0.18, 0.95),
}
VERIFIED_PROBABILITY = 0.9


class SimulatedVerifier:
    """Type-biased pseudo-random verifier.

    Pass a seeded :class:`random.Random` to make results reproducible.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def verify(self, data_type: DataType) -> VerificationResult:
        baseline, spread, ceiling = CONFIDENCE_BANDS[data_type]
        confidence = min(baseline + self.rng.random() * spread, ceiling)
        verified = self.rng.random() < VERIFIED_PROBABILITY
        return VerificationResult(
            verified=verified,
            confidence=round(confidence, 4),
            explanation=(
                "Data verified with high confidence."
                if verified
                else "Some inconsistencies found in the data."
            ),
            source="simulated",
        )
