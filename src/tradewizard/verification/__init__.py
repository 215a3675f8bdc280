"""Verification pass over generated classification, market and compliance data."""

from tradewizard.verification.models import NEUTRAL_CONFIDENCE, VerificationResult
from tradewizard.verification.service import VerificationPass, apply_result
from tradewizard.verification.simulated import SimulatedVerifier

__all__ = [
    "NEUTRAL_CONFIDENCE",
    "SimulatedVerifier",
    "VerificationPass",
    "VerificationResult",
    "apply_result",
]
