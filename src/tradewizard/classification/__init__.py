"""HS code classification: engine, guided session and built-in tables."""

from tradewizard.classification.engine import HSClassificationEngine
from tradewizard.classification.models import (
    ClassificationCandidate,
    HSCodePathItem,
    HSLevel,
    HSSelection,
    ProductExample,
)
from tradewizard.classification.session import ClassificationSession, SessionState

__all__ = [
    "ClassificationCandidate",
    "ClassificationSession",
    "HSClassificationEngine",
    "HSCodePathItem",
    "HSLevel",
    "HSSelection",
    "ProductExample",
    "SessionState",
]
