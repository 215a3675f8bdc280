"""Export compliance requirements per target market."""

from tradewizard.compliance.models import ComplianceAssessment, ComplianceRequirement, CostRange
from tradewizard.compliance.service import ComplianceService, total_cost, total_timeline

__all__ = [
    "ComplianceAssessment",
    "ComplianceRequirement",
    "ComplianceService",
    "CostRange",
    "total_cost",
    "total_timeline",
]
