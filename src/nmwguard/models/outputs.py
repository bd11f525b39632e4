"""Shared output taxonomy: statuses, issue codes, warnings and fix suggestions.

Issue codes are a fixed vocabulary so that reporting and explanation
collaborators can map them to human text without re-deriving engine logic.
"""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field


class RAGStatus(StrEnum):
    RED = "RED"
    AMBER = "AMBER"
    GREEN = "GREEN"

    @property
    def rank(self) -> int:
        """Higher is better: RED < AMBER < GREEN."""
        return {"RED": 0, "AMBER": 1, "GREEN": 2}[self.value]


class Severity(StrEnum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"


class IssueCode(StrEnum):
    COMPLIANT = "COMPLIANT"
    RATE_BELOW_MINIMUM = "RATE_BELOW_MINIMUM"
    RATE_UNRESOLVED = "RATE_UNRESOLVED"
    CONFIG_LOAD_TIMEOUT = "CONFIG_LOAD_TIMEOUT"
    ACCOMMODATION_OFFSET_EXCEEDED = "ACCOMMODATION_OFFSET_EXCEEDED"
    DEDUCTION_LIMIT_EXCEEDED = "DEDUCTION_LIMIT_EXCEEDED"
    EXCESSIVE_DEDUCTIONS = "EXCESSIVE_DEDUCTIONS"
    ZERO_HOURS_WITH_PAY = "ZERO_HOURS_WITH_PAY"
    MISSING_AGE_DATA = "MISSING_AGE_DATA"
    NEGATIVE_EFFECTIVE_RATE = "NEGATIVE_EFFECTIVE_RATE"
    OFFSET_LIMIT_EXCEEDED = "OFFSET_LIMIT_EXCEEDED"
    HIGH_ALLOWANCE = "HIGH_ALLOWANCE"
    UNCLASSIFIED_COMPONENT = "UNCLASSIFIED_COMPONENT"
    LOW_CONFIDENCE_CLASSIFICATION = "LOW_CONFIDENCE_CLASSIFICATION"
    ESTIMATED_PREMIUM_SPLIT = "ESTIMATED_PREMIUM_SPLIT"
    TRONC_EXCLUDED = "TRONC_EXCLUDED"
    TRONC_REVIEW_REQUIRED = "TRONC_REVIEW_REQUIRED"
    SIGNIFICANT_TIP_PROPORTION = "SIGNIFICANT_TIP_PROPORTION"
    SUB_CALCULATION_FAILED = "SUB_CALCULATION_FAILED"


class AmberFlag(StrEnum):
    """Preconditions that force manual review instead of a rate comparison."""

    ZERO_HOURS_WITH_PAY = "zero_hours_with_pay"
    MISSING_AGE_DATA = "missing_age_data"
    NEGATIVE_EFFECTIVE_RATE = "negative_effective_rate"
    EXCESSIVE_DEDUCTIONS = "excessive_deductions"
    ACCOMMODATION_OFFSET_VIOLATIONS = "accommodation_offset_violations"


class SuggestionCategory(StrEnum):
    ARREARS_TOP_UP = "ARREARS_TOP_UP"
    URGENT_REVIEW = "URGENT_REVIEW"
    HOURS_REVIEW = "HOURS_REVIEW"
    RATE_BREAKDOWN = "RATE_BREAKDOWN"
    DATA_CLARIFICATION = "DATA_CLARIFICATION"
    MISSING_DATA = "MISSING_DATA"
    DATA_ERROR = "DATA_ERROR"
    DEDUCTION_REVIEW = "DEDUCTION_REVIEW"
    ACCOMMODATION_REVIEW = "ACCOMMODATION_REVIEW"
    MANUAL_REVIEW = "MANUAL_REVIEW"
    LOW_MARGIN = "LOW_MARGIN"
    COMPLIANCE_CONFIRMED = "COMPLIANCE_CONFIRMED"


class WarningSource(StrEnum):
    CORE_PRP = "core_prp"
    ACCOMMODATION_OFFSETS = "accommodation_offsets"
    NMW_DEDUCTIONS = "nmw_deductions"
    ALLOWANCES_PREMIUMS = "allowances_premiums"
    TRONC_EXCLUSIONS = "tronc_exclusions"
    RAG_STATUS = "rag_status"
    FIX_SUGGESTIONS = "fix_suggestions"
    INTEGRATION = "integration"


class ComplianceWarning(BaseModel):
    """A typed warning tagged with the component that raised it."""

    source: WarningSource
    code: IssueCode
    type: str
    severity: Severity
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class Issue(BaseModel):
    """A compliance issue raised by a single calculator."""

    type: str
    code: IssueCode
    severity: Severity
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class Recommendation(BaseModel):
    """A calculator-level remediation step."""

    type: str
    priority: Severity
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class RateComparison(BaseModel):
    effective: Decimal
    required: Decimal
    difference: Decimal
    percentage_of_required: Decimal
    shortfall_percentage: Decimal = Decimal("0")


class RAGResult(BaseModel):
    """Canonical tri-state verdict for one worker and pay period."""

    rag_status: RAGStatus
    severity: Optional[Severity] = None
    reason: str
    reason_code: IssueCode
    amber_flags: list[AmberFlag] = Field(default_factory=list)
    effective_hourly_rate: Optional[Decimal] = None
    required_hourly_rate: Optional[Decimal] = None
    rate_comparison: Optional[RateComparison] = None


class ShortfallCalculation(BaseModel):
    per_hour_shortfall: Decimal
    total_shortfall: Decimal
    shortfall_percentage: Decimal
    hours_worked: Decimal
    effective_rate: Decimal
    required_rate: Decimal


class FixSuggestion(BaseModel):
    category: SuggestionCategory
    severity: Severity
    message: str
    action_required: bool
    details: dict[str, Any] = Field(default_factory=dict)


class FixSuggestionResult(BaseModel):
    rag_status: RAGStatus
    suggestions: list[FixSuggestion] = Field(default_factory=list)
    calculations: Optional[ShortfallCalculation] = None

    @property
    def primary_suggestion(self) -> Optional[FixSuggestion]:
        return self.suggestions[0] if self.suggestions else None
