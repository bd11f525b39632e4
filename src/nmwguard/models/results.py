"""Per-calculator results and the consolidated compliance result."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field

from nmwguard.models.inputs import AllowanceCategory, OffsetCategory
from nmwguard.models.outputs import (
    AmberFlag,
    ComplianceWarning,
    FixSuggestion,
    IssueCode,
    Issue,
    RAGStatus,
    Recommendation,
    Severity,
    ShortfallCalculation,
)
from nmwguard.models.rates import ResolvedRate
from nmwguard.models.rules import ClassificationResult
from nmwguard.models.worker import PRPWindow

ZERO = Decimal("0")


# ---------------------------------------------------------------------------
# PRP
# ---------------------------------------------------------------------------

class OffsetSummary(BaseModel):
    total: Decimal = ZERO
    daily: Decimal = ZERO
    days: int = 0
    max_daily: Optional[Decimal] = None
    compliant: bool = True


class AllowanceSummary(BaseModel):
    total: Decimal = ZERO
    flagged: int = 0


class PRPResult(BaseModel):
    worker_id: str
    pay_period_id: str = ""
    prp: PRPWindow
    total_hours: Decimal
    total_pay: Decimal
    offsets: dict[OffsetCategory, OffsetSummary]
    total_offsets: Decimal
    allowances: dict[AllowanceCategory, AllowanceSummary]
    total_allowances: Decimal
    effective_hourly_rate: Decimal
    required_hourly_rate: Decimal
    required_rate: ResolvedRate
    compliance_status: RAGStatus
    compliance_score: int
    issues: list[Issue] = Field(default_factory=list)
    suggestions: list[Recommendation] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Accommodation
# ---------------------------------------------------------------------------

class AccommodationPeriod(BaseModel):
    start_date: date
    end_date: date
    total_days: int
    working_days: int


class AccommodationResult(BaseModel):
    worker_id: str
    pay_period_id: str = ""
    period: AccommodationPeriod
    total_charge: Decimal
    daily_charge: Decimal
    daily_limit: Decimal
    period_limit: Decimal
    permissible_daily: Decimal
    total_offset: Decimal
    daily_excess: Decimal
    total_excess: Decimal
    compliant_days: int
    non_compliant_days: int
    compliance_status: RAGStatus
    compliance_score: int

    @property
    def has_excess(self) -> bool:
        return self.total_excess > 0


# ---------------------------------------------------------------------------
# Deductions
# ---------------------------------------------------------------------------

class DeductionLine(BaseModel):
    category: str
    amount: Decimal
    max_allowed: Decimal
    excess: Decimal
    is_compliant: bool
    description: str = ""
    rule: str = ""


class DeductionResult(BaseModel):
    worker_id: str
    pay_period_id: str = ""
    lines: dict[str, DeductionLine]
    total_deductions: Decimal
    compliant_deductions: Decimal
    non_compliant_deductions: Decimal
    total_excess: Decimal
    compliance_rate: Decimal
    compliance_status: RAGStatus
    compliance_score: int
    issues: list[Issue] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)

    @property
    def has_excess(self) -> bool:
        return self.total_excess > 0


# ---------------------------------------------------------------------------
# Allowances and premiums
# ---------------------------------------------------------------------------

class AllowanceLine(BaseModel):
    name: str
    value: Decimal
    category_path: str
    reason: str = ""


class PremiumSplit(BaseModel):
    """Basic/premium split of an uplifted payment.

    ``method`` is always ``estimated``: the ratio comes from the matched
    keyword, not from the worker's contracted basic rate.
    """

    name: str
    total_value: Decimal
    basic_rate_portion: Decimal
    premium_portion: Decimal
    ratio: Decimal
    matched_keyword: Optional[str] = None
    category_path: str
    method: str = "estimated"


class AllowancePremiumTotals(BaseModel):
    total_allowances_included: Decimal = ZERO
    total_allowances_excluded: Decimal = ZERO
    total_premiums_basic_rate: Decimal = ZERO
    total_premiums_excluded: Decimal = ZERO
    total_nmw_eligible: Decimal = ZERO


class AllowancePremiumResult(BaseModel):
    worker_id: str
    pay_period_id: str = ""
    classifications: list[ClassificationResult] = Field(default_factory=list)
    allowances_included: list[AllowanceLine] = Field(default_factory=list)
    allowances_excluded: list[AllowanceLine] = Field(default_factory=list)
    premiums: list[PremiumSplit] = Field(default_factory=list)
    unclassified: list[AllowanceLine] = Field(default_factory=list)
    totals: AllowancePremiumTotals = Field(default_factory=AllowancePremiumTotals)
    warnings: list[ComplianceWarning] = Field(default_factory=list)
    metadata: dict[str, int] = Field(default_factory=dict)

    @property
    def requires_manual_verification(self) -> bool:
        return any(p.method == "estimated" for p in self.premiums)


# ---------------------------------------------------------------------------
# Tronc
# ---------------------------------------------------------------------------

class ExclusionImpact(StrEnum):
    NONE = "none"
    MINIMAL = "minimal"
    MODERATE = "moderate"
    SIGNIFICANT = "significant"
    CRITICAL = "critical"


class TroncItem(BaseModel):
    name: str
    value: Decimal
    category_path: str
    confidence: str
    detection_method: str
    reason: str = ""


class TroncResult(BaseModel):
    worker_id: str
    pay_period_id: str = ""
    excluded_components: list[TroncItem] = Field(default_factory=list)
    flagged_components: list[TroncItem] = Field(default_factory=list)
    total_excluded: Decimal = ZERO
    total_flagged: Decimal = ZERO
    gross_pay: Decimal = ZERO
    adjusted_pay: Decimal = ZERO
    exclusion_percentage: Decimal = ZERO
    impact_category: ExclusionImpact = ExclusionImpact.NONE
    warnings: list[ComplianceWarning] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Integration
# ---------------------------------------------------------------------------

class OtherOffsets(BaseModel):
    """Meals and transport are reported but never count as offsets."""

    meals_charge: Decimal = ZERO
    meals_offset: Decimal = ZERO
    transport_charge: Decimal = ZERO
    transport_offset: Decimal = ZERO
    total: Decimal = ZERO


class IntegrationSummary(BaseModel):
    final_status: RAGStatus
    final_score: int
    effective_hourly_rate: Decimal
    required_hourly_rate: Optional[Decimal] = None
    base_pay: Decimal
    base_hours: Decimal
    net_pay_for_nmw: Decimal
    total_offsets: Decimal
    total_deductions: Decimal
    total_allowances: Decimal
    total_premiums: Decimal
    total_tronc_excluded: Decimal
    total_enhancements: Decimal


class IntegratedBreakdown(BaseModel):
    """Mirrors every sub-result; a failed sub-calculation appears under ``errors``."""

    core_prp: Optional[PRPResult] = None
    accommodation_offsets: Optional[AccommodationResult] = None
    nmw_deductions: Optional[DeductionResult] = None
    allowances_premiums: Optional[AllowancePremiumResult] = None
    tronc_exclusions: Optional[TroncResult] = None
    other_offsets: OtherOffsets = Field(default_factory=OtherOffsets)
    enhancements: dict[str, Decimal] = Field(default_factory=dict)
    integration: Optional[IntegrationSummary] = None
    errors: dict[str, dict[str, Any]] = Field(default_factory=dict)


class ComplianceResult(BaseModel):
    """Consolidated verdict for one (Worker, PayPeriod) calculation."""

    worker_id: str
    worker_name: str = ""
    pay_period_id: str = ""
    period_start: Optional[date] = None
    period_end: Optional[date] = None

    rag_status: RAGStatus
    severity: Optional[Severity] = None
    reason: str
    reason_code: IssueCode
    amber_flags: list[AmberFlag] = Field(default_factory=list)

    effective_hourly_rate: Decimal
    required_hourly_rate: Optional[Decimal] = None
    compliance_score: int

    net_pay_for_nmw: Decimal = ZERO
    total_offsets: Decimal = ZERO
    total_deductions: Decimal = ZERO
    total_allowances: Decimal = ZERO
    total_premiums: Decimal = ZERO
    total_tronc_excluded: Decimal = ZERO
    total_enhancements: Decimal = ZERO

    breakdown: IntegratedBreakdown = Field(default_factory=IntegratedBreakdown)
    warnings: list[ComplianceWarning] = Field(default_factory=list)
    fix_suggestions: list[FixSuggestion] = Field(default_factory=list)
    fix_calculations: Optional[ShortfallCalculation] = None

    rates_version: str = ""
    rules_version: str = ""

    @property
    def success(self) -> bool:
        return True

    @property
    def primary_fix_suggestion(self) -> Optional[str]:
        return self.fix_suggestions[0].message if self.fix_suggestions else None
