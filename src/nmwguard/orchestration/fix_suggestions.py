"""FixSuggestionGenerator: quantified remediation suggestions for a RAG verdict."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from pydantic import BaseModel, Field

from nmwguard.core.money import HUNDRED, PENNY, ZERO, format_gbp, quantize
from nmwguard.models.outputs import (
    FixSuggestion,
    FixSuggestionResult,
    RAGResult,
    RAGStatus,
    Severity,
    ShortfallCalculation,
    SuggestionCategory,
)

URGENT_SHORTFALL_PCT = Decimal("20")
HOURS_REVIEW_THRESHOLD = Decimal("48")
LOW_MARGIN_PCT = Decimal("5")

# flag -> (category, severity, message)
AMBER_SUGGESTIONS: dict[str, tuple[SuggestionCategory, Severity, str]] = {
    "zero_hours_with_pay": (
        SuggestionCategory.DATA_CLARIFICATION,
        Severity.MEDIUM,
        "Zero hours recorded with non-zero pay. Please verify timesheet data and ensure all "
        "working hours are captured.",
    ),
    "missing_age_data": (
        SuggestionCategory.MISSING_DATA,
        Severity.HIGH,
        "Worker age or date of birth missing. Required to determine applicable minimum wage rate.",
    ),
    "negative_effective_rate": (
        SuggestionCategory.DATA_ERROR,
        Severity.CRITICAL,
        "Negative effective hourly rate indicates data quality issues. Review pay and hours data "
        "immediately.",
    ),
    "excessive_deductions": (
        SuggestionCategory.DEDUCTION_REVIEW,
        Severity.HIGH,
        "Deductions exceed 50% of pay. Review deduction legitimacy and NMW compliance rules.",
    ),
    "accommodation_offset_violations": (
        SuggestionCategory.ACCOMMODATION_REVIEW,
        Severity.HIGH,
        "Accommodation charges exceed legal limits. Review offset calculations and daily limits.",
    ),
}


def calculate_shortfall(effective: Decimal, required: Decimal, hours: Decimal) -> ShortfallCalculation:
    per_hour = max(ZERO, required - effective)
    if effective > 0 and required > 0:
        pct = quantize(per_hour / required * HUNDRED)
    else:
        pct = HUNDRED
    return ShortfallCalculation(
        per_hour_shortfall=quantize(per_hour),
        total_shortfall=quantize(per_hour * hours),
        shortfall_percentage=pct,
        hours_worked=hours,
        effective_rate=effective,
        required_rate=required,
    )


def suggestion_for_flag(flag: str) -> FixSuggestion:
    if flag in AMBER_SUGGESTIONS:
        category, severity, message = AMBER_SUGGESTIONS[flag]
    else:
        category, severity = SuggestionCategory.MANUAL_REVIEW, Severity.MEDIUM
        message = f"Manual review required for compliance flag: {flag.replace('_', ' ')}."
    return FixSuggestion(
        category=category, severity=severity, message=message, action_required=True, details={"flag": flag}
    )


def format_primary_suggestion(result: FixSuggestionResult) -> str:
    primary = result.primary_suggestion
    return primary.message if primary is not None else "No suggestions available"


class FixSuggestionBulk(BaseModel):
    results: list[FixSuggestionResult] = Field(default_factory=list)
    total: int = 0
    with_suggestions: int = 0
    action_required: int = 0
    critical_issues: int = 0
    total_shortfall: Decimal = ZERO


class FixSuggestionGenerator:
    def generate(self, rag: RAGResult, hours_worked: Decimal, total_pay: Decimal) -> FixSuggestionResult:
        if rag.rag_status == RAGStatus.RED:
            return self._red(rag, hours_worked, total_pay)
        if rag.rag_status == RAGStatus.AMBER:
            suggestions = [suggestion_for_flag(str(flag)) for flag in rag.amber_flags]
            if not suggestions:
                suggestions = [
                    FixSuggestion(
                        category=SuggestionCategory.MANUAL_REVIEW,
                        severity=Severity.MEDIUM,
                        message=rag.reason,
                        action_required=True,
                        details={"reason_code": str(rag.reason_code)},
                    )
                ]
            return FixSuggestionResult(rag_status=rag.rag_status, suggestions=suggestions)
        return FixSuggestionResult(rag_status=rag.rag_status, suggestions=[self._green(rag)])

    def _red(self, rag: RAGResult, hours: Decimal, total_pay: Decimal) -> FixSuggestionResult:
        effective = rag.effective_hourly_rate or ZERO
        required = rag.required_hourly_rate or ZERO
        calc = calculate_shortfall(effective, required, hours)
        suggestions = []

        if calc.per_hour_shortfall >= PENNY and calc.total_shortfall >= PENNY:
            suggestions.append(
                FixSuggestion(
                    category=SuggestionCategory.ARREARS_TOP_UP,
                    severity=Severity.HIGH,
                    message=(
                        f"Effective rate is {format_gbp(effective)}, which is "
                        f"{format_gbp(calc.per_hour_shortfall)} below the required {format_gbp(required)}. "
                        f"Suggestion: Add arrears top-up of {format_gbp(calc.total_shortfall)}."
                    ),
                    action_required=True,
                    details={
                        "financial_impact": {
                            "per_hour_shortfall": calc.per_hour_shortfall,
                            "total_shortfall": calc.total_shortfall,
                            "current_pay": total_pay,
                            "required_pay": quantize(required * hours),
                        }
                    },
                )
            )
        if calc.shortfall_percentage > URGENT_SHORTFALL_PCT:
            suggestions.append(
                FixSuggestion(
                    category=SuggestionCategory.URGENT_REVIEW,
                    severity=Severity.CRITICAL,
                    message=(
                        f"Critical underpayment detected ({calc.shortfall_percentage:.1f}% below minimum). "
                        "Immediate payroll review required."
                    ),
                    action_required=True,
                    details={"shortfall_percentage": calc.shortfall_percentage},
                )
            )
        if hours > HOURS_REVIEW_THRESHOLD:
            suggestions.append(
                FixSuggestion(
                    category=SuggestionCategory.HOURS_REVIEW,
                    severity=Severity.MEDIUM,
                    message=(
                        f"Review working time regulations compliance. Worker has {hours} hours "
                        "which may exceed limits."
                    ),
                    action_required=True,
                    details={"hours_worked": hours},
                )
            )
        suggestions.append(
            FixSuggestion(
                category=SuggestionCategory.RATE_BREAKDOWN,
                severity=Severity.INFO,
                message=(
                    f"Rate breakdown: Effective {format_gbp(effective)}/hour vs Required "
                    f"{format_gbp(required)}/hour over {hours} hours."
                ),
                action_required=False,
                details={"effective_rate": effective, "required_rate": required, "hours_worked": hours},
            )
        )
        return FixSuggestionResult(rag_status=RAGStatus.RED, suggestions=suggestions, calculations=calc)

    @staticmethod
    def _green(rag: RAGResult) -> FixSuggestion:
        effective = rag.effective_hourly_rate or ZERO
        required = rag.required_hourly_rate or ZERO
        cushion = effective - required
        if required > 0 and cushion / required * HUNDRED < LOW_MARGIN_PCT:
            return FixSuggestion(
                category=SuggestionCategory.LOW_MARGIN,
                severity=Severity.LOW,
                message=(
                    f"Pay is compliant but only {format_gbp(cushion)}/hour above minimum wage. "
                    "Consider buffer for rate changes."
                ),
                action_required=False,
                details={"cushion_per_hour": quantize(cushion)},
            )
        return FixSuggestion(
            category=SuggestionCategory.COMPLIANCE_CONFIRMED,
            severity=Severity.INFO,
            message=(
                f"Compliant: {format_gbp(effective)}/hour meets minimum wage requirement of "
                f"{format_gbp(required)}/hour."
            ),
            action_required=False,
        )

    def generate_bulk(self, items: Sequence[tuple[RAGResult, Decimal, Decimal]]) -> FixSuggestionBulk:
        """``items`` holds (rag_result, hours_worked, total_pay) per worker."""
        bulk = FixSuggestionBulk(total=len(items))
        for rag, hours, pay in items:
            result = self.generate(rag, hours, pay)
            bulk.results.append(result)
            if result.suggestions:
                bulk.with_suggestions += 1
            if any(s.action_required for s in result.suggestions):
                bulk.action_required += 1
            if any(s.severity == Severity.CRITICAL for s in result.suggestions):
                bulk.critical_issues += 1
            if result.calculations is not None:
                bulk.total_shortfall += result.calculations.total_shortfall
        return bulk
